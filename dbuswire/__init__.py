"""D-Bus signatures, parameters, validation and wire-format marshalling."""

__version__ = "0.1.0"

__all__ = [
    "containers",
    "errors",
    "header",
    "marshal",
    "message",
    "params",
    "signature",
    "typed",
    "unmarshal",
    "validation",
    "wire",
]