"""Dynamically typed message parameters: base values and containers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict as DictT, List, Optional, Union

from dbuswire.errors import MarshalError
from dbuswire.signature import (
    ArrayType,
    BaseType,
    DictType,
    SignatureType,
    StructType,
    VariantType,
)
from dbuswire.validation import ValidationError, ValidationErrorKind


class ConversionErrorKind(enum.Enum):
    """The ways converting to or from parameters can fail."""

    EMPTY_ARRAY = "Tried to construct an array with an empty set of params"
    EMPTY_DICT = "Tried to construct a dict with an empty set of params"
    VALIDATION = "Errors occuring while validating the input: {0}"
    INVALID_TYPE = "Tried to convert a Param to the wrong type"


class ConversionError(ValueError):
    """Raised when a value cannot be converted to or from a parameter."""

    def __init__(self, kind: ConversionErrorKind, detail: Any = None) -> None:
        super().__init__(kind.value.format(detail))
        self.kind = kind
        self.detail = detail

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, ConversionError)
            and other.kind == self.kind
            and other.detail == self.detail
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.detail))


_INT_RANGES = {
    BaseType.BYTE: (0, 0xFF),
    BaseType.INT16: (-(1 << 15), (1 << 15) - 1),
    BaseType.UINT16: (0, 0xFFFF),
    BaseType.INT32: (-(1 << 31), (1 << 31) - 1),
    BaseType.UINT32: (0, 0xFFFFFFFF),
    BaseType.INT64: (-(1 << 63), (1 << 63) - 1),
    BaseType.UINT64: (0, 0xFFFFFFFFFFFFFFFF),
    BaseType.UNIX_FD: (0, (1 << 31) - 1),
}

_STRING_KINDS = frozenset({BaseType.STRING, BaseType.SIGNATURE, BaseType.OBJECT_PATH})


def _invalid_type() -> ConversionError:
    return ConversionError(ConversionErrorKind.INVALID_TYPE)


@dataclass(frozen=True)
class Base:
    """A basic value together with the D-Bus type it is sent as."""

    kind: BaseType
    value: Any

    def __post_init__(self) -> None:
        kind, value = self.kind, self.value
        if kind in _INT_RANGES:
            if isinstance(value, bool) or not isinstance(value, int):
                raise _invalid_type()
            low, high = _INT_RANGES[kind]
            if not low <= value <= high:
                raise _invalid_type()
        elif kind is BaseType.BOOLEAN:
            if not isinstance(value, bool):
                raise _invalid_type()
        elif kind is BaseType.DOUBLE:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise _invalid_type()
            object.__setattr__(self, "value", float(value))
        elif kind in _STRING_KINDS:
            if not isinstance(value, str):
                raise _invalid_type()

    def sig(self) -> BaseType:
        return self.kind

    def make_signature(self) -> str:
        return self.kind.to_str()

    def expect(self, kind: BaseType) -> Any:
        """Return the value if it is of ``kind``, else raise ConversionError."""
        if self.kind is not kind:
            raise _invalid_type()
        return self.value


@dataclass
class Array:
    """An array whose elements all have ``element_sig``."""

    element_sig: SignatureType
    values: List["Param"] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.values = [to_param(v) for v in self.values]

    def sig(self) -> ArrayType:
        return ArrayType(self.element_sig)

    def make_signature(self) -> str:
        return "a" + self.element_sig.to_str()

    def push(self, value: Any) -> None:
        """Append a value; its type must match the element signature."""
        param = to_param(value)
        if param.sig() != self.element_sig:
            raise MarshalError.from_validation(
                ValidationError(ValidationErrorKind.ARRAY_ELEMENT_TYPES_DIFFER)
            )
        self.values.append(param)

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class Struct:
    """A struct of heterogeneous members."""

    values: List["Param"] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.values = [to_param(v) for v in self.values]

    def sig(self) -> StructType:
        return StructType(tuple(v.sig() for v in self.values))

    def make_signature(self) -> str:
        return "(" + "".join(v.make_signature() for v in self.values) + ")"

    def push(self, value: Any) -> None:
        self.values.append(to_param(value))

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class Dict:
    """A mapping from basic keys to values of one type."""

    key_sig: BaseType
    value_sig: SignatureType
    entries: DictT[Base, "Param"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        converted = {}
        for key, value in self.entries.items():
            key_param = to_param(key)
            if not isinstance(key_param, Base):
                raise _invalid_type()
            converted[key_param] = to_param(value)
        self.entries = converted

    def sig(self) -> DictType:
        return DictType(self.key_sig, self.value_sig)

    def make_signature(self) -> str:
        return "a{" + self.key_sig.to_str() + self.value_sig.to_str() + "}"

    def insert(self, key: Any, value: Any) -> None:
        """Add an entry; key and value must match the dict's signatures."""
        key_param = to_param(key)
        value_param = to_param(value)
        if not isinstance(key_param, Base) or key_param.sig() != self.key_sig:
            raise MarshalError.from_validation(
                ValidationError(ValidationErrorKind.DICT_KEY_TYPES_DIFFER)
            )
        if value_param.sig() != self.value_sig:
            raise MarshalError.from_validation(
                ValidationError(ValidationErrorKind.DICT_KEY_TYPES_DIFFER)
            )
        self.entries[key_param] = value_param

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class Variant:
    """A value carried together with its own signature."""

    value: "Param"
    signature: Optional[SignatureType] = None

    def __post_init__(self) -> None:
        self.value = to_param(self.value)
        if self.signature is None:
            self.signature = self.value.sig()

    def sig(self) -> VariantType:
        return VariantType()

    def make_signature(self) -> str:
        return "v"

    def __len__(self) -> int:
        return 1


Param = Union[Base, Array, Struct, Dict, Variant]

_PARAM_TYPES = (Base, Array, Struct, Dict, Variant)


def to_param(value: Any) -> Param:
    """Convert a Python value into a parameter.

    Parameters pass through unchanged; ``bool`` becomes a boolean, ``str`` a
    string, ``float`` a double and ``int`` a signed 64-bit integer.
    """
    if isinstance(value, _PARAM_TYPES):
        return value
    if isinstance(value, bool):
        return Base(BaseType.BOOLEAN, value)
    if isinstance(value, str):
        return Base(BaseType.STRING, value)
    if isinstance(value, float):
        return Base(BaseType.DOUBLE, value)
    if isinstance(value, int):
        return Base(BaseType.INT64, value)
    raise _invalid_type()