"""Validation of names, paths, signatures, containers and header fields."""

from __future__ import annotations

import enum
from typing import Any, Iterable, Mapping, Optional

from dbuswire.signature import (
    MAX_SIGNATURE_LENGTH,
    BaseType,
    SignatureError,
    SignatureErrorKind,
)
from dbuswire.wire import HeaderField, HeaderFieldCode, MessageType

_MAX_BRACKET_DEPTH = 32
_BASE_BYTES = frozenset(b"ybnqiuxtdhsog")
_SINGLE_BYTES = _BASE_BYTES | frozenset(b"v")


class ValidationErrorKind(enum.Enum):
    """The ways input can fail validation."""

    INVALID_SIGNATURE = "Invalid signature: {0}"
    INVALID_OBJECT_PATH = "Invalid object path"
    INVALID_BUSNAME = "Invalid bus name"
    INVALID_ERRORNAME = "Invalid error name"
    INVALID_MEMBERNAME = "Invalid member name"
    INVALID_INTERFACE = "Invalid Interface name"
    INVALID_HEADER_FIELDS = "Invalid header fields"
    STRING_CONTAINS_NULL_BYTE = "String contained a null byte"
    INVALID_UTF8 = "String did contain invalid utf-8"
    DUPLICATED_HEADER_FIELDS = "Duplicated header fields encountered"
    ARRAY_ELEMENT_TYPES_DIFFER = "Array elements differ in type"
    DICT_KEY_TYPES_DIFFER = "Dict keys differ in type"
    DICT_VALUE_TYPES_DIFFER = "Dict values differ in type"


class ValidationError(ValueError):
    """Raised when a value does not satisfy the protocol's constraints."""

    def __init__(
        self,
        kind: ValidationErrorKind,
        signature_error: Optional[SignatureError] = None,
    ) -> None:
        super().__init__(kind.value.format(signature_error))
        self.kind = kind
        self.signature_error = signature_error

    @classmethod
    def from_signature_error(cls, error: SignatureError) -> "ValidationError":
        """Wrap a signature error as an invalid-signature validation error."""
        return cls(ValidationErrorKind.INVALID_SIGNATURE, error)

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, ValidationError)
            and other.kind == self.kind
            and other.signature_error == self.signature_error
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.signature_error))


def _sig_error(kind: SignatureErrorKind) -> ValidationError:
    return ValidationError.from_signature_error(SignatureError(kind))


def _word_chars(element: str, extra: str) -> bool:
    return all(c.isalnum() or c in extra for c in element)


def validate_object_path(path: str) -> None:
    """Check that ``path`` is a valid object path."""
    if not path.startswith("/"):
        raise ValidationError(ValidationErrorKind.INVALID_OBJECT_PATH)
    rest = path[1:]
    if not rest:
        return
    for element in rest.split("/"):
        if not element or not _word_chars(element, "_"):
            raise ValidationError(ValidationErrorKind.INVALID_OBJECT_PATH)


def validate_interface(name: str) -> None:
    """Check that ``name`` is a valid interface name."""
    elements = name.split(".")
    for element in elements:
        if not element or element[0].isnumeric() or not _word_chars(element, "_"):
            raise ValidationError(ValidationErrorKind.INVALID_INTERFACE)
    if len(elements) < 2:
        raise ValidationError(ValidationErrorKind.INVALID_INTERFACE)


def validate_errorname(name: str) -> None:
    """Check that ``name`` is a valid error name (same rules as interfaces)."""
    try:
        validate_interface(name)
    except ValidationError:
        raise ValidationError(ValidationErrorKind.INVALID_ERRORNAME) from None


def validate_busname(name: str) -> None:
    """Check that ``name`` is a valid well-known or unique bus name."""
    unique = name.startswith(":")
    bus_name = name[1:] if unique else name
    elements = bus_name.split(".")
    for element in elements:
        if not element:
            raise ValidationError(ValidationErrorKind.INVALID_BUSNAME)
        if element[0].isnumeric() and not unique:
            raise ValidationError(ValidationErrorKind.INVALID_BUSNAME)
        if not _word_chars(element, "_-"):
            raise ValidationError(ValidationErrorKind.INVALID_BUSNAME)
    if len(elements) < 2:
        raise ValidationError(ValidationErrorKind.INVALID_BUSNAME)


def validate_membername(name: str) -> None:
    """Check that ``name`` is a valid member name."""
    if not name or not _word_chars(name, "_"):
        raise ValidationError(ValidationErrorKind.INVALID_MEMBERNAME)


def _validate_next(sig: bytes, pos: int, array_depth: int, bracket_depth: int) -> int:
    """Validate the complete type at ``pos`` and return its length."""
    if bracket_depth > _MAX_BRACKET_DEPTH or array_depth > _MAX_BRACKET_DEPTH:
        raise _sig_error(SignatureErrorKind.NESTING_TOO_DEEP)
    if pos >= len(sig):
        raise _sig_error(SignatureErrorKind.INVALID_SIGNATURE)

    char = sig[pos]
    if char in _SINGLE_BYTES:
        return 1
    if char == ord("a"):
        return _validate_next(sig, pos + 1, array_depth + 1, bracket_depth) + 1
    if char == ord("{"):
        if not (pos > 0 and len(sig) > pos + 2 and sig[pos - 1] == ord("a")):
            raise _sig_error(SignatureErrorKind.INVALID_SIGNATURE)
        if sig[pos + 1] not in _BASE_BYTES:
            raise _sig_error(SignatureErrorKind.INVALID_SIGNATURE)
        inner = 1 + _validate_next(sig, pos + 2, array_depth, bracket_depth + 1)
        end = pos + inner + 1
        if end >= len(sig) or sig[end] != ord("}"):
            raise _sig_error(SignatureErrorKind.INVALID_SIGNATURE)
        return inner + 2
    if char == ord("("):
        counter = 1
        while True:
            if pos + counter >= len(sig):
                raise _sig_error(SignatureErrorKind.INVALID_SIGNATURE)
            if sig[pos + counter] == ord(")"):
                return counter + 1
            counter += _validate_next(sig, pos + counter, array_depth, bracket_depth + 1)
    raise _sig_error(SignatureErrorKind.INVALID_SIGNATURE)


def validate_signature(sig: str) -> None:
    """Check that ``sig`` is a valid (possibly empty) signature string."""
    data = sig.encode("utf-8")
    if len(data) > MAX_SIGNATURE_LENGTH:
        raise _sig_error(SignatureErrorKind.SIGNATURE_TOO_LONG)
    pos = 0
    while pos < len(data):
        pos += _validate_next(data, pos, 0, 0)


def validate_array(values: Iterable[Any], sig: Any) -> None:
    """Check that every element's signature equals ``sig``."""
    if any(value.sig() != sig for value in values):
        raise ValidationError(ValidationErrorKind.ARRAY_ELEMENT_TYPES_DIFFER)


def validate_dict(mapping: Mapping[Any, Any], key_sig: BaseType, value_sig: Any) -> None:
    """Check that all keys have ``key_sig`` and all values ``value_sig``."""
    if any(key.sig() != key_sig for key in mapping):
        raise ValidationError(ValidationErrorKind.DICT_KEY_TYPES_DIFFER)
    if any(value.sig() != value_sig for value in mapping.values()):
        raise ValidationError(ValidationErrorKind.DICT_VALUE_TYPES_DIFFER)


_REQUIRED_FIELDS = {
    MessageType.CALL: {HeaderFieldCode.PATH, HeaderFieldCode.MEMBER},
    MessageType.SIGNAL: {
        HeaderFieldCode.PATH,
        HeaderFieldCode.MEMBER,
        HeaderFieldCode.INTERFACE,
    },
    MessageType.REPLY: {HeaderFieldCode.REPLY_SERIAL},
    MessageType.ERROR: {HeaderFieldCode.ERROR_NAME, HeaderFieldCode.REPLY_SERIAL},
}


def validate_header_fields(
    msg_type: MessageType, header_fields: Iterable[HeaderField]
) -> None:
    """Check for duplicated fields and that ``msg_type`` has its required fields."""
    seen = set()
    for field in header_fields:
        if field.code in seen:
            raise ValidationError(ValidationErrorKind.DUPLICATED_HEADER_FIELDS)
        seen.add(field.code)
    required = _REQUIRED_FIELDS.get(msg_type)
    if required is None or not required <= seen:
        raise ValidationError(ValidationErrorKind.INVALID_HEADER_FIELDS)