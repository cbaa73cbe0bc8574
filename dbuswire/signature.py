"""Parsing, printing and splitting of D-Bus type signatures."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Union

MAX_SIGNATURE_LENGTH = 255
MAX_NESTING_DEPTH = 32


class SignatureErrorKind(enum.Enum):
    """The ways a signature can be rejected."""

    TOO_MANY_TYPES = "There were too many types in the signature"
    SHOULD_BE_BASE_TYPE = "Type encountered that should have been a base type"
    INVALID_SIGNATURE = "Signature was invalid"
    SIGNATURE_TOO_LONG = "signature was too long"
    NESTING_TOO_DEEP = "Nesting of structs/arrays/variants was too deep"
    EMPTY_SIGNATURE = "The signature was empty"
    EMPTY_STRUCT = "There was an empty struct in the signature"


class SignatureError(ValueError):
    """Raised when a signature is malformed."""

    def __init__(self, kind: SignatureErrorKind) -> None:
        super().__init__(kind.value)
        self.kind = kind

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SignatureError) and other.kind == self.kind

    def __hash__(self) -> int:
        return hash(self.kind)


class BaseType(enum.Enum):
    """Basic (non-container) D-Bus types, valued by their signature character."""

    BYTE = "y"
    INT16 = "n"
    UINT16 = "q"
    INT32 = "i"
    UINT32 = "u"
    UNIX_FD = "h"
    INT64 = "x"
    UINT64 = "t"
    DOUBLE = "d"
    STRING = "s"
    SIGNATURE = "g"
    OBJECT_PATH = "o"
    BOOLEAN = "b"

    def to_str(self) -> str:
        return self.value

    def alignment(self) -> int:
        return _BASE_ALIGNMENT[self]

    def bytes_always_valid(self) -> bool:
        """True if every bit pattern is valid and the size equals the alignment."""
        return self in _ALWAYS_VALID


_BASE_ALIGNMENT = {
    BaseType.BOOLEAN: 4,
    BaseType.BYTE: 1,
    BaseType.INT16: 2,
    BaseType.UINT16: 2,
    BaseType.INT32: 4,
    BaseType.UINT32: 4,
    BaseType.UNIX_FD: 4,
    BaseType.INT64: 8,
    BaseType.UINT64: 8,
    BaseType.DOUBLE: 8,
    BaseType.STRING: 4,
    BaseType.OBJECT_PATH: 4,
    BaseType.SIGNATURE: 1,
}

_ALWAYS_VALID = frozenset(
    {
        BaseType.BYTE,
        BaseType.INT16,
        BaseType.UINT16,
        BaseType.UINT32,
        BaseType.INT64,
        BaseType.UINT64,
        BaseType.UNIX_FD,
        BaseType.DOUBLE,
    }
)

# Base types allowed as dict keys while parsing (booleans are not accepted).
_DICT_KEY_CHARS = frozenset("ynqiuxtsogdh")


@dataclass(frozen=True)
class ArrayType:
    """An array of elements of one type."""

    element: "SignatureType"

    def to_str(self) -> str:
        return "a" + self.element.to_str()

    def alignment(self) -> int:
        return 4


@dataclass(frozen=True)
class StructType:
    """A struct holding at least one member type."""

    types: Sequence["SignatureType"]

    def __post_init__(self) -> None:
        types = tuple(self.types)
        if not types:
            raise SignatureError(SignatureErrorKind.EMPTY_STRUCT)
        object.__setattr__(self, "types", types)

    def to_str(self) -> str:
        return "(" + "".join(t.to_str() for t in self.types) + ")"

    def alignment(self) -> int:
        return 8


@dataclass(frozen=True)
class DictType:
    """An array of dict entries with a basic key type."""

    key: BaseType
    value: "SignatureType"

    def to_str(self) -> str:
        return "a{" + self.key.to_str() + self.value.to_str() + "}"

    def alignment(self) -> int:
        return 4


@dataclass(frozen=True)
class VariantType:
    """A value carrying its own signature."""

    def to_str(self) -> str:
        return "v"

    def alignment(self) -> int:
        return 1


SignatureType = Union[BaseType, ArrayType, StructType, DictType, VariantType]

_VALID_CHARS = frozenset("()abynqiuhxtdsog{}v")


def _invalid() -> SignatureError:
    return SignatureError(SignatureErrorKind.INVALID_SIGNATURE)


class _Parser:
    def __init__(self, sig: str) -> None:
        self._sig = sig
        self._pos = 0

    def _next(self) -> Optional[str]:
        if self._pos >= len(self._sig):
            return None
        char = self._sig[self._pos]
        self._pos += 1
        if char not in _VALID_CHARS:
            raise _invalid()
        return char

    def _peek(self) -> Optional[str]:
        if self._pos >= len(self._sig):
            return None
        return self._sig[self._pos]

    def next_type(self, delim: Optional[str]) -> Optional[SignatureType]:
        token = self._next()
        if token is None:
            if delim is None:
                return None
            raise _invalid()
        if token == "(":
            members = []
            while (member := self.next_type(")")) is not None:
                members.append(member)
            return StructType(members)
        if token == ")":
            if delim == ")":
                return None
            raise _invalid()
        if token == "a":
            upcoming = self._peek()
            if upcoming is None or upcoming not in _VALID_CHARS:
                raise _invalid()
            element = self.next_type(None)
            if element is None:
                raise _invalid()
            if isinstance(element, DictType) and upcoming == "{":
                return element
            return ArrayType(element)
        if token == "{":
            key = self._next_base()
            value = self.next_type(None)
            if value is None:
                raise _invalid()
            if self._pos >= len(self._sig) or self._sig[self._pos] != "}":
                raise _invalid()
            self._pos += 1
            return DictType(key, value)
        if token == "v":
            return VariantType()
        if token == "}":
            raise _invalid()
        return BaseType(token)

    def _next_base(self) -> BaseType:
        token = self._next()
        if token is None or token not in _DICT_KEY_CHARS:
            raise _invalid()
        return BaseType(token)


def _check_nesting(typ: SignatureType, struct_depth: int, array_depth: int) -> None:
    if struct_depth >= MAX_NESTING_DEPTH or array_depth >= MAX_NESTING_DEPTH:
        raise SignatureError(SignatureErrorKind.NESTING_TOO_DEEP)
    if isinstance(typ, StructType):
        for member in typ.types:
            _check_nesting(member, struct_depth + 1, array_depth)
    elif isinstance(typ, ArrayType):
        _check_nesting(typ.element, struct_depth, array_depth + 1)
    elif isinstance(typ, DictType):
        _check_nesting(typ.value, struct_depth, array_depth + 1)


def parse_description(sig: str) -> List[SignatureType]:
    """Parse a signature string into its sequence of complete types."""
    if len(sig.encode("utf-8")) > MAX_SIGNATURE_LENGTH:
        raise SignatureError(SignatureErrorKind.SIGNATURE_TOO_LONG)
    if not sig:
        raise SignatureError(SignatureErrorKind.EMPTY_SIGNATURE)
    parser = _Parser(sig)
    types: List[SignatureType] = []
    while (typ := parser.next_type(None)) is not None:
        types.append(typ)
    for typ in types:
        _check_nesting(typ, 0, 0)
    return types


def types_to_str(types: Sequence[SignatureType]) -> str:
    """Render a sequence of types as one signature string."""
    return "".join(t.to_str() for t in types)


def iter_signatures(sigs: str, idx: int = 0) -> Iterator[str]:
    """Yield each complete type of a valid signature, starting at ``idx``.

    The content is not validated; an unterminated type raises SignatureError.
    """
    rest = sigs[idx:] if idx < len(sigs) else ""
    while rest:
        end = 0
        depth = 0
        while True:
            if end >= len(rest):
                raise _invalid()
            char = rest[end]
            end += 1
            if char in "({":
                depth += 1
            elif char in ")}":
                depth -= 1
            elif char == "a":
                continue
            if depth == 0:
                break
        yield rest[:end]
        rest = rest[end:]