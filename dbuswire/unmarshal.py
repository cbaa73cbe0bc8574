"""Unmarshalling of message headers and extraction of message bodies."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dbuswire.errors import UnmarshalError, UnmarshalErrorKind
from dbuswire.signature import (
    ArrayType,
    BaseType,
    DictType,
    SignatureError,
    SignatureType,
    StructType,
    VariantType,
    parse_description,
)
from dbuswire.validation import (
    ValidationError,
    ValidationErrorKind,
    validate_header_fields,
    validate_object_path,
    validate_signature,
)
from dbuswire.wire import (
    ByteOrder,
    DynamicHeader,
    HeaderField,
    HeaderFieldCode,
    MessageType,
)

HEADER_LEN = 12

_BYTE_ORDERS = {ord("l"): ByteOrder.LITTLE_ENDIAN, ord("B"): ByteOrder.BIG_ENDIAN}
_MESSAGE_TYPES = {
    1: MessageType.CALL,
    2: MessageType.REPLY,
    3: MessageType.ERROR,
    4: MessageType.SIGNAL,
}

_FIELD_TYPES = {
    HeaderFieldCode.PATH: BaseType.OBJECT_PATH,
    HeaderFieldCode.INTERFACE: BaseType.STRING,
    HeaderFieldCode.MEMBER: BaseType.STRING,
    HeaderFieldCode.ERROR_NAME: BaseType.STRING,
    HeaderFieldCode.REPLY_SERIAL: BaseType.UINT32,
    HeaderFieldCode.DESTINATION: BaseType.STRING,
    HeaderFieldCode.SENDER: BaseType.STRING,
    HeaderFieldCode.SIGNATURE: BaseType.SIGNATURE,
    HeaderFieldCode.UNIX_FDS: BaseType.UINT32,
}

_FIELD_ATTRS = {
    HeaderFieldCode.PATH: "object",
    HeaderFieldCode.INTERFACE: "interface",
    HeaderFieldCode.MEMBER: "member",
    HeaderFieldCode.ERROR_NAME: "error_name",
    HeaderFieldCode.REPLY_SERIAL: "response_serial",
    HeaderFieldCode.DESTINATION: "destination",
    HeaderFieldCode.SENDER: "sender",
    HeaderFieldCode.SIGNATURE: "signature",
    HeaderFieldCode.UNIX_FDS: "num_fds",
}

_FIXED_SIZES = {
    BaseType.BYTE: 1,
    BaseType.INT16: 2,
    BaseType.UINT16: 2,
    BaseType.INT32: 4,
    BaseType.UINT32: 4,
    BaseType.UNIX_FD: 4,
    BaseType.INT64: 8,
    BaseType.UINT64: 8,
    BaseType.DOUBLE: 8,
}


@dataclass(frozen=True)
class Header:
    """The fixed part of a message header."""

    byteorder: ByteOrder
    typ: MessageType
    flags: int
    version: int
    body_len: int
    serial: int


def _error(kind: UnmarshalErrorKind) -> UnmarshalError:
    return UnmarshalError(kind)


def _validation(kind: ValidationErrorKind) -> UnmarshalError:
    return UnmarshalError.from_validation(ValidationError(kind))


class _Cursor:
    """Reads values from a buffer; alignment is relative to the buffer start."""

    def __init__(self, buf: bytes, byteorder: ByteOrder, pos: int = 0) -> None:
        self.buf = buf
        self.pos = pos
        self._u32 = "<I" if byteorder is ByteOrder.LITTLE_ENDIAN else ">I"

    def remaining(self) -> int:
        return len(self.buf) - self.pos

    def take(self, count: int) -> bytes:
        if self.remaining() < count:
            raise _error(UnmarshalErrorKind.NOT_ENOUGH_BYTES)
        data = bytes(self.buf[self.pos : self.pos + count])
        self.pos += count
        return data

    def align(self, alignment: int) -> None:
        if any(self.take(-self.pos % alignment)):
            raise _error(UnmarshalErrorKind.PADDING_CONTAINED_DATA)

    def read_u8(self) -> int:
        return self.take(1)[0]

    def read_u32(self) -> int:
        self.align(4)
        return struct.unpack(self._u32, self.take(4))[0]

    def _terminated(self, length: int) -> str:
        data = self.take(length)
        if self.take(1) != b"\0" or b"\0" in data:
            raise _validation(ValidationErrorKind.STRING_CONTAINS_NULL_BYTE)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise _validation(ValidationErrorKind.INVALID_UTF8) from None

    def read_str(self) -> str:
        return self._terminated(self.read_u32())

    def read_signature(self) -> str:
        return self._terminated(self.read_u8())


def _checked(check, value: str) -> None:
    try:
        check(value)
    except (ValidationError, SignatureError) as err:
        raise UnmarshalError.from_validation(err) from None


def _skip_value(typ: SignatureType, cur: _Cursor) -> None:
    """Read past one value of ``typ``, checking that it is well formed."""
    if isinstance(typ, BaseType):
        if typ in _FIXED_SIZES:
            cur.align(typ.alignment())
            cur.take(_FIXED_SIZES[typ])
        elif typ is BaseType.BOOLEAN:
            if cur.read_u32() > 1:
                raise _error(UnmarshalErrorKind.INVALID_BOOLEAN)
        elif typ is BaseType.STRING:
            cur.read_str()
        elif typ is BaseType.OBJECT_PATH:
            _checked(validate_object_path, cur.read_str())
        elif typ is BaseType.SIGNATURE:
            _checked(validate_signature, cur.read_signature())
    elif isinstance(typ, (ArrayType, DictType)):
        length = cur.read_u32()
        element_alignment = 8 if isinstance(typ, DictType) else typ.element.alignment()
        cur.align(element_alignment)
        end = cur.pos + length
        if end > len(cur.buf):
            raise _error(UnmarshalErrorKind.NOT_ENOUGH_BYTES_FOR_COLLECTION)
        while cur.pos < end:
            if isinstance(typ, DictType):
                cur.align(8)
                _skip_value(typ.key, cur)
                _skip_value(typ.value, cur)
            else:
                _skip_value(typ.element, cur)
        if cur.pos != end:
            raise _error(UnmarshalErrorKind.NOT_ENOUGH_BYTES_FOR_COLLECTION)
    elif isinstance(typ, StructType):
        cur.align(8)
        for member in typ.types:
            _skip_value(member, cur)
    elif isinstance(typ, VariantType):
        sig = cur.read_signature()
        try:
            types = parse_description(sig)
        except SignatureError as err:
            raise UnmarshalError.from_validation(err) from None
        if len(types) != 1:
            raise _validation(ValidationErrorKind.INVALID_SIGNATURE)
        _skip_value(types[0], cur)


def _read_header_field(cur: _Cursor) -> Optional[HeaderField]:
    """Read one header field; unknown fields are skipped and give None."""
    cur.align(8)
    code_value = cur.read_u8()
    sig_str = cur.read_signature()
    try:
        types = parse_description(sig_str)
    except SignatureError:
        raise _error(UnmarshalErrorKind.NO_SIGNATURE) from None
    if len(types) != 1:
        raise _error(UnmarshalErrorKind.NO_SIGNATURE)
    typ = types[0]

    if code_value == 0:
        raise _error(UnmarshalErrorKind.INVALID_HEADER_FIELD)
    try:
        code = HeaderFieldCode(code_value)
    except ValueError:
        _skip_value(typ, cur)
        return None
    if typ != _FIELD_TYPES[code]:
        raise _error(UnmarshalErrorKind.WRONG_SIGNATURE)

    if code is HeaderFieldCode.PATH:
        path = cur.read_str()
        _checked(validate_object_path, path)
        return HeaderField(code, path)
    if code is HeaderFieldCode.REPLY_SERIAL:
        serial = cur.read_u32()
        if serial == 0:
            raise _error(UnmarshalErrorKind.INVALID_HEADER_FIELD)
        return HeaderField(code, serial)
    if code is HeaderFieldCode.UNIX_FDS:
        return HeaderField(code, cur.read_u32())
    if code is HeaderFieldCode.SIGNATURE:
        sig = cur.read_signature()
        # an empty signature is allowed here
        if sig:
            _checked(validate_signature, sig)
        return HeaderField(code, sig)
    return HeaderField(code, cur.read_str())


def unmarshal_header(buf: bytes) -> Header:
    """Parse the 12-byte fixed header at the start of ``buf``."""
    if len(buf) < HEADER_LEN:
        raise _error(UnmarshalErrorKind.NOT_ENOUGH_BYTES)
    byteorder = _BYTE_ORDERS.get(buf[0])
    if byteorder is None:
        raise _error(UnmarshalErrorKind.INVALID_BYTE_ORDER)
    typ = _MESSAGE_TYPES.get(buf[1])
    if typ is None:
        raise _error(UnmarshalErrorKind.INVALID_MESSAGE_TYPE)
    fmt = "<II" if byteorder is ByteOrder.LITTLE_ENDIAN else ">II"
    body_len, serial = struct.unpack_from(fmt, buf, 4)
    if serial == 0:
        raise _error(UnmarshalErrorKind.INVALID_SERIAL)
    return Header(byteorder, typ, buf[2], buf[3], body_len, serial)


def unmarshal_dynamic_header(
    header: Header, buf: bytes, offset: int = HEADER_LEN
) -> Tuple[DynamicHeader, int]:
    """Parse the header fields at ``offset``.

    Returns the dynamic header and the offset just past the fields.
    """
    cur = _Cursor(buf, header.byteorder, offset)
    fields_len = cur.read_u32()
    if cur.remaining() < fields_len:
        raise _error(UnmarshalErrorKind.NOT_ENOUGH_BYTES)
    fields_cur = _Cursor(cur.take(fields_len), header.byteorder)

    fields: List[HeaderField] = []
    while fields_cur.remaining():
        field = _read_header_field(fields_cur)
        if field is not None:
            fields.append(field)
    try:
        validate_header_fields(header.typ, fields)
    except ValidationError:
        raise _error(UnmarshalErrorKind.INVALID_HEADER_FIELDS) from None

    dynheader = DynamicHeader(serial=header.serial)
    for field in fields:
        setattr(dynheader, _FIELD_ATTRS[field.code], field.value)
    return dynheader, cur.pos


def extract_body(header: Header, buf: bytes, offset: int = 0) -> bytes:
    """Return the body that starts at ``offset`` (after padding to 8).

    The body must use exactly the rest of ``buf``.
    """
    padding = -offset % 8
    if len(buf) < offset + padding:
        raise _error(UnmarshalErrorKind.NOT_ENOUGH_BYTES)
    if any(buf[offset : offset + padding]):
        raise _error(UnmarshalErrorKind.PADDING_CONTAINED_DATA)
    if header.body_len == 0:
        return b""
    start = offset + padding
    available = len(buf) - start
    if available < header.body_len:
        raise _error(UnmarshalErrorKind.NOT_ENOUGH_BYTES)
    if available != header.body_len:
        raise _error(UnmarshalErrorKind.NOT_ALL_BYTES_USED)
    return bytes(buf[start:])