"""Marshalling of the fixed header and the header fields of a message."""

from __future__ import annotations

import struct
from typing import Any, Callable

from dbuswire.errors import MarshalError, MarshalErrorKind
from dbuswire.signature import SignatureError
from dbuswire.validation import (
    ValidationError,
    validate_busname,
    validate_errorname,
    validate_interface,
    validate_membername,
    validate_object_path,
    validate_signature,
)
from dbuswire.wire import ByteOrder, DynamicHeader, HeaderFieldCode, MessageType

_PROTOCOL_VERSION = 1
_MAX_U32 = 0xFFFFFFFF


class _HeaderWriter:
    """Accumulates header bytes in the chosen byte order."""

    def __init__(self, byteorder: ByteOrder) -> None:
        self.buf = bytearray()
        self._u32 = "<I" if byteorder is ByteOrder.LITTLE_ENDIAN else ">I"

    def pad(self, alignment: int) -> None:
        self.buf.extend(bytes(-len(self.buf) % alignment))

    def u32(self, value: int) -> None:
        self.buf.extend(struct.pack(self._u32, value))

    def insert_u32(self, pos: int, value: int) -> None:
        struct.pack_into(self._u32, self.buf, pos, value)

    def string(self, text: str) -> None:
        data = text.encode("utf-8")
        self.u32(len(data))
        self.buf.extend(data)
        self.buf.append(0)

    def signature(self, sig: str) -> None:
        data = sig.encode("utf-8")
        self.buf.append(len(data))
        self.buf.extend(data)
        self.buf.append(0)

    def field(self, code: HeaderFieldCode, sig: str) -> None:
        # header fields are an array of structs `a(yv)`: each aligned to 8
        self.pad(8)
        self.buf.append(code.value)
        self.signature(sig)
        self.pad(4)


def _checked(check: Callable[[str], None], value: str) -> None:
    try:
        check(value)
    except (ValidationError, SignatureError) as err:
        raise MarshalError.from_validation(err) from None


def _check_u32(name: str, value: int) -> None:
    if not 0 < value <= _MAX_U32:
        raise ValueError(f"{name} must be a non-zero unsigned 32-bit value, got {value}")


def marshal(
    msg_type: MessageType,
    dynheader: DynamicHeader,
    serial: int,
    body: bytes = b"",
    signature: str = "",
    byteorder: ByteOrder = ByteOrder.LITTLE_ENDIAN,
    flags: int = 0,
    num_fds: int = 0,
) -> bytes:
    """Return the header bytes of a message, padded to 8 bytes.

    The body itself is not included; its length and signature are recorded
    in the header.
    """
    if msg_type is MessageType.INVALID:
        raise MarshalError(MarshalErrorKind.INVALID_MESSAGE_TYPE)
    _check_u32("serial", serial)

    out = _HeaderWriter(byteorder)
    out.buf.extend(byteorder.value.encode("ascii"))
    out.buf.extend(bytes([msg_type.value, flags, _PROTOCOL_VERSION]))
    out.u32(0)  # body length, filled in below
    out.u32(serial)

    fields_pos = len(out.buf)
    out.u32(0)  # length of the header fields, filled in below

    if dynheader.response_serial is not None:
        _check_u32("response serial", dynheader.response_serial)
        out.field(HeaderFieldCode.REPLY_SERIAL, "u")
        out.u32(dynheader.response_serial)
    if dynheader.interface is not None:
        _checked(validate_interface, dynheader.interface)
        out.field(HeaderFieldCode.INTERFACE, "s")
        out.string(dynheader.interface)
    if dynheader.destination is not None:
        _checked(validate_busname, dynheader.destination)
        out.field(HeaderFieldCode.DESTINATION, "s")
        out.string(dynheader.destination)
    if dynheader.sender is not None:
        _checked(validate_busname, dynheader.sender)
        out.field(HeaderFieldCode.SENDER, "s")
        out.string(dynheader.sender)
    if dynheader.member is not None:
        _checked(validate_membername, dynheader.member)
        out.field(HeaderFieldCode.MEMBER, "s")
        out.string(dynheader.member)
    if dynheader.object is not None:
        _checked(validate_object_path, dynheader.object)
        out.field(HeaderFieldCode.PATH, "o")
        out.string(dynheader.object)
    if dynheader.error_name is not None:
        _checked(validate_errorname, dynheader.error_name)
        out.field(HeaderFieldCode.ERROR_NAME, "s")
        out.string(dynheader.error_name)
    if body:
        _checked(validate_signature, signature)
        out.field(HeaderFieldCode.SIGNATURE, "g")
        out.signature(signature)
    if num_fds:
        out.field(HeaderFieldCode.UNIX_FDS, "u")
        out.u32(num_fds)

    out.insert_u32(fields_pos, len(out.buf) - fields_pos - 4)
    out.pad(8)
    out.insert_u32(4, len(body))
    return bytes(out.buf)


def _unused(*_: Any) -> None:  # pragma: no cover - keeps linters quiet on Any
    return None