"""Marshalling of dynamically typed parameters into raw message bytes."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping

from dbuswire.errors import MarshalError
from dbuswire.params import Array, Base, Dict, Param, Struct, Variant
from dbuswire.signature import BaseType, SignatureError, SignatureType
from dbuswire.validation import (
    ValidationError,
    ValidationErrorKind,
    validate_array,
    validate_dict,
    validate_object_path,
    validate_signature,
)
from dbuswire.wire import ByteOrder

_ORDER_PREFIX = {ByteOrder.LITTLE_ENDIAN: "<", ByteOrder.BIG_ENDIAN: ">"}

_FIXED_FORMATS = {
    BaseType.BYTE: "B",
    BaseType.INT16: "h",
    BaseType.UINT16: "H",
    BaseType.INT32: "i",
    BaseType.UINT32: "I",
    BaseType.INT64: "q",
    BaseType.UINT64: "Q",
    BaseType.DOUBLE: "d",
}


@dataclass
class MarshalContext:
    """The output buffer, collected file descriptors and byte order in use."""

    buf: bytearray = field(default_factory=bytearray)
    fds: List[int] = field(default_factory=list)
    byteorder: ByteOrder = ByteOrder.LITTLE_ENDIAN

    def __post_init__(self) -> None:
        if not isinstance(self.buf, bytearray):
            self.buf = bytearray(self.buf)

    def align_to(self, alignment: int) -> None:
        """Pad the buffer with zero bytes up to a multiple of ``alignment``."""
        self.buf.extend(bytes(-len(self.buf) % alignment))

    def _pack(self, fmt: str, value: Any) -> None:
        self.buf.extend(struct.pack(_ORDER_PREFIX[self.byteorder] + fmt, value))

    def _insert_u32(self, pos: int, value: int) -> None:
        struct.pack_into(_ORDER_PREFIX[self.byteorder] + "I", self.buf, pos, value)

    def _write_string(self, text: str) -> None:
        data = text.encode("utf-8")
        self._pack("I", len(data))
        self.buf.extend(data)
        self.buf.append(0)

    def _write_signature(self, sig: str) -> None:
        data = sig.encode("utf-8")
        self.buf.append(len(data))
        self.buf.extend(data)
        self.buf.append(0)


def _checked(check: Callable[..., None], *args: Any) -> None:
    try:
        check(*args)
    except (ValidationError, SignatureError) as err:
        raise MarshalError.from_validation(err) from None


def marshal_base_param(param: Base, ctx: MarshalContext) -> None:
    """Append a basic value, aligned to its type's alignment."""
    kind = param.kind
    value = param.value
    ctx.align_to(kind.alignment())
    if kind is BaseType.BOOLEAN:
        ctx._pack("I", 1 if value else 0)
    elif kind in _FIXED_FORMATS:
        ctx._pack(_FIXED_FORMATS[kind], value)
    elif kind is BaseType.STRING:
        if "\0" in value:
            raise MarshalError.from_validation(
                ValidationError(ValidationErrorKind.STRING_CONTAINS_NULL_BYTE)
            )
        ctx._write_string(value)
    elif kind is BaseType.OBJECT_PATH:
        _checked(validate_object_path, value)
        ctx._write_string(value)
    elif kind is BaseType.SIGNATURE:
        _checked(validate_signature, value)
        ctx._write_signature(value)
    elif kind is BaseType.UNIX_FD:
        ctx.fds.append(value)
        ctx._pack("I", len(ctx.fds) - 1)


def _marshal_array(
    values: Iterable[Param], element_sig: SignatureType, ctx: MarshalContext
) -> None:
    ctx.align_to(4)
    len_pos = len(ctx.buf)
    ctx.buf.extend(bytes(4))
    # padding between the length and the first element is not counted
    ctx.align_to(element_sig.alignment())
    content_pos = len(ctx.buf)
    for value in values:
        marshal_param(value, ctx)
    ctx._insert_u32(len_pos, len(ctx.buf) - content_pos)


def _marshal_struct(values: Iterable[Param], ctx: MarshalContext) -> None:
    ctx.align_to(8)
    for value in values:
        marshal_param(value, ctx)


def _marshal_dict(entries: Mapping[Base, Param], ctx: MarshalContext) -> None:
    ctx.align_to(4)
    len_pos = len(ctx.buf)
    ctx.buf.extend(bytes(4))
    ctx.align_to(8)
    content_pos = len(ctx.buf)
    for key, value in entries.items():
        ctx.align_to(8)
        marshal_base_param(key, ctx)
        marshal_param(value, ctx)
    ctx._insert_u32(len_pos, len(ctx.buf) - content_pos)


def _marshal_variant(variant: Variant, ctx: MarshalContext) -> None:
    sig = variant.signature.to_str()
    _checked(validate_signature, sig)
    ctx._write_signature(sig)
    marshal_param(variant.value, ctx)


def marshal_container_param(param: Param, ctx: MarshalContext) -> None:
    """Append an array, struct, dict or variant after validating it."""
    if isinstance(param, Array):
        _checked(validate_array, param.values, param.element_sig)
        _marshal_array(param.values, param.element_sig, ctx)
    elif isinstance(param, Struct):
        _marshal_struct(param.values, ctx)
    elif isinstance(param, Dict):
        _checked(validate_dict, param.entries, param.key_sig, param.value_sig)
        _marshal_dict(param.entries, ctx)
    elif isinstance(param, Variant):
        _marshal_variant(param, ctx)
    else:
        raise TypeError(f"not a container parameter: {param!r}")


def marshal_param(param: Param, ctx: MarshalContext) -> None:
    """Append any parameter to the context's buffer."""
    if isinstance(param, Base):
        marshal_base_param(param, ctx)
    else:
        marshal_container_param(param, ctx)