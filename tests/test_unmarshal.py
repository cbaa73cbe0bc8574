import struct

import pytest

from dbuswire.errors import MarshalError, UnmarshalError, UnmarshalErrorKind
from dbuswire.header import marshal
from dbuswire.marshal import MarshalContext, marshal_param
from dbuswire.params import Base
from dbuswire.signature import BaseType, SignatureError, SignatureErrorKind
from dbuswire.unmarshal import (
    HEADER_LEN,
    Header,
    extract_body,
    unmarshal_dynamic_header,
    unmarshal_header,
)
from dbuswire.validation import ValidationError, ValidationErrorKind
from dbuswire.wire import ByteOrder, DynamicHeader, MessageType


def _spark():
    return DynamicHeader(
        interface="io.killing.spark", member="TestSignal", object="/io/killing/spark"
    )


def _str(text):
    data = text.encode()
    return struct.pack("<I", len(data)) + data + b"\0"


def _fields(*parts):
    out = bytearray()
    for code, sig, value in parts:
        out.extend(bytes(-len(out) % 8))
        out += bytes([code, len(sig)]) + sig.encode() + b"\0"
        out.extend(bytes(-len(out) % 4))
        out += value
    return bytes(out)


def _message(typ, fields):
    fixed = b"l" + bytes([typ, 0, 1]) + struct.pack("<II", 0, 1)
    return fixed + struct.pack("<I", len(fields)) + fields


def test_marshal_unmarshal():
    params = [
        Base(BaseType.BYTE, 128),
        Base(BaseType.UINT16, 128),
        Base(BaseType.INT16, -128),
        Base(BaseType.UINT32, 1212128),
        Base(BaseType.INT32, -1212128),
        Base(BaseType.UINT64, 1212121212128),
        Base(BaseType.INT64, -1212121212128),
        Base(BaseType.STRING, "TesttestTesttest"),
        Base(BaseType.OBJECT_PATH, "/this/object/path"),
        Base(BaseType.BYTE, 128),
        Base(BaseType.UINT64, 128),
        Base(BaseType.INT32, 128),
    ]
    ctx = MarshalContext()
    for param in params:
        marshal_param(param, ctx)
    body = bytes(ctx.buf)
    sig = "".join(p.make_signature() for p in params)

    buf = marshal(MessageType.SIGNAL, _spark(), 1, body, sig)
    header = unmarshal_header(buf)
    dynheader, consumed = unmarshal_dynamic_header(header, buf)

    assert consumed + (-consumed % 8) == len(buf)
    assert header.body_len == len(body)
    assert dynheader.signature == "yqnuitxsoyti"
    assert dynheader.interface == "io.killing.spark"
    assert extract_body(header, body, 0) == body
    assert extract_body(header, buf + body, consumed) == body


def test_invalid_signature_param():
    with pytest.raises(MarshalError) as info:
        marshal_param(Base(BaseType.SIGNATURE, "((((((((}}}}}}}"), MarshalContext())
    assert info.value == MarshalError.from_validation(
        SignatureError(SignatureErrorKind.INVALID_SIGNATURE)
    )


def test_invalid_object_path_param():
    with pytest.raises(MarshalError) as info:
        marshal_param(Base(BaseType.OBJECT_PATH, "invalid/object/path"), MarshalContext())
    assert info.value == MarshalError.from_validation(
        ValidationError(ValidationErrorKind.INVALID_OBJECT_PATH)
    )


def test_invalid_interface():
    dyn = _spark()
    dyn.interface = ".......io.killing.spark"
    with pytest.raises(MarshalError) as info:
        marshal(MessageType.SIGNAL, dyn, 1)
    assert info.value == MarshalError.from_validation(
        ValidationError(ValidationErrorKind.INVALID_INTERFACE)
    )


def test_invalid_member():
    dyn = _spark()
    dyn.member = "Members.have.no.dots"
    with pytest.raises(MarshalError) as info:
        marshal(MessageType.SIGNAL, dyn, 1)
    assert info.value == MarshalError.from_validation(
        ValidationError(ValidationErrorKind.INVALID_MEMBERNAME)
    )


def test_header_values():
    buf = marshal(MessageType.CALL, DynamicHeader(member="Go", object="/"), 7, flags=1)
    assert unmarshal_header(buf) == Header(
        ByteOrder.LITTLE_ENDIAN, MessageType.CALL, 1, 1, 0, 7
    )


@pytest.mark.parametrize(
    "data, kind",
    [
        (b"l\x01\x00\x01", UnmarshalErrorKind.NOT_ENOUGH_BYTES),
        (b"x\x01\x00\x01" + struct.pack("<II", 0, 1), UnmarshalErrorKind.INVALID_BYTE_ORDER),
        (b"l\x07\x00\x01" + struct.pack("<II", 0, 1), UnmarshalErrorKind.INVALID_MESSAGE_TYPE),
        (b"l\x01\x00\x01" + struct.pack("<II", 0, 0), UnmarshalErrorKind.INVALID_SERIAL),
    ],
)
def test_header_errors(data, kind):
    with pytest.raises(UnmarshalError) as info:
        unmarshal_header(data)
    assert info.value.kind is kind


def test_unknown_field_is_skipped():
    fields = _fields((1, "o", _str("/a")), (3, "s", _str("M")), (42, "s", _str("extra")))
    buf = _message(1, fields)
    header = unmarshal_header(buf)
    dyn, offset = unmarshal_dynamic_header(header, buf)
    assert dyn.object == "/a"
    assert dyn.member == "M"
    assert offset == len(buf)


def test_missing_required_field():
    buf = _message(1, _fields((1, "o", _str("/a"))))
    with pytest.raises(UnmarshalError) as info:
        unmarshal_dynamic_header(unmarshal_header(buf), buf)
    assert info.value.kind is UnmarshalErrorKind.INVALID_HEADER_FIELDS


def test_duplicated_field():
    fields = _fields((1, "o", _str("/a")), (3, "s", _str("M")), (3, "s", _str("N")))
    buf = _message(1, fields)
    with pytest.raises(UnmarshalError) as info:
        unmarshal_dynamic_header(unmarshal_header(buf), buf)
    assert info.value.kind is UnmarshalErrorKind.INVALID_HEADER_FIELDS


def test_zero_field_code():
    buf = _message(1, _fields((0, "s", _str("M"))))
    with pytest.raises(UnmarshalError) as info:
        unmarshal_dynamic_header(unmarshal_header(buf), buf)
    assert info.value.kind is UnmarshalErrorKind.INVALID_HEADER_FIELD


def test_wrong_field_signature():
    buf = _message(1, _fields((1, "s", _str("/a"))))
    with pytest.raises(UnmarshalError) as info:
        unmarshal_dynamic_header(unmarshal_header(buf), buf)
    assert info.value.kind is UnmarshalErrorKind.WRONG_SIGNATURE


def test_invalid_path_field():
    buf = _message(1, _fields((1, "o", _str("a/b")), (3, "s", _str("M"))))
    with pytest.raises(UnmarshalError) as info:
        unmarshal_dynamic_header(unmarshal_header(buf), buf)
    assert info.value == UnmarshalError.from_validation(
        ValidationError(ValidationErrorKind.INVALID_OBJECT_PATH)
    )


def test_fields_longer_than_buffer():
    buf = _message(1, _fields((1, "o", _str("/a"))))[:-2]
    with pytest.raises(UnmarshalError) as info:
        unmarshal_dynamic_header(unmarshal_header(buf), buf, HEADER_LEN)
    assert info.value.kind is UnmarshalErrorKind.NOT_ENOUGH_BYTES


def _header(body_len):
    return Header(ByteOrder.LITTLE_ENDIAN, MessageType.SIGNAL, 0, 1, body_len, 1)


def test_extract_empty_body():
    assert extract_body(_header(0), b"", 0) == b""


def test_extract_body_not_all_bytes_used():
    with pytest.raises(UnmarshalError) as info:
        extract_body(_header(2), b"abc", 0)
    assert info.value.kind is UnmarshalErrorKind.NOT_ALL_BYTES_USED


def test_extract_body_not_enough_bytes():
    with pytest.raises(UnmarshalError) as info:
        extract_body(_header(4), b"abc", 0)
    assert info.value.kind is UnmarshalErrorKind.NOT_ENOUGH_BYTES


def test_extract_body_padding_contains_data():
    with pytest.raises(UnmarshalError) as info:
        extract_body(_header(1), b"xx\x01\x00\x00\x00\x00\x00z", 2)
    assert info.value.kind is UnmarshalErrorKind.PADDING_CONTAINED_DATA


def test_extract_body_after_padding():
    assert extract_body(_header(1), b"xx" + bytes(6) + b"z", 2) == b"z"


def test_end_of_message_check():
    assert UnmarshalError(UnmarshalErrorKind.END_OF_MESSAGE).is_end_of_message()
    assert not UnmarshalError(UnmarshalErrorKind.NOT_ENOUGH_BYTES).is_end_of_message()