from dbuswire.containers import make_array, make_struct, make_variant
from dbuswire.message import Message
from dbuswire.params import Base
from dbuswire.signature import BaseType, parse_description, types_to_str
from dbuswire.wire import DynamicHeader, MessageType


def test_new_message_is_empty():
    msg = Message()
    assert msg.typ is MessageType.INVALID
    assert msg.flags == 0
    assert msg.params == []
    assert msg.raw_fds == []
    assert msg.dynheader == DynamicHeader()
    assert msg.sig() == []
    assert msg.signature_string() == ""


def test_push_param_converts_values():
    msg = Message()
    msg.push_param("hello")
    msg.push_param(Base(BaseType.UINT32, 5))
    assert msg.params == [Base(BaseType.STRING, "hello"), Base(BaseType.UINT32, 5)]
    assert msg.sig() == [BaseType.STRING, BaseType.UINT32]


def test_push_params_keeps_order():
    msg = Message()
    msg.push_params([True, 1.5, "x"])
    assert [p.value for p in msg.params] == [True, 1.5, "x"]
    assert msg.sig() == [BaseType.BOOLEAN, BaseType.DOUBLE, BaseType.STRING]


def test_signature_string_matches_sig():
    msg = Message()
    msg.push_params(
        [
            make_array("s", ["a"]),
            make_struct(["b", Base(BaseType.INT32, 3)]),
            make_variant(1),
        ]
    )
    assert msg.signature_string() == types_to_str(msg.sig())
    assert msg.signature_string() == "as(si)v"


def test_signature_round_trips_through_parser():
    msg = Message()
    msg.push_params([make_array("(sa(sv))", []), Base(BaseType.BYTE, 0)])
    assert parse_description(msg.signature_string()) == msg.sig()


def test_dynheader_attributes_are_independent():
    first = Message()
    second = Message()
    first.dynheader.interface = "io.example.Test"
    first.push_param(1)
    assert second.dynheader.interface is None
    assert second.params == []