"""Tests for the client methods of RPC services."""

from __future__ import annotations

from binapi_generator.schema import Service
from binapi_generator.services import method_body, method_name, synthesize


class TestMethodName:
    def test_stream_moves_dump_to_the_front(self):
        assert method_name(Service("sw_interface_dump", "sw_interface_details", stream=True)) == "DumpSwInterface"

    def test_unary_keeps_name(self):
        assert method_name(Service("show_version", "show_version_reply")) == "ShowVersion"

    def test_dump_suffix_without_stream(self):
        assert method_name(Service("foo_dump", "foo_details")) == "FooDump"

    def test_stream_without_dump_suffix(self):
        assert method_name(Service("want_stats", "want_stats_reply", stream=True)) == "WantStats"


def test_synthesize_stream():
    method = synthesize(Service("ip_address_dump", "ip_address_details", stream=True))

    assert method.name == "DumpIPAddress"
    assert method.py_name == "dump_ip_address"
    assert method.request == "IPAddressDump"
    assert method.reply == "IPAddressDetails"
    assert method.parameters == ["self", "ctx: api.Context", "in_: IPAddressDump"]
    assert method.return_annotation == "list[IPAddressDetails]"


def test_synthesize_unary():
    method = synthesize(Service("show_version", "show_version_reply"))

    assert method.py_name == "show_version"
    assert method.return_annotation == "ShowVersionReply"


def test_synthesize_without_reply():
    method = synthesize(Service("hw_interface_set_mtu"))

    assert method.reply == ""
    assert method.return_annotation == "None"


def test_stream_body_collects_until_stop():
    body = method_body(synthesize(Service("sw_interface_dump", "sw_interface_details", stream=True)))

    assert body[0] == "dump: list[SwInterfaceDetails] = []"
    assert "req = self.ch.send_multi_request(in_)" in body
    assert "    stop = req.receive_reply(m)" in body
    assert body[-1] == "return dump"


def test_unary_body():
    body = method_body(synthesize(Service("show_version", "show_version_reply")))

    assert body == [
        "out = ShowVersionReply()",
        "self.ch.send_request(in_).receive_reply(out)",
        "return out",
    ]


def test_body_without_reply():
    body = method_body(synthesize(Service("hw_interface_set_mtu")))

    assert body == ["self.ch.send_request(in_)", "return None"]
