"""Tests for the text of generated bindings modules."""

from __future__ import annotations

import logging

import pytest

from binapi_generator.schema import Package
from binapi_generator.writer import Writer
from binapi_generator.writer_dto import GeneratorOptions

from conftest import INTERFACE_SCHEMA, load_source

ALL_OPTIONS = GeneratorOptions(
    include_api_version=True,
    include_comments=True,
    include_binapi_names=True,
    include_services=True,
)


@pytest.fixture(scope="module")
def source_text() -> str:
    return INTERFACE_SCHEMA.read_text(encoding="utf8")


@pytest.fixture(scope="module")
def full_output(interface_package: Package, source_text: str) -> str:
    return Writer(interface_package, ALL_OPTIONS, source_text=source_text, input_file="schemas/interface.api.json").dumps()


@pytest.fixture(scope="module")
def plain_output(interface_package: Package) -> str:
    return Writer(interface_package).dumps()


def test_header(full_output: str):
    lines = full_output.splitlines()
    assert lines[0] == "# Code generated by binapi-generator. DO NOT EDIT."
    assert lines[1] == "# source: schemas/interface.api.json"
    assert lines[3] == '"""Package interface is generated from VPP binary API module \'interface\'.'


def test_census(full_output: str):
    assert "      3 enums\n" in full_output
    assert "      4 aliases\n" in full_output
    assert "      3 types\n" in full_output
    assert "      1 union\n" in full_output
    assert "      9 messages\n" in full_output
    assert "      4 services\n" in full_output


def test_census_leaves_out_empty_groups(vpe_package: Package):
    output = Writer(vpe_package).dumps()
    assert "      4 messages\n" in output
    assert "enum" not in output
    assert "union" not in output


def test_compatibility_marker(plain_output: str):
    assert "_ = api.BinapiPackageIsVersion1  # please upgrade the binapi runtime package" in plain_output


def test_constants(full_output: str, plain_output: str):
    assert 'MODULE_NAME = "interface"' in plain_output
    assert "API_VERSION" not in plain_output
    assert "VERSION_CRC" not in plain_output

    assert 'API_VERSION = "3.2.2"' in full_output
    assert "VERSION_CRC = 0x672de521" in full_output


def test_invalid_crc_is_skipped(caplog: pytest.LogCaptureFixture):
    package = Package(name="nocrc", version="1.0.0")

    with caplog.at_level(logging.WARNING):
        output = Writer(package, GeneratorOptions(include_api_version=True)).dumps()

    assert 'API_VERSION = "1.0.0"' in output
    assert "VERSION_CRC" not in output
    assert "no valid CRC" in caplog.text


def test_output_order(full_output: str):
    markers = [
        "MODULE_NAME = ",
        "class AddressFamily(int):",
        "type InterfaceIndex = int",
        "class Address:",
        "class AddressUnion:",
        "class WantInterfaceEvents:",
        "api.register_message(",
        "def all_messages()",
        "class Service(Protocol):",
        "class ServiceClient:",
        "def new_service(",
    ]
    positions = [full_output.index(marker) for marker in markers]
    assert positions == sorted(positions)


def test_enum_name_table_keeps_first_name(plain_output: str):
    assert '0: "LINK_DUPLEX_API_UNKNOWN",' in plain_output
    assert '0: "LINK_DUPLEX_API_DEFAULT",' not in plain_output
    assert '"LINK_DUPLEX_API_DEFAULT": 0,' in plain_output
    assert "LINK_DUPLEX_API_DEFAULT = LinkDuplex(0)" in plain_output


def test_aliases(plain_output: str):
    assert "type InterfaceIndex = int" in plain_output
    assert "type IP4Address = bytes" in plain_output
    assert "type MACAddress = bytes" in plain_output


def test_alias_description(plain_output: str, full_output: str):
    assert "# IP4Address represents VPP binary API alias 'ip4_address'.\ntype IP4Address = bytes" in plain_output
    assert "#\t},\n#\n# IP4Address represents VPP binary API alias 'ip4_address'." in full_output


def test_message_skips_header_fields(plain_output: str):
    start = plain_output.index("class WantInterfaceEvents:")
    end = plain_output.index("@staticmethod", start)
    body = plain_output[start:end]

    assert "client_index" not in body
    assert "context" not in body
    assert "vl_msg_id" not in body
    assert "enable_disable: int" in body


def test_message_type_getter(plain_output: str):
    assert "return api.MessageType.EVENT" in plain_output
    assert "return api.MessageType.REQUEST" in plain_output
    assert "return api.MessageType.REPLY" in plain_output


def test_crc_getter_strips_prefix(plain_output: str):
    assert 'return "476f5a08"' in plain_output


def test_registration(plain_output: str):
    assert 'api.register_message(SwInterfaceDetails, "interface.SwInterfaceDetails")' in plain_output


def test_services_are_optional(plain_output: str, full_output: str):
    assert "Service" not in plain_output.replace("MessageType", "")
    assert "from typing import Protocol" not in plain_output

    assert "from typing import Protocol" in full_output
    assert (
        "def dump_sw_interface(self, ctx: api.Context, in_: SwInterfaceDump) -> list[SwInterfaceDetails]: ..."
        in full_output
    )
    assert "def hw_interface_set_mtu(self, ctx: api.Context, in_: HwInterfaceSetMTU) -> None: ..." in full_output


def test_comments_are_optional(plain_output: str, full_output: str):
    assert "#\t" not in plain_output

    assert '#\t"address_family",' in full_output
    assert '#\t"ip4_address": {' in full_output
    assert '#\t"services": {' in full_output


def test_binapi_names_are_optional(plain_output: str, full_output: str):
    assert 'binapi="sw_if_index"' not in plain_output
    assert 'binapi="sw_if_index"' in full_output


def test_output_is_deterministic(interface_package: Package, source_text: str, full_output: str):
    writer = Writer(interface_package, ALL_OPTIONS, source_text=source_text, input_file="schemas/interface.api.json")
    assert writer.dumps() == full_output
    assert writer.dumps() == full_output


def test_output_compiles(full_output: str, plain_output: str):
    compile(full_output, "interface_full", "exec")
    compile(plain_output, "interface_plain", "exec")


def test_empty_module():
    output = Writer(Package(name="empty")).dumps()

    assert "from dataclasses import" not in output
    assert "def all_messages" not in output
    module = load_source(output, "empty_binapi")
    assert module.MODULE_NAME == "empty"


def test_keyword_module_is_pluralized():
    writer = Writer(Package(name="class"))
    assert writer.package_name == "classes"
    assert "Package classes is generated from VPP binary API module 'class'." in writer.dumps()
