"""Generate Python bindings for a VPP binary API module.

Note: The generated modules require the `binapi_generator.api` runtime of the same generated code version.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from binapi_generator import helper
from binapi_generator.binapi_types import BYTE_TYPE, BinapiField, BinapiObjectKind
from binapi_generator.classifier import CLIENT_INDEX_FIELD, CONTEXT_FIELD, classify_message
from binapi_generator.comments import DocumentationSource, IndentScanSource, NullDocumentationSource, comment_block
from binapi_generator.planner import TypeResolver, array_element, plan_field
from binapi_generator.schema import Alias, Enum, Field, Message, Package, Type, Union
from binapi_generator.services import SERVICE_CLIENT_NAME, SERVICE_FACTORY_NAME, SERVICE_PROTOCOL_NAME, method_body, synthesize
from binapi_generator.unions import SizeOracle, layout
from binapi_generator.writer_dto import GeneratorOptions, PlannedField, WireTag

logger = logging.getLogger(__name__)

# Incremented whenever generated modules start to rely on something the runtime did not provide before.
GENERATED_CODE_VERSION = 1

INDENT = "    "

CONST_MODULE_NAME = "MODULE_NAME"
CONST_API_VERSION = "API_VERSION"
CONST_VERSION_CRC = "VERSION_CRC"

ENUM_NAME_TABLE_SUFFIX = "_name"
ENUM_VALUE_TABLE_SUFFIX = "_value"

# Names of the schema object groups as they appear in the census of the module docstring, in order.
CENSUS_ORDER = (
    BinapiObjectKind.ENUM,
    BinapiObjectKind.ALIAS,
    BinapiObjectKind.TYPE,
    BinapiObjectKind.UNION,
    BinapiObjectKind.MESSAGE,
    BinapiObjectKind.SERVICE,
)

# Name under which the services of a module appear in the JSON source.
SERVICES_SOURCE_NAME = "services"


def _indent(lines: Sequence[str], level: int = 1) -> list[str]:
    prefix = INDENT * level
    return [f"{prefix}{line}" if line else "" for line in lines]


def _static_getter(name: str, return_type: str, value: str) -> list[str]:
    return [
        helper.new_decorator("staticmethod"),
        helper.new_function(name, return_type=return_type),
        f"{INDENT}return {value}",
    ]


def _crc_string(crc: str) -> str:
    """The CRC of an object as returned by `get_crc_string`, without the `0x` prefix."""
    return crc.removeprefix("0x")


class Writer:
    """A class that handles writing the bindings module, based on a provided package definition."""

    def __init__(
        self,
        package: Package,
        options: GeneratorOptions | None = None,
        source_text: str = "",
        input_file: str = "",
        package_name: str | None = None,
    ):
        """Initialize the writer with a package definition.

        Args:
            package (Package): The VPP binary API module to write bindings for.
            options (GeneratorOptions | None): Switches for the optional parts of the output.
            source_text (str): The JSON source of the module, used to reproduce definitions in comments.
            input_file (str): Path of the input file as it is reported in the header.
            package_name (str | None): Name of the generated package. Derived from the module name if omitted.
        """
        self._package = package
        self._options = options or GeneratorOptions()
        self._input_file = input_file or f"{package.name}{helper.INPUT_FILE_EXT}"
        self._package_name = package_name or helper.package_name(package.name)

        self._resolver = TypeResolver(package)
        self._oracle = SizeOracle(package)

        self._docs: DocumentationSource
        if self._options.include_comments:
            self._docs = IndentScanSource(source_text)
        else:
            self._docs = NullDocumentationSource()

        self._imports: list[str] = []
        self._body: list[str] = []

    def _add_import(self, import_line: str):
        """Add a full import line, preserving insertion order.

        Args:
            import_line (str): The import line to add.
        """
        if import_line not in self._imports:
            self._imports.append(import_line)

    def _add_block(self, lines: Sequence[str]):
        """Add a top-level block, separated from the previous one by two blank lines."""
        if self._body:
            self._body.extend(["", ""])
        self._body.extend(lines)

    def _comment(self, name: str, kind: str) -> list[str]:
        return comment_block(self._docs.extract(name, kind))

    @property
    def package_name(self) -> str:
        return self._package_name

    @property
    def header(self) -> list[str]:
        """The generated-file marker, the source and the module docstring with the object census."""
        pkg = self._package
        counts = {
            BinapiObjectKind.ENUM: len(pkg.enums),
            BinapiObjectKind.ALIAS: len(pkg.aliases),
            BinapiObjectKind.TYPE: len(pkg.types),
            BinapiObjectKind.UNION: len(pkg.unions),
            BinapiObjectKind.MESSAGE: len(pkg.messages),
            BinapiObjectKind.SERVICE: len(pkg.services),
        }

        lines = [
            "# Code generated by binapi-generator. DO NOT EDIT.",
            f"# source: {self._input_file}",
            "",
            f'"""Package {self._package_name} is generated from VPP binary API module \'{pkg.name}\'.',
            "",
            f"The {pkg.name} module consists of:",
        ]
        for kind in CENSUS_ORDER:
            num = counts[kind]
            if num <= 0:
                continue
            word = helper.pluralize(kind) if num > 1 else kind
            lines.append(f"{INDENT}{num:3d} {word}")
        lines.append('"""')
        return lines

    def gen_constants(self):
        """Generate the compatibility marker and the module description constants."""
        pkg = self._package
        lines = [
            "# A failure at this line means that this module is not compatible with the installed",
            "# binapi_generator runtime; the runtime package needs to be updated.",
            f"_ = api.BinapiPackageIsVersion{GENERATED_CODE_VERSION}  # please upgrade the binapi runtime package",
            "",
            f'{CONST_MODULE_NAME} = "{pkg.name}"',
            '"""Name of this module."""',
        ]

        if self._options.include_api_version:
            if pkg.version:
                lines.append(f'{CONST_API_VERSION} = "{pkg.version}"')
                lines.append('"""API version of this module."""')
            try:
                lines.append(f"{CONST_VERSION_CRC} = 0x{int(pkg.crc, 16):08x}")
                lines.append('"""CRC of this module."""')
            except ValueError:
                logger.warning("module %r has no valid CRC (%r), skipping %s", pkg.name, pkg.crc, CONST_VERSION_CRC)

        self._add_block(lines)

    def gen_enum(self, enum: Enum):
        """Generate an enum as an `int` subclass with entry constants and name/value tables.

        When several entries share a value, the first of them is its name.

        Args:
            enum (Enum): The enum to generate.
        """
        name = helper.camel_case_name(enum.name)
        name_table = f"{name}{ENUM_NAME_TABLE_SUFFIX}"
        value_table = f"{name}{ENUM_VALUE_TABLE_SUFFIX}"

        logger.debug(" writing enum %r (%s) with %d entries", enum.name, name, len(enum.entries))

        lines = self._comment(enum.name, BinapiObjectKind.ENUM)
        lines.extend(
            [
                helper.new_class_declaration(name, ["int"]),
                f'{INDENT}"""{name} represents VPP binary API enum \'{enum.name}\'."""',
                "",
                f'{INDENT}__binapi_type__ = "{enum.type}"',
                "",
                INDENT + helper.new_function("__str__", ["self"], "str"),
                f"{INDENT * 2}return {name_table}.get(int(self), str(int(self)))",
            ]
        )
        self._add_block(lines)

        if enum.entries:
            self._add_block([f"{helper.sanitize_name(e.name)} = {name}({e.value})" for e in enum.entries])

        names: dict[int, str] = {}
        for entry in enum.entries:
            names.setdefault(entry.value, entry.name)

        name_lines = [f"{name_table}: MappingProxyType[int, str] = MappingProxyType("]
        name_lines.append(f"{INDENT}{{")
        name_lines.extend(f'{INDENT * 2}{value}: "{entry_name}",' for value, entry_name in names.items())
        name_lines.extend([f"{INDENT}}}", ")"])

        value_lines = [f"{value_table}: MappingProxyType[str, int] = MappingProxyType("]
        value_lines.append(f"{INDENT}{{")
        value_lines.extend(f'{INDENT * 2}"{e.name}": {e.value},' for e in enum.entries)
        value_lines.extend([f"{INDENT}}}", ")"])

        self._add_block(name_lines + value_lines)

    def _alias_target(self, alias: Alias) -> str:
        target = self._resolver.resolve(alias.type)
        if alias.length <= 0:
            return target.annotation
        if array_element(target.wire) == BYTE_TYPE:
            return "bytes"
        return f"list[{target.annotation}]"

    def gen_alias(self, alias: Alias):
        """Generate an alias as a type alias statement of its target."""
        name = helper.camel_case_name(alias.name)

        logger.debug(" writing alias %r (%s), length: %d", alias.name, name, alias.length)

        lines = self._comment(alias.name, BinapiObjectKind.ALIAS)
        lines.append(f"# {name} represents VPP binary API {BinapiObjectKind.ALIAS} '{alias.name}'.")
        lines.append(f"type {name} = {self._alias_target(alias)}")
        self._add_block(lines)

    def _type_getters(self, obj: Type | Union) -> list[str]:
        lines = _static_getter("get_type_name", "str", f'"{obj.name}"')
        if obj.crc:
            lines.append("")
            lines.extend(_static_getter("get_crc_string", "str", f'"{_crc_string(obj.crc)}"'))
        return lines

    def _record(self, name: str, source_name: str, kind: str, fields: list[PlannedField], methods: list[str]) -> list[str]:
        lines = self._comment(source_name, kind)
        lines.extend(
            [
                helper.new_decorator("dataclass"),
                helper.new_class_declaration(name),
                f'{INDENT}"""{name} represents VPP binary API {kind} \'{source_name}\'."""',
                "",
            ]
        )
        if fields:
            lines.extend(_indent([str(f) for f in fields]))
            lines.append("")
        lines.extend(_indent(methods))
        return lines

    def _plan(self, fields: Sequence[Field], i: int) -> list[PlannedField]:
        return plan_field(self._resolver, fields, i, self._options.include_binapi_names)

    def gen_type(self, typ: Type):
        """Generate a type as a dataclass with one field per wire field."""
        name = helper.camel_case_name(typ.name)

        logger.debug(" writing type %r (%s) with %d fields", typ.name, name, len(typ.fields))

        planned: list[PlannedField] = []
        for i, fld in enumerate(typ.fields):
            if fld.name.lower() in (BinapiField.CRC, BinapiField.MSG_ID):
                continue
            planned.extend(self._plan(typ.fields, i))

        self._add_block(self._record(name, typ.name, BinapiObjectKind.TYPE, planned, self._type_getters(typ)))

    def gen_union(self, union: Union):
        """Generate a union as a dataclass around a shared buffer, with an accessor pair for each alternative.

        Args:
            union (Union): The union to generate.
        """
        name = helper.camel_case_name(union.name)

        logger.debug(" writing union %r (%s) with %d fields", union.name, name, len(union.fields))

        union_layout = layout(union, self._oracle, self._resolver)
        data = PlannedField(
            name="xxx_union_data",
            annotation="bytes",
            tag=WireTag(BYTE_TYPE, length=union_layout.size),
            default=f"bytes({union_layout.size})",
        )

        methods = self._type_getters(union)
        for accessor in union_layout.accessors:
            value_tag = WireTag(accessor.tag.elem, length=accessor.tag.length, variable=accessor.tag.variable).render()
            methods.extend(
                [
                    "",
                    helper.new_decorator("classmethod"),
                    helper.new_function(f"from_{accessor.name}", ["cls", f"a: {accessor.annotation}"], name),
                    f"{INDENT}u = cls()",
                    f"{INDENT}u.set_{accessor.name}(a)",
                    f"{INDENT}return u",
                    "",
                    helper.new_function(f"set_{accessor.name}", ["self", f"a: {accessor.annotation}"]),
                    f"{INDENT}api.union_set(self, {value_tag}, a)",
                    "",
                    helper.new_function(f"get_{accessor.name}", ["self"], accessor.annotation),
                    f"{INDENT}return api.union_get(self, {value_tag})",
                ]
            )

        self._add_block(self._record(name, union.name, BinapiObjectKind.UNION, [data], methods))

    def gen_message(self, msg: Message):
        """Generate a message as a dataclass with its name, CRC and role getters.

        The message id and CRC fields are never generated; `client_index` and `context` are left out
        as long as no other field has been generated before them.

        Args:
            msg (Message): The message to generate.
        """
        name = helper.camel_case_name(msg.name)

        logger.debug(" writing message %r (%s) with %d fields", msg.name, name, len(msg.fields))

        planned: list[PlannedField] = []
        n = 0
        for i, fld in enumerate(msg.fields):
            lowered = fld.name.lower()
            if lowered in (BinapiField.CRC, BinapiField.MSG_ID):
                continue
            if lowered in (CLIENT_INDEX_FIELD, CONTEXT_FIELD) and n == 0:
                continue
            n += 1
            planned.extend(self._plan(msg.fields, i))

        role = classify_message(msg.fields)
        methods = _static_getter("get_message_name", "str", f'"{msg.name}"')
        methods.append("")
        methods.extend(_static_getter("get_crc_string", "str", f'"{_crc_string(msg.crc)}"'))
        methods.append("")
        methods.extend(_static_getter("get_message_type", "api.MessageType", f"api.MessageType.{role.name}"))

        self._add_block(self._record(name, msg.name, BinapiObjectKind.MESSAGE, planned, methods))

    def gen_registrations(self):
        """Generate the registration of all messages and the function that lists them."""
        names = [helper.camel_case_name(msg.name) for msg in self._package.messages]

        self._add_block([f'api.register_message({name}, "{self._package.name}.{name}")' for name in names])

        lines = [
            helper.new_function("all_messages", return_type="list[type[api.Message]]"),
            f'{INDENT}"""Returns the list of all messages in this module."""',
            f"{INDENT}return [",
        ]
        lines.extend(f"{INDENT * 2}{name}," for name in names)
        lines.append(f"{INDENT}]")
        self._add_block(lines)

    def gen_services(self):
        """Generate the service protocol, its client implementation and the client factory."""
        methods = [synthesize(svc) for svc in self._package.services]

        logger.debug(" writing %d services", len(methods))

        protocol = self._comment(SERVICES_SOURCE_NAME, BinapiObjectKind.SERVICE)
        protocol.extend(
            [
                helper.new_class_declaration(SERVICE_PROTOCOL_NAME, ["Protocol"]),
                f'{INDENT}"""{SERVICE_PROTOCOL_NAME} represents VPP binary API services in {self._package.name} module."""',
            ]
        )
        for method in methods:
            protocol.append("")
            protocol.append(
                INDENT + helper.new_function(method.py_name, method.parameters, method.return_annotation, stub=True)
            )
        self._add_block(protocol)

        client = [
            helper.new_class_declaration(SERVICE_CLIENT_NAME),
            f'{INDENT}"""Implementation of {SERVICE_PROTOCOL_NAME} that sends requests through a channel."""',
            "",
            INDENT + "def __init__(self, ch: api.Channel):",
            f"{INDENT * 2}self.ch = ch",
        ]
        for method in methods:
            client.append("")
            client.append(INDENT + helper.new_function(method.py_name, method.parameters, method.return_annotation))
            client.extend(_indent(method_body(method), 2))
        self._add_block(client)

        self._add_block(
            [
                helper.new_function(SERVICE_FACTORY_NAME, ["ch: api.Channel"], SERVICE_PROTOCOL_NAME),
                f"{INDENT}return {SERVICE_CLIENT_NAME}(ch)",
            ]
        )

    def generate_all(self):
        """Generate the body of the module in output order, collecting the imports it needs."""
        pkg = self._package
        logger.debug("generating package %r", self._package_name)

        self._imports = []
        self._body = []

        self._add_import("from __future__ import annotations")
        if pkg.types or pkg.unions or pkg.messages:
            self._add_import("from dataclasses import dataclass, field")
        if pkg.enums:
            self._add_import("from types import MappingProxyType")
        services = self._options.include_services and bool(pkg.services)
        if services:
            self._add_import("from typing import Protocol")
        self._add_import("from binapi_generator import api")

        self.gen_constants()

        for enum in pkg.enums:
            self.gen_enum(enum)
        for alias in pkg.aliases:
            self.gen_alias(alias)
        for typ in pkg.types:
            self.gen_type(typ)
        for union in pkg.unions:
            self.gen_union(union)

        if pkg.messages:
            for msg in pkg.messages:
                self.gen_message(msg)
            self.gen_registrations()

        if services:
            self.gen_services()

    def dumps(self) -> str:
        """Generates the string output of the bindings module.

        Returns:
            str: The output string.
        """
        self.generate_all()

        out: list[str] = []
        out.extend(self.header)
        out.append("")
        out.extend(self._imports)
        out.extend(["", ""])
        out.extend(self._body)
        out.append("")
        return "\n".join(out)
