"""In-memory model of a VPP binary API module and its loader for `*.api.json` files."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from binapi_generator import helper
from binapi_generator.binapi_types import to_api_type

logger = logging.getLogger(__name__)

# root keys
FILE_TYPES = "types"
FILE_UNIONS = "unions"
FILE_MESSAGES = "messages"
FILE_ENUMS = "enums"
FILE_ALIASES = "aliases"
FILE_SERVICES = "services"
FILE_OPTIONS = "options"
FILE_VERSION_CRC = "vl_api_version"

# object keys
OPTION_VERSION = "version"
OBJECT_CRC = "crc"
ENUM_TYPE = "enumtype"
ALIAS_TYPE = "type"
ALIAS_LENGTH = "length"
SERVICE_REPLY = "reply"
SERVICE_STREAM = "stream"
SERVICE_EVENTS = "events"
SERVICE_NO_REPLY = "null"
FIELD_META_LIMIT = "limit"

DEFAULT_ENUM_TYPE = "u32"


class SchemaError(Exception):
    """Raised when a VPP binary API definition does not have the expected structure."""

    pass


@dataclass(frozen=True)
class FieldMeta:
    """Optional metadata of a field."""

    limit: int = 0


@dataclass(frozen=True)
class Field:
    """A field of a type, union or message."""

    name: str
    type: str
    length: int = 0
    size_from: str = ""
    meta: FieldMeta = field(default_factory=FieldMeta)


@dataclass(frozen=True)
class EnumEntry:
    name: str
    value: int


@dataclass(frozen=True)
class Enum:
    name: str
    type: str
    entries: tuple[EnumEntry, ...] = ()


@dataclass(frozen=True)
class Alias:
    name: str
    type: str
    length: int = 0


@dataclass(frozen=True)
class Type:
    name: str
    crc: str = ""
    fields: tuple[Field, ...] = ()


@dataclass(frozen=True)
class Union:
    name: str
    crc: str = ""
    fields: tuple[Field, ...] = ()


@dataclass(frozen=True)
class Message:
    name: str
    crc: str = ""
    fields: tuple[Field, ...] = ()


@dataclass(frozen=True)
class Service:
    """A request/reply pairing; an empty `reply_type` means the request has no reply."""

    request_type: str
    reply_type: str = ""
    stream: bool = False
    events: tuple[str, ...] = ()


@dataclass(frozen=True)
class Package:
    """A single VPP binary API module."""

    name: str
    version: str = ""
    crc: str = ""
    enums: tuple[Enum, ...] = ()
    aliases: tuple[Alias, ...] = ()
    types: tuple[Type, ...] = ()
    unions: tuple[Union, ...] = ()
    messages: tuple[Message, ...] = ()
    services: tuple[Service, ...] = ()
    ref_map: Mapping[str, str] = field(default_factory=dict)

    def lookup(self, ref: str) -> Enum | Alias | Type | Union | None:
        """Find the enum, alias, type or union that a wire type reference points to.

        Args:
            ref (str): A wire type reference, e.g. `vl_api_address_t`.

        Returns:
            Enum | Alias | Type | Union | None: The referenced object, or None for primitives and unknown types.
        """
        name = self.ref_map.get(ref)
        if name is None:
            return None
        for group in (self.enums, self.aliases, self.types, self.unions):
            for obj in group:
                if obj.name == name:
                    return obj
        return None


def _split_object(obj: Any, section: str) -> tuple[str, list[Any], dict[str, Any]]:
    """Split an array-style object into its name, members and trailing options object."""
    if not isinstance(obj, list) or not obj or not isinstance(obj[0], str):
        raise SchemaError(f"invalid entry in {section!r}: {obj!r}")

    members = list(obj[1:])
    options: dict[str, Any] = {}
    if members and isinstance(members[-1], dict):
        options = members.pop()
    return obj[0], members, options


def _parse_field(obj_name: str, raw: Any) -> Field:
    if not isinstance(raw, list) or len(raw) < 2:
        raise SchemaError(f"invalid field in {obj_name!r}: {raw!r}")

    items = list(raw)
    meta = FieldMeta()
    if isinstance(items[-1], dict):
        meta = FieldMeta(limit=int(items.pop().get(FIELD_META_LIMIT, 0)))

    field_type, name = items[0], items[1]
    length = 0
    size_from = ""
    if len(items) > 2:
        length = int(items[2])
    if len(items) > 3:
        size_from = str(items[3])

    return Field(name=str(name), type=str(field_type), length=length, size_from=size_from, meta=meta)


def _parse_fields(obj_name: str, members: Sequence[Any]) -> tuple[Field, ...]:
    return tuple(_parse_field(obj_name, member) for member in members)


def _parse_enum(raw: Any) -> Enum:
    name, members, options = _split_object(raw, FILE_ENUMS)
    entries = []
    for member in members:
        if not isinstance(member, list) or len(member) != 2:
            raise SchemaError(f"invalid entry in enum {name!r}: {member!r}")
        entries.append(EnumEntry(name=str(member[0]), value=int(member[1])))
    return Enum(name=name, type=options.get(ENUM_TYPE, DEFAULT_ENUM_TYPE), entries=tuple(entries))


def _parse_alias(name: str, raw: Any) -> Alias:
    if not isinstance(raw, dict) or ALIAS_TYPE not in raw:
        raise SchemaError(f"invalid alias {name!r}: {raw!r}")
    return Alias(name=name, type=raw[ALIAS_TYPE], length=int(raw.get(ALIAS_LENGTH, 0)))


def _parse_service(request_type: str, raw: Any) -> Service:
    if not isinstance(raw, dict):
        raise SchemaError(f"invalid service {request_type!r}: {raw!r}")

    reply_type = raw.get(SERVICE_REPLY) or ""
    if reply_type == SERVICE_NO_REPLY:
        reply_type = ""

    return Service(
        request_type=request_type,
        reply_type=reply_type,
        stream=bool(raw.get(SERVICE_STREAM, False)),
        events=tuple(raw.get(SERVICE_EVENTS, ())),
    )


def load_package(name: str, data: Mapping[str, Any]) -> Package:
    """Build the package model from decoded JSON data.

    Args:
        name (str): The module name.
        data (Mapping[str, Any]): The decoded contents of a `*.api.json` file.

    Returns:
        Package: The package model.
    """
    enums = tuple(_parse_enum(raw) for raw in data.get(FILE_ENUMS, []))
    aliases = tuple(_parse_alias(alias_name, raw) for alias_name, raw in data.get(FILE_ALIASES, {}).items())

    types = []
    for raw in data.get(FILE_TYPES, []):
        type_name, members, options = _split_object(raw, FILE_TYPES)
        types.append(Type(name=type_name, crc=options.get(OBJECT_CRC, ""), fields=_parse_fields(type_name, members)))

    unions = []
    for raw in data.get(FILE_UNIONS, []):
        union_name, members, options = _split_object(raw, FILE_UNIONS)
        unions.append(
            Union(name=union_name, crc=options.get(OBJECT_CRC, ""), fields=_parse_fields(union_name, members))
        )

    messages = []
    for raw in data.get(FILE_MESSAGES, []):
        msg_name, members, options = _split_object(raw, FILE_MESSAGES)
        messages.append(
            Message(name=msg_name, crc=options.get(OBJECT_CRC, ""), fields=_parse_fields(msg_name, members))
        )

    services = tuple(
        sorted(
            (_parse_service(request, raw) for request, raw in data.get(FILE_SERVICES, {}).items()),
            key=lambda svc: svc.request_type,
        )
    )

    ref_map: dict[str, str] = {}
    for group in (enums, aliases, types, unions):
        for obj in group:
            ref_map[to_api_type(obj.name)] = obj.name

    package = Package(
        name=name,
        version=data.get(FILE_OPTIONS, {}).get(OPTION_VERSION, ""),
        crc=data.get(FILE_VERSION_CRC, ""),
        enums=enums,
        aliases=aliases,
        types=tuple(types),
        unions=tuple(unions),
        messages=tuple(messages),
        services=services,
        ref_map=ref_map,
    )

    logger.debug(
        "parsed module %r: %d enums, %d aliases, %d types, %d unions, %d messages, %d services",
        name,
        len(package.enums),
        len(package.aliases),
        len(package.types),
        len(package.unions),
        len(package.messages),
        len(package.services),
    )

    return package


def load_package_text(name: str, text: str) -> Package:
    """Parse the JSON text of a `*.api.json` file into the package model."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaError(f"invalid JSON in module {name!r}: {e}") from e

    if not isinstance(data, dict):
        raise SchemaError(f"module {name!r} must be a JSON object")

    return load_package(name, data)


def load_package_file(path: str) -> Package:
    """Load the package model from a `*.api.json` file; the module name is taken from the file name."""
    with open(path, encoding="utf8") as f:
        text = f.read()
    return load_package_text(helper.module_name_from_file(path), text)
