"""Runtime support for generated VPP binary API bindings.

Generated modules describe the wire layout of every field declaratively with `wire(...)`
metadata on dataclass fields. This module compiles that metadata into `construct`
structures on first use, provides the message registry and the channel protocols the
generated service clients are written against.

Notes:
    - Values are encoded in network byte order.
    - Fields that carry the size of a sibling are rebuilt from the sibling on encoding,
      so they never have to be set by hand.
"""

from __future__ import annotations

import dataclasses
import enum
import functools
import logging
import re
import sys
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Protocol, TypeVar, runtime_checkable

from construct import (
    Adapter,
    Array,
    Bytes,
    Construct,
    ExprAdapter,
    Flag,
    Float64b,
    Int8sb,
    Int8ub,
    Int16sb,
    Int16ub,
    Int32sb,
    Int32ub,
    Int64sb,
    Int64ub,
    Padded,
    PaddedString,
    PascalString,
    Rebuild,
    Struct,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Generated modules reference BinapiPackageIsVersionN, where N is the version of the generated code they
# were written for. A module that fails to import on that line needs a newer copy of this package.
BinapiPackageIsVersion1 = True

WIRE_METADATA_KEY = "wire"
UNION_DATA_FIELD = "xxx_union_data"
ENUM_TYPE_ATTRIBUTE = "__binapi_type__"
STRING_ENCODING = "utf8"

# member names of the struct that encodes a text alternative of a union
_TEXT = "text"
_TEXT_LENGTH = "text_len"

PRIMITIVES: dict[str, Construct] = {
    "u8": Int8ub,
    "i8": Int8sb,
    "u16": Int16ub,
    "i16": Int16sb,
    "u32": Int32ub,
    "i32": Int32sb,
    "u64": Int64ub,
    "i64": Int64sb,
    "f64": Float64b,
    "bool": Flag,
    "byte": Int8ub,
}

_ARRAY_EXPR = re.compile(r"^\[(\d*)\](.+)$")


class WireError(Exception):
    """Raised when the wire metadata of a generated binding cannot be compiled."""

    pass


class MessageType(enum.Enum):
    """Role of a message in a request/reply exchange."""

    REQUEST = "RequestMessage"
    REPLY = "ReplyMessage"
    EVENT = "EventMessage"
    OTHER = "OtherMessage"


@runtime_checkable
class DataType(Protocol):
    """A generated type or union."""

    @staticmethod
    def get_type_name() -> str: ...

    @staticmethod
    def get_crc_string() -> str: ...


@runtime_checkable
class Message(Protocol):
    """A generated message."""

    @staticmethod
    def get_message_name() -> str: ...

    @staticmethod
    def get_crc_string() -> str: ...

    @staticmethod
    def get_message_type() -> MessageType: ...


class RequestCtx(Protocol):
    """Pending request that is answered by a single reply."""

    def receive_reply(self, msg: Any) -> None:
        """Decode the reply into `msg`; raises if the request failed."""
        ...


class MultiRequestCtx(Protocol):
    """Pending request that is answered by a sequence of replies."""

    def receive_reply(self, msg: Any) -> bool:
        """Decode the next reply into `msg`; returns True once there are no more replies."""
        ...


class Channel(Protocol):
    """Transport the generated service clients send their requests through."""

    def send_request(self, msg: Any) -> RequestCtx: ...

    def send_multi_request(self, msg: Any) -> MultiRequestCtx: ...


@dataclass(frozen=True)
class Context:
    """Carries the deadline of a call.

    Attributes:
        deadline: Value of `time.monotonic()` after which the call should be abandoned, None for no deadline.
    """

    deadline: float | None = None

    @classmethod
    def background(cls) -> Context:
        return cls()

    @classmethod
    def with_timeout(cls, timeout: float) -> Context:
        return cls(deadline=time.monotonic() + timeout)

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline


_registered_messages: dict[str, type[Any]] = {}


def register_message(msg: type[Any], name: str) -> None:
    """Register a generated message under its qualified name, e.g. `vpe.ShowVersion`."""
    existing = _registered_messages.get(name)
    if existing is not None and existing is not msg:
        logger.warning("Message %r is already registered, replacing %r", name, existing)
    _registered_messages[name] = msg


def get_registered_messages() -> Mapping[str, type[Any]]:
    """All registered messages by qualified name."""
    return MappingProxyType(_registered_messages)


@dataclass(frozen=True)
class Wire:
    """Wire tag of a field.

    Attributes:
        type: Type expression: `[N]elem` fixed array, `[]elem` array sized by `sizefrom`, or a scalar `elem`.
        sizeof: Name of the sibling whose length this field carries.
        sizefrom: Name of the sibling that carries the length of this field.
        binapi: Original name and limit of the field, informational only.
    """

    type: str
    sizeof: str = ""
    sizefrom: str = ""
    binapi: str = ""


def wire(type: str, *, sizeof: str = "", sizefrom: str = "", binapi: str = "") -> dict[str, Wire]:
    """Field metadata describing the wire encoding of a dataclass field."""
    return {WIRE_METADATA_KEY: Wire(type, sizeof=sizeof, sizefrom=sizefrom, binapi=binapi)}


def _resolve_class(name: str, module: str) -> type[Any]:
    try:
        return getattr(sys.modules[module], name)
    except (KeyError, AttributeError) as e:
        raise WireError(f"unknown wire type {name!r} in module {module!r}") from e


def _element(expr: str, module: str) -> Construct:
    """Construct for a single value of a type expression without sibling references."""
    if expr in PRIMITIVES:
        return PRIMITIVES[expr]

    if expr == "string":
        return PascalString(Int32ub, STRING_ENCODING)

    match = _ARRAY_EXPR.match(expr)
    if match:
        length, elem = match.groups()
        if not length:
            raise WireError(f"array {expr!r} has no fixed length and no field carrying its length")
        if elem == "string":
            return PaddedString(int(length), STRING_ENCODING)
        return _array(int(length), elem, module)

    return construct_for(_resolve_class(expr, module))


def _array(length: int | Callable[[Any], int], elem: str, module: str) -> Construct:
    if elem == "byte":
        return Bytes(length)
    return Array(length, _element(elem, module))


def _sibling(name: str) -> Callable[[Any], Any]:
    return lambda ctx: ctx[name]


def _length_of(name: str, is_string: bool) -> Callable[[Any], int]:
    if is_string:
        return lambda ctx: len(ctx[name].encode(STRING_ENCODING))
    return lambda ctx: len(ctx[name])


def _is_string(tag: Wire | None) -> bool:
    return tag is not None and (tag.type == "string" or tag.type.endswith("]string"))


def _field_construct(tag: Wire, siblings: Mapping[str, Wire], module: str) -> Construct:
    """Construct for a field, wiring up its sibling references."""
    match = _ARRAY_EXPR.match(tag.type)

    if tag.type == "string" and tag.sizefrom:
        return PaddedString(_sibling(tag.sizefrom), STRING_ENCODING)

    if match is None:
        if tag.sizeof:
            return Rebuild(_element(tag.type, module), _length_of(tag.sizeof, _is_string(siblings.get(tag.sizeof))))
        return _element(tag.type, module)

    length, elem = match.groups()
    if elem == "string" and tag.sizefrom:
        return Padded(int(length), PaddedString(_sibling(tag.sizefrom), STRING_ENCODING))
    if not length and tag.sizefrom:
        return _array(_sibling(tag.sizefrom), elem, module)
    return _element(tag.type, module)


def _wire_tag(field: dataclasses.Field[Any], owner: type[Any]) -> Wire:
    try:
        return field.metadata[WIRE_METADATA_KEY]
    except KeyError as e:
        raise WireError(f"field {field.name!r} of {owner.__qualname__} has no wire metadata") from e


class _RecordAdapter(Adapter):
    """Converts between the containers of a `Struct` and instances of a generated dataclass."""

    def __init__(self, subcon: Construct, cls: type[Any]):
        super().__init__(subcon)
        self._cls = cls
        self._names = [f.name for f in dataclasses.fields(cls)]

    def _decode(self, obj: Any, context: Any, path: Any) -> Any:
        return self._cls(**{name: obj[name] for name in self._names})

    def _encode(self, obj: Any, context: Any, path: Any) -> Any:
        return {name: getattr(obj, name) for name in self._names}


@functools.cache
def construct_for(cls: type[Any]) -> Construct:
    """Compile the wire layout of a generated enum, type, union or message.

    Args:
        cls (type[Any]): The generated class.

    Returns:
        Construct: A construct that builds from and parses to instances of `cls`.
    """
    enum_type = getattr(cls, ENUM_TYPE_ATTRIBUTE, None)
    if enum_type is not None:
        return ExprAdapter(PRIMITIVES[enum_type], decoder=lambda obj, ctx: cls(obj), encoder=lambda obj, ctx: int(obj))

    if not dataclasses.is_dataclass(cls):
        raise WireError(f"{cls!r} is not a generated binding")

    fields = dataclasses.fields(cls)
    tags = {f.name: _wire_tag(f, cls) for f in fields}
    subcons = [name / _field_construct(tag, tags, cls.__module__) for name, tag in tags.items()]
    return _RecordAdapter(Struct(*subcons), cls)


@functools.cache
def _value_construct(tag: Wire, module: str) -> Construct:
    """Construct for a union alternative; text is preceded by its length, as it is in records."""
    if not _is_string(tag):
        return _element(tag.type, module)

    text = Wire(tag.type, sizefrom=_TEXT_LENGTH)
    return ExprAdapter(
        Struct(
            _TEXT_LENGTH / Rebuild(Int32ub, _length_of(_TEXT, True)),
            _TEXT / _field_construct(text, {}, module),
        ),
        decoder=lambda obj, ctx: obj[_TEXT],
        encoder=lambda obj, ctx: {_TEXT_LENGTH: 0, _TEXT: obj},
    )


def pack(obj: Any) -> bytes:
    """Encode an instance of a generated binding."""
    return construct_for(type(obj)).build(obj)


def unpack(cls: type[T], data: bytes) -> T:
    """Decode an instance of a generated binding from the leading bytes of `data`."""
    return construct_for(cls).parse(data)


def union_set(union: Any, metadata: Mapping[str, Wire], value: Any) -> None:
    """Encode `value` into the shared buffer of a union, truncating or zero-padding it to the buffer size."""
    data = _value_construct(metadata[WIRE_METADATA_KEY], type(union).__module__).build(value)
    size = len(getattr(union, UNION_DATA_FIELD))
    setattr(union, UNION_DATA_FIELD, data[:size].ljust(size, b"\x00"))


def union_get(union: Any, metadata: Mapping[str, Wire]) -> Any:
    """Decode a value from the leading bytes of the shared buffer of a union."""
    data = bytes(getattr(union, UNION_DATA_FIELD))
    return _value_construct(metadata[WIRE_METADATA_KEY], type(union).__module__).parse(data)
