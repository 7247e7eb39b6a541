"""Data transfer objects passed between the planning components and the writer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import override


@dataclass(frozen=True)
class GeneratorOptions:
    """Switches that control which optional parts are generated.

    Attributes:
        include_api_version: Emit the API version and CRC constants of the module.
        include_comments: Reproduce the JSON source of each object in comments.
        include_binapi_names: Record the original field names in the wire tags.
        include_services: Emit the service protocol and its client implementation.
    """

    include_api_version: bool = False
    include_comments: bool = False
    include_binapi_names: bool = False
    include_services: bool = False


@dataclass(frozen=True)
class WireTag:
    """Declarative description of how a field is encoded on the wire.

    The type expression has the form `[N]elem` for fixed arrays, `[]elem` for arrays sized by a sibling,
    or just `elem` for scalars. `elem` is itself a type expression (array aliases nest), a primitive
    name, or the name of a generated class.

    Attributes:
        elem: The element type.
        length: Fixed array length, 0 if the field is not a fixed array.
        variable: Whether the field is an array whose length is carried by the `size_from` sibling.
        size_of: Name of the sibling whose length this field carries.
        size_from: Name of the sibling that carries the length of this field.
        binapi: Auxiliary metadata (original name, limit); never affects encoding.
    """

    elem: str
    length: int = 0
    variable: bool = False
    size_of: str = ""
    size_from: str = ""
    binapi: str = ""

    @property
    def type_expr(self) -> str:
        if self.length > 0:
            return f"[{self.length}]{self.elem}"
        if self.variable:
            return f"[]{self.elem}"
        return self.elem

    def render(self) -> str:
        """The call that builds this tag in generated code, e.g. `api.wire("[16]byte")`."""
        args = [f'"{self.type_expr}"']
        if self.size_of:
            args.append(f'sizeof="{self.size_of}"')
        if self.size_from:
            args.append(f'sizefrom="{self.size_from}"')
        if self.binapi:
            args.append(f'binapi="{self.binapi}"')
        return f"api.wire({', '.join(args)})"


@dataclass(frozen=True)
class ResolvedType:
    """A schema type reference resolved into its wire and Python representation.

    Attributes:
        wire: Wire type expression of a single value.
        annotation: Python annotation of a single value.
        default: Expression for a default value, if it is immutable.
        factory: Expression for a default factory, if the default is mutable.
    """

    wire: str
    annotation: str
    default: str = ""
    factory: str = ""


@dataclass(frozen=True)
class PlannedField:
    """A field of a generated dataclass, with its wire tag."""

    name: str
    annotation: str
    tag: WireTag
    default: str = ""
    default_factory: str = ""
    synthetic: bool = False

    @override
    def __str__(self) -> str:
        """The field declaration line, without indentation."""
        if self.default_factory:
            value = f"default_factory={self.default_factory}"
        else:
            value = f"default={self.default}"
        return f"{self.name}: {self.annotation} = field({value}, metadata={self.tag.render()})"


@dataclass(frozen=True)
class UnionAccessor:
    """Encode/decode accessor pair for one alternative of a union."""

    name: str
    annotation: str
    tag: WireTag


@dataclass(frozen=True)
class UnionLayout:
    """Shared buffer size of a union and the accessors of its alternatives."""

    size: int
    accessors: list[UnionAccessor] = field(default_factory=list)


@dataclass(frozen=True)
class ServiceMethod:
    """Signature of a client method of the RPC service.

    Attributes:
        name: Exported method name, e.g. `DumpSwInterface`.
        py_name: The Python method name, e.g. `dump_sw_interface`.
        request: Class name of the request message.
        reply: Class name of the reply message, empty if the request has no reply.
        stream: Whether the request is answered by a sequence of replies.
    """

    name: str
    py_name: str
    request: str
    reply: str = ""
    stream: bool = False

    @property
    def parameters(self) -> list[str]:
        return ["self", "ctx: api.Context", f"in_: {self.request}"]

    @property
    def return_annotation(self) -> str:
        if not self.reply:
            return "None"
        if self.stream:
            return f"list[{self.reply}]"
        return self.reply
