"""Decide how every field of a type, union or message is encoded on the wire."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from binapi_generator import helper
from binapi_generator.binapi_types import (
    BINAPI_TYPE_TO_PYTHON,
    BYTE_TYPE,
    LENGTH_FIELD_TYPE,
    PYTHON_DEFAULTS,
    STRING_TYPE,
    UNSIGNED_BYTE_TYPE,
)
from binapi_generator.schema import Alias, Enum, Field, Package, Type, Union
from binapi_generator.writer_dto import PlannedField, ResolvedType, WireTag

logger = logging.getLogger(__name__)

LENGTH_FIELD_PREFIX = "xxx_"
LENGTH_FIELD_SUFFIX = "_len"


def length_field_name(name: str) -> str:
    """Name of the companion field that carries the byte length of a text field."""
    return f"{LENGTH_FIELD_PREFIX}{name}{LENGTH_FIELD_SUFFIX}"


def array_element(wire: str) -> str:
    """Element type used inside arrays; `u8` becomes `byte`."""
    if wire == UNSIGNED_BYTE_TYPE:
        return BYTE_TYPE
    return wire


class TypeResolver:
    """Resolves schema type references of one package into wire types and Python annotations."""

    def __init__(self, package: Package):
        self._package = package

    def resolve(self, type_ref: str) -> ResolvedType:
        """Resolve a type reference of a field.

        Args:
            type_ref (str): A primitive type name or a wire type reference, e.g. `vl_api_address_t`.

        Returns:
            ResolvedType: The wire type and Python representation of a single value.
        """
        if type_ref in BINAPI_TYPE_TO_PYTHON:
            annotation = BINAPI_TYPE_TO_PYTHON[type_ref]
            return ResolvedType(type_ref, annotation, default=PYTHON_DEFAULTS[annotation])

        obj = self._package.lookup(type_ref)
        if obj is None:
            logger.warning("found unknown VPP binary API type %r, using %s", type_ref, UNSIGNED_BYTE_TYPE)
            return ResolvedType(UNSIGNED_BYTE_TYPE, "int", default="0")

        name = helper.camel_case_name(obj.name)
        if isinstance(obj, Enum):
            return ResolvedType(name, name, default=f"{name}(0)")
        if isinstance(obj, (Type, Union)):
            return ResolvedType(name, name, factory=name)
        return self._resolve_alias(obj, name)

    def _resolve_alias(self, alias: Alias, name: str) -> ResolvedType:
        target = self.resolve(alias.type)
        if alias.length <= 0:
            return ResolvedType(target.wire, name, default=target.default, factory=target.factory)

        elem = array_element(target.wire)
        wire = f"[{alias.length}]{elem}"
        if elem == BYTE_TYPE:
            return ResolvedType(wire, name, default=f"bytes({alias.length})")
        return ResolvedType(wire, name, factory=fixed_list_factory(target, alias.length))


def fixed_list_factory(elem: ResolvedType, length: int) -> str:
    """Default factory of a fixed-size list of `length` default elements."""
    if elem.factory:
        return f"lambda: [{elem.factory}() for _ in range({length})]"
    return f"lambda: [{elem.default}] * {length}"


def _binapi_tag(field: Field, include_binapi_names: bool) -> str:
    tag = field.name if include_binapi_names else ""
    if field.meta.limit > 0:
        tag = f"{tag},limit={field.meta.limit}"
    return tag


def plan_field(
    resolver: TypeResolver,
    fields: Sequence[Field],
    i: int,
    include_binapi_names: bool = False,
) -> list[PlannedField]:
    """Plan the encoding of one field.

    Args:
        resolver (TypeResolver): Resolver for type references of the package.
        fields (Sequence[Field]): All fields of the containing object.
        i (int): Index of the field to plan.
        include_binapi_names (bool): Whether to record the original field name in the tag.

    Returns:
        list[PlannedField]: The planned field, preceded by its companion length field for text fields.
    """
    fld = fields[i]
    name = helper.field_name(fld.name)
    binapi = _binapi_tag(fld, include_binapi_names)
    planned: list[PlannedField] = []

    if fld.type == STRING_TYPE:
        len_name = length_field_name(name)
        planned.append(
            PlannedField(
                name=len_name,
                annotation="int",
                tag=WireTag(LENGTH_FIELD_TYPE, size_of=name),
                default="0",
                synthetic=True,
            )
        )
        tag = WireTag(STRING_TYPE, length=max(fld.length, 0), size_from=len_name, binapi=binapi)
        planned.append(PlannedField(name=name, annotation="str", tag=tag, default='""'))
        return planned

    resolved = resolver.resolve(fld.type)

    if fld.length > 0:
        elem = array_element(resolved.wire)
        tag = WireTag(elem, length=fld.length, binapi=binapi)
        if elem == BYTE_TYPE:
            planned.append(PlannedField(name, "bytes", tag, default=f"bytes({fld.length})"))
        else:
            factory = fixed_list_factory(resolved, fld.length)
            planned.append(PlannedField(name, f"list[{resolved.annotation}]", tag, default_factory=factory))
        return planned

    size_of = ""
    for sibling in fields:
        if sibling.size_from and sibling.size_from == fld.name:
            size_of = helper.field_name(sibling.name)

    if fld.size_from:
        elem = array_element(resolved.wire)
        tag = WireTag(
            elem,
            variable=True,
            size_of=size_of,
            size_from=helper.field_name(fld.size_from),
            binapi=binapi,
        )
        if elem == BYTE_TYPE:
            planned.append(PlannedField(name, "bytes", tag, default='b""'))
        else:
            planned.append(PlannedField(name, f"list[{resolved.annotation}]", tag, default_factory="list"))
        return planned

    tag = WireTag(resolved.wire, size_of=size_of, binapi=binapi)
    if resolved.factory:
        # deferred, the class may be generated further down the module
        factory = f"lambda: {resolved.factory}()"
        planned.append(PlannedField(name, resolved.annotation, tag, default_factory=factory))
    else:
        planned.append(PlannedField(name, resolved.annotation, tag, default=resolved.default))
    return planned
