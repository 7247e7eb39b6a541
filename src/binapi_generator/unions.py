"""Shared-buffer layout of unions.

A union is a fixed-size byte buffer large enough for its largest alternative. Every
alternative gets a setter that packs a value into the buffer and a getter that unpacks
one from it. Which alternative is active is a convention of the protocol and is not tracked.
"""

from __future__ import annotations

import logging

from binapi_generator.binapi_types import BINAPI_TYPE_SIZES, LENGTH_FIELD_TYPE, STRING_TYPE
from binapi_generator.planner import TypeResolver, plan_field
from binapi_generator.schema import Alias, Enum, Field, Package, Type, Union
from binapi_generator.writer_dto import UnionAccessor, UnionLayout

logger = logging.getLogger(__name__)


class SizeOracle:
    """Computes the encoded byte size of schema types."""

    def __init__(self, package: Package):
        self._package = package
        self._union_sizes: dict[str, int] = {}

    def encoded_size(self, type_ref: str, length: int = 0) -> int | None:
        """Encoded size of a value, or of a fixed array of `length` values.

        Args:
            type_ref (str): A primitive type name or a wire type reference.
            length (int): Fixed array length, 0 for a scalar.

        Returns:
            int | None: The size in bytes, or None when it is not known statically.
        """
        size = self._element_size(type_ref)
        if size is None:
            return None
        if length > 0:
            return size * length
        return size

    def field_size(self, field: Field) -> int | None:
        """Encoded size of a field, None for unsized text and arrays sized by a sibling.

        Sized text is encoded as its length companion followed by a zero-padded slot of its length.
        """
        if field.type == STRING_TYPE:
            if field.length > 0:
                return BINAPI_TYPE_SIZES[LENGTH_FIELD_TYPE] + field.length
            return None
        if field.size_from and field.length <= 0:
            return None
        return self.encoded_size(field.type, field.length)

    def _element_size(self, type_ref: str) -> int | None:
        if type_ref in BINAPI_TYPE_SIZES:
            return BINAPI_TYPE_SIZES[type_ref]

        obj = self._package.lookup(type_ref)
        if obj is None:
            return None
        if isinstance(obj, Enum):
            return self._element_size(obj.type)
        if isinstance(obj, Alias):
            return self.encoded_size(obj.type, obj.length)
        if isinstance(obj, Union):
            return self.union_size(obj)
        return self.type_size(obj)

    def type_size(self, typ: Type) -> int | None:
        total = 0
        for field in typ.fields:
            size = self.field_size(field)
            if size is None:
                return None
            total += size
        return total

    def union_size(self, union: Union) -> int:
        """Size of the shared buffer of a union: the largest encoded size among its fields.

        A field whose size cannot be determined does not contribute; unions with
        variably-sized members are not supported by the wire format.
        """
        if union.name in self._union_sizes:
            return self._union_sizes[union.name]

        max_size = 0
        for field in union.fields:
            size = self.field_size(field)
            if size is None:
                logger.warning(
                    "size of field %r (%s) in union %r cannot be determined, ignoring it",
                    field.name,
                    field.type,
                    union.name,
                )
                continue
            max_size = max(max_size, size)

        self._union_sizes[union.name] = max_size
        return max_size


def layout(union: Union, oracle: SizeOracle, resolver: TypeResolver) -> UnionLayout:
    """Compute the buffer size and the accessors of a union.

    Args:
        union (Union): The union to lay out.
        oracle (SizeOracle): Size oracle of the package the union belongs to.
        resolver (TypeResolver): Type resolver of the same package.

    Returns:
        UnionLayout: The buffer size and one accessor per alternative.
    """
    accessors = []
    for i, _ in enumerate(union.fields):
        # the value of the alternative is the last planned field; text companions do not apply here
        planned = plan_field(resolver, union.fields, i)[-1]
        accessors.append(UnionAccessor(name=planned.name, annotation=planned.annotation, tag=planned.tag))

    return UnionLayout(size=oracle.union_size(union), accessors=accessors)
