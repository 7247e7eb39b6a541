"""Types definitions that are common in VPP binary API schemas."""

from __future__ import annotations

BINAPI_TYPE_TO_PYTHON = {
    "u8": "int",
    "i8": "int",
    "u16": "int",
    "i16": "int",
    "u32": "int",
    "i32": "int",
    "u64": "int",
    "i64": "int",
    "f64": "float",
    "bool": "bool",
    "string": "str",
}

BINAPI_TYPE_SIZES = {
    "u8": 1,
    "i8": 1,
    "u16": 2,
    "i16": 2,
    "u32": 4,
    "i32": 4,
    "u64": 8,
    "i64": 8,
    "f64": 8,
    "bool": 1,
}

PYTHON_DEFAULTS = {
    "int": "0",
    "float": "0.0",
    "bool": "False",
    "str": '""',
}

STRING_TYPE = "string"
"""The variable-length text type."""

BYTE_TYPE = "byte"
"""Element type used for arrays of `u8`; maps to Python `bytes`."""

UNSIGNED_BYTE_TYPE = "u8"
LENGTH_FIELD_TYPE = "u32"
"""Wire type of the companion length field emitted before text fields."""


class BinapiField:
    """Names of fields with special meaning in VPP binary API objects."""

    CRC = "crc"
    MSG_ID = "_vl_msg_id"
    CLIENT_INDEX = "client_index"
    CONTEXT = "context"


class BinapiObjectKind:
    """Kinds of top-level VPP binary API objects."""

    ENUM = "enum"
    ALIAS = "alias"
    TYPE = "type"
    UNION = "union"
    MESSAGE = "message"
    SERVICE = "service"


def to_api_type(name: str) -> str:
    """Wire type reference of a named object, e.g. `address` becomes `vl_api_address_t`."""
    return f"vl_api_{name}_t"
