"""Reproduce the JSON source of schema objects as comments."""

from __future__ import annotations

from typing import Protocol

from binapi_generator.binapi_types import BinapiObjectKind

# Objects defined as key-value pairs instead of array elements.
MAP_STYLE_KINDS = frozenset({BinapiObjectKind.ALIAS, BinapiObjectKind.SERVICE})


class DocumentationSource(Protocol):
    """Provides the source lines of a named schema object."""

    def extract(self, name: str, kind: str) -> list[str]: ...


class NullDocumentationSource:
    """Documentation source that never finds anything."""

    def extract(self, name: str, kind: str) -> list[str]:
        return []


def object_title(name: str, kind: str) -> str:
    """The token that opens the definition of an object in the JSON source."""
    if kind in MAP_STYLE_KINDS:
        return f'"{name}": {{'
    return f'"{name}",'


def _indent_of(line: str) -> int:
    """Index of the first non-whitespace character, -1 for blank lines."""
    for i, c in enumerate(line):
        if not c.isspace():
            return i
    return -1


class IndentScanSource:
    """Finds object definitions by scanning the source text line by line and following indentation.

    The definition starts at the line that consists of nothing but the title of the object.
    Array elements end before the first line that is indented less than the title; map entries
    end with the first line that is indented no more than the title, which is included.
    """

    def __init__(self, text: str):
        self._lines = text.splitlines()

    def extract(self, name: str, kind: str) -> list[str]:
        title = object_title(name, kind)
        map_style = kind in MAP_STYLE_KINDS

        lines: list[str] = []
        found = False
        trim_indent = ""
        indent = 0

        for line in self._lines:
            if not found:
                indent = line.find(title)
                if indent == -1:
                    continue
                trim_indent = line[:indent]
                if line.strip() != title:
                    continue
                found = True
                lines.append(line.removeprefix(trim_indent))
                continue

            no_space_at = _indent_of(line)
            if map_style and no_space_at <= indent:
                lines.append(line.removeprefix(trim_indent))
                break
            if no_space_at < indent:
                break
            lines.append(line.removeprefix(trim_indent))

        return lines


def comment_block(lines: list[str]) -> list[str]:
    """Format source lines as a comment block, framed by empty comment lines."""
    if not lines:
        return []
    return ["#", *(f"#\t{line}".rstrip() for line in lines), "#"]
