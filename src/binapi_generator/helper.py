"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

import keyword
import os.path
import re
from collections.abc import Sequence

INPUT_FILE_EXT = ".api.json"

COMMON_INITIALISMS = frozenset(
    {
        "ACL",
        "API",
        "ASCII",
        "CPU",
        "CSS",
        "DNS",
        "EOF",
        "GUID",
        "HTML",
        "HTTP",
        "HTTPS",
        "ID",
        "IP",
        "JSON",
        "LHS",
        "MAC",
        "MTU",
        "QPS",
        "RAM",
        "RHS",
        "RPC",
        "SLA",
        "SMTP",
        "SQL",
        "SSH",
        "TCP",
        "TLS",
        "TTL",
        "UDP",
        "UI",
        "UID",
        "UUID",
        "URI",
        "URL",
        "UTF8",
        "VM",
        "XML",
        "XMPP",
        "XSRF",
        "XSS",
    }
)

# Names the generated module binds at module scope; a field with one of these names would shadow
# them inside the class body.
GENERATED_MODULE_NAMES = frozenset({"api", "dataclass", "field", "self"})

_SNAKE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def _title(name: str) -> str:
    """Upper-case the first letter of every word, where words are separated by anything but letters, digits and `_`."""
    chars = list(name)
    prev = " "
    for i, c in enumerate(chars):
        if not (prev.isalnum() or prev == "_"):
            chars[i] = c.upper()
        prev = c
    return "".join(chars)


def camel_case_name(name: str) -> str:
    """Convert a VPP binary API name into an exported CamelCase identifier.

    Words are split at underscores and at lower-to-upper transitions. Words that are
    common initialisms are upper-cased as a whole.

    Args:
        name (str): The original name, e.g. `sw_interface_ip_address`.

    Returns:
        str: The identifier, e.g. `SwInterfaceIPAddress`.

    Examples:
        >>> camel_case_name("ip4_address")
        'IP4Address'
        >>> camel_case_name("show_version_reply")
        'ShowVersionReply'
    """
    name = _title(name)

    if name == "_":
        return name
    if all(c.islower() for c in name):
        return name

    runes = list(name)
    w = i = 0
    while i + 1 <= len(runes):
        eow = False
        if i + 1 == len(runes):
            eow = True
        elif runes[i + 1] == "_":
            eow = True
            n = 1
            while i + n + 1 < len(runes) and runes[i + n + 1] == "_":
                n += 1
            # keep one underscore between two digits
            if i + n + 1 < len(runes) and runes[i].isdigit() and runes[i + n + 1].isdigit():
                n -= 1
            del runes[i + 1 : i + n + 1]
        elif runes[i].islower() and not runes[i + 1].islower():
            eow = True
        i += 1
        if not eow:
            continue

        word = "".join(runes[w:i])
        upper = word.upper()
        if upper in COMMON_INITIALISMS:
            if w == 0 and runes[w].islower():
                upper = upper.lower()
            runes[w:i] = list(upper)
        elif w > 0 and word.lower() == word:
            runes[w] = runes[w].upper()
        w = i

    return "".join(runes)


def snake_case_name(name: str) -> str:
    """Convert a CamelCase identifier into snake_case, keeping initialisms together.

    E.g. `DumpIPAddress` becomes `dump_ip_address`.
    """
    return sanitize_name(_SNAKE_BOUNDARY.sub("_", name).lower())


def sanitize_name(name: str) -> str:
    """Sanitize a name to avoid Python keywords.

    If the name is a Python keyword, append an underscore.
    E.g. 'lambda' becomes 'lambda_', 'class' becomes 'class_'.

    Args:
        name (str): The original name.

    Returns:
        str: The sanitized name.
    """
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def field_name(name: str) -> str:
    """Python attribute name of a VPP binary API field.

    Leading underscores are dropped; keywords and names used by the generated module get an underscore appended.
    """
    name = name.lstrip("_") or name
    if name in GENERATED_MODULE_NAMES:
        return f"{name}_"
    return sanitize_name(name)


def module_name_from_file(input_file: str) -> str:
    """The module name of an input file, which is its base name up to the first dot."""
    base_name = os.path.basename(input_file)
    return base_name.split(".", 1)[0]


def package_name(module_name: str) -> str:
    """Name of the Python package generated for a module.

    Hyphens are converted to underscores and module names that are reserved words in Python are pluralized,
    e.g. `class` becomes `classes`.

    Args:
        module_name (str): The name of the VPP binary API module.

    Returns:
        str: A valid Python package name.
    """
    name = module_name.replace("-", "_")
    if keyword.iskeyword(name) or keyword.issoftkeyword(name):
        return pluralize(name)
    return name


def pluralize(word: str) -> str:
    """Plural of a word, appending `es` to words ending in `s`."""
    if word.endswith("s"):
        return f"{word}es"
    return f"{word}s"


def join_parameters(parameters: Sequence[str] | None) -> str:
    """Joins parameters by means of ', '.

    Args:
        parameters (Sequence[str] | None): The parameters to join.

    Returns:
        str: The joined parameters.
    """
    if parameters:
        return ", ".join(str(p) for p in parameters if p)

    else:
        return ""


def new_function(
    name: str,
    parameters: Sequence[str] | None = None,
    return_type: str | None = None,
    stub: bool = False,
) -> str:
    """Create a string for a function header.

    Args:
        name (str): The function name.
        parameters (Sequence[str] | None, optional): The function parameters, if any. Defaults to None.
        return_type (str | None, optional): The function's return type. Defaults to None.
        stub (bool, optional): Whether to close the definition with `...` instead of opening a body.

    Returns:
        str: The function string.
    """
    if return_type is None:
        return_type = "None"

    arguments = join_parameters(parameters)
    suffix = " ..." if stub else ""
    return f"def {name}({arguments}) -> {return_type}:{suffix}"


def new_decorator(name: str, parameters: Sequence[str] | None = None) -> str:
    """Create a new decorator.

    Args:
        name (str): The name of the decorator.
        parameters (Sequence[str] | None, optional): The parameters (args, kwargs) of the decorator,
            if any. Defaults to None.

    Returns:
        str: The decorator string.
    """
    if parameters:
        return f"@{name}({join_parameters(parameters)})"

    else:
        return f"@{name}"


def new_class_declaration(name: str, parameters: Sequence[str] | None = None) -> str:
    """Creates a string for declaring a class.

    For example, for a name of 'SomeClass' and a list of parameters that is 'int', the output
    will be 'class SomeClass(int):'.

    If no parameters are provided, the output is just 'class SomeClass:'.

    Args:
        name (str): The class name.
        parameters (Sequence[str] | None, optional):
            A list of parameters that are part of the class declaration. Defaults to None.

    Returns:
        str: The class declaration.
    """
    if parameters:
        return f"class {name}({join_parameters(parameters)}):"
    else:
        return f"class {name}:"
