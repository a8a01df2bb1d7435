"""Naming rules shared by the validator, the source generator and the binder."""

from __future__ import annotations

import keyword
import re

from pydantic import BaseModel

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
QUALIFIED_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

RESERVED_KEYWORDS: frozenset[str] = frozenset(word.lower() for word in keyword.kwlist)

# Names the generated module binds at module level.
GENERATED_MODULE_NAMES: frozenset[str] = frozenset(
    {
        "Annotated",
        "BaseModel",
        "ConfigDict",
        "Field",
        "Optional",
        "datetime",
        "decimal",
    }
)

_BASEMODEL_RESERVED = frozenset(dir(BaseModel))
_ANNOTATION_NAMES = frozenset({"bool", "float", "int", "object", "str"})
_ATTRIBUTE_PREFIXES: tuple[str, ...] = ("_", "model_")


def is_identifier(name: str) -> bool:
    """Return whether ``name`` matches the identifier grammar."""
    return IDENTIFIER_RE.match(name) is not None


def is_qualified_name(name: str) -> bool:
    """Return whether ``name`` is a dot-separated sequence of identifiers."""
    return QUALIFIED_NAME_RE.match(name) is not None


def is_reserved_keyword(name: str) -> bool:
    """Case-insensitive keyword check."""
    return name.lower() in RESERVED_KEYWORDS


def capitalize_first(name: str) -> str:
    """Upper-case the first character and keep the rest unchanged."""
    if not name:
        return name
    return name[0].upper() + name[1:]


def getter_name(field_name: str) -> str:
    """Return the generated getter name for a field."""
    return f"get{capitalize_first(field_name)}"


def setter_name(field_name: str) -> str:
    """Return the generated setter name for a field or document key."""
    return f"set{capitalize_first(field_name)}"


def attribute_name(field_name: str) -> str:
    """Return the model attribute name that stores a declared field.

    Declared names that pydantic would treat as private or protected, or that
    would shadow ``BaseModel`` members and names used inside annotations, are
    moved to a safe attribute name. The declared name stays the alias.
    """
    name = field_name
    if name.startswith(_ATTRIBUTE_PREFIXES):
        name = f"field_{name.lstrip('_')}"
    if name in _BASEMODEL_RESERVED or name in _ANNOTATION_NAMES or name in GENERATED_MODULE_NAMES:
        name = f"{name}_field"
    return name
