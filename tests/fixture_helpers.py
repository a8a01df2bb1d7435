"""Shared helpers for fixture-driven tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Optional, ParamSpec, TypeVar

import pytest

from dynamic_record_compiler.model_types import FieldSpec, TypeDescriptor

_FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"
_P = ParamSpec("_P")
_R = TypeVar("_R")

PERSON_NAMESPACE = "com.example.dynamic.generated"


def descriptor_dir() -> Path:
    """Return the descriptor fixtures directory."""
    return _FIXTURE_DIR / "descriptors"


def document_path(name: str) -> Path:
    """Return the path of a data document fixture."""
    return _FIXTURE_DIR / "documents" / name


def iter_descriptor_paths() -> list[Path]:
    """Return all descriptor fixture paths sorted by name."""
    directory = descriptor_dir()
    paths = sorted(directory.glob("*.yaml")) + sorted(directory.glob("*.json"))
    return [path for path in paths if path.is_file()]


def parametrize_descriptors() -> Callable[[Callable[_P, _R]], Callable[_P, _R]]:
    """Parametrize a test over all descriptor fixture paths."""

    def _decorator(func: Callable[_P, _R]) -> Callable[_P, _R]:
        decorator: Callable[[Callable[_P, _R]], Callable[_P, _R]]
        decorator = pytest.mark.parametrize(
            "fixture_path",
            iter_descriptor_paths(),
            ids=lambda path: path.name,
        )
        return decorator(func)

    return _decorator


def make_descriptor(
    type_name: str = "Person",
    namespace: str = PERSON_NAMESPACE,
    fields: Optional[list[FieldSpec]] = None,
    description: Optional[str] = None,
) -> TypeDescriptor:
    """Build a descriptor, defaulting to the four-field person record."""
    if fields is None:
        fields = person_fields()
    return TypeDescriptor(
        type_name=type_name,
        namespace=namespace,
        fields=tuple(fields),
        description=description,
    )


def person_fields() -> list[FieldSpec]:
    """Return the person record fields."""
    return [
        FieldSpec(name="firstName", type="String", required=True),
        FieldSpec(name="lastName", type="String", required=True),
        FieldSpec(name="age", type="int"),
        FieldSpec(name="address", type="String"),
    ]
