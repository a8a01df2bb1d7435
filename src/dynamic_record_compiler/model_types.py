"""Internal datatypes for record generation, compilation and rendering."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel


@dataclass(frozen=True)
class FieldSpec:
    """Declared field of a record type."""

    name: str
    type: str
    required: bool = False
    default_value: Optional[str] = None


@dataclass(frozen=True)
class TypeDescriptor:
    """Declarative description of a flat record type."""

    type_name: str
    namespace: str
    fields: tuple[FieldSpec, ...]
    description: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        """Return ``namespace.type_name``."""
        return f"{self.namespace}.{self.type_name}"


@dataclass(frozen=True)
class SetterBinding:
    """A declared single-argument setter of a compiled record class."""

    method_name: str
    target_type: type
    nullable: bool
    function: Callable[[BaseModel, Any], None]


@dataclass(frozen=True)
class GeneratedArtifact:
    """Compiled record class together with the source it was built from."""

    qualified_name: str
    source_text: str
    content_hash: str
    record_class: type[BaseModel]
    setters: Mapping[str, SetterBinding]


@dataclass(frozen=True)
class ArtifactIdentity:
    """Caller-facing identity of a compiled record type."""

    qualified_name: str
    type_name: str
    namespace: str
    content_hash: str


@dataclass(frozen=True)
class CacheStats:
    """Compilation cache occupancy."""

    live_artifact_count: int
    retained_source_count: int


@dataclass(frozen=True)
class SkippedKey:
    """A document key the binder could not apply."""

    key: str
    reason: str


@dataclass(frozen=True)
class BindingReport:
    """Outcome of binding one data document onto a record instance."""

    bound: tuple[str, ...]
    skipped: tuple[SkippedKey, ...]
