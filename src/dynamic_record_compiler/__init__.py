"""Dynamic record compiler package."""

from __future__ import annotations

from .cli import main
from .generator import GeneratedType, RecordGenerator, RenderedInstance

__all__ = ["GeneratedType", "RecordGenerator", "RenderedInstance", "main"]
