"""Content-addressed cache of compiled record classes.

Two tiers are kept. The artifact tier holds compiled classes strongly and is
bounded: inserting a new key into a full tier clears it entirely. The source
tier keeps the text each artifact was compiled from and survives that clear,
so a reclaimed type is recompiled transparently on its next use.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections.abc import Callable
from typing import Optional

from pydantic import BaseModel

from .model_types import CacheStats, GeneratedArtifact
from .module_loading import RecordLoadError, collect_setters, forget_source, load_record_class
from .naming import is_qualified_name

logger = logging.getLogger(__name__)

MAX_CACHE_ENTRIES = 1000

type RecordCompiler = Callable[[str, str, str], type[BaseModel]]


class CompilationError(RuntimeError):
    """Raised when record source fails to compile or load."""

    def __init__(self, qualified_name: str, message: str) -> None:
        super().__init__(f"Compilation failed for {qualified_name}: {message}")
        self.qualified_name = qualified_name
        self.diagnostic = message


def content_hash(qualified_name: str, source_text: str) -> str:
    """Return the hex SHA-256 digest identifying compiled source.

    The NUL separator cannot appear in a qualified name, so distinct
    (name, source) pairs never share an encoding.
    """
    digest = hashlib.sha256()
    digest.update(qualified_name.encode("utf-8"))
    digest.update(b"\0")
    digest.update(source_text.encode("utf-8"))
    return digest.hexdigest()


def _default_compiler(qualified_name: str, source_text: str, filename: str) -> type[BaseModel]:
    return load_record_class(
        qualified_name=qualified_name,
        source_text=source_text,
        filename=filename,
    )


class CompilationCache:
    """Thread-safe cache from content hash to compiled record artifact.

    Only the artifact tier is bounded by ``max_entries``. Retained source grows
    with every distinct (name, source) pair until ``clear``, which is a known
    limit when callers may submit arbitrary source.
    """

    def __init__(
        self,
        *,
        max_entries: int = MAX_CACHE_ENTRIES,
        compiler: Optional[RecordCompiler] = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._max_entries = max_entries
        self._compiler = compiler or _default_compiler
        self._lock = threading.Lock()
        self._artifacts: dict[str, GeneratedArtifact] = {}
        self._sources: dict[str, tuple[str, str]] = {}
        self._filenames: set[str] = set()

    @property
    def max_entries(self) -> int:
        """Return the artifact tier bound."""
        return self._max_entries

    def compile_and_load(self, qualified_name: str, source_text: str) -> GeneratedArtifact:
        """Return the compiled artifact for a source text, compiling on a miss.

        Args:
            qualified_name (str): ``namespace.TypeName`` the source declares.
            source_text (str): Python source of the record module.

        Returns:
            GeneratedArtifact: Cached or freshly compiled artifact.

        Raises:
            CompilationError: If the name is invalid or the source does not compile.
        """
        if not isinstance(qualified_name, str) or not is_qualified_name(qualified_name):
            raise CompilationError(str(qualified_name), "qualified name is not a dotted identifier")
        if not isinstance(source_text, str):
            raise CompilationError(qualified_name, "source text is missing")

        key = content_hash(qualified_name, source_text)
        with self._lock:
            cached = self._artifacts.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s (%s)", qualified_name, key[:12])
            return cached

        logger.debug("Cache miss for %s (%s)", qualified_name, key[:12])
        return self._compile(key, qualified_name, source_text)

    def get_source_text(self, key: str) -> Optional[str]:
        """Return retained source text for a content hash, if any."""
        with self._lock:
            entry = self._sources.get(key)
        return None if entry is None else entry[1]

    def evict(self, key: str) -> bool:
        """Drop a compiled artifact while keeping its source for recompilation.

        Returns:
            bool: Whether an artifact was dropped.
        """
        with self._lock:
            removed = self._artifacts.pop(key, None)
        if removed is not None:
            logger.info("Evicted compiled artifact %s", removed.qualified_name)
        return removed is not None

    def reload(self, key: str) -> GeneratedArtifact:
        """Return the artifact for a content hash, recompiling it from retained source.

        Raises:
            KeyError: If no source is retained for ``key``.
            CompilationError: If recompilation fails.
        """
        with self._lock:
            cached = self._artifacts.get(key)
            entry = self._sources.get(key)
        if cached is not None:
            return cached
        if entry is None:
            raise KeyError(key)
        qualified_name, source_text = entry
        logger.info("Recompiling %s from retained source", qualified_name)
        return self._compile(key, qualified_name, source_text)

    def stats(self) -> CacheStats:
        """Return a snapshot of cache occupancy."""
        with self._lock:
            return CacheStats(
                live_artifact_count=len(self._artifacts),
                retained_source_count=len(self._sources),
            )

    def clear(self) -> None:
        """Drop both tiers and all traceback source registered for them."""
        with self._lock:
            self._artifacts.clear()
            self._sources.clear()
            filenames = list(self._filenames)
            self._filenames.clear()
        for filename in filenames:
            forget_source(filename)
        logger.info("Compilation cache cleared")

    def _compile(self, key: str, qualified_name: str, source_text: str) -> GeneratedArtifact:
        filename = f"<record {qualified_name} {key[:12]}>"
        try:
            record_class = self._compiler(qualified_name, source_text, filename)
        except RecordLoadError as exc:
            raise CompilationError(qualified_name, str(exc)) from exc

        artifact = GeneratedArtifact(
            qualified_name=qualified_name,
            source_text=source_text,
            content_hash=key,
            record_class=record_class,
            setters=collect_setters(record_class),
        )

        with self._lock:
            if key not in self._artifacts and len(self._artifacts) >= self._max_entries:
                logger.warning(
                    "Compilation cache reached %d entries; clearing compiled artifacts",
                    self._max_entries,
                )
                self._artifacts.clear()
            self._artifacts[key] = artifact
            self._sources[key] = (qualified_name, source_text)
            self._filenames.add(filename)

        logger.info("Compiled %s (%s)", qualified_name, key[:12])
        return artifact
