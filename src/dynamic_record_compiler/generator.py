"""High-level record generation and rendering orchestration."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from .binder import InstantiationError, bind, instantiate
from .cache import MAX_CACHE_ENTRIES, CompilationCache, CompilationError
from .codegen_ast import render_record_module
from .json_types import DataDocument, JSONObject
from .loader import DocumentLoadError
from .marshaller import MarshallingError, OutputFormat, marshal
from .model_types import ArtifactIdentity, BindingReport, CacheStats, TypeDescriptor
from .validator import DescriptorValidationError, validate_descriptor
from .verify import VerificationReport, verify_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedType:
    """Compiled record type handed back to the caller."""

    identity: ArtifactIdentity
    source_text: str
    cache_stats: CacheStats
    verification_report: Optional[VerificationReport] = None


@dataclass(frozen=True)
class RenderedInstance:
    """Serialized record instance."""

    text: str
    cache_stats: CacheStats
    binding: BindingReport


class RecordGenerator:
    """Validate, generate, compile and render dynamic record types.

    The generator owns nothing but its compilation cache; share one instance
    between threads to share the cache.
    """

    def __init__(
        self,
        *,
        cache: Optional[CompilationCache] = None,
        max_cache_entries: int = MAX_CACHE_ENTRIES,
    ) -> None:
        if cache is None:
            cache = CompilationCache(max_entries=max_cache_entries)
        self._cache = cache

    @property
    def cache(self) -> CompilationCache:
        """Return the compilation cache in use."""
        return self._cache

    def generate_type(self, descriptor: TypeDescriptor, *, verify: bool = False) -> GeneratedType:
        """Validate a descriptor, generate its source and compile it.

        Args:
            descriptor (TypeDescriptor): Record description supplied by the caller.
            verify (bool): Whether to check the compiled model schema against the descriptor.

        Returns:
            GeneratedType: Artifact identity, generated source and cache occupancy.

        Raises:
            DescriptorValidationError: If the descriptor is rejected.
            CompilationError: If the generated source fails to compile.
        """
        validate_descriptor(descriptor)
        source_text = render_record_module(descriptor)
        artifact = self._cache.compile_and_load(descriptor.qualified_name, source_text)

        report = verify_record(descriptor, artifact) if verify else None
        logger.info("Generated %s (%s)", descriptor.qualified_name, artifact.content_hash[:12])
        return GeneratedType(
            identity=ArtifactIdentity(
                qualified_name=descriptor.qualified_name,
                type_name=descriptor.type_name,
                namespace=descriptor.namespace,
                content_hash=artifact.content_hash,
            ),
            source_text=source_text,
            cache_stats=self._cache.stats(),
            verification_report=report,
        )

    def materialize_and_render(
        self,
        qualified_name: str,
        source_text: str,
        document: Optional[DataDocument],
        *,
        pretty: bool = True,
        output_format: OutputFormat = OutputFormat.XML,
    ) -> RenderedInstance:
        """Instantiate a record type, populate it from a document and serialize it.

        The source text is recompiled when its artifact is no longer cached.

        Args:
            qualified_name (str): ``namespace.TypeName`` returned by :meth:`generate_type`.
            source_text (str): Source returned by :meth:`generate_type`.
            document (Optional[DataDocument]): Untyped values keyed by field name.
            pretty (bool): Indent the rendered output.
            output_format (OutputFormat): Output text format.

        Returns:
            RenderedInstance: Rendered text, binding outcome and cache occupancy.

        Raises:
            CompilationError: If the source fails to compile.
            InstantiationError: If the record cannot be constructed.
            MarshallingError: If the populated record cannot be serialized.
        """
        artifact = self._cache.compile_and_load(qualified_name, source_text)
        instance = instantiate(artifact)
        binding = bind(artifact, instance, document or {})
        if binding.skipped:
            logger.info(
                "Rendered %s with %d of %d keys skipped",
                qualified_name,
                len(binding.skipped),
                len(binding.bound) + len(binding.skipped),
            )
        text = marshal(instance, pretty=pretty, output_format=output_format)
        return RenderedInstance(text=text, cache_stats=self._cache.stats(), binding=binding)

    def cache_stats(self) -> CacheStats:
        """Return current cache occupancy."""
        return self._cache.stats()

    def reset_cache(self) -> None:
        """Drop every cached artifact and retained source."""
        self._cache.clear()


def generated_type_payload(result: GeneratedType) -> JSONObject:
    """Return the JSON-ready response body for a generated type."""
    return {
        "artifactIdentity": {
            "qualifiedName": result.identity.qualified_name,
            "typeName": result.identity.type_name,
            "namespace": result.identity.namespace,
            "contentHash": result.identity.content_hash,
        },
        "sourceText": result.source_text,
        "cacheStats": _stats_payload(result.cache_stats),
    }


def rendered_instance_payload(result: RenderedInstance) -> JSONObject:
    """Return the JSON-ready response body for a rendered instance."""
    return {
        "text": result.text,
        "cacheStats": _stats_payload(result.cache_stats),
        "skippedKeys": [asdict(item) for item in result.binding.skipped],
    }


def _stats_payload(stats: CacheStats) -> JSONObject:
    return {
        "liveArtifactCount": stats.live_artifact_count,
        "retainedSourceCount": stats.retained_source_count,
    }


__all__ = [
    "CompilationError",
    "DescriptorValidationError",
    "DocumentLoadError",
    "GeneratedType",
    "InstantiationError",
    "MarshallingError",
    "OutputFormat",
    "RecordGenerator",
    "RenderedInstance",
    "generated_type_payload",
    "rendered_instance_payload",
]
