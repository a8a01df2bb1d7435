"""Instantiation of compiled record classes and population from data documents."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel

from .json_types import DataDocument
from .model_types import BindingReport, GeneratedArtifact, SkippedKey
from .naming import setter_name
from .scalar_types import coercer_for

logger = logging.getLogger(__name__)


class InstantiationError(RuntimeError):
    """Raised when a compiled record class cannot be constructed."""


def instantiate(artifact: GeneratedArtifact) -> BaseModel:
    """Create an empty instance through the zero-argument constructor.

    Raises:
        InstantiationError: If construction fails.
    """
    try:
        return artifact.record_class()
    except Exception as exc:
        raise InstantiationError(
            f"Unable to instantiate {artifact.qualified_name}: {exc}"
        ) from exc


def bind(artifact: GeneratedArtifact, instance: BaseModel, document: DataDocument) -> BindingReport:
    """Apply document values to an instance through its declared setters.

    Keys without a matching setter and values that cannot be converted or are
    refused by the setter are skipped; this function never fails per key.

    Args:
        artifact (GeneratedArtifact): Artifact the instance was created from.
        instance (BaseModel): Instance to populate.
        document (DataDocument): Untyped key/value pairs.

    Returns:
        BindingReport: Keys that were applied and keys that were skipped.
    """
    bound: list[str] = []
    skipped: list[SkippedKey] = []
    for key, value in document.items():
        reason = _bind_one(artifact, instance, key, value)
        if reason is None:
            bound.append(key)
        else:
            skipped.append(SkippedKey(key=key, reason=reason))
    return BindingReport(bound=tuple(bound), skipped=tuple(skipped))


def _bind_one(
    artifact: GeneratedArtifact, instance: BaseModel, key: str, value: object
) -> Optional[str]:
    if not isinstance(key, str) or not key:
        logger.debug("Ignoring non-text key %r for %s", key, artifact.qualified_name)
        return "key is not text"

    binding = artifact.setters.get(setter_name(key))
    if binding is None:
        logger.debug("No setter for key %r on %s", key, artifact.qualified_name)
        return "no matching setter"

    converted = value
    if value is not None:
        coercer = coercer_for(binding.target_type)
        if coercer is None:
            return f"no conversion to {binding.target_type.__name__}"
        try:
            converted = coercer(value)
        except (TypeError, ValueError, ArithmeticError) as exc:
            logger.info(
                "Skipping %r on %s: cannot convert %r to %s (%s)",
                key,
                artifact.qualified_name,
                value,
                binding.target_type.__name__,
                exc,
            )
            return f"cannot convert to {binding.target_type.__name__}: {exc}"

    try:
        binding.function(instance, converted)
    except Exception as exc:
        # Assignment validation raises pydantic.ValidationError; caller source may raise anything.
        logger.info(
            "Skipping %r on %s: setter refused %r (%s)", key, artifact.qualified_name, value, exc
        )
        return f"setter refused value: {exc}"
    return None
