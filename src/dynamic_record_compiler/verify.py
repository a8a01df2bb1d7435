"""Verification of compiled record classes against their descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from .json_types import JSONObject, JSONValue
from .model_types import FieldSpec, GeneratedArtifact, TypeDescriptor
from .scalar_types import ScalarKind, resolve_scalar_kind

_KIND_JSON_TYPES: dict[ScalarKind, frozenset[str]] = {
    ScalarKind.STRING: frozenset({"string"}),
    ScalarKind.INT32: frozenset({"integer"}),
    ScalarKind.INT64: frozenset({"integer"}),
    ScalarKind.FLOAT32: frozenset({"number"}),
    ScalarKind.FLOAT64: frozenset({"number"}),
    ScalarKind.BOOLEAN: frozenset({"boolean"}),
    ScalarKind.DATE: frozenset({"string"}),
    ScalarKind.DATETIME: frozenset({"string"}),
    ScalarKind.DECIMAL: frozenset({"number", "string"}),
}


@dataclass(frozen=True)
class VerificationMismatch:
    """One difference between a descriptor and the compiled model schema."""

    path: str
    expected: Any
    actual: Any


@dataclass(frozen=True)
class VerificationReport:
    """Result of verifying one compiled record type."""

    qualified_name: str
    checked_count: int
    mismatch_count: int
    mismatches: tuple[VerificationMismatch, ...]


def verify_record(descriptor: TypeDescriptor, artifact: GeneratedArtifact) -> VerificationReport:
    """Compare the JSON schema of a compiled record with its descriptor.

    Args:
        descriptor (TypeDescriptor): Descriptor the record was generated from.
        artifact (GeneratedArtifact): Compiled record.

    Returns:
        VerificationReport: Checked field count and any mismatches found.
    """
    schema = artifact.record_class.model_json_schema(by_alias=True)
    mismatches: list[VerificationMismatch] = []

    try:
        validator_for(schema).check_schema(schema)
    except SchemaError as exc:
        mismatches.append(
            VerificationMismatch(path="$", expected="valid JSON Schema", actual=exc.message)
        )

    _compare(mismatches, "$.title", descriptor.type_name, schema.get("title"))
    _compare(mismatches, "$.xml.name", descriptor.type_name, _xml_name(schema))

    properties = schema.get("properties")
    if not isinstance(properties, dict):
        properties = {}
    _compare(
        mismatches,
        "$.properties",
        [field.name for field in descriptor.fields],
        list(properties),
    )
    for field in descriptor.fields:
        field_schema = properties.get(field.name)
        if isinstance(field_schema, dict):
            _verify_field(mismatches, field, field_schema)

    return VerificationReport(
        qualified_name=descriptor.qualified_name,
        checked_count=len(descriptor.fields),
        mismatch_count=len(mismatches),
        mismatches=tuple(mismatches),
    )


def format_report(report: VerificationReport) -> str:
    """Render report as CLI output text."""
    lines = [
        f"Verified {report.qualified_name}: {report.checked_count} fields",
        f"Mismatches: {report.mismatch_count}",
    ]
    for mismatch in report.mismatches:
        lines.extend(
            [
                f"- path: {mismatch.path}",
                f"  expected: {short_repr(mismatch.expected)}",
                f"  actual: {short_repr(mismatch.actual)}",
            ]
        )
    return "\n".join(lines)


def short_repr(value: Any, *, limit: int = 160) -> str:
    """A short representation for mismatch diagnostics."""
    text = repr(value)
    return text if len(text) <= limit else f"{text[: limit - 3]}..."


def _verify_field(
    mismatches: list[VerificationMismatch],
    field: FieldSpec,
    field_schema: JSONObject,
) -> None:
    path = f"$.properties.{field.name}"
    kind = resolve_scalar_kind(field.type)
    if kind is not None:
        expected = set(_KIND_JSON_TYPES[kind])
        if not field.required:
            expected.add("null")
        _compare(mismatches, f"{path}.type", sorted(expected), sorted(_json_types(field_schema)))
    _compare(mismatches, f"{path}.xml.name", field.name, _xml_name(field_schema))


def _json_types(schema: JSONValue) -> set[str]:
    if not isinstance(schema, dict):
        return set()
    found: set[str] = set()
    declared = schema.get("type")
    if isinstance(declared, str):
        found.add(declared)
    elif isinstance(declared, list):
        found.update(item for item in declared if isinstance(item, str))
    for keyword in ("anyOf", "oneOf"):
        options = schema.get(keyword)
        if isinstance(options, list):
            for option in options:
                found |= _json_types(option)
    return found


def _xml_name(schema: JSONObject) -> Any:
    binding = schema.get("xml")
    if isinstance(binding, dict):
        return binding.get("name")
    return None


def _compare(mismatches: list[VerificationMismatch], path: str, expected: Any, actual: Any) -> None:
    if expected != actual:
        mismatches.append(VerificationMismatch(path=path, expected=expected, actual=actual))
