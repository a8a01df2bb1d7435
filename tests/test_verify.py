"""Tests for schema verification of compiled records."""

from __future__ import annotations

from dynamic_record_compiler.cache import CompilationCache
from dynamic_record_compiler.codegen_ast import render_record_module
from dynamic_record_compiler.model_types import FieldSpec, GeneratedArtifact, TypeDescriptor
from dynamic_record_compiler.verify import format_report, verify_record
from .fixture_helpers import make_descriptor, person_fields


def _compile(descriptor: TypeDescriptor) -> GeneratedArtifact:
    return CompilationCache().compile_and_load(
        descriptor.qualified_name,
        render_record_module(descriptor),
    )


def test_matching_record_has_no_mismatches() -> None:
    """A record compiled from its own descriptor verifies cleanly."""
    descriptor = make_descriptor(
        fields=[
            *person_fields(),
            FieldSpec(name="balance", type="BigDecimal", default_value="0"),
            FieldSpec(name="born", type="LocalDate", required=True),
        ]
    )

    report = verify_record(descriptor, _compile(descriptor))

    assert report.qualified_name == descriptor.qualified_name
    assert report.checked_count == 6
    assert report.mismatches == ()


def test_type_and_order_differences_are_reported() -> None:
    """Diverging field kinds, optionality and order are listed by path."""
    compiled = _compile(make_descriptor())
    expected = make_descriptor(
        fields=[
            FieldSpec(name="lastName", type="String", required=True),
            FieldSpec(name="firstName", type="String"),
            FieldSpec(name="age", type="boolean"),
            FieldSpec(name="address", type="String"),
        ]
    )

    report = verify_record(expected, compiled)

    paths = [mismatch.path for mismatch in report.mismatches]
    assert paths == [
        "$.properties",
        "$.properties.firstName.type",
        "$.properties.age.type",
    ]
    assert report.mismatch_count == 3


def test_format_report_lists_mismatches() -> None:
    """The text report names each mismatching path."""
    compiled = _compile(make_descriptor())
    expected = make_descriptor(fields=[*person_fields()[:3], FieldSpec(name="address", type="int")])

    text = format_report(verify_record(expected, compiled))

    assert text.splitlines()[0] == "Verified com.example.dynamic.generated.Person: 4 fields"
    assert "Mismatches: 1" in text
    assert "- path: $.properties.address.type" in text
    assert "expected: ['integer', 'null']" in text
