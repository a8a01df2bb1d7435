"""Tests for descriptor and document loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from dynamic_record_compiler.loader import (
    DocumentLoadError,
    load_document,
    load_type_descriptor,
    parse_type_descriptor,
)
from dynamic_record_compiler.model_types import FieldSpec
from dynamic_record_compiler.validator import DescriptorValidationError, validate_descriptor
from .fixture_helpers import descriptor_dir, document_path, parametrize_descriptors


def test_person_descriptor_file_is_parsed() -> None:
    """YAML descriptors map onto the descriptor dataclasses."""
    descriptor = load_type_descriptor(descriptor_dir() / "person.yaml")

    assert descriptor.qualified_name == "com.example.dynamic.generated.Person"
    assert descriptor.description == "A person with a postal address."
    assert descriptor.fields[0] == FieldSpec(name="firstName", type="String", required=True)
    assert descriptor.fields[2] == FieldSpec(name="age", type="int", required=False)


def test_legacy_key_names_are_accepted() -> None:
    """``className`` and ``packageName`` are accepted as alternative keys."""
    descriptor = load_type_descriptor(descriptor_dir() / "legacy_keys.json")

    assert descriptor.type_name == "Sensor"
    assert descriptor.namespace == "com.example.telemetry"
    assert descriptor.fields[1].default_value == "0.5"


def test_non_text_defaults_are_normalized_to_text() -> None:
    """YAML scalars given as defaults become their textual form."""
    descriptor = parse_type_descriptor(
        {
            "typeName": "Flags",
            "namespace": "app",
            "fields": [
                {"name": "enabled", "type": "boolean", "defaultValue": True},
                {"name": "limit", "type": "int", "defaultValue": 10},
            ],
        }
    )

    assert [field.default_value for field in descriptor.fields] == ["true", "10"]


@pytest.mark.parametrize(
    "payload",
    [
        [],
        "Person",
        {"namespace": "app", "fields": []},
        {"typeName": "Person", "namespace": "app"},
        {"typeName": "Person", "namespace": "app", "fields": [{"name": "a"}]},
        {"typeName": "Person", "namespace": "app", "fields": [], "superclass": "Base"},
        {"typeName": 7, "namespace": "app", "fields": []},
        {
            "typeName": "Person",
            "namespace": "app",
            "fields": [{"name": "a", "type": "int", "required": "yes"}],
        },
        {
            "typeName": "Person",
            "namespace": "app",
            "fields": [{"name": "a", "type": "int", "annotations": ["@Grab"]}],
        },
    ],
)
def test_malformed_payloads_are_validation_errors(payload: object) -> None:
    """Payload shape errors surface as descriptor validation errors."""
    with pytest.raises(DescriptorValidationError):
        parse_type_descriptor(payload)  # type: ignore[arg-type]


@parametrize_descriptors()
def test_fixture_descriptors_are_valid(fixture_path: Path) -> None:
    """Every descriptor fixture loads and passes validation."""
    validate_descriptor(load_type_descriptor(fixture_path))


def test_documents_load_from_yaml_and_json() -> None:
    """Data documents may be written in YAML or JSON."""
    assert load_document(document_path("person.yaml")) == {
        "firstName": "John",
        "lastName": "Doe",
        "age": 30,
        "address": "123 Main St",
    }
    assert load_document(document_path("person_extra.json"))["extraField"] == "ignored"


def test_missing_document_is_a_load_error(tmp_path: Path) -> None:
    """Unreadable files are reported as load errors."""
    with pytest.raises(DocumentLoadError, match="Failed to read"):
        load_document(tmp_path / "missing.yaml")


def test_malformed_documents_are_load_errors(tmp_path: Path) -> None:
    """Unparseable or non-mapping content is rejected."""
    broken_json = tmp_path / "broken.json"
    broken_json.write_text("{", encoding="utf-8")
    broken_yaml = tmp_path / "broken.yaml"
    broken_yaml.write_text("key: [unclosed\n", encoding="utf-8")
    listing = tmp_path / "listing.yaml"
    listing.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(DocumentLoadError, match="JSON"):
        load_document(broken_json)
    with pytest.raises(DocumentLoadError, match="YAML"):
        load_document(broken_yaml)
    with pytest.raises(DocumentLoadError, match="mapping"):
        load_document(listing)
