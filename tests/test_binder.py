"""Tests for instantiation and document binding."""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import logging

import pytest

from dynamic_record_compiler.binder import InstantiationError, bind, instantiate
from dynamic_record_compiler.cache import CompilationCache
from dynamic_record_compiler.codegen_ast import render_record_module
from dynamic_record_compiler.model_types import (
    FieldSpec,
    GeneratedArtifact,
    SetterBinding,
    TypeDescriptor,
)
from .fixture_helpers import make_descriptor


def _artifact(descriptor: TypeDescriptor) -> GeneratedArtifact:
    return CompilationCache().compile_and_load(
        descriptor.qualified_name,
        render_record_module(descriptor),
    )


def _typed_descriptor() -> TypeDescriptor:
    return make_descriptor(
        type_name="Measurement",
        fields=[
            FieldSpec(name="count", type="long"),
            FieldSpec(name="ratio", type="double"),
            FieldSpec(name="active", type="boolean"),
            FieldSpec(name="day", type="LocalDate"),
            FieldSpec(name="at", type="LocalDateTime"),
            FieldSpec(name="amount", type="BigDecimal"),
            FieldSpec(name="label", type="String"),
        ],
    )


def test_person_document_binds_every_field() -> None:
    """All four person fields are set from the document."""
    artifact = _artifact(make_descriptor())
    instance = instantiate(artifact)

    report = bind(
        artifact,
        instance,
        {"firstName": "John", "lastName": "Doe", "age": 30, "address": "123 Main St"},
    )

    assert report.bound == ("firstName", "lastName", "age", "address")
    assert report.skipped == ()
    assert instance.getFirstName() == "John"
    assert instance.getLastName() == "Doe"
    assert instance.getAge() == 30
    assert instance.getAddress() == "123 Main St"


def test_unknown_key_is_skipped_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    """Keys without a setter are ignored without touching other fields."""
    artifact = _artifact(make_descriptor())
    instance = instantiate(artifact)

    with caplog.at_level(logging.DEBUG, logger="dynamic_record_compiler.binder"):
        report = bind(artifact, instance, {"firstName": "John", "extraField": "x"})

    assert report.bound == ("firstName",)
    assert [item.key for item in report.skipped] == ["extraField"]
    assert instance.getFirstName() == "John"
    assert "extraField" in caplog.text


def test_values_are_coerced_to_setter_types() -> None:
    """Text and numbers are converted with the fixed coercion table."""
    artifact = _artifact(_typed_descriptor())
    instance = instantiate(artifact)

    report = bind(
        artifact,
        instance,
        {
            "count": "9000000000",
            "ratio": "0.5",
            "active": "TRUE",
            "day": "2024-02-29",
            "at": "2024-02-29T08:15:00",
            "amount": "12.30",
            "label": 7,
        },
    )

    assert report.skipped == ()
    assert instance.getCount() == 9_000_000_000
    assert instance.getRatio() == 0.5
    assert instance.getActive() is True
    assert instance.getDay() == datetime.date(2024, 2, 29)
    assert instance.getAt() == datetime.datetime(2024, 2, 29, 8, 15)
    assert instance.getAmount() == decimal.Decimal("12.30")
    assert instance.getLabel() == "7"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("count", "many"),
        ("count", 2**63),
        ("ratio", "fast"),
        ("active", "yes"),
        ("day", "29/02/2024"),
        ("day", 20240229),
        ("amount", "NaN"),
        ("amount", True),
        ("label", ["a", "b"]),
    ],
)
def test_unconvertible_values_are_skipped(key: str, value: object) -> None:
    """Conversion and validation failures skip the key and leave the field unset."""
    artifact = _artifact(_typed_descriptor())
    instance = instantiate(artifact)

    report = bind(artifact, instance, {key: value})

    assert report.bound == ()
    assert [item.key for item in report.skipped] == [key]
    assert getattr(instance, key) is None


def test_null_clears_optional_field_but_not_required_one() -> None:
    """``None`` passes through to the setter, which refuses it for required fields."""
    artifact = _artifact(make_descriptor())
    instance = instantiate(artifact)
    bind(artifact, instance, {"firstName": "John", "age": 30})

    report = bind(artifact, instance, {"firstName": None, "age": None})

    assert report.bound == ("age",)
    assert [item.key for item in report.skipped] == ["firstName"]
    assert instance.getFirstName() == "John"
    assert instance.getAge() is None


def test_only_declared_setters_are_reachable() -> None:
    """Keys naming inherited model methods never resolve to a setter."""
    artifact = _artifact(make_descriptor())
    instance = instantiate(artifact)

    report = bind(
        artifact,
        instance,
        {"_attr": "x", "attr": "x", "__class__": "x", "model_config": {}, "": "x"},
    )

    assert report.bound == ()
    assert len(report.skipped) == 5


@pytest.mark.parametrize("error_type", [ValueError, AttributeError, RuntimeError, KeyError])
def test_instantiation_failure_is_wrapped(error_type: type[Exception]) -> None:
    """Constructor failures of any kind surface as instantiation errors."""
    artifact = _artifact(make_descriptor())

    class _Broken:
        def __init__(self) -> None:
            raise error_type("boom")

    broken = GeneratedArtifact(
        qualified_name=artifact.qualified_name,
        source_text=artifact.source_text,
        content_hash=artifact.content_hash,
        record_class=_Broken,  # type: ignore[arg-type]
        setters={},
    )

    with pytest.raises(InstantiationError, match="boom"):
        instantiate(broken)


def test_failing_default_factory_is_an_instantiation_error() -> None:
    """A compiled class whose field default cannot be produced fails as an instantiation error."""
    descriptor = make_descriptor()
    source = render_record_module(descriptor).replace(
        "Field(None, alias='firstName'",
        "Field(default_factory=super, alias='firstName'",
    )
    assert "default_factory=super" in source
    artifact = CompilationCache().compile_and_load(descriptor.qualified_name, source)

    with pytest.raises(InstantiationError, match="Unable to instantiate"):
        instantiate(artifact)


@pytest.mark.parametrize("error_type", [AttributeError, KeyError, RecursionError, RuntimeError])
def test_setter_errors_of_any_kind_skip_only_that_key(
    error_type: type[Exception], caplog: pytest.LogCaptureFixture
) -> None:
    """A setter raising outside validation errors is skipped like any refused value."""
    artifact = _artifact(make_descriptor())

    def _failing_setter(instance: object, value: object) -> None:
        raise error_type("nosuch")

    failing = dataclasses.replace(
        artifact,
        setters={
            **artifact.setters,
            "setFirstName": SetterBinding(
                method_name="setFirstName",
                target_type=str,
                nullable=False,
                function=_failing_setter,
            ),
        },
    )
    instance = instantiate(failing)

    with caplog.at_level(logging.INFO, logger="dynamic_record_compiler.binder"):
        report = bind(failing, instance, {"firstName": "John", "age": 3})

    assert report.bound == ("age",)
    assert [item.key for item in report.skipped] == ["firstName"]
    assert report.skipped[0].reason.startswith("setter refused value")
    assert instance.getAge() == 3
    assert instance.getFirstName() is None
    assert "firstName" in caplog.text
