"""Tests for record source generation."""

from __future__ import annotations

import ast
import datetime
import decimal

import pytest
from pydantic import BaseModel

from dynamic_record_compiler.codegen_ast import render_record_module
from dynamic_record_compiler.model_types import FieldSpec, TypeDescriptor
from dynamic_record_compiler.module_loading import load_record_class
from dynamic_record_compiler.naming import attribute_name
from .fixture_helpers import make_descriptor


def _load(descriptor: TypeDescriptor) -> type[BaseModel]:
    return load_record_class(
        qualified_name=descriptor.qualified_name,
        source_text=render_record_module(descriptor),
    )


def _class_node(source: str) -> ast.ClassDef:
    module = ast.parse(source)
    classes = [node for node in module.body if isinstance(node, ast.ClassDef)]
    assert len(classes) == 1
    return classes[0]


def test_person_module_layout() -> None:
    """The module declares its namespace and one model with accessors in field order."""
    source = render_record_module(make_descriptor(description="A person."))
    module = ast.parse(source)

    assert ast.get_docstring(module) == "Generated record type com.example.dynamic.generated.Person."
    assert "__namespace__ = 'com.example.dynamic.generated'" in source
    assert "__all__ = ['Person']" in source

    class_node = _class_node(source)
    assert class_node.name == "Person"
    assert ast.get_docstring(class_node) == "A person."
    method_names = [node.name for node in class_node.body if isinstance(node, ast.FunctionDef)]
    assert method_names == [
        "__init__",
        "getFirstName",
        "setFirstName",
        "getLastName",
        "setLastName",
        "getAge",
        "setAge",
        "getAddress",
        "setAddress",
        "__str__",
        "__eq__",
        "__hash__",
    ]


def test_imports_follow_field_kinds() -> None:
    """Only the modules the declared field kinds need are imported."""
    text_only = render_record_module(
        make_descriptor(fields=[FieldSpec(name="label", type="string", required=True)])
    )
    assert "import datetime" not in text_only
    assert "import decimal" not in text_only
    assert "from typing" not in text_only

    mixed = render_record_module(
        make_descriptor(
            fields=[
                FieldSpec(name="when", type="date"),
                FieldSpec(name="amount", type="BigDecimal", required=True),
                FieldSpec(name="count", type="long", required=True),
            ]
        )
    )
    assert "import datetime" in mixed
    assert "import decimal" in mixed
    assert "from typing import Annotated, Optional" in mixed


def test_generation_is_byte_identical_for_equal_descriptors() -> None:
    """Rendering is pure."""
    assert render_record_module(make_descriptor()) == render_record_module(make_descriptor())


def test_generated_record_supports_accessors_and_value_semantics() -> None:
    """Getters, setters, equality, hashing and text form follow the declared fields."""
    record_class = _load(make_descriptor())

    first = record_class()
    first.setFirstName("John")
    first.setAge(30)
    second = record_class()
    second.setFirstName("John")
    second.setAge(30)

    assert first.getFirstName() == "John"
    assert first.getAge() == 30
    assert first.getAddress() is None
    assert first == second
    assert hash(first) == hash(second)
    assert str(first) == "Person{firstName=John, lastName=None, age=30, address=None}"

    second.setAddress("Elsewhere")
    assert first != second
    assert first != "Person"


def test_int32_fields_reject_out_of_range_assignment() -> None:
    """Integer fields carry their width as validation bounds."""
    record_class = _load(make_descriptor())
    instance = record_class()

    instance.setAge(2**31 - 1)
    with pytest.raises(ValueError):
        instance.setAge(2**31)
    assert instance.getAge() == 2**31 - 1


def test_defaults_are_converted_to_field_types() -> None:
    """Declared defaults land on new instances as typed values."""
    record_class = _load(
        make_descriptor(
            type_name="Invoice",
            fields=[
                FieldSpec(name="issued", type="LocalDate", default_value="2024-01-31"),
                FieldSpec(name="total", type="BigDecimal", default_value="10.50"),
                FieldSpec(name="paid", type="boolean", default_value="false"),
                FieldSpec(name="lines", type="int", default_value="3"),
                FieldSpec(name="note", type="String", default_value="n/a"),
            ],
        )
    )
    instance = record_class()

    assert instance.getIssued() == datetime.date(2024, 1, 31)
    assert instance.getTotal() == decimal.Decimal("10.50")
    assert instance.getPaid() is False
    assert instance.getLines() == 3
    assert instance.getNote() == "n/a"


def test_reserved_member_names_are_moved_to_safe_attributes() -> None:
    """Names pydantic reserves keep their alias while the attribute is renamed."""
    fields = [
        FieldSpec(name="schema", type="string"),
        FieldSpec(name="model_version", type="string"),
        FieldSpec(name="_hidden", type="int"),
        FieldSpec(name="int", type="int"),
    ]
    record_class = _load(make_descriptor(type_name="Settings", fields=fields))

    assert list(record_class.model_fields) == [attribute_name(field.name) for field in fields]
    assert [info.alias for info in record_class.model_fields.values()] == [
        "schema",
        "model_version",
        "_hidden",
        "int",
    ]
    instance = record_class()
    instance.setSchema("v1")
    instance.set_hidden(7)
    assert instance.getSchema() == "v1"
    assert instance.get_hidden() == 7


def test_class_config_carries_xml_binding() -> None:
    """The model records the XML element names used by the marshaller."""
    record_class = _load(make_descriptor())

    assert record_class.model_config["json_schema_extra"] == {"xml": {"name": "Person"}}
    assert record_class.model_fields["firstName"].json_schema_extra == {
        "xml": {"name": "firstName"}
    }
