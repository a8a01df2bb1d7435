"""Loading of type descriptors and data documents from files and payloads."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .json_types import JSONObject, JSONValue
from .model_types import FieldSpec, TypeDescriptor
from .validator import DescriptorValidationError


class DocumentLoadError(RuntimeError):
    """Raised when a descriptor or data document file cannot be loaded."""


class _FieldPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    name: str
    type: str
    required: bool = False
    default_value: Optional[Union[bool, int, float, str]] = Field(
        default=None,
        validation_alias=AliasChoices("defaultValue", "default_value"),
    )


class _DescriptorPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type_name: str = Field(validation_alias=AliasChoices("typeName", "className", "type_name"))
    namespace: str = Field(validation_alias=AliasChoices("namespace", "packageName"))
    fields: list[_FieldPayload]
    description: Optional[str] = None


def parse_type_descriptor(payload: JSONValue) -> TypeDescriptor:
    """Convert an inbound JSON-like payload into a type descriptor.

    Only the payload shape is checked here; naming and type rules are applied
    by :func:`validate_descriptor`.

    Raises:
        DescriptorValidationError: If the payload has the wrong shape.
    """
    if not isinstance(payload, dict):
        raise DescriptorValidationError(
            f"Type descriptor must be a mapping, got {type(payload).__name__}"
        )
    try:
        parsed = _DescriptorPayload.model_validate(payload)
    except ValidationError as exc:
        raise DescriptorValidationError(f"Malformed type descriptor: {exc}") from exc

    return TypeDescriptor(
        type_name=parsed.type_name,
        namespace=parsed.namespace,
        fields=tuple(
            FieldSpec(
                name=field.name,
                type=field.type,
                required=field.required,
                default_value=_default_text(field.default_value),
            )
            for field in parsed.fields
        ),
        description=parsed.description,
    )


def load_document(path: Path) -> JSONObject:
    """Load a JSON or YAML mapping from disk.

    Args:
        path (Path): File to read; ``.json`` files are parsed as JSON, anything else as YAML.

    Returns:
        JSONObject: Parsed mapping.

    Raises:
        DocumentLoadError: If the file cannot be read, parsed, or is not a mapping.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DocumentLoadError(f"Failed to read {path}: {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except json.JSONDecodeError as exc:
        raise DocumentLoadError(f"Failed to parse JSON in {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise DocumentLoadError(f"Failed to parse YAML in {path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise DocumentLoadError(f"{path} must contain a mapping, got {type(payload).__name__}")
    return payload


def load_type_descriptor(path: Path) -> TypeDescriptor:
    """Load and parse a type descriptor file."""
    return parse_type_descriptor(load_document(path))


def _default_text(value: Optional[Union[bool, int, float, str]]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
