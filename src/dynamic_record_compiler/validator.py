"""Safety validation of type descriptors before any source is generated."""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Sequence
from typing import Optional

from .model_types import FieldSpec, TypeDescriptor
from .naming import (
    GENERATED_MODULE_NAMES,
    attribute_name,
    getter_name,
    is_identifier,
    is_reserved_keyword,
    setter_name,
)
from .scalar_types import ALLOWED_TYPE_NAMES, coerce_value, resolve_scalar_kind

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
MAX_FIELDS = 100
MAX_DESCRIPTION_LENGTH = 4096


class DescriptorValidationError(RuntimeError):
    """Raised when a type descriptor is malformed or unsafe."""


def validate_descriptor(descriptor: TypeDescriptor) -> None:
    """Reject descriptors that must never reach the source generator.

    Args:
        descriptor (TypeDescriptor): Descriptor to validate.

    Raises:
        DescriptorValidationError: On the first violation found.
    """
    if descriptor is None:
        raise DescriptorValidationError("Type descriptor is missing")

    _validate_type_name(descriptor.type_name)
    _validate_namespace(descriptor.namespace)
    _validate_fields(descriptor.fields)
    _validate_description(descriptor.description)

    logger.info("Type descriptor validated: %s", descriptor.qualified_name)


def _validate_type_name(type_name: str) -> None:
    _validate_identifier(type_name, role="Type name")
    if type_name in GENERATED_MODULE_NAMES:
        raise DescriptorValidationError(
            f"Type name {type_name!r} collides with a name the generated module imports"
        )


def _validate_namespace(namespace: str) -> None:
    if not isinstance(namespace, str) or not namespace.strip():
        raise DescriptorValidationError("Namespace must not be empty")
    if len(namespace) > MAX_NAME_LENGTH:
        raise DescriptorValidationError(
            f"Namespace is too long ({len(namespace)} > {MAX_NAME_LENGTH} characters)"
        )
    for segment in namespace.split("."):
        if not is_identifier(segment):
            raise DescriptorValidationError(
                f"Invalid namespace {namespace!r}: segment {segment!r} is not an identifier"
            )
        if is_reserved_keyword(segment):
            raise DescriptorValidationError(
                f"Invalid namespace {namespace!r}: segment {segment!r} is a reserved keyword"
            )


def _validate_identifier(name: str, *, role: str) -> None:
    if not isinstance(name, str) or not name.strip():
        raise DescriptorValidationError(f"{role} must not be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise DescriptorValidationError(
            f"{role} is too long ({len(name)} > {MAX_NAME_LENGTH} characters)"
        )
    if not is_identifier(name):
        raise DescriptorValidationError(
            f"Invalid {role.lower()} {name!r}: must start with a letter or underscore and "
            "contain only letters, digits and underscores"
        )
    if is_reserved_keyword(name):
        raise DescriptorValidationError(f"{role} {name!r} is a reserved keyword")


def _validate_fields(fields: Sequence[FieldSpec]) -> None:
    if not fields:
        raise DescriptorValidationError("At least one field must be declared")
    if len(fields) > MAX_FIELDS:
        raise DescriptorValidationError(
            f"Too many fields declared ({len(fields)} > {MAX_FIELDS})"
        )

    used_names: set[str] = set()
    for field in fields:
        _validate_field(field, used_names)
    _validate_member_names(fields)


def _validate_field(field: FieldSpec, used_names: set[str]) -> None:
    _validate_identifier(field.name, role="Field name")
    if field.name in used_names:
        raise DescriptorValidationError(f"Duplicate field name: {field.name}")
    used_names.add(field.name)

    if not isinstance(field.type, str) or not field.type.strip():
        raise DescriptorValidationError(f"Field type must not be empty for field {field.name!r}")
    kind = resolve_scalar_kind(field.type)
    if kind is None:
        allowed = ", ".join(sorted(ALLOWED_TYPE_NAMES))
        raise DescriptorValidationError(
            f"Type {field.type!r} is not allowed for field {field.name!r}. Allowed types: {allowed}"
        )

    if field.default_value is not None:
        try:
            default = coerce_value(kind, field.default_value)
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise DescriptorValidationError(
                f"Default value {field.default_value!r} is not a valid {field.type} "
                f"for field {field.name!r}: {exc}"
            ) from exc
        if isinstance(default, float) and not math.isfinite(default):
            raise DescriptorValidationError(
                f"Default value {field.default_value!r} for field {field.name!r} must be finite"
            )


def _validate_member_names(fields: Sequence[FieldSpec]) -> None:
    member_names: list[str] = []
    for field in fields:
        member_names.extend(
            (attribute_name(field.name), getter_name(field.name), setter_name(field.name))
        )
    conflicts = sorted(name for name, count in Counter(member_names).items() if count > 1)
    if conflicts:
        raise DescriptorValidationError(
            "Fields produce conflicting generated member names: " + ", ".join(conflicts)
        )


def _validate_description(description: Optional[str]) -> None:
    if description is None:
        return
    if not isinstance(description, str):
        raise DescriptorValidationError("Description must be text")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise DescriptorValidationError(
            f"Description is too long ({len(description)} > {MAX_DESCRIPTION_LENGTH} characters)"
        )
