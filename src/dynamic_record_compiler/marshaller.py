"""Serialization of populated record instances to XML or JSON text."""

from __future__ import annotations

import datetime
import decimal
import logging
import math
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

logger = logging.getLogger(__name__)

_XML_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")
_XML_ILLEGAL_CHARS_RE = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


class MarshallingError(RuntimeError):
    """Raised when an instance cannot be serialized."""


class OutputFormat(str, Enum):
    """Structured text formats an instance can be rendered to."""

    XML = "xml"
    JSON = "json"


def marshal(
    instance: Optional[BaseModel],
    *,
    pretty: bool,
    output_format: OutputFormat = OutputFormat.XML,
) -> str:
    """Serialize a record instance.

    Args:
        instance (Optional[BaseModel]): Populated record instance.
        pretty (bool): Indent nested elements when true, single line otherwise.
        output_format (OutputFormat): Target text format.

    Returns:
        str: Serialized document.

    Raises:
        MarshallingError: If the instance is missing or holds an unrepresentable value.
    """
    if instance is None:
        raise MarshallingError("Instance must not be None")
    if not isinstance(instance, BaseModel):
        raise MarshallingError(f"Cannot marshal {type(instance).__name__}: not a record instance")

    logger.debug(
        "Marshalling %s to %s (pretty=%s)",
        type(instance).__name__,
        output_format.value,
        pretty,
    )
    if output_format is OutputFormat.JSON:
        return _to_json(instance, pretty=pretty)
    return _to_xml(instance, pretty=pretty)


def _to_json(instance: BaseModel, *, pretty: bool) -> str:
    try:
        return instance.model_dump_json(by_alias=True, indent=2 if pretty else None, warnings=False)
    except PydanticSerializationError as exc:
        raise MarshallingError(f"Failed to render {type(instance).__name__} as JSON: {exc}") from exc


def _to_xml(instance: BaseModel, *, pretty: bool) -> str:
    record_class = type(instance)
    root_name = _xml_name(record_class.model_config.get("json_schema_extra"), record_class.__name__)
    root = ET.Element(root_name)
    for attribute, info in record_class.model_fields.items():
        default_name = info.alias or attribute
        element = ET.SubElement(root, _xml_name(info.json_schema_extra, default_name))
        element.text = _xml_text(getattr(instance, attribute), field_name=default_name)
    if pretty:
        ET.indent(root, space="  ")
    return ET.tostring(root, encoding="unicode")


def _xml_name(extra: Any, default: str) -> str:
    name = default
    if isinstance(extra, Mapping):
        binding = extra.get("xml")
        if isinstance(binding, Mapping) and isinstance(binding.get("name"), str):
            name = binding["name"]
    if not _XML_NAME_RE.match(name):
        raise MarshallingError(f"{name!r} is not a valid XML element name")
    return name


def _xml_text(value: Any, *, field_name: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "INF" if value > 0 else "-INF"
        return repr(value)
    if isinstance(value, decimal.Decimal):
        if not value.is_finite():
            raise MarshallingError(f"Field {field_name} holds a non-finite decimal {value}")
        return format(value, "f")
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, str):
        if _XML_ILLEGAL_CHARS_RE.search(value):
            raise MarshallingError(f"Field {field_name} contains characters XML cannot represent")
        return value
    raise MarshallingError(f"Field {field_name} holds unsupported {type(value).__name__} value")
