"""Helpers for compiling and loading generated record modules."""

from __future__ import annotations

import ast
import builtins
import inspect
import linecache
import types
import typing
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel

from .model_types import SetterBinding
from .naming import is_qualified_name
from .scalar_types import coercer_for
from .source_guard import ALLOWED_IMPORTS, SourceRejectedError, check_record_source

MAX_SOURCE_BYTES = 1024 * 1024


class RecordLoadError(RuntimeError):
    """Raised when record source cannot be compiled or loaded."""


def _guarded_import(
    name: str,
    globals: Optional[Mapping[str, Any]] = None,
    locals: Optional[Mapping[str, Any]] = None,
    fromlist: tuple[str, ...] = (),
    level: int = 0,
) -> types.ModuleType:
    if level != 0 or name not in ALLOWED_IMPORTS:
        raise ImportError(f"Import of {name!r} is not allowed in record modules")
    return builtins.__import__(name, globals, locals, fromlist, level)


_SAFE_BUILTINS: dict[str, Any] = {
    "__build_class__": builtins.__build_class__,
    "__import__": _guarded_import,
    "bool": bool,
    "float": float,
    "hash": hash,
    "int": int,
    "isinstance": isinstance,
    "object": object,
    "str": str,
    "super": super,
}


def load_record_class(
    *,
    qualified_name: str,
    source_text: str,
    filename: str = "<record>",
) -> type[BaseModel]:
    """Compile record source into a fresh module and return its model class.

    The module is not registered in ``sys.modules``; the returned class keeps
    it alive and nothing else does.

    Args:
        qualified_name (str): ``namespace.TypeName`` the source must declare.
        source_text (str): Python source of the record module.
        filename (str): Pseudo file name used in tracebacks.

    Returns:
        type[BaseModel]: Loaded record class.

    Raises:
        RecordLoadError: If the source is rejected, fails to compile or does not
            define the requested type.
    """
    if not is_qualified_name(qualified_name) or "." not in qualified_name:
        raise RecordLoadError(f"Invalid qualified name: {qualified_name!r}")
    namespace, _, type_name = qualified_name.rpartition(".")

    if len(source_text.encode("utf-8")) > MAX_SOURCE_BYTES:
        raise RecordLoadError(f"Source for {qualified_name} exceeds {MAX_SOURCE_BYTES} bytes")

    try:
        tree = ast.parse(source_text, filename=filename, mode="exec")
    except (SyntaxError, ValueError, RecursionError) as exc:
        raise RecordLoadError(f"Unable to parse source for {qualified_name}: {exc}") from exc

    try:
        class_name = check_record_source(tree)
    except SourceRejectedError as exc:
        raise RecordLoadError(f"Source for {qualified_name} was rejected: {exc}") from exc
    if class_name != type_name:
        raise RecordLoadError(f"Source defines class {class_name}, expected {type_name}")

    module = types.ModuleType(namespace)
    module.__dict__["__builtins__"] = dict(_SAFE_BUILTINS)
    try:
        code = compile(tree, filename, "exec", dont_inherit=True)
        exec(code, module.__dict__)  # noqa: S102 - source passed the record admission check
    except Exception as exc:
        raise RecordLoadError(f"Executing source for {qualified_name} failed: {exc}") from exc

    declared_namespace = module.__dict__.get("__namespace__")
    if declared_namespace != namespace:
        raise RecordLoadError(
            f"Source declares namespace {declared_namespace!r}, expected {namespace!r}"
        )

    value = module.__dict__.get(type_name)
    if not isinstance(value, type) or not issubclass(value, BaseModel):
        raise RecordLoadError(f"Generated class {type_name} is missing or invalid")

    linecache.cache[filename] = (len(source_text), None, source_text.splitlines(True), filename)
    return value


def forget_source(filename: str) -> None:
    """Drop source registered for tracebacks by :func:`load_record_class`."""
    linecache.cache.pop(filename, None)


def collect_setters(record_class: type[BaseModel]) -> dict[str, SetterBinding]:
    """Index the single-argument methods a record class declares itself.

    Inherited ``BaseModel`` members are never listed, and methods whose
    parameter type has no entry in the coercion table are left out.

    Args:
        record_class (type[BaseModel]): Loaded record class.

    Returns:
        dict[str, SetterBinding]: Setter bindings keyed by method name.
    """
    setters: dict[str, SetterBinding] = {}
    for name, member in vars(record_class).items():
        if name.startswith("_") or not inspect.isfunction(member):
            continue
        parameters = list(inspect.signature(member).parameters.values())
        if len(parameters) != 2:
            continue
        try:
            hints = typing.get_type_hints(member)
        except (NameError, TypeError):
            continue
        resolved = _unwrap_optional(hints.get(parameters[1].name))
        if resolved is None:
            continue
        target_type, nullable = resolved
        if coercer_for(target_type) is None:
            continue
        setters[name] = SetterBinding(
            method_name=name,
            target_type=target_type,
            nullable=nullable,
            function=member,
        )
    return setters


def _unwrap_optional(annotation: Any) -> Optional[tuple[type, bool]]:
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [item for item in typing.get_args(annotation) if item is not type(None)]
        if len(members) != 1 or not isinstance(members[0], type):
            return None
        return members[0], True
    if isinstance(annotation, type):
        return annotation, False
    return None
