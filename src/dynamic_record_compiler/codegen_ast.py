"""AST-based Python code generation for record models."""

from __future__ import annotations

import ast
import datetime
import decimal
from typing import Optional

from .model_types import FieldSpec, TypeDescriptor
from .naming import attribute_name, getter_name, setter_name
from .scalar_types import (
    ScalarKind,
    ScalarTypeInfo,
    coerce_value,
    resolve_scalar_kind,
    scalar_type_info,
)

_TYPING_IMPORT_ORDER: tuple[str, ...] = (
    "Annotated",
    "Optional",
)

_PYDANTIC_IMPORTS: tuple[str, ...] = (
    "BaseModel",
    "ConfigDict",
    "Field",
)

# Defaults of these kinds are emitted as text and converted by pydantic on instantiation.
_TEXT_DEFAULT_KINDS = frozenset({ScalarKind.DATE, ScalarKind.DATETIME, ScalarKind.DECIMAL})

_SETTER_ARGUMENT = "value"
_OTHER_ARGUMENT = "other"


def render_record_module(descriptor: TypeDescriptor) -> str:
    """Render a validated descriptor as Python source for one pydantic model.

    The output depends only on the descriptor, so equal descriptors always
    render byte-identical source.

    Args:
        descriptor (TypeDescriptor): Descriptor that already passed validation.

    Returns:
        str: Generated Python source code.
    """
    fields = [(field, _field_kind(field)) for field in descriptor.fields]

    body: list[ast.stmt] = [
        ast.Expr(value=ast.Constant(value=f"Generated record type {descriptor.qualified_name}.")),
    ]
    body.extend(_build_imports(fields))
    body.append(_assign("__namespace__", ast.Constant(value=descriptor.namespace)))
    body.append(
        _assign(
            "__all__",
            ast.List(elts=[ast.Constant(value=descriptor.type_name)], ctx=ast.Load()),
        )
    )
    body.append(_class_to_ast(descriptor, fields))

    module = ast.Module(body=body, type_ignores=[])
    ast.fix_missing_locations(module)
    return ast.unparse(module) + "\n"


def _field_kind(field: FieldSpec) -> ScalarKind:
    kind = resolve_scalar_kind(field.type)
    if kind is None:
        raise ValueError(f"Field {field.name} has non-whitelisted type {field.type!r}")
    return kind


def _build_imports(fields: list[tuple[FieldSpec, ScalarKind]]) -> list[ast.stmt]:
    kinds = {kind for _, kind in fields}
    imports: list[ast.stmt] = []
    if kinds & {ScalarKind.DATE, ScalarKind.DATETIME}:
        imports.append(ast.Import(names=[ast.alias(name="datetime")]))
    if ScalarKind.DECIMAL in kinds:
        imports.append(ast.Import(names=[ast.alias(name="decimal")]))

    requested: set[str] = set()
    if kinds & {ScalarKind.INT32, ScalarKind.INT64}:
        requested.add("Annotated")
    if any(not field.required for field, _ in fields):
        requested.add("Optional")
    typing_imports = [name for name in _TYPING_IMPORT_ORDER if name in requested]
    if typing_imports:
        imports.append(
            ast.ImportFrom(
                module="typing",
                names=[ast.alias(name=name) for name in typing_imports],
                level=0,
            )
        )
    imports.append(
        ast.ImportFrom(
            module="pydantic",
            names=[ast.alias(name=name) for name in _PYDANTIC_IMPORTS],
            level=0,
        )
    )
    return imports


def _class_to_ast(
    descriptor: TypeDescriptor,
    fields: list[tuple[FieldSpec, ScalarKind]],
) -> ast.ClassDef:
    class_body: list[ast.stmt] = []
    if descriptor.description:
        class_body.append(ast.Expr(value=ast.Constant(value=descriptor.description)))

    class_body.append(
        _assign(
            "model_config",
            _call(
                "ConfigDict",
                title=ast.Constant(value=descriptor.type_name),
                validate_assignment=ast.Constant(value=True),
                json_schema_extra=_xml_binding(descriptor.type_name),
            ),
        )
    )
    for field, kind in fields:
        class_body.append(_field_to_ast(field, kind))

    class_body.append(_constructor())
    for field, kind in fields:
        class_body.append(_getter(field, kind))
        class_body.append(_setter(field, kind))

    attributes = [attribute_name(field.name) for field, _ in fields]
    class_body.append(_str_method(descriptor.type_name, fields))
    class_body.append(_eq_method(descriptor.type_name, attributes))
    class_body.append(_hash_method(attributes))

    return ast.ClassDef(
        name=descriptor.type_name,
        bases=[_name("BaseModel")],
        keywords=[],
        body=class_body,
        decorator_list=[],
        type_params=[],
    )


def _field_to_ast(field: FieldSpec, kind: ScalarKind) -> ast.AnnAssign:
    keywords: dict[str, ast.expr] = {
        "alias": ast.Constant(value=field.name),
        "json_schema_extra": _xml_binding(field.name),
    }
    if field.default_value is not None and kind in _TEXT_DEFAULT_KINDS:
        keywords["validate_default"] = ast.Constant(value=True)

    return ast.AnnAssign(
        target=ast.Name(id=attribute_name(field.name), ctx=ast.Store()),
        annotation=_annotation(field, kind),
        value=_call("Field", _default_value(field, kind), **keywords),
        simple=1,
    )


def _annotation(field: FieldSpec, kind: ScalarKind) -> ast.expr:
    info = scalar_type_info(kind)
    annotation = _base_annotation(info)
    if not field.required:
        annotation = ast.Subscript(value=_name("Optional"), slice=annotation, ctx=ast.Load())
    return annotation


def _base_annotation(info: ScalarTypeInfo) -> ast.expr:
    if info.kind in (ScalarKind.DATE, ScalarKind.DATETIME):
        return ast.Attribute(value=_name("datetime"), attr=info.python_type.__name__, ctx=ast.Load())
    if info.kind is ScalarKind.DECIMAL:
        return ast.Attribute(value=_name("decimal"), attr="Decimal", ctx=ast.Load())
    base = _name(info.python_type.__name__)
    if info.minimum is None and info.maximum is None:
        return base
    return ast.Subscript(
        value=_name("Annotated"),
        slice=ast.Tuple(
            elts=[
                base,
                _call(
                    "Field",
                    ge=ast.Constant(value=info.minimum),
                    le=ast.Constant(value=info.maximum),
                ),
            ],
            ctx=ast.Load(),
        ),
        ctx=ast.Load(),
    )


def _default_value(field: FieldSpec, kind: ScalarKind) -> ast.expr:
    if field.default_value is None:
        return ast.Constant(value=None)
    value = coerce_value(kind, field.default_value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return ast.Constant(value=value.isoformat())
    if isinstance(value, decimal.Decimal):
        return ast.Constant(value=str(value))
    return ast.Constant(value=value)


def _constructor() -> ast.FunctionDef:
    super_init = ast.Call(
        func=ast.Attribute(
            value=ast.Call(func=_name("super"), args=[], keywords=[]),
            attr="__init__",
            ctx=ast.Load(),
        ),
        args=[],
        keywords=[],
    )
    return _method("__init__", [ast.Expr(value=super_init)], returns=ast.Constant(value=None))


def _getter(field: FieldSpec, kind: ScalarKind) -> ast.FunctionDef:
    return _method(
        getter_name(field.name),
        [ast.Return(value=_self_attribute(attribute_name(field.name)))],
        returns=_annotation(field, kind),
    )


def _setter(field: FieldSpec, kind: ScalarKind) -> ast.FunctionDef:
    assign = ast.Assign(
        targets=[
            ast.Attribute(
                value=_name("self"),
                attr=attribute_name(field.name),
                ctx=ast.Store(),
            )
        ],
        value=_name(_SETTER_ARGUMENT),
    )
    return _method(
        setter_name(field.name),
        [assign],
        extra_args=[ast.arg(arg=_SETTER_ARGUMENT, annotation=_annotation(field, kind))],
        returns=ast.Constant(value=None),
    )


def _str_method(type_name: str, fields: list[tuple[FieldSpec, ScalarKind]]) -> ast.FunctionDef:
    parts: list[ast.expr] = []
    for index, (field, _) in enumerate(fields):
        prefix = f"{type_name}{{" if index == 0 else ", "
        parts.append(ast.Constant(value=f"{prefix}{field.name}="))
        parts.append(
            ast.Call(
                func=_name("str"),
                args=[_self_attribute(attribute_name(field.name))],
                keywords=[],
            )
        )
    parts.append(ast.Constant(value="}"))

    expression = parts[0]
    for part in parts[1:]:
        expression = ast.BinOp(left=expression, op=ast.Add(), right=part)
    return _method("__str__", [ast.Return(value=expression)], returns=_name("str"))


def _eq_method(type_name: str, attributes: list[str]) -> ast.FunctionDef:
    identity_check = ast.If(
        test=ast.Compare(left=_name("self"), ops=[ast.Is()], comparators=[_name(_OTHER_ARGUMENT)]),
        body=[ast.Return(value=ast.Constant(value=True))],
        orelse=[],
    )
    type_check = ast.If(
        test=ast.UnaryOp(
            op=ast.Not(),
            operand=ast.Call(
                func=_name("isinstance"),
                args=[_name(_OTHER_ARGUMENT), _name(type_name)],
                keywords=[],
            ),
        ),
        body=[ast.Return(value=ast.Constant(value=False))],
        orelse=[],
    )
    comparison = ast.Return(
        value=ast.Compare(
            left=_attribute_tuple("self", attributes),
            ops=[ast.Eq()],
            comparators=[_attribute_tuple(_OTHER_ARGUMENT, attributes)],
        )
    )
    return _method(
        "__eq__",
        [identity_check, type_check, comparison],
        extra_args=[ast.arg(arg=_OTHER_ARGUMENT, annotation=_name("object"))],
        returns=_name("bool"),
    )


def _hash_method(attributes: list[str]) -> ast.FunctionDef:
    value = ast.Call(func=_name("hash"), args=[_attribute_tuple("self", attributes)], keywords=[])
    return _method("__hash__", [ast.Return(value=value)], returns=_name("int"))


def _method(
    name: str,
    body: list[ast.stmt],
    *,
    returns: ast.expr,
    extra_args: Optional[list[ast.arg]] = None,
) -> ast.FunctionDef:
    return ast.FunctionDef(
        name=name,
        args=ast.arguments(
            posonlyargs=[],
            args=[ast.arg(arg="self"), *(extra_args or [])],
            vararg=None,
            kwonlyargs=[],
            kw_defaults=[],
            kwarg=None,
            defaults=[],
        ),
        body=body,
        decorator_list=[],
        returns=returns,
        type_params=[],
    )


def _attribute_tuple(owner: str, attributes: list[str]) -> ast.Tuple:
    return ast.Tuple(
        elts=[
            ast.Attribute(value=_name(owner), attr=attribute, ctx=ast.Load())
            for attribute in attributes
        ],
        ctx=ast.Load(),
    )


def _self_attribute(attribute: str) -> ast.Attribute:
    return ast.Attribute(value=_name("self"), attr=attribute, ctx=ast.Load())


def _xml_binding(name: str) -> ast.Dict:
    return ast.Dict(
        keys=[ast.Constant(value="xml")],
        values=[ast.Dict(keys=[ast.Constant(value="name")], values=[ast.Constant(value=name)])],
    )


def _call(func: str, *args: ast.expr, **keywords: ast.expr) -> ast.Call:
    return ast.Call(
        func=_name(func),
        args=list(args),
        keywords=[ast.keyword(arg=key, value=value) for key, value in keywords.items()],
    )


def _assign(target: str, value: ast.expr) -> ast.Assign:
    return ast.Assign(targets=[ast.Name(id=target, ctx=ast.Store())], value=value)


def _name(identifier: str) -> ast.Name:
    return ast.Name(id=identifier, ctx=ast.Load())
