"""Structural admission check for record source before it is compiled.

Source reaching the compiler may come straight from a caller, so it is parsed
and walked first. Only the constructs the generator itself emits are
admitted: whitelisted imports, a single ``BaseModel`` subclass, attribute
access on ``self``/``other`` and the date/decimal modules, and calls to a
short list of names. Every method body must match the template the generator
emits for its kind (constructor, getter, setter, ``__str__``, ``__eq__``,
``__hash__``), and operator expressions appear only in ``__str__``. Cosmetic
edits (whitespace, comments, docstrings) pass.
"""

from __future__ import annotations

import ast
from typing import Optional

ALLOWED_IMPORTS: dict[str, frozenset[str]] = {
    "datetime": frozenset(),
    "decimal": frozenset(),
    "typing": frozenset({"Annotated", "Optional"}),
    "pydantic": frozenset({"BaseModel", "ConfigDict", "Field"}),
}

_MODULE_ATTRIBUTES: dict[str, frozenset[str]] = {
    "datetime": frozenset({"date", "datetime"}),
    "decimal": frozenset({"Decimal"}),
}

_ALLOWED_NODES: tuple[type[ast.AST], ...] = (
    ast.Module,
    ast.Expr,
    ast.Constant,
    ast.Import,
    ast.ImportFrom,
    ast.alias,
    ast.Assign,
    ast.AnnAssign,
    ast.Name,
    ast.Attribute,
    ast.List,
    ast.Tuple,
    ast.Dict,
    ast.Call,
    ast.keyword,
    ast.Subscript,
    ast.UnaryOp,
    ast.USub,
    ast.Not,
    ast.ClassDef,
    ast.FunctionDef,
    ast.arguments,
    ast.arg,
    ast.Return,
    ast.If,
    ast.Compare,
    ast.Is,
    ast.Eq,
    ast.BinOp,
    ast.Add,
    ast.Load,
    ast.Store,
)

_ALLOWED_CALLS = frozenset({"ConfigDict", "Field", "hash", "isinstance", "str", "super"})
_ALLOWED_LOAD_NAMES = frozenset(
    {
        "Annotated",
        "BaseModel",
        "ConfigDict",
        "Field",
        "Optional",
        "bool",
        "datetime",
        "decimal",
        "float",
        "hash",
        "int",
        "isinstance",
        "object",
        "other",
        "self",
        "str",
        "super",
        "value",
    }
)
_ALLOWED_DUNDERS = frozenset(
    {"__all__", "__eq__", "__hash__", "__init__", "__namespace__", "__str__"}
)
_INSTANCE_NAMES = frozenset({"self", "other"})


class SourceRejectedError(RuntimeError):
    """Raised when source text is not shaped like a generated record module."""


def check_record_source(tree: ast.Module) -> str:
    """Validate a parsed record module and return the name of its class.

    Args:
        tree (ast.Module): Parsed source module.

    Returns:
        str: Name of the single record class defined by the module.

    Raises:
        SourceRejectedError: If the module contains anything outside the record shape.
    """
    class_name = _check_module_body(tree)
    for node in ast.walk(tree):
        _check_node(node, class_name)
    return class_name


def _check_module_body(tree: ast.Module) -> str:
    class_name: Optional[str] = None
    for statement in tree.body:
        if isinstance(statement, ast.ClassDef):
            if class_name is not None:
                raise SourceRejectedError("Record source must define exactly one class")
            _check_class(statement)
            class_name = statement.name
        elif isinstance(statement, (ast.Import, ast.ImportFrom)):
            _check_import(statement)
        elif isinstance(statement, ast.Assign):
            _check_module_assignment(statement)
        elif not _is_docstring(statement):
            raise SourceRejectedError(
                f"Unexpected module-level statement on line {statement.lineno}"
            )
    if class_name is None:
        raise SourceRejectedError("Record source does not define a class")
    return class_name


def _check_class(node: ast.ClassDef) -> None:
    _check_member_name(node.name)
    if node.decorator_list or node.keywords or getattr(node, "type_params", None):
        raise SourceRejectedError(f"Class {node.name} must not use decorators or keywords")
    if len(node.bases) != 1 or not _is_name(node.bases[0], "BaseModel"):
        raise SourceRejectedError(f"Class {node.name} must derive from BaseModel only")
    for statement in node.body:
        if isinstance(statement, ast.FunctionDef):
            _check_function(statement, node.name)
        elif isinstance(statement, (ast.Assign, ast.AnnAssign)):
            _reject_operators(statement, f"class {node.name}")
        elif not _is_docstring(statement):
            raise SourceRejectedError(
                f"Unexpected statement in class {node.name} on line {statement.lineno}"
            )


def _check_function(node: ast.FunctionDef, class_name: str) -> None:
    if node.decorator_list or getattr(node, "type_params", None):
        raise SourceRejectedError(f"Method {node.name} must not use decorators")
    args = node.args
    if args.vararg or args.kwarg or args.kwonlyargs or args.posonlyargs or args.defaults:
        raise SourceRejectedError(f"Method {node.name} has an unsupported signature")
    if not args.args or args.args[0].arg != "self":
        raise SourceRejectedError(f"Method {node.name} must take self as its first argument")
    _reject_operators(node.returns, f"method {node.name}")
    for arg in args.args:
        _reject_operators(arg.annotation, f"method {node.name}")

    # Each method body must be exactly what the generator emits for its kind.
    body = node.body[1:] if node.body and _is_docstring(node.body[0]) else node.body
    parameters = [arg.arg for arg in args.args[1:]]
    if node.name == "__init__":
        matched = not parameters and _is_constructor_body(body)
    elif node.name == "__str__":
        matched = not parameters and _is_str_body(body)
    elif node.name == "__eq__":
        matched = len(parameters) == 1 and _is_eq_body(body, parameters[0], class_name)
    elif node.name == "__hash__":
        matched = not parameters and _is_hash_body(body)
    elif not parameters:
        matched = _is_getter_body(body)
    elif len(parameters) == 1:
        matched = _is_setter_body(body, parameters[0])
    else:
        matched = False
    if not matched:
        raise SourceRejectedError(f"Body of method {node.name} is not a generated record method")


def _is_constructor_body(body: list[ast.stmt]) -> bool:
    if len(body) != 1 or not isinstance(body[0], ast.Expr):
        return False
    call = body[0].value
    return (
        isinstance(call, ast.Call)
        and not call.args
        and not call.keywords
        and isinstance(call.func, ast.Attribute)
        and call.func.attr == "__init__"
        and _is_super_call(call.func.value)
    )


def _is_getter_body(body: list[ast.stmt]) -> bool:
    return (
        len(body) == 1
        and isinstance(body[0], ast.Return)
        and _is_owner_attribute(body[0].value, "self")
    )


def _is_setter_body(body: list[ast.stmt], parameter: str) -> bool:
    if len(body) != 1 or not isinstance(body[0], ast.Assign):
        return False
    statement = body[0]
    return (
        len(statement.targets) == 1
        and isinstance(statement.targets[0], ast.Attribute)
        and _is_name(statement.targets[0].value, "self")
        and _is_name(statement.value, parameter)
    )


def _is_str_body(body: list[ast.stmt]) -> bool:
    if len(body) != 1 or not isinstance(body[0], ast.Return):
        return False
    expression = body[0].value
    while isinstance(expression, ast.BinOp) and isinstance(expression.op, ast.Add):
        if not _is_str_part(expression.right):
            return False
        expression = expression.left
    return _is_str_part(expression)


def _is_str_part(node: Optional[ast.expr]) -> bool:
    if isinstance(node, ast.Constant):
        return isinstance(node.value, str)
    return (
        isinstance(node, ast.Call)
        and _is_name(node.func, "str")
        and len(node.args) == 1
        and not node.keywords
        and _is_owner_attribute(node.args[0], "self")
    )


def _is_eq_body(body: list[ast.stmt], parameter: str, class_name: str) -> bool:
    if len(body) != 3:
        return False
    identity_check, type_check, comparison = body
    if not (
        isinstance(identity_check, ast.If)
        and _returns_constant(identity_check, True)
        and isinstance(identity_check.test, ast.Compare)
        and _is_name(identity_check.test.left, "self")
        and len(identity_check.test.ops) == 1
        and isinstance(identity_check.test.ops[0], ast.Is)
        and _is_name(identity_check.test.comparators[0], parameter)
    ):
        return False
    if not (
        isinstance(type_check, ast.If)
        and _returns_constant(type_check, False)
        and isinstance(type_check.test, ast.UnaryOp)
        and isinstance(type_check.test.op, ast.Not)
        and isinstance(type_check.test.operand, ast.Call)
        and _is_name(type_check.test.operand.func, "isinstance")
        and not type_check.test.operand.keywords
        and len(type_check.test.operand.args) == 2
        and _is_name(type_check.test.operand.args[0], parameter)
        and _is_name(type_check.test.operand.args[1], class_name)
    ):
        return False
    return (
        isinstance(comparison, ast.Return)
        and isinstance(comparison.value, ast.Compare)
        and len(comparison.value.ops) == 1
        and isinstance(comparison.value.ops[0], ast.Eq)
        and _is_attribute_tuple(comparison.value.left, "self")
        and _is_attribute_tuple(comparison.value.comparators[0], parameter)
    )


def _is_hash_body(body: list[ast.stmt]) -> bool:
    if len(body) != 1 or not isinstance(body[0], ast.Return):
        return False
    call = body[0].value
    return (
        isinstance(call, ast.Call)
        and _is_name(call.func, "hash")
        and len(call.args) == 1
        and not call.keywords
        and _is_attribute_tuple(call.args[0], "self")
    )


def _returns_constant(statement: ast.If, value: bool) -> bool:
    return (
        not statement.orelse
        and len(statement.body) == 1
        and isinstance(statement.body[0], ast.Return)
        and isinstance(statement.body[0].value, ast.Constant)
        and statement.body[0].value.value is value
    )


def _is_attribute_tuple(node: ast.expr, owner: str) -> bool:
    return isinstance(node, ast.Tuple) and all(
        _is_owner_attribute(element, owner) for element in node.elts
    )


def _is_owner_attribute(node: Optional[ast.expr], owner: str) -> bool:
    return isinstance(node, ast.Attribute) and _is_name(node.value, owner)


def _reject_operators(node: Optional[ast.AST], owner: str) -> None:
    if node is None:
        return
    for child in ast.walk(node):
        if isinstance(child, ast.BinOp):
            raise SourceRejectedError(f"Operator expression in {owner} is not allowed")


def _check_import(node: ast.Import | ast.ImportFrom) -> None:
    if isinstance(node, ast.Import):
        for alias in node.names:
            if alias.asname is not None or alias.name not in _MODULE_ATTRIBUTES:
                raise SourceRejectedError(f"Import of {alias.name!r} is not allowed")
        return

    allowed_names = ALLOWED_IMPORTS.get(node.module or "")
    if node.level != 0 or not allowed_names:
        raise SourceRejectedError(f"Import from {node.module!r} is not allowed")
    for alias in node.names:
        if alias.asname is not None or alias.name not in allowed_names:
            raise SourceRejectedError(
                f"Import of {alias.name!r} from {node.module!r} is not allowed"
            )


def _check_module_assignment(node: ast.Assign) -> None:
    targets_ok = len(node.targets) == 1 and isinstance(node.targets[0], ast.Name)
    if not targets_ok or node.targets[0].id not in ("__namespace__", "__all__"):
        raise SourceRejectedError(f"Unexpected module-level assignment on line {node.lineno}")
    _reject_operators(node.value, "module")


def _check_node(node: ast.AST, class_name: str) -> None:
    if not isinstance(node, _ALLOWED_NODES):
        raise SourceRejectedError(f"Construct {type(node).__name__} is not allowed")
    if isinstance(node, ast.Constant):
        if not isinstance(node.value, (str, int, float, bool, type(None))):
            raise SourceRejectedError(f"Constant of type {type(node.value).__name__} is not allowed")
    elif isinstance(node, ast.Name):
        _check_name(node, class_name)
    elif isinstance(node, ast.Attribute):
        _check_attribute(node)
    elif isinstance(node, ast.Call):
        _check_call(node)
    elif isinstance(node, ast.FunctionDef):
        _check_member_name(node.name)
    elif isinstance(node, ast.arg):
        _check_member_name(node.arg)


def _check_name(node: ast.Name, class_name: str) -> None:
    if isinstance(node.ctx, ast.Load):
        if node.id not in _ALLOWED_LOAD_NAMES and node.id != class_name:
            raise SourceRejectedError(f"Reference to name {node.id!r} is not allowed")
        return
    _check_member_name(node.id)


def _check_attribute(node: ast.Attribute) -> None:
    owner = node.value
    if isinstance(owner, ast.Name) and owner.id in _INSTANCE_NAMES:
        _check_member_name(node.attr)
        return
    if isinstance(owner, ast.Name) and node.attr in _MODULE_ATTRIBUTES.get(owner.id, ()):
        return
    if _is_super_call(owner) and node.attr == "__init__":
        return
    raise SourceRejectedError(f"Attribute access .{node.attr} is not allowed")


def _check_call(node: ast.Call) -> None:
    if any(keyword.arg is None for keyword in node.keywords):
        raise SourceRejectedError("Keyword unpacking in calls is not allowed")
    func = node.func
    if isinstance(func, ast.Name) and func.id in _ALLOWED_CALLS:
        if func.id == "super" and (node.args or node.keywords):
            raise SourceRejectedError("super() must be called without arguments")
        return
    if isinstance(func, ast.Attribute) and func.attr == "__init__" and _is_super_call(func.value):
        return
    raise SourceRejectedError("Call target is not allowed")


def _check_member_name(name: str) -> None:
    if name.startswith("__") and name.endswith("__") and name not in _ALLOWED_DUNDERS:
        raise SourceRejectedError(f"Name {name!r} is not allowed")


def _is_super_call(node: ast.expr) -> bool:
    return (
        isinstance(node, ast.Call)
        and _is_name(node.func, "super")
        and not node.args
        and not node.keywords
    )


def _is_name(node: ast.expr, identifier: str) -> bool:
    return isinstance(node, ast.Name) and node.id == identifier


def _is_docstring(statement: ast.stmt) -> bool:
    return (
        isinstance(statement, ast.Expr)
        and isinstance(statement.value, ast.Constant)
        and isinstance(statement.value.value, str)
    )
