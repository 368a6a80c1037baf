"""Sandboxed evaluation of user-authored pattern expressions.

Custom modes describe their patterns as short arithmetic expressions over
``phase`` and ``intensity``, for example::

    sin(phase * pi * 2) * intensity
    intensity if phase < 0.5 else intensity * 0.2

Expressions are parsed with :mod:`ast` and checked against a whitelist of
node types, names and functions. The checked tree is then interpreted node by
node; nothing is ever compiled or passed to ``eval``. A ``Math.`` prefix on
names, a leading ``return`` and a trailing ``;`` are accepted.
"""

import ast
import logging
import math
import operator
from typing import Any, Callable, Dict

from ..common.exceptions import ExpressionError
from .base import PatternFn

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 500

VARIABLES = ("phase", "intensity")

CONSTANTS: Dict[str, float] = {
    "pi": math.pi,
    "PI": math.pi,
    "e": math.e,
    "E": math.e,
}


def _clamp(value, low=0.0, high=1.0):
    return max(low, min(high, value))


FUNCTIONS: Dict[str, Callable[..., float]] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "sqrt": math.sqrt,
    "exp": math.exp,
    "log": math.log,
    "pow": math.pow,
    "floor": math.floor,
    "ceil": math.ceil,
    "round": round,
    "abs": abs,
    "min": min,
    "max": max,
    "clamp": _clamp,
}

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: math.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}

_ALLOWED_NODES = (
    ast.Expression,
    ast.BinOp,
    ast.UnaryOp,
    ast.BoolOp,
    ast.Compare,
    ast.IfExp,
    ast.Call,
    ast.Name,
    ast.Attribute,
    ast.Constant,
    ast.Load,
    ast.And,
    ast.Or,
) + tuple(_BINARY_OPS) + tuple(_UNARY_OPS) + tuple(_COMPARE_OPS)


def _normalize(source: str) -> str:
    text = source.strip().rstrip(";").strip()
    if text.startswith("return "):
        text = text[len("return "):].strip()
    return text


def _check(tree: ast.AST) -> None:
    """Reject any construct outside the whitelist"""
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise ExpressionError(f"Disallowed construct: {type(node).__name__}")
        if isinstance(node, ast.Constant) and not isinstance(node.value, (int, float)):
            raise ExpressionError("Only numeric constants are allowed")
        if isinstance(node, ast.Attribute):
            if not (isinstance(node.value, ast.Name) and node.value.id == "Math"):
                raise ExpressionError("Attribute access is only allowed on Math")
            if node.attr not in FUNCTIONS and node.attr not in CONSTANTS:
                raise ExpressionError(f"Unknown name: Math.{node.attr}")
        if isinstance(node, ast.Name) and node.id != "Math":
            if node.id not in VARIABLES and node.id not in CONSTANTS and node.id not in FUNCTIONS:
                raise ExpressionError(f"Unknown name: {node.id}")
        if isinstance(node, ast.Call):
            if node.keywords:
                raise ExpressionError("Keyword arguments are not allowed")
            if _callee_name(node.func) not in FUNCTIONS:
                raise ExpressionError("Only whitelisted functions may be called")


def _callee_name(node: ast.AST) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return ""


def _resolve_name(name: str, env: Dict[str, float]) -> Any:
    if name in env:
        return env[name]
    if name in CONSTANTS:
        return CONSTANTS[name]
    if name in FUNCTIONS:
        return FUNCTIONS[name]
    raise ExpressionError(f"Unknown name: {name}")


def _evaluate(node: ast.AST, env: Dict[str, float]) -> Any:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body, env)
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        return _resolve_name(node.id, env)
    if isinstance(node, ast.Attribute):
        return _resolve_name(node.attr, env)
    if isinstance(node, ast.BinOp):
        return _BINARY_OPS[type(node.op)](
            _evaluate(node.left, env), _evaluate(node.right, env)
        )
    if isinstance(node, ast.UnaryOp):
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand, env))
    if isinstance(node, ast.BoolOp):
        if isinstance(node.op, ast.And):
            result = True
            for value in node.values:
                result = _evaluate(value, env)
                if not result:
                    return result
            return result
        result = False
        for value in node.values:
            result = _evaluate(value, env)
            if result:
                return result
        return result
    if isinstance(node, ast.Compare):
        left = _evaluate(node.left, env)
        for op, comparator in zip(node.ops, node.comparators):
            right = _evaluate(comparator, env)
            if not _COMPARE_OPS[type(op)](left, right):
                return False
            left = right
        return True
    if isinstance(node, ast.IfExp):
        if _evaluate(node.test, env):
            return _evaluate(node.body, env)
        return _evaluate(node.orelse, env)
    if isinstance(node, ast.Call):
        func = FUNCTIONS[_callee_name(node.func)]
        return func(*[_evaluate(arg, env) for arg in node.args])
    raise ExpressionError(f"Disallowed construct: {type(node).__name__}")


def compile_expression(source: str) -> PatternFn:
    """Validate an expression and return a pattern function evaluating it.

    Raises ExpressionError if the expression is empty, too long, malformed or
    uses anything outside the whitelist. Runtime arithmetic failures (for
    example ``sqrt`` of a negative number) evaluate to 0 with a debug log.
    """
    if not isinstance(source, str) or not source.strip():
        raise ExpressionError("Expression is empty")
    if len(source) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError(
            f"Expression exceeds {MAX_EXPRESSION_LENGTH} characters"
        )
    text = _normalize(source)
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression syntax: {e.msg}") from e
    _check(tree)

    def pattern(phase: float, intensity: float) -> float:
        try:
            value = _evaluate(tree, {"phase": phase, "intensity": intensity})
            return float(value)
        except (ArithmeticError, ValueError, TypeError) as e:
            logger.debug(f"Expression '{text}' failed at phase {phase}: {e}")
            return 0.0

    pattern.__doc__ = text
    return pattern
