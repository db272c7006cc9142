"""Restricted compile policy and guarded namespace for sandboxed units."""

from __future__ import annotations

import ast
import builtins
import operator
from collections.abc import Callable
from dataclasses import dataclass
from types import CodeType

from RestrictedPython import compile_restricted_eval, compile_restricted_exec, safe_builtins
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safer_getattr,
)
from RestrictedPython.Limits import limited_range
from RestrictedPython.transformer import RestrictingNodeTransformer

SANDBOX_MODULE_NAME = "__sandbox__"
SANDBOX_FILENAME = "<unit>"
DEADLINE_CHECK_NAME = "_deadline_"

# Attribute names that hand out the class hierarchy or live frames.
BLOCKED_ATTRIBUTES = frozenset(
    {
        "ag_frame",
        "cr_frame",
        "f_back",
        "f_builtins",
        "f_globals",
        "f_locals",
        "gi_frame",
        "mro",
    }
)

BLOCKED_BUILTINS = frozenset(
    {
        "BaseException",
        "GeneratorExit",
        "KeyboardInterrupt",
        "SystemExit",
        "__import__",
        "breakpoint",
        "compile",
        "eval",
        "exec",
        "input",
        "open",
    }
)

_INPLACE_OPERATORS: dict[str, Callable[[object, object], object]] = {
    "+=": operator.iadd,
    "-=": operator.isub,
    "*=": operator.imul,
    "/=": operator.itruediv,
    "//=": operator.ifloordiv,
    "%=": operator.imod,
    "**=": operator.ipow,
    "<<=": operator.ilshift,
    ">>=": operator.irshift,
    "&=": operator.iand,
    "^=": operator.ixor,
    "|=": operator.ior,
    "@=": operator.imatmul,
}


@dataclass(slots=True, frozen=True)
class PolicyBlockedError(Exception):
    """Raised when unit source violates the restricted compile policy."""

    reason: str
    hint: str

    def __str__(self) -> str:
        return self.reason


class SandboxPolicy(RestrictingNodeTransformer):
    """RestrictedPython policy that keeps units inside their deadline.

    A bare ``except:`` is narrowed to ``except Exception:`` so the evaluation
    deadline, which derives from BaseException, always unwinds the unit.
    Every ``while`` iteration, function entry, exception handler and
    ``finally`` block starts with a deadline checkpoint; ``for`` loops and
    comprehensions are checked through ``_getiter_``.
    """

    def visit_While(self, node: ast.While) -> ast.AST:  # noqa: N802
        node = super().visit_While(node)
        node.body.insert(0, _deadline_checkpoint(node))
        return node

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.AST:  # noqa: N802
        node = super().visit_FunctionDef(node)
        node.body.insert(0, _deadline_checkpoint(node))
        return node

    def visit_Try(self, node: ast.Try) -> ast.AST:  # noqa: N802
        node = super().visit_Try(node)
        if node.finalbody:
            node.finalbody.insert(0, _deadline_checkpoint(node.finalbody[0]))
        return node

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> ast.AST:  # noqa: N802
        node = super().visit_ExceptHandler(node)
        if node.type is None:
            node.type = ast.copy_location(ast.Name(id="Exception", ctx=ast.Load()), node)
        node.body.insert(0, _deadline_checkpoint(node))
        return node


def _deadline_checkpoint(anchor: ast.AST) -> ast.stmt:
    """Build a located ``_deadline_()`` call statement."""
    call = ast.Call(func=ast.Name(id=DEADLINE_CHECK_NAME, ctx=ast.Load()), args=[], keywords=[])
    statement = ast.Expr(value=call)
    for child in ast.walk(statement):
        ast.copy_location(child, anchor)
    return statement


def compile_unit(source: str, mode: str) -> CodeType:
    """Compile unit source under the sandbox policy in "exec" or "eval" mode."""
    if mode == "eval":
        result = compile_restricted_eval(source, filename=SANDBOX_FILENAME, policy=SandboxPolicy)
    elif mode == "exec":
        result = compile_restricted_exec(source, filename=SANDBOX_FILENAME, policy=SandboxPolicy)
    else:
        raise ValueError(f"Unsupported compile mode: {mode}")
    if result.errors or result.code is None:
        raise PolicyBlockedError(
            reason="; ".join(result.errors) or "Unit could not be compiled.",
            hint="Remove imports, underscore names and other restricted constructs.",
        )
    return result.code


def inplace_var(op: str, target: object, value: object) -> object:
    """Apply an augmented assignment operator for restricted code."""
    handler = _INPLACE_OPERATORS.get(op)
    if handler is None:
        raise TypeError(f"Unsupported augmented assignment: {op}")
    return handler(target, value)


def apply_call(func: Callable[..., object], *args: object, **kwargs: object) -> object:
    return func(*args, **kwargs)


def guarded_getattr(obj: object, name: str, default: object = None) -> object:
    """Attribute access for restricted code; refuses hierarchy and frame handles."""
    if name in BLOCKED_ATTRIBUTES:
        raise AttributeError(f'"{name}" is a restricted attribute in the sandbox.')
    return safer_getattr(obj, name, default)


def guarded_write(obj: object) -> object:
    """Allow item/attribute writes on containers and sandbox-defined instances only."""
    if isinstance(obj, (dict, list, set)):
        return obj
    if type(obj).__module__ == SANDBOX_MODULE_NAME:
        return obj
    raise TypeError(f"Write access not allowed on {type(obj).__name__}")


def build_safe_builtins() -> dict[str, object]:
    """Return the builtins mapping exposed to sandboxed code."""
    allowed = dict(safe_builtins)
    allowed.update(
        {
            "__build_class__": builtins.__build_class__,
            "all": all,
            "any": any,
            "dict": dict,
            "enumerate": enumerate,
            "filter": filter,
            "frozenset": frozenset,
            "getattr": guarded_getattr,
            "list": list,
            "map": map,
            "max": max,
            "min": min,
            "next": next,
            "range": limited_range,
            "reversed": reversed,
            "set": set,
            "sum": sum,
        }
    )
    for name in BLOCKED_BUILTINS:
        allowed.pop(name, None)
    return allowed


def build_guard_globals() -> dict[str, object]:
    """Return the RestrictedPython guard functions restricted bytecode calls into."""
    return {
        "__builtins__": build_safe_builtins(),
        "__metaclass__": type,
        "__name__": SANDBOX_MODULE_NAME,
        "_apply_": apply_call,
        "_getattr_": guarded_getattr,
        "_getitem_": default_guarded_getitem,
        "_getiter_": default_guarded_getiter,
        "_inplacevar_": inplace_var,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": guarded_write,
    }
