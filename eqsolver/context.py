"""
Expression context: the live binding of names used while parsing and
evaluating expressions.

A :class:`Context` keeps three namespaces — variables (mutable guess
records), constants (fixed numbers inlined at parse time) and functions
(callables with a fixed arity). A name may live in only one of them.
"""

import math
from dataclasses import dataclass
from typing import Callable, Optional

from eqsolver.errors import BuildError
from eqsolver.variable import Variable


@dataclass(frozen=True)
class FunctionDef:
    func: Callable[..., float]
    arity: int


# ── Built-in functions ──────────────────────────────────────────────────

# Comparison codes for ``if(a, op, b, then, else)``
_CONDITIONS = {
    1: lambda a, b: a == b,
    2: lambda a, b: a <= b,
    3: lambda a, b: a >= b,
    4: lambda a, b: a < b,
    5: lambda a, b: a > b,
}


def _conditional(a: float, op: float, b: float, if_true: float, if_false: float) -> float:
    """``if_true`` when ``a <op> b`` holds, else ``if_false``.

    Unrecognised codes fall back to ``!=``.
    """
    check = _CONDITIONS.get(round(op), lambda x, y: x != y)
    return if_true if check(a, b) else if_false


def _ln(x: float) -> float:
    return math.log(x)


def _log(x: float, base: float) -> float:
    return math.log(x, base)


BUILTIN_FUNCTIONS = {
    "if": FunctionDef(_conditional, 5),
    "sin": FunctionDef(math.sin, 1),
    "cos": FunctionDef(math.cos, 1),
    "tan": FunctionDef(math.tan, 1),
    "arcsin": FunctionDef(math.asin, 1),
    "arccos": FunctionDef(math.acos, 1),
    "arctan": FunctionDef(math.atan, 1),
    "sinh": FunctionDef(math.sinh, 1),
    "cosh": FunctionDef(math.cosh, 1),
    "tanh": FunctionDef(math.tanh, 1),
    "ln": FunctionDef(_ln, 1),
    "log10": FunctionDef(math.log10, 1),
    "log": FunctionDef(_log, 2),
    "abs": FunctionDef(abs, 1),
    "sqrt": FunctionDef(math.sqrt, 1),
    "exp": FunctionDef(math.exp, 1),
}

BUILTIN_CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
}


class Context:
    """Named variables, constants and functions shared by one solving session."""

    def __init__(self):
        self.variables: dict[str, Variable] = {}
        self.constants: dict[str, float] = {}
        self.functions: dict[str, FunctionDef] = {}

    # ── Registration ────────────────────────────────────────────────────

    def _check_free(self, name: str, namespace: dict) -> None:
        for label, other in (("variable", self.variables),
                             ("constant", self.constants),
                             ("function", self.functions)):
            if other is not namespace and name in other:
                raise BuildError(f"'{name}' is already defined as a {label}.")

    def add_var(self, name: str, value: float,
                lower: float = -math.inf, upper: float = math.inf) -> Variable:
        """Add (or replace) a variable and return its guess record."""
        self._check_free(name, self.variables)
        var = Variable(value, lower, upper)
        self.variables[name] = var
        return var

    def add_const(self, name: str, value: float) -> None:
        self._check_free(name, self.constants)
        self.constants[name] = float(value)

    def add_func(self, name: str, func: Callable[..., float], arity: int) -> None:
        self._check_free(name, self.functions)
        if arity < 0:
            raise ValueError("Function arity cannot be negative.")
        self.functions[name] = FunctionDef(func, arity)

    # ── Lookup ──────────────────────────────────────────────────────────

    def has(self, name: str) -> bool:
        return name in self.variables or name in self.constants or name in self.functions

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def kind_of(self, name: str) -> Optional[str]:
        """``'variable'``, ``'constant'``, ``'function'`` or ``None``."""
        if name in self.variables:
            return "variable"
        if name in self.constants:
            return "constant"
        if name in self.functions:
            return "function"
        return None

    def get_var(self, name: str) -> Variable:
        return self.variables[name]

    def get_value(self, name: str) -> float:
        return self.variables[name].value

    def values(self) -> dict[str, float]:
        """Snapshot of every variable's current value."""
        return {name: var.value for name, var in self.variables.items()}

    def assign(self, values: dict) -> None:
        """Write *values* into the existing variable records (clamped to their domains)."""
        for name, value in values.items():
            self.variables[name].set(value)


def new_context() -> Context:
    """Return a Context pre-loaded with the built-in functions and constants."""
    ctx = Context()
    for name, fdef in BUILTIN_FUNCTIONS.items():
        ctx.add_func(name, fdef.func, fdef.arity)
    for name, value in BUILTIN_CONSTANTS.items():
        ctx.add_const(name, value)
    return ctx
