"""
EqSolver — evaluate expressions and solve equations given as text.

    >>> evaluate("2 + 3 * 4")
    14.0
    >>> name, value = solve_equation_from_str("x + 4 = 12", 1e-4, 10)
    >>> name, round(value, 6)
    ('x', 8.0)
"""

import logging
from typing import Optional

from eqsolver.context import Context, FunctionDef, new_context
from eqsolver.errors import (
    BuildError,
    ConvergenceError,
    ConvergenceFailure,
    EquationSolverError,
    EvalError,
    ParseError,
    RangeError,
    UnknownVariableError,
)
from eqsolver.newton import multivariate_newton_raphson, newton_raphson
from eqsolver.settings import DEFAULT_SETTINGS, get_settings
from eqsolver.shunting import Expression, parse
from eqsolver.system import ConstrainResult, Equation, System, SystemBuilder
from eqsolver.variable import Variable

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BuildError", "ConstrainResult", "Context", "ConvergenceError",
    "ConvergenceFailure", "DEFAULT_SETTINGS", "Equation", "EquationSolverError",
    "EvalError", "Expression", "FunctionDef", "ParseError", "RangeError", "System",
    "SystemBuilder", "UnknownVariableError", "Variable", "eval_str", "evaluate",
    "get_settings", "multivariate_newton_raphson", "new_context", "newton_raphson",
    "parse", "solve_equation_from_str", "solve_equation_with_context",
]


def evaluate(expr: str, ctx: Optional[Context] = None) -> float:
    """Parse *expr* and evaluate it against *ctx* (built-ins only if omitted)."""
    if ctx is None:
        ctx = new_context()
    return parse(expr, ctx).evaluate(ctx)


def eval_str(expr: str) -> float:
    """Evaluate *expr* using only the built-in functions and constants."""
    return evaluate(expr, new_context())


def solve_equation_from_str(equation: str, tolerance: Optional[float] = None,
                            max_iterations: Optional[int] = None) -> tuple[str, float]:
    """Solve an equation with exactly one unknown, e.g. ``"x + 4 = 12"``.

    Returns ``(name, value)``. Raises :class:`BuildError` when the equation
    does not have exactly one unknown.
    """
    builder = SystemBuilder(equation)
    unknowns = builder.unknowns
    if len(unknowns) != 1:
        raise BuildError(
            f"Expected exactly one unknown but found {len(unknowns)}"
            + (f": {', '.join(unknowns)}." if unknowns else ".")
        )
    solution = builder.build_system().solve(tolerance, max_iterations)
    return unknowns[0], solution[unknowns[0]]


def solve_equation_with_context(equation: str, ctx: Context,
                                tolerance: Optional[float] = None,
                                max_iterations: Optional[int] = None,
                                guess: Optional[float] = None) -> tuple[str, float]:
    """Solve for the single name in *equation* that *ctx* does not bind.

    Uses the single-variable Newton-Raphson solver starting from *guess*
    (the ``default_guess`` setting when omitted). The root is stored in
    *ctx* as a variable before returning ``(name, value)``.
    """
    settings = get_settings(tolerance=tolerance, max_iterations=max_iterations,
                            default_guess=guess)
    parsed = Equation.parse(equation, ctx)
    unknowns = [name for name in parsed.variables if name not in ctx.variables]
    if len(unknowns) != 1:
        raise BuildError(
            f"Expected exactly one unknown but found {len(unknowns)}"
            + (f": {', '.join(unknowns)}." if unknowns else ".")
        )
    name = unknowns[0]

    root = newton_raphson(
        lambda x: parsed.residual({name: x}),
        settings["default_guess"], settings["tolerance"], settings["max_iterations"],
        step=settings["derivative_step"],
    )
    ctx.add_var(name, root)
    return name, root
