"""
Request adapters between the HTTP layer and :mod:`eqsolver`.

Each function takes plain Python values, calls the library and returns a
result dict shaped like the API responses, including a human-readable
``final_answer``.
"""

import math
from typing import Optional

from eqsolver import (
    SystemBuilder,
    evaluate,
    new_context,
    solve_equation_from_str,
)


def _fmt_num(value: float, max_decimals: int = 10) -> str:
    """Format a float into a clean decimal string.

    - Removes trailing zeros after the decimal point.
    - Uses up to *max_decimals* digits of precision.
    - Returns integers without a decimal point (e.g. ``7`` not ``7.0``).
    """
    if abs(value - round(value)) < 1e-9:
        return str(int(round(value)))
    formatted = f"{value:.{max_decimals}f}".rstrip("0").rstrip(".")
    return formatted


def evaluate_expression(expression: str, variables: Optional[dict] = None) -> dict:
    ctx = new_context()
    for name, value in (variables or {}).items():
        ctx.add_var(name, value)
    result = evaluate(expression, ctx)
    return {
        "expression": expression,
        "result": result,
        "final_answer": _fmt_num(result),
    }


def solve_single_equation(equation: str, tolerance: Optional[float] = None,
                          max_iterations: Optional[int] = None) -> dict:
    name, value = solve_equation_from_str(equation, tolerance, max_iterations)
    return {
        "equation": equation,
        "variable": name,
        "value": value,
        "final_answer": f"{name} = {_fmt_num(value)}",
    }


def solve_equation_system(equations: list[str], guesses: Optional[dict] = None,
                          tolerance: Optional[float] = None,
                          max_iterations: Optional[int] = None) -> dict:
    """Solve a square system.

    *guesses* maps an unknown to ``{"guess": g, "lower": lo, "upper": hi}``
    (bounds optional).
    """
    if not equations:
        raise ValueError("At least one equation is required.")

    builder = SystemBuilder(equations[0])
    for equation in equations[1:]:
        builder.try_constrain_with(equation)

    for name, info in (guesses or {}).items():
        lower = info.get("lower")
        upper = info.get("upper")
        builder.specify_variable(
            name, info["guess"],
            -math.inf if lower is None else lower,
            math.inf if upper is None else upper,
        )

    solution = builder.build_system().solve(tolerance, max_iterations)
    return {
        "equations": list(equations),
        "solution": solution,
        "final_answer": "\n".join(f"{n} = {_fmt_num(v)}" for n, v in solution.items()),
    }
