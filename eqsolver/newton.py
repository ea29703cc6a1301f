"""Newton-Raphson root finding with numerically estimated derivatives.

Two entry points:

- :func:`newton_raphson` — one unknown, ``f(x) -> float``.
- :func:`multivariate_newton_raphson` — ``n`` residual functions of a
  ``{name: value}`` mapping with ``n`` unknowns. The Jacobian is built
  column by column with one-sided differences and the Newton step comes from
  ``numpy.linalg.solve``.
"""

import logging
import math
from typing import Callable, Mapping, Optional, Sequence

import numpy as np

from eqsolver.errors import BuildError, ConvergenceError, ConvergenceFailure
from eqsolver.settings import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

_DX = DEFAULT_SETTINGS["derivative_step"]

# Condition numbers beyond this make the Newton step meaningless in float64.
_MAX_CONDITION = 1.0 / np.finfo(float).eps


def _check_arguments(tolerance: float, max_iterations: int) -> None:
    if tolerance <= 0:
        raise ValueError(f"Tolerance must be positive, got {tolerance}.")
    if max_iterations < 0:
        raise ValueError(f"Iteration limit cannot be negative, got {max_iterations}.")


# ── Single variable ─────────────────────────────────────────────────────

def newton_raphson(f: Callable[[float], float], guess: float, tolerance: float,
                   max_iterations: int, step: float = _DX) -> float:
    """Find ``x`` with ``|f(x)| < tolerance`` starting from *guess*.

    The derivative is the symmetric difference
    ``(f(x + step) - f(x - step)) / (2 * step)``. Raises
    :class:`ConvergenceError` when the derivative vanishes, an iterate stops
    being finite, or *max_iterations* updates were not enough. Errors raised
    by *f* itself propagate unchanged.
    """
    _check_arguments(tolerance, max_iterations)

    x = float(guess)
    y = f(x)
    if abs(y) < tolerance:
        return x

    for iteration in range(1, max_iterations + 1):
        slope = (f(x + step) - f(x - step)) / (2 * step)
        if slope == 0:
            raise ConvergenceError(ConvergenceFailure.ZERO_DERIVATIVE, iteration - 1, x)

        x = x - y / slope
        if not math.isfinite(x):
            raise ConvergenceError(ConvergenceFailure.NON_FINITE, iteration, x)

        y = f(x)
        logger.debug("newton iteration %d: x=%r f(x)=%r", iteration, x, y)
        if abs(y) < tolerance:
            logger.info("Converged to x=%r after %d iteration(s)", x, iteration)
            return x

    logger.warning("No root within %d iteration(s); last x=%r", max_iterations, x)
    raise ConvergenceError(ConvergenceFailure.ITERATION_LIMIT, max_iterations, x)


# ── Multiple variables ──────────────────────────────────────────────────

def _residuals(functions: Sequence[Callable], guess: Mapping[str, float]) -> np.ndarray:
    return np.array([f(guess) for f in functions], dtype=float)


def _jacobian(functions: Sequence[Callable], guess: dict, names: list,
              current: np.ndarray, step: float,
              bounds: Mapping[str, tuple]) -> np.ndarray:
    """One-sided difference Jacobian; column ``j`` perturbs ``names[j]``.

    Columns use a forward step unless that would leave the variable's upper
    bound, in which case they step backwards.
    """
    n = len(names)
    jac = np.empty((n, n), dtype=float)
    for j, name in enumerate(names):
        original = guess[name]
        lower, upper = bounds.get(name, (-math.inf, math.inf))
        h = step
        if original + step > upper and original - step >= lower:
            h = -step
        guess[name] = original + h
        try:
            jac[:, j] = (_residuals(functions, guess) - current) / h
        finally:
            guess[name] = original
    return jac


def multivariate_newton_raphson(functions: Sequence[Callable[[Mapping[str, float]], float]],
                                guess: dict, tolerance: float, max_iterations: int,
                                bounds: Optional[Mapping[str, tuple]] = None,
                                step: float = _DX) -> dict:
    """Drive every residual in *functions* below *tolerance*.

    *guess* maps each unknown to its starting value and is updated in place;
    the same dict is returned on success. *bounds* optionally maps names to
    ``(lower, upper)`` and each Newton update is clamped into that range.

    On failure a :class:`ConvergenceError` is raised with ``last_guess``
    holding a copy of the final iterate (which is also left in *guess*).
    A singular Jacobian ends the solve immediately.
    """
    _check_arguments(tolerance, max_iterations)

    names = list(guess)
    if len(functions) != len(names):
        raise BuildError(
            f"System is not square: {len(functions)} equation(s) "
            f"for {len(names)} unknown(s)."
        )
    bounds = bounds or {}
    for name in names:
        guess[name] = float(guess[name])

    def fail(reason: ConvergenceFailure, iterations: int):
        logger.warning("Solve failed after %d iteration(s): %s", iterations, reason.value)
        return ConvergenceError(reason, iterations, dict(guess))

    for iteration in range(max_iterations + 1):
        current = _residuals(functions, guess)
        if not np.all(np.isfinite(current)):
            raise fail(ConvergenceFailure.NON_FINITE, iteration)

        logger.debug("iteration %d: guess=%r max|F|=%r",
                     iteration, guess, float(np.max(np.abs(current), initial=0.0)))
        if np.all(np.abs(current) < tolerance):
            logger.info("Converged after %d iteration(s)", iteration)
            return guess
        if iteration == max_iterations:
            break

        jac = _jacobian(functions, guess, names, current, step, bounds)
        if not np.all(np.isfinite(jac)):
            raise fail(ConvergenceFailure.NON_FINITE, iteration)
        try:
            with np.errstate(divide="ignore", invalid="ignore"):
                condition = np.linalg.cond(jac)
            if not condition < _MAX_CONDITION:
                raise np.linalg.LinAlgError("Singular matrix")
            delta = np.linalg.solve(jac, -current)
        except np.linalg.LinAlgError:
            raise fail(ConvergenceFailure.SINGULAR_JACOBIAN, iteration)

        for name, change in zip(names, delta):
            value = guess[name] + float(change)
            if name in bounds:
                lower, upper = bounds[name]
                value = min(max(value, lower), upper)
            guess[name] = value

    raise fail(ConvergenceFailure.ITERATION_LIMIT, max_iterations)
