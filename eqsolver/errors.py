"""Error types raised by EqSolver.

Every error derives from :class:`EquationSolverError`, itself a
``ValueError``, so callers that only care about "bad input" can keep
catching ``ValueError``.
"""

from enum import Enum
from typing import Optional


class EquationSolverError(ValueError):
    """Base class for all EqSolver failures."""


class ParseError(EquationSolverError):
    """Malformed expression or equation text.

    *token* and *position* point at the offending piece of input when the
    failure can be pinned to one (``position`` is a 0-based character
    offset into the text that was parsed).
    """

    def __init__(self, message: str, token: Optional[str] = None,
                 position: Optional[int] = None):
        self.token = token
        self.position = position
        if token is not None and position is not None:
            message = f"{message} (token '{token}' at position {position})"
        elif position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)


class EvalError(EquationSolverError):
    """Runtime failure while evaluating a parsed expression."""


class BuildError(EquationSolverError):
    """A system of equations could not be built (not square, name clash)."""


class RangeError(EquationSolverError):
    """A guess or domain that does not fit its bounds."""


class UnknownVariableError(RangeError):
    """The named variable is not an unknown of the system."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{name}' is not an unknown of this system.")


class ConvergenceFailure(Enum):
    ITERATION_LIMIT = "iteration limit reached"
    ZERO_DERIVATIVE = "derivative is zero"
    SINGULAR_JACOBIAN = "jacobian is singular"
    NON_FINITE = "iteration produced a non-finite value"


class ConvergenceError(EquationSolverError):
    """Newton-Raphson gave up.

    ``last_guess`` holds the final iterate (a float for the single-variable
    solver, a dict for the multivariate one) so callers can see how close
    the attempt got.
    """

    def __init__(self, reason: ConvergenceFailure, iterations: int,
                 last_guess=None):
        self.reason = reason
        self.iterations = iterations
        self.last_guess = last_guess
        super().__init__(
            f"Failed to converge after {iterations} iteration(s): {reason.value}."
        )
