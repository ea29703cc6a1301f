"""
Equations and systems of equations built from text.

Typical use::

    builder = SystemBuilder("x + y = 9")
    builder.try_constrain_with("x - y = 4")
    system = builder.build_system()
    system.specify_variable("x", 6.0, 0.0, 10.0)
    solution = system.solve(1e-6, 50)      # {"x": 6.5, "y": 2.5}

Unknowns are the variables an equation references that the Context does
not already bind. They are registered in that same Context as
:class:`~eqsolver.variable.Variable` records, so the Context stays the only
place holding variable state.
"""

import logging
import math
from enum import Enum
from typing import Iterable, Optional

from eqsolver.context import Context, new_context
from eqsolver.errors import BuildError, ConvergenceError, ParseError, RangeError, UnknownVariableError
from eqsolver.newton import multivariate_newton_raphson
from eqsolver.settings import get_settings
from eqsolver.shunting import Expression, TokenKind, parse
from eqsolver.variable import Variable

logger = logging.getLogger(__name__)


class Equation:
    """``lhs = rhs`` parsed against a Context; calling it gives ``lhs - rhs``."""

    def __init__(self, lhs: Expression, rhs: Expression, context: Context, text: str = ""):
        self.lhs = lhs
        self.rhs = rhs
        self.context = context
        self.text = text
        var_tokens = sorted(
            (tok for tok in list(lhs) + list(rhs) if tok.kind is TokenKind.VAR),
            key=lambda tok: tok.position,
        )
        # names in order of first appearance
        self.variables = list(dict.fromkeys(tok.value for tok in var_tokens))

    @classmethod
    def parse(cls, text: str, context: Context) -> "Equation":
        sides = text.split("=")
        if len(sides) == 1:
            raise ParseError(f"Expected an equation but found an expression: '{text}'")
        if len(sides) > 2:
            second = text.index("=", text.index("=") + 1)
            raise ParseError("Found multiple equations", "=", second)
        lhs = parse(sides[0], context)
        rhs = parse(sides[1], context, offset=len(sides[0]) + 1)
        return cls(lhs, rhs, context, text)

    def residual(self, values: Optional[dict] = None) -> float:
        return self.lhs.evaluate(self.context, values) - self.rhs.evaluate(self.context, values)

    def __call__(self, values: Optional[dict] = None) -> float:
        return self.residual(values)

    def __repr__(self):
        return f"Equation({self.text!r})"


class ConstrainResult(Enum):
    """How adding an equation changes the balance of a system."""

    # adds at most one new unknown
    WILL_CONSTRAIN = "will_constrain"
    # adds more than one new unknown
    WILL_NOT_CONSTRAIN = "will_not_constrain"
    # more equations than unknowns afterwards
    WILL_OVER_CONSTRAIN = "will_over_constrain"


def _specify(context: Context, unknowns: list, name: str, guess: float,
             lower: float, upper: float) -> None:
    if name not in unknowns:
        raise UnknownVariableError(name)
    checked = Variable(guess, lower, upper)  # raises RangeError, nothing written yet
    var = context.variables[name]
    var.lower, var.upper, var.value = checked.lower, checked.upper, checked.value


class SystemBuilder:
    """Collects equations until there are as many as unknowns."""

    def __init__(self, equation: str, context: Optional[Context] = None):
        self.context = context if context is not None else new_context()
        self._unknowns: list[str] = []
        self._equations: list[Equation] = []
        self._add(Equation.parse(equation, self.context))

    @property
    def unknowns(self) -> list:
        return list(self._unknowns)

    @property
    def equations(self) -> list:
        return list(self._equations)

    def _new_unknowns(self, equation: Equation) -> list:
        return [name for name in equation.variables if name not in self.context.variables]

    def _add(self, equation: Equation) -> None:
        default = get_settings()["default_guess"]
        for name in self._new_unknowns(equation):
            self.context.add_var(name, default)
            self._unknowns.append(name)
        self._equations.append(equation)
        logger.debug("Added %r; %d equation(s), unknowns=%s",
                     equation, len(self._equations), self._unknowns)

    def _classify(self, equation: Equation) -> ConstrainResult:
        fresh = len(self._new_unknowns(equation))
        if fresh > 1:
            return ConstrainResult.WILL_NOT_CONSTRAIN
        if len(self._equations) + 1 > len(self._unknowns) + fresh:
            return ConstrainResult.WILL_OVER_CONSTRAIN
        return ConstrainResult.WILL_CONSTRAIN

    def check_constraint(self, equation: str) -> ConstrainResult:
        """Classify *equation* without adding it."""
        return self._classify(Equation.parse(equation, self.context))

    def try_constrain_with(self, equation: str) -> ConstrainResult:
        """Parse *equation* and add it to the system.

        The equation is always added; the returned :class:`ConstrainResult`
        tells how it affected the balance of equations and unknowns.
        """
        parsed = Equation.parse(equation, self.context)
        result = self._classify(parsed)
        self._add(parsed)
        return result

    def try_fully_constrain_with(self, equations: Iterable[str]) -> bool:
        """Pick equations from *equations* until the system is square.

        Only candidates that add at most one unknown without
        over-constraining are taken; the loop repeats while it keeps making
        progress. Returns :meth:`is_fully_constrained`.
        """
        pending = [Equation.parse(text, self.context) for text in equations]
        progress = True
        while progress and not self.is_fully_constrained():
            progress = False
            for candidate in list(pending):
                if self.is_fully_constrained():
                    break
                if self._classify(candidate) is ConstrainResult.WILL_CONSTRAIN:
                    self._add(candidate)
                    pending.remove(candidate)
                    progress = True
        return self.is_fully_constrained()

    def is_fully_constrained(self) -> bool:
        return len(self._equations) == len(self._unknowns)

    def specify_variable(self, name: str, guess: float,
                         lower: float = -math.inf, upper: float = math.inf) -> None:
        _specify(self.context, self._unknowns, name, guess, lower, upper)

    def build_system(self) -> "System":
        n_eq, n_unknown = len(self._equations), len(self._unknowns)
        if n_eq != n_unknown:
            kind = "under-determined" if n_eq < n_unknown else "over-determined"
            raise BuildError(
                f"System is {kind}: {n_eq} equation(s) for {n_unknown} "
                f"unknown(s) ({', '.join(self._unknowns) or 'none'})."
            )
        return System(self.context, self._unknowns, self._equations)


class System:
    """A square system of equations, ready to be solved (repeatedly).

    Built by :meth:`SystemBuilder.build_system`. Guesses live in the shared
    Context, so each :meth:`solve` starts from where the previous one ended.
    """

    def __init__(self, context: Context, unknowns: list, equations: list):
        self.context = context
        self._unknowns = list(unknowns)
        self._equations = list(equations)

    @property
    def unknowns(self) -> list:
        return list(self._unknowns)

    @property
    def equations(self) -> list:
        return list(self._equations)

    def _var(self, name: str) -> Variable:
        if name not in self._unknowns:
            raise UnknownVariableError(name)
        return self.context.variables[name]

    def guesses(self) -> dict:
        return {name: self.context.variables[name].value for name in self._unknowns}

    def specify_variable(self, name: str, guess: float,
                         lower: float = -math.inf, upper: float = math.inf) -> None:
        """Replace the guess and domain of *name*; rejected if *guess* is out of bounds."""
        _specify(self.context, self._unknowns, name, guess, lower, upper)

    def specify_guess(self, name: str, guess: float) -> None:
        """Set a new guess, pinned into the current domain."""
        self._var(name).set(guess)

    def specify_domain(self, name: str, lower: float, upper: float) -> None:
        """Set new bounds and pull the current guess inside them."""
        var = self._var(name)
        if lower > upper:
            raise RangeError(f"Lower bound {lower} is greater than upper bound {upper}.")
        var.lower, var.upper = float(lower), float(upper)
        var.set(var.value)

    def solve(self, tolerance: Optional[float] = None,
              max_iterations: Optional[int] = None) -> dict:
        """Solve with Newton-Raphson from the current guesses.

        Returns ``{unknown: value}``. The result (or, on
        :class:`ConvergenceError`, the finite part of the last guess) is written back into the
        Context.
        """
        settings = get_settings(tolerance=tolerance, max_iterations=max_iterations)
        guess = self.guesses()
        bounds = {name: self.context.variables[name].bounds for name in self._unknowns}

        try:
            multivariate_newton_raphson(
                self._equations, guess,
                settings["tolerance"], settings["max_iterations"],
                bounds=bounds, step=settings["derivative_step"],
            )
        except ConvergenceError as e:
            self.context.assign({name: value for name, value in e.last_guess.items()
                                 if math.isfinite(value)})
            raise

        self.context.assign(guess)
        return dict(guess)
