"""Guess records for unknown variables."""

import math
from dataclasses import dataclass

from eqsolver.errors import RangeError


@dataclass
class Variable:
    """Current value of an unknown plus its allowed domain ``[lower, upper]``."""

    value: float
    lower: float = -math.inf
    upper: float = math.inf

    def __post_init__(self):
        self.value = float(self.value)
        self.lower = float(self.lower)
        self.upper = float(self.upper)
        if self.lower > self.upper:
            raise RangeError(
                f"Lower bound {self.lower} is greater than upper bound {self.upper}."
            )
        if not self.contains(self.value):
            raise RangeError(
                f"Guess {self.value} lies outside [{self.lower}, {self.upper}]."
            )

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper

    def clamp(self, value: float) -> float:
        return min(max(float(value), self.lower), self.upper)

    def set(self, value: float) -> None:
        """Assign *value*, pinned to the nearest bound if it falls outside."""
        self.value = self.clamp(value)

    @property
    def bounds(self) -> tuple:
        return self.lower, self.upper

    def __float__(self):
        return self.value
