from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction
from numbers import Rational
from typing import TypeAlias

Number: TypeAlias = int | float | Fraction


def exact(number: Number) -> Fraction:
    """Convert to a Fraction, reading floats by their shortest decimal form."""
    if isinstance(number, bool):
        raise TypeError("number must not be a bool")

    if isinstance(number, float):
        return Fraction(repr(number))

    if isinstance(number, (int, Rational)):
        return Fraction(number)

    raise TypeError(f"number must be int, float or Fraction, got {type(number).__name__}")


@dataclass(slots=True, frozen=True)
class MixedNumberParts:
    whole: int
    frac: Fraction


@dataclass(slots=True, frozen=True)
class MixedNumber:
    """A number shown as a whole part plus a proper fraction, e.g. ``3 1/4``."""

    number: Fraction

    def __init__(self, number: Number) -> None:
        object.__setattr__(self, "number", exact(number))

    def parts(self) -> MixedNumberParts:
        whole = math.trunc(self.number)

        return MixedNumberParts(whole=whole, frac=self.number - whole)

    def __float__(self) -> float:
        return float(self.number)

    def __str__(self) -> str:
        parts = self.parts()

        if parts.frac == 0:
            return str(parts.whole)

        return f"{parts.whole} {abs(parts.frac) if parts.whole else parts.frac}"
