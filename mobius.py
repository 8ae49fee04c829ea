from __future__ import annotations

from dataclasses import dataclass
from typing import List

from billiard_errors import ConstructionError
from complex_number import INFINITY, ONE, ZERO, Complex, solve_quadratic


@dataclass(frozen=True)
class Mobius:
    """z -> (a z + b) / (c z + d) acting on the extended plane."""

    a: Complex
    b: Complex
    c: Complex
    d: Complex

    def __post_init__(self) -> None:
        for coefficient in (self.a, self.b, self.c, self.d):
            if coefficient.is_infinite:
                raise ConstructionError("Mobius coefficients must be finite")
        if self.determinant().is_zero():
            raise ConstructionError("Degenerate Mobius transformation")

    @classmethod
    def identity(cls) -> "Mobius":
        return cls(ONE, ZERO, ZERO, ONE)

    @classmethod
    def to01inf(cls, z1: Complex, z2: Complex, z3: Complex) -> "Mobius":
        """The transformation sending z1, z2, z3 to 0, 1 and infinity."""
        if z1.equals(z2) or z2.equals(z3) or z1.equals(z3):
            raise ConstructionError("Mobius map needs three distinct points")
        if z1.is_infinite:
            return cls(ZERO, z2 - z3, ONE, -z3)
        if z2.is_infinite:
            return cls(ONE, -z1, ONE, -z3)
        if z3.is_infinite:
            return cls(ONE, -z1, ZERO, z2 - z1)
        return cls(z2 - z3, -(z1 * (z2 - z3)), z2 - z1, -(z3 * (z2 - z1)))

    @classmethod
    def map_three(
        cls,
        z1: Complex,
        z2: Complex,
        z3: Complex,
        w1: Complex,
        w2: Complex,
        w3: Complex,
    ) -> "Mobius":
        return cls.to01inf(w1, w2, w3).inverse().compose(cls.to01inf(z1, z2, z3))

    def determinant(self) -> Complex:
        return self.a * self.d - self.b * self.c

    def apply(self, z: Complex) -> Complex:
        if z.is_infinite:
            if self.c.is_zero():
                return INFINITY
            return self.a / self.c
        numerator = self.a * z + self.b
        denominator = self.c * z + self.d
        if denominator.is_zero(1e-15):
            return INFINITY
        return numerator / denominator

    def compose(self, other: "Mobius") -> "Mobius":
        """``self`` after ``other``."""
        return Mobius(
            self.a * other.a + self.b * other.c,
            self.a * other.b + self.b * other.d,
            self.c * other.a + self.d * other.c,
            self.c * other.b + self.d * other.d,
        )

    def inverse(self) -> "Mobius":
        return Mobius(self.d, -self.b, -self.c, self.a)

    def fixed_points(self) -> List[Complex]:
        if self.c.is_zero():
            shift = self.d - self.a
            if shift.is_zero():
                return [INFINITY]
            return [self.b / shift, INFINITY]
        return solve_quadratic(self.c, self.d - self.a, -self.b)


__all__ = ["Mobius"]
