from __future__ import annotations

import cmath
from dataclasses import dataclass
import math
from typing import List, Tuple, Union

from billiard_errors import ConstructionError, DomainError, IndeterminateError

EPSILON = 1e-7
TAU = 2.0 * math.pi

Real = Union[int, float]


def close_enough(a: float, b: float, tolerance: float = EPSILON) -> bool:
    if not (math.isfinite(a) and math.isfinite(b)):
        return False
    return abs(a - b) < tolerance


def normalize_angle(theta: float, low: float = -math.pi) -> float:
    """Wrap ``theta`` into ``[low, low + 2pi)``."""
    if not (math.isfinite(theta) and math.isfinite(low)):
        raise ValueError(f"Cannot normalize non-finite angle {theta} from {low}")
    wrapped = low + math.fmod(theta - low, TAU)
    if wrapped < low:
        wrapped += TAU
    if wrapped >= low + TAU:
        wrapped -= TAU
    return wrapped


def fix_time(time: float) -> float:
    t = time % 1.0
    if t >= 1.0:
        return 0.0
    return t


@dataclass(frozen=True)
class Complex:
    """
    Immutable point of the plane, or the single point at infinity.

    Equality through ``==`` is exact (instances are hashable); geometric code
    compares with :meth:`equals`, which uses the absolute tolerance EPSILON.
    """

    real: float = 0.0
    imag: float = 0.0

    def __post_init__(self) -> None:
        real = float(self.real)
        imag = float(self.imag)
        if math.isnan(real) or math.isnan(imag):
            raise ConstructionError("Complex number cannot hold NaN")
        if math.isinf(real) or math.isinf(imag):
            real = imag = math.inf
        object.__setattr__(self, "real", real)
        object.__setattr__(self, "imag", imag)

    @classmethod
    def polar(cls, radius: float, angle: float) -> "Complex":
        if radius < 0:
            raise ConstructionError(f"Negative polar radius: {radius}")
        if not math.isfinite(angle):
            raise ConstructionError(f"Infinite polar angle: {angle}")
        if math.isinf(radius):
            return INFINITY
        return cls(radius * math.cos(angle), radius * math.sin(angle))

    @classmethod
    def from_tuple(cls, value: Tuple[float, float]) -> "Complex":
        return cls(value[0], value[1])

    @property
    def x(self) -> float:
        return self.real

    @property
    def y(self) -> float:
        return self.imag

    @property
    def is_infinite(self) -> bool:
        return math.isinf(self.real)

    def is_zero(self, tolerance: float = EPSILON) -> bool:
        return not self.is_infinite and self.modulus() < tolerance

    def to_tuple(self) -> Tuple[float, float]:
        return (self.real, self.imag)

    # Checked arithmetic

    def plus(self, other: "Complex") -> "Complex":
        if self.is_infinite and other.is_infinite:
            raise IndeterminateError("inf + inf")
        if self.is_infinite or other.is_infinite:
            return INFINITY
        return Complex(self.real + other.real, self.imag + other.imag)

    def minus(self, other: "Complex") -> "Complex":
        if self.is_infinite and other.is_infinite:
            raise IndeterminateError("inf - inf")
        if self.is_infinite or other.is_infinite:
            return INFINITY
        return Complex(self.real - other.real, self.imag - other.imag)

    def scale(self, factor: float) -> "Complex":
        if math.isnan(factor):
            raise IndeterminateError("scale by NaN")
        if self.is_infinite:
            if factor == 0:
                raise IndeterminateError("inf * 0")
            return INFINITY
        if math.isinf(factor):
            if self.real == 0 and self.imag == 0:
                raise IndeterminateError("0 * inf")
            return INFINITY
        return Complex(self.real * factor, self.imag * factor)

    def times(self, other: "Complex") -> "Complex":
        if self.is_infinite or other.is_infinite:
            if _exact_zero(self) or _exact_zero(other):
                raise IndeterminateError("inf * 0")
            return INFINITY
        return Complex(
            self.real * other.real - self.imag * other.imag,
            self.real * other.imag + self.imag * other.real,
        )

    def over(self, other: "Complex") -> "Complex":
        if other.is_infinite:
            if self.is_infinite:
                raise IndeterminateError("inf / inf")
            return ZERO
        if self.is_infinite:
            return INFINITY
        if _exact_zero(other):
            if _exact_zero(self):
                raise IndeterminateError("0 / 0")
            return INFINITY
        d = other.real * other.real + other.imag * other.imag
        return Complex(
            (self.real * other.real + self.imag * other.imag) / d,
            (self.imag * other.real - self.real * other.imag) / d,
        )

    def __add__(self, other: Union["Complex", Real]) -> "Complex":
        return self.plus(_coerce(other))

    def __radd__(self, other: Real) -> "Complex":
        return _coerce(other).plus(self)

    def __sub__(self, other: Union["Complex", Real]) -> "Complex":
        return self.minus(_coerce(other))

    def __rsub__(self, other: Real) -> "Complex":
        return _coerce(other).minus(self)

    def __mul__(self, other: Union["Complex", Real]) -> "Complex":
        if isinstance(other, Complex):
            return self.times(other)
        return self.scale(float(other))

    def __rmul__(self, other: Real) -> "Complex":
        return self.scale(float(other))

    def __truediv__(self, other: Union["Complex", Real]) -> "Complex":
        return self.over(_coerce(other))

    def __rtruediv__(self, other: Real) -> "Complex":
        return _coerce(other).over(self)

    def __neg__(self) -> "Complex":
        if self.is_infinite:
            return INFINITY
        return Complex(-self.real, -self.imag)

    # Metric

    def conjugate(self) -> "Complex":
        if self.is_infinite:
            return INFINITY
        return Complex(self.real, -self.imag)

    def modulus(self) -> float:
        if self.is_infinite:
            return math.inf
        return math.hypot(self.real, self.imag)

    def modulus_squared(self) -> float:
        if self.is_infinite:
            return math.inf
        return self.real * self.real + self.imag * self.imag

    def argument(self) -> float:
        if self.is_infinite:
            raise DomainError("Argument of the point at infinity is undefined")
        if self.real == 0 and self.imag == 0:
            raise DomainError("Argument of zero is undefined")
        return math.atan2(self.imag, self.real)

    def normalize(self, length: float = 1.0) -> "Complex":
        m = self.modulus()
        if self.is_infinite or m == 0:
            raise DomainError(f"Cannot normalize {self}")
        return Complex(self.real * length / m, self.imag * length / m)

    def distance(self, other: "Complex") -> float:
        return self.minus(other).modulus()

    def distance_squared(self, other: "Complex") -> float:
        return self.minus(other).modulus_squared()

    def heading(self, other: "Complex") -> float:
        return other.minus(self).argument()

    def dot(self, other: "Complex") -> float:
        return self.real * other.real + self.imag * other.imag

    def cross(self, other: "Complex") -> float:
        return self.real * other.imag - self.imag * other.real

    def lerp(self, other: "Complex", alpha: float) -> "Complex":
        return Complex(
            self.real + (other.real - self.real) * alpha,
            self.imag + (other.imag - self.imag) * alpha,
        )

    def sqrt(self) -> "Complex":
        if self.is_infinite:
            return INFINITY
        root = cmath.sqrt(complex(self.real, self.imag))
        return Complex(root.real, root.imag)

    def equals(self, other: "Complex", tolerance: float = EPSILON) -> bool:
        if self.is_infinite or other.is_infinite:
            return self.is_infinite and other.is_infinite
        return close_enough(self.real, other.real, tolerance) and close_enough(
            self.imag, other.imag, tolerance
        )

    def __repr__(self) -> str:
        if self.is_infinite:
            return "Complex(inf)"
        return f"Complex({self.real:.9g}, {self.imag:.9g})"


def _exact_zero(z: Complex) -> bool:
    return z.real == 0 and z.imag == 0


def _coerce(value: Union[Complex, Real]) -> Complex:
    if isinstance(value, Complex):
        return value
    return Complex(float(value), 0.0)


ZERO = Complex(0.0, 0.0)
ONE = Complex(1.0, 0.0)
I = Complex(0.0, 1.0)
INFINITY = Complex(math.inf, math.inf)


def solve_quadratic(a: Complex, b: Complex, c: Complex) -> List[Complex]:
    """Both roots of ``a z^2 + b z + c``, repeated when the discriminant vanishes."""
    if _exact_zero(a):
        raise IndeterminateError("Quadratic with zero leading coefficient")
    root = (b * b - 4 * a * c).sqrt()
    two_a = a * 2
    return [(-b + root) / two_a, (-b - root) / two_a]


__all__ = [
    "Complex",
    "EPSILON",
    "I",
    "INFINITY",
    "ONE",
    "TAU",
    "ZERO",
    "close_enough",
    "fix_time",
    "normalize_angle",
    "solve_quadratic",
]
