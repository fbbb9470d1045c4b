"""Immutable 2D vector algebra.

``Vector2.cross`` is complex multiplication: ``a.cross(b)`` rotates ``a`` by the
angle of ``b`` and scales it by ``|b|``. The matcher composes rotation and
scale with it instead of building matrices.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Tuple

from .errors import DegenerateGeometryError

TAU = 2.0 * math.pi


@dataclass(frozen=True)
class Vector2:
    x: float = 0.0
    y: float = 0.0

    @staticmethod
    def polar_unit(rad: float) -> "Vector2":
        return Vector2(math.cos(rad), math.sin(rad))

    @staticmethod
    def polar(rad: float, mag: float) -> "Vector2":
        return Vector2.polar_unit(rad).scale(mag)

    @staticmethod
    def from_iterable(xy: Iterable[float]) -> "Vector2":
        x, y = xy
        return Vector2(float(x), float(y))

    def zip(self, rhs: "Vector2", fn: Callable[[float, float], float]) -> "Vector2":
        return Vector2(fn(self.x, rhs.x), fn(self.y, rhs.y))

    def map(self, fn: Callable[[float], float]) -> "Vector2":
        return Vector2(fn(self.x), fn(self.y))

    def add(self, rhs: "Vector2") -> "Vector2":
        return Vector2(self.x + rhs.x, self.y + rhs.y)

    def sub(self, rhs: "Vector2") -> "Vector2":
        return Vector2(self.x - rhs.x, self.y - rhs.y)

    def mul(self, rhs: "Vector2") -> "Vector2":
        return Vector2(self.x * rhs.x, self.y * rhs.y)

    def div(self, rhs: "Vector2") -> "Vector2":
        return Vector2(self.x / rhs.x, self.y / rhs.y)

    def cross(self, rhs: "Vector2") -> "Vector2":
        a, b = self, rhs
        return Vector2(
            a.x * b.x - a.y * b.y,
            a.x * b.y + a.y * b.x,
        )

    def cross_around(self, origin: "Vector2", rhs: "Vector2") -> "Vector2":
        return self.sub(origin).cross(rhs).add(origin)

    def rotated(self, rad: float) -> "Vector2":
        return self.cross(Vector2.polar_unit(rad))

    def rotated_around(self, origin: "Vector2", rad: float) -> "Vector2":
        return self.cross_around(origin, Vector2.polar_unit(rad))

    def scale(self, scalar: float) -> "Vector2":
        return Vector2(self.x * scalar, self.y * scalar)

    def neg(self) -> "Vector2":
        return Vector2(-self.x, -self.y)

    def neg_argument(self) -> "Vector2":
        """Same magnitude, negated angle (the complex conjugate)."""
        return Vector2(self.x, -self.y)

    def normalized(self) -> "Vector2":
        length = self.length()
        if length == 0.0:
            raise DegenerateGeometryError("Cannot normalize a zero-length vector")
        return Vector2(self.x / length, self.y / length)

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def angle(self) -> float:
        return math.atan2(self.y, self.x)

    def distance_to_squared(self, other: "Vector2") -> float:
        return other.sub(self).length_squared()

    def distance_to(self, other: "Vector2") -> float:
        return other.sub(self).length()

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y

    def __add__(self, rhs: "Vector2") -> "Vector2":
        return self.add(rhs)

    def __sub__(self, rhs: "Vector2") -> "Vector2":
        return self.sub(rhs)

    def __mul__(self, scalar: float) -> "Vector2":
        return self.scale(scalar)

    __rmul__ = __mul__

    def __neg__(self) -> "Vector2":
        return self.neg()


def in_range(lo: float, val: float, hi: float) -> bool:
    return lo <= val <= hi


def signed_mod(a: float, n: float) -> float:
    """Modulo whose result takes the sign of ``n``."""
    return a - math.floor(a / n) * n


def wrap_angle_rad(a: float) -> float:
    return signed_mod(a, TAU)


def angle_diff(a: float, b: float) -> float:
    return min(wrap_angle_rad(a - b), wrap_angle_rad(b - a))


def lerp(a: float, b: float, coef: float) -> float:
    return a + (b - a) * coef


__all__ = [
    "TAU",
    "Vector2",
    "angle_diff",
    "in_range",
    "lerp",
    "signed_mod",
    "wrap_angle_rad",
]
