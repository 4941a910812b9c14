"""Points, vectors, colours and bounding boxes for 3D models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable

__all__ = [
    "REAL_ZERO",
    "MAX_FLOAT",
    "MIN_FLOAT",
    "PI",
    "TWO_PI",
    "PI_OVER_2",
    "THREE_PI_OVER_2",
    "Param2D",
    "Point2D",
    "Vector2D",
    "Point3D",
    "Vector3D",
    "RationalPoint3D",
    "ColorRGB",
    "ColorRGBA",
    "BoundingBox",
    "degrees_to_radians",
    "radians_to_degrees",
]

REAL_ZERO = 1.1920928955078125e-07
MAX_FLOAT = 3.4028234663852886e38
MIN_FLOAT = 1.1754943508222875e-38

PI = 3.1415926535898
TWO_PI = 2.0 * 3.1415926535898
PI_OVER_2 = 3.1415926535898 / 2.0
THREE_PI_OVER_2 = 3.0 * 3.1415926535898 / 2.0


def degrees_to_radians(degrees: float) -> float:
    """Convert an angle in degrees to radians."""
    return degrees * PI / 180.0


def radians_to_degrees(radians: float) -> float:
    """Convert an angle in radians to degrees."""
    return radians * 180.0 / PI


@dataclass(frozen=True)
class Param2D:
    """A texture coordinate."""

    u: float = 0.0
    v: float = 0.0


@dataclass(frozen=True)
class Vector2D:
    x: float = 0.0
    y: float = 0.0

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def scale(self, factor: float) -> Vector2D:
        return Vector2D(self.x * factor, self.y * factor)

    def normalize(self) -> Vector2D:
        """Unit vector in the same direction; the zero vector stays zero."""
        return self.scale(1.0 / (self.length() + MIN_FLOAT))

    def cross(self, other: Vector2D) -> float:
        return self.x * other.y - self.y * other.x

    def dot(self, other: Vector2D) -> float:
        return self.x * other.x + self.y * other.y


@dataclass(frozen=True)
class Point2D:
    x: float = 0.0
    y: float = 0.0

    def distance_squared(self, other: Point2D) -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def distance(self, other: Point2D) -> float:
        return math.sqrt(self.distance_squared(other))

    def add(self, other: Point2D) -> Vector2D:
        return Vector2D(self.x + other.x, self.y + other.y)

    def subtract(self, other: Point2D) -> Vector2D:
        return Vector2D(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Vector3D:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def scale(self, factor: float) -> Vector3D:
        return Vector3D(self.x * factor, self.y * factor, self.z * factor)

    def normalize(self) -> Vector3D:
        """Unit vector in the same direction; the zero vector stays zero."""
        return self.scale(1.0 / (self.length() + MIN_FLOAT))

    def cross(self, other: Vector3D) -> Vector3D:
        return Vector3D(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def dot(self, other: Vector3D) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z


@dataclass(frozen=True)
class Point3D:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def distance_squared(self, other: Point3D) -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return dx * dx + dy * dy + dz * dz

    def distance(self, other: Point3D) -> float:
        return math.sqrt(self.distance_squared(other))

    def add(self, other: Point3D) -> Vector3D:
        return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def subtract(self, other: Point3D) -> Vector3D:
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def cross_product_tri(self, p2: Point3D, p3: Point3D) -> Point3D:
        """Cross product of the edges (self -> p2) and (p2 -> p3)."""
        v1 = p2.subtract(self)
        v2 = p3.subtract(p2)
        c = v1.cross(v2)
        return Point3D(c.x, c.y, c.z)


@dataclass(frozen=True)
class RationalPoint3D:
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0


@dataclass(frozen=True)
class ColorRGB:
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0


@dataclass(frozen=True)
class ColorRGBA:
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 0.0


@dataclass(frozen=True)
class BoundingBox:
    """An axis-aligned box; ``is_empty`` marks a box that holds no points."""

    min: Point3D = field(default_factory=Point3D)
    max: Point3D = field(default_factory=Point3D)
    is_empty: bool = True

    @classmethod
    def from_points(cls, points: Iterable[Point3D]) -> BoundingBox:
        """Smallest box holding every point; empty if there are none."""
        pts = list(points)
        if not pts:
            return cls(is_empty=True)
        xs = [p.x for p in pts]
        ys = [p.y for p in pts]
        zs = [p.z for p in pts]
        return cls(
            Point3D(min(xs), min(ys), min(zs)),
            Point3D(max(xs), max(ys), max(zs)),
            False,
        )