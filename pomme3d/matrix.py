"""3x3 and 4x4 matrices acting on row vectors."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .geometry import Point2D, Point3D, RationalPoint3D, Vector2D, Vector3D

__all__ = ["SingularMatrixError", "Matrix3x3", "Matrix4x4", "transform_points"]

Rows = tuple[tuple[float, ...], ...]


class SingularMatrixError(ValueError):
    """Raised when a matrix has no inverse."""


def _identity_rows(n: int) -> Rows:
    return tuple(tuple(1.0 if r == c else 0.0 for c in range(n)) for r in range(n))


def _coerce(values: Sequence[Sequence[float]], n: int) -> Rows:
    rows = tuple(tuple(float(v) for v in row) for row in values)
    if len(rows) != n or any(len(row) != n for row in rows):
        raise ValueError(f"expected a {n}x{n} matrix")
    return rows


def _invert(values: Rows) -> Rows:
    """Gauss-Jordan elimination with full pivoting."""
    n = len(values)
    a = [list(row) for row in values]
    pivoted = [False] * n
    row_swaps: list[tuple[int, int]] = []

    for _ in range(n):
        big = -1.0
        irow = icol = 0
        for i in range(n):
            if pivoted[i]:
                continue
            for j in range(n):
                if pivoted[j]:
                    continue
                element = abs(a[i][j])
                if element > big:
                    big, irow, icol = element, i, j

        # NaN entries leave big at -1 as well.
        if big <= 0.0:
            raise SingularMatrixError(f"{n}x{n} matrix is not invertible")

        pivoted[icol] = True
        row_swaps.append((irow, icol))

        if irow != icol:
            a[irow], a[icol] = a[icol], a[irow]

        pivot = a[icol][icol]
        a[icol][icol] = 1.0
        a[icol] = [x / pivot for x in a[icol]]

        for i in range(n):
            if i == icol:
                continue
            factor = a[i][icol]
            a[i][icol] = 0.0
            a[i] = [x - p * factor for x, p in zip(a[i], a[icol])]

    for irow, icol in reversed(row_swaps):
        if irow != icol:
            for row in a:
                row[irow], row[icol] = row[icol], row[irow]

    return tuple(tuple(row) for row in a)


@dataclass(frozen=True)
class Matrix3x3:
    """A 3x3 matrix; ``values[row][col]``."""

    values: Rows = field(default_factory=lambda: _identity_rows(3))

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _coerce(self.values, 3))

    def __getitem__(self, index: tuple[int, int]) -> float:
        row, col = index
        return self.values[row][col]

    @classmethod
    def identity(cls) -> Matrix3x3:
        return cls(_identity_rows(3))

    @classmethod
    def translate(cls, x: float, y: float) -> Matrix3x3:
        return cls(((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (x, y, 1.0)))

    @classmethod
    def rotate_about_point(cls, origin: Point2D, angle: float) -> Matrix3x3:
        c, s = math.cos(angle), math.sin(angle)
        dx, dy = origin.x, origin.y
        return cls((
            (c, s, 0.0),
            (-s, c, 0.0),
            (dx - dx * c + dy * s, dy - dx * s - dy * c, 1.0),
        ))

    def transform_rational(self, point: RationalPoint3D) -> RationalPoint3D:
        m = self.values
        x, y, w = point.x, point.y, point.w
        return RationalPoint3D(
            x * m[0][0] + y * m[1][0] + w * m[2][0],
            x * m[0][1] + y * m[1][1] + w * m[2][1],
            x * m[0][2] + y * m[1][2] + w * m[2][2],
        )

    def transform_vector2d(self, vector: Vector2D) -> Vector2D:
        """Apply the upper-left 2x2 part; translation is ignored."""
        m = self.values
        x, y = vector.x, vector.y
        return Vector2D(x * m[0][0] + y * m[1][0], x * m[0][1] + y * m[1][1])

    def inverted(self) -> Matrix3x3:
        return Matrix3x3(_invert(self.values))


@dataclass(frozen=True)
class Matrix4x4:
    """A 4x4 matrix; ``values[row][col]``, translation in row 3."""

    values: Rows = field(default_factory=lambda: _identity_rows(4))

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _coerce(self.values, 4))

    def __getitem__(self, index: tuple[int, int]) -> float:
        row, col = index
        return self.values[row][col]

    def __matmul__(self, other: Matrix4x4) -> Matrix4x4:
        return self.multiply(other)

    @property
    def is_affine(self) -> bool:
        """True when the last column is (0, 0, 0, 1)."""
        m = self.values
        return m[3][3] == 1.0 and m[0][3] == 0.0 and m[1][3] == 0.0 and m[2][3] == 0.0

    @classmethod
    def identity(cls) -> Matrix4x4:
        return cls(_identity_rows(4))

    @classmethod
    def scale(cls, x: float, y: float, z: float) -> Matrix4x4:
        return cls(((x, 0.0, 0.0, 0.0), (0.0, y, 0.0, 0.0), (0.0, 0.0, z, 0.0), (0.0, 0.0, 0.0, 1.0)))

    @classmethod
    def translate(cls, x: float, y: float, z: float) -> Matrix4x4:
        return cls(((1.0, 0.0, 0.0, 0.0), (0.0, 1.0, 0.0, 0.0), (0.0, 0.0, 1.0, 0.0), (x, y, z, 1.0)))

    @classmethod
    def rotate_x(cls, angle: float) -> Matrix4x4:
        c, s = math.cos(angle), math.sin(angle)
        return cls(((1.0, 0.0, 0.0, 0.0), (0.0, c, s, 0.0), (0.0, -s, c, 0.0), (0.0, 0.0, 0.0, 1.0)))

    @classmethod
    def rotate_y(cls, angle: float) -> Matrix4x4:
        c, s = math.cos(angle), math.sin(angle)
        return cls(((c, 0.0, -s, 0.0), (0.0, 1.0, 0.0, 0.0), (s, 0.0, c, 0.0), (0.0, 0.0, 0.0, 1.0)))

    @classmethod
    def rotate_z(cls, angle: float) -> Matrix4x4:
        c, s = math.cos(angle), math.sin(angle)
        return cls(((c, s, 0.0, 0.0), (-s, c, 0.0, 0.0), (0.0, 0.0, 1.0, 0.0), (0.0, 0.0, 0.0, 1.0)))

    @staticmethod
    def _rotation_rows(x_angle: float, y_angle: float, z_angle: float) -> list[list[float]]:
        cx, sx = math.cos(x_angle), math.sin(x_angle)
        cy, sy = math.cos(y_angle), math.sin(y_angle)
        cz, sz = math.cos(z_angle), math.sin(z_angle)
        sxsy = sx * sy
        cxsy = cx * sy
        return [
            [cy * cz, cy * sz, -sy, 0.0],
            [sxsy * cz - cx * sz, sxsy * sz + cx * cz, sx * cy, 0.0],
            [cxsy * cz + sx * sz, cxsy * sz - sx * cz, cx * cy, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]

    @classmethod
    def rotate_xyz(cls, x_angle: float, y_angle: float, z_angle: float) -> Matrix4x4:
        """Rotate about X, then Y, then Z."""
        return cls(cls._rotation_rows(x_angle, y_angle, z_angle))

    @classmethod
    def rotate_about_point(
        cls, origin: Point3D, x_angle: float, y_angle: float, z_angle: float
    ) -> Matrix4x4:
        """Rotate about axes through ``origin`` parallel to X, Y and Z, in that order."""
        m = cls._rotation_rows(x_angle, y_angle, z_angle)
        dx, dy, dz = origin.x, origin.y, origin.z
        m[3] = [
            dx - dx * m[0][0] - dy * m[1][0] - dz * m[2][0],
            dy - dx * m[0][1] - dy * m[1][1] - dz * m[2][1],
            dz - dx * m[0][2] - dy * m[1][2] - dz * m[2][2],
            1.0,
        ]
        return cls(m)

    def multiply(self, other: Matrix4x4) -> Matrix4x4:
        """The product ``self * other``."""
        a, b = self.values, other.values
        columns = tuple(zip(*b))
        return Matrix4x4(tuple(
            tuple(sum(x * y for x, y in zip(row, col)) for col in columns) for row in a
        ))

    def transposed(self) -> Matrix4x4:
        return Matrix4x4(tuple(zip(*self.values)))

    def inverted(self) -> Matrix4x4:
        """The inverse; raises :class:`SingularMatrixError` if there is none."""
        if not self.is_affine:
            return Matrix4x4(_invert(self.values))

        # inverse of [[A, 0], [v, 1]] is [[inv(A), 0], [-v*inv(A), 1]]
        m = self.values
        upper_left = Matrix3x3(tuple(row[:3] for row in m[:3]))
        inverse = upper_left.inverted()
        v = inverse.transform_rational(RationalPoint3D(m[3][0], m[3][1], m[3][2]))
        rows = [list(row) + [0.0] for row in inverse.values]
        rows.append([-v.x, -v.y, -v.w, 1.0])
        return Matrix4x4(rows)

    def transform_point(self, point: Point3D) -> Point3D:
        """Full projective transform, dividing by the resulting w."""
        m = self.values
        x, y, z = point.x, point.y, point.z
        rx = x * m[0][0] + y * m[1][0] + z * m[2][0] + m[3][0]
        ry = x * m[0][1] + y * m[1][1] + z * m[2][1] + m[3][1]
        rz = x * m[0][2] + y * m[1][2] + z * m[2][2] + m[3][2]
        w = x * m[0][3] + y * m[1][3] + z * m[2][3] + m[3][3]
        if w == 0.0:
            w = 1.0
        if w != 1.0:
            inv = 1.0 / w
            rx, ry, rz = rx * inv, ry * inv, rz * inv
        return Point3D(rx, ry, rz)

    def transform_point_affine(self, point: Point3D) -> Point3D:
        """Transform ignoring the last column."""
        m = self.values
        x, y, z = point.x, point.y, point.z
        return Point3D(
            x * m[0][0] + y * m[1][0] + z * m[2][0] + m[3][0],
            x * m[0][1] + y * m[1][1] + z * m[2][1] + m[3][1],
            x * m[0][2] + y * m[1][2] + z * m[2][2] + m[3][2],
        )

    def transform_vector(self, vector: Vector3D) -> Vector3D:
        """Apply the upper-left 3x3 part; translation is ignored."""
        m = self.values
        x, y, z = vector.x, vector.y, vector.z
        return Vector3D(
            x * m[0][0] + y * m[1][0] + z * m[2][0],
            x * m[0][1] + y * m[1][1] + z * m[2][1],
            x * m[0][2] + y * m[1][2] + z * m[2][2],
        )


def transform_points(points: Iterable[Point3D], matrix: Matrix4x4) -> list[Point3D]:
    """Transform every point, skipping the w division for affine matrices."""
    transform = matrix.transform_point_affine if matrix.is_affine else matrix.transform_point
    return [transform(p) for p in points]