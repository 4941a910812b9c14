"""Triangle meshes, textures and the model containers read from 3DMF files."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Optional

from .geometry import BoundingBox, ColorRGBA, Param2D, Point3D, Vector3D

__all__ = [
    "ATTRIBUTE_TYPE_COUNT",
    "EDGE_PADDING_REPEAT",
    "TexturingMode",
    "ShaderUVBoundary",
    "AttributeType",
    "PixelType",
    "Endian",
    "TriMeshFeature",
    "Pixmap",
    "TextureShader",
    "TriMeshData",
    "TriMeshFlatGroup",
    "MetaFile",
    "new_trimesh",
]

EDGE_PADDING_REPEAT = 8

Triangle = tuple[int, int, int]


class TexturingMode(IntEnum):
    INVALID = -1
    OFF = 0
    OPAQUE = 1
    ALPHA_TEST = 2
    ALPHA_BLEND = 3


class ShaderUVBoundary(IntEnum):
    WRAP = 0
    CLAMP = 1


class AttributeType(IntEnum):
    NONE = 0
    SURFACE_UV = 1
    SHADING_UV = 2
    NORMAL = 3
    AMBIENT_COEFFICIENT = 4
    DIFFUSE_COLOR = 5
    SPECULAR_COLOR = 6
    SPECULAR_CONTROL = 7
    TRANSPARENCY_COLOR = 8
    SURFACE_TANGENT = 9
    HIGHLIGHT_STATE = 10
    SURFACE_SHADER = 11
    EMISSIVE_COLOR = 12


ATTRIBUTE_TYPE_COUNT = 13


class PixelType(IntEnum):
    RGB32 = 0
    ARGB32 = 1
    RGB16 = 2
    ARGB16 = 3
    RGB16_565 = 4
    RGB24 = 5
    RGBA32 = 6
    UNKNOWN = 200


class Endian(IntEnum):
    BIG = 0
    LITTLE = 1
    NATIVE = 1 if sys.byteorder == "little" else 0

    @property
    def byteorder(self) -> str:
        """The name ``int.from_bytes`` uses for this order."""
        return "big" if self == Endian.BIG else "little"


class TriMeshFeature(IntFlag):
    NONE = 0
    VERTEX_UVS = 1 << 0
    VERTEX_NORMALS = 1 << 1
    VERTEX_COLORS = 1 << 2


# (bytes per pixel, alpha mask as read in the pixmap's own byte order)
_ALPHA_LAYOUTS = {
    PixelType.ARGB16: (2, 0x8000),
    PixelType.ARGB32: (4, 0xFF000000),
    PixelType.RGBA32: (4, 0x000000FF),
}

_OPAQUE_TYPES = frozenset(
    {PixelType.RGB16, PixelType.RGB16_565, PixelType.RGB24, PixelType.RGB32}
)


@dataclass
class Pixmap:
    """A raw texture image with its row layout."""

    image: bytearray
    width: int
    height: int
    row_bytes: int
    pixel_size: int
    pixel_type: int
    bit_order: int = Endian.BIG
    byte_order: int = Endian.BIG

    def apply_edge_padding(self) -> None:
        """Bleed opaque colours into fully blank neighbours, with alpha cleared.

        This keeps texture filtering from pulling black into the edges of
        transparent cut-outs. Pixel types without alpha are left untouched.
        """
        try:
            pixel_type = PixelType(self.pixel_type)
        except ValueError:
            raise ValueError(f"edge padding: unsupported pixel type {self.pixel_type}") from None

        if pixel_type in _OPAQUE_TYPES:
            return
        if pixel_type not in _ALPHA_LAYOUTS:
            raise ValueError(f"edge padding: unsupported pixel type {pixel_type.name}")

        size, alpha_mask = _ALPHA_LAYOUTS[pixel_type]
        if self.row_bytes < self.width * size:
            raise ValueError(f"edge padding {pixel_type.name}: incorrect row bytes")
        if self.row_bytes % size:
            raise ValueError("edge padding: row bytes is not a multiple of the pixel size")

        order = Endian(self.byte_order).byteorder
        width, height = self.width, self.height
        grid = [
            [
                int.from_bytes(self.image[start:start + size], order)
                for start in range(y * self.row_bytes, y * self.row_bytes + width * size, size)
            ]
            for y in range(height)
        ]
        keep = ~alpha_mask

        for _ in range(EDGE_PADDING_REPEAT):
            for row in grid:
                for x in range(width - 1):
                    if not row[x]:
                        row[x] = row[x + 1] & keep
                for x in range(width - 1, 0, -1):
                    if not row[x]:
                        row[x] = row[x - 1] & keep

            for x in range(width):
                for y in range(height - 1):
                    if not grid[y][x]:
                        grid[y][x] = grid[y + 1][x] & keep
                for y in range(height - 1, 0, -1):
                    if not grid[y][x]:
                        grid[y][x] = grid[y - 1][x] & keep

        for y, row in enumerate(grid):
            start = y * self.row_bytes
            self.image[start:start + width * size] = b"".join(
                value.to_bytes(size, order) for value in row
            )


@dataclass
class TextureShader:
    """A texture together with its UV wrapping rules."""

    pixmap: Optional[Pixmap] = None
    boundary_u: ShaderUVBoundary = ShaderUVBoundary.WRAP
    boundary_v: ShaderUVBoundary = ShaderUVBoundary.WRAP


@dataclass
class TriMeshData:
    """An indexed triangle mesh with optional per-vertex attributes."""

    triangles: list[Triangle] = field(default_factory=list)
    points: list[Point3D] = field(default_factory=list)
    vertex_normals: Optional[list[Vector3D]] = None
    vertex_uvs: Optional[list[Param2D]] = None
    vertex_colors: Optional[list[ColorRGBA]] = None
    bbox: BoundingBox = field(default_factory=BoundingBox)
    texturing_mode: TexturingMode = TexturingMode.OFF
    internal_texture_id: int = -1
    gl_texture_name: int = 0
    diffuse_color: ColorRGBA = field(default_factory=lambda: ColorRGBA(1.0, 1.0, 1.0, 1.0))

    @property
    def num_triangles(self) -> int:
        return len(self.triangles)

    @property
    def num_points(self) -> int:
        return len(self.points)

    @property
    def has_vertex_normals(self) -> bool:
        return self.vertex_normals is not None

    @property
    def has_vertex_colors(self) -> bool:
        return self.vertex_colors is not None

    def duplicate(self) -> TriMeshData:
        """An independent copy of the mesh."""

        def copied(items):
            return None if items is None else list(items)

        return TriMeshData(
            triangles=list(self.triangles),
            points=list(self.points),
            vertex_normals=copied(self.vertex_normals),
            vertex_uvs=copied(self.vertex_uvs),
            vertex_colors=copied(self.vertex_colors),
            bbox=self.bbox,
            texturing_mode=self.texturing_mode,
            internal_texture_id=self.internal_texture_id,
            gl_texture_name=self.gl_texture_name,
            diffuse_color=self.diffuse_color,
        )

    def subdivide_triangles(self) -> None:
        """Split every triangle into four through its edge midpoints.

        Each distinct edge gets one new vertex. Normals and UVs are always
        present afterwards (missing ones start out as zeros); colours are
        interpolated only if the mesh has them.
        """
        old_triangles = list(self.triangles)
        old_num_points = len(self.points)

        edges: dict[tuple[int, int], int] = {}
        for triangle in old_triangles:
            for e in range(3):
                a, b = triangle[e], triangle[(e + 1) % 3]
                edges.setdefault((min(a, b), max(a, b)), -1)

        points = list(self.points)
        normals = list(self.vertex_normals) if self.vertex_normals is not None \
            else [Vector3D()] * old_num_points
        uvs = list(self.vertex_uvs) if self.vertex_uvs is not None \
            else [Param2D()] * old_num_points
        colors = list(self.vertex_colors) if self.vertex_colors is not None else None

        for key in sorted(edges):
            a, b = key
            edges[key] = len(points)
            pa, pb = points[a], points[b]
            points.append(Point3D((pa.x + pb.x) / 2, (pa.y + pb.y) / 2, (pa.z + pb.z) / 2))
            na, nb = normals[a], normals[b]
            normals.append(Vector3D((na.x + nb.x) / 2, (na.y + nb.y) / 2, (na.z + nb.z) / 2))
            ua, ub = uvs[a], uvs[b]
            uvs.append(Param2D((ua.u + ub.u) / 2, (ua.v + ub.v) / 2))
            if colors is not None:
                ca, cb = colors[a], colors[b]
                colors.append(ColorRGBA(
                    (ca.r + cb.r) / 2, (ca.g + cb.g) / 2, (ca.b + cb.b) / 2, (ca.a + cb.a) / 2,
                ))

        def midpoint(p: int, q: int) -> int:
            return edges[(min(p, q), max(p, q))]

        replaced: list[Triangle] = []
        added: list[Triangle] = []
        for a, b, c in old_triangles:
            a2b, b2c, c2a = midpoint(a, b), midpoint(b, c), midpoint(c, a)
            added.extend([(a2b, b, b2c), (b2c, c, c2a), (c2a, a, a2b)])
            replaced.append((a2b, b2c, c2a))

        self.triangles = replaced + added
        self.points = points
        self.vertex_normals = normals
        self.vertex_uvs = uvs
        self.vertex_colors = colors

        if len(self.triangles) != 4 * len(old_triangles):
            raise RuntimeError("unexpected number of triangles written")
        if len(self.points) != old_num_points + len(edges):
            raise RuntimeError("unexpected number of points written")


@dataclass
class TriMeshFlatGroup:
    """The meshes of one top-level group in a model file."""

    meshes: list[TriMeshData] = field(default_factory=list)


@dataclass
class MetaFile:
    """Everything read from one 3DMF model file."""

    textures: list[TextureShader] = field(default_factory=list)
    meshes: list[TriMeshData] = field(default_factory=list)
    top_level_groups: list[TriMeshFlatGroup] = field(default_factory=list)


def new_trimesh(num_triangles: int, num_points: int, feature_flags: int = TriMeshFeature.NONE) -> TriMeshData:
    """A mesh with zeroed points and triangles and the requested attributes.

    UVs start at (0.5, 0.5), normals at (0, 1, 0) and colours at opaque white.
    """
    if num_triangles < 0 or num_points < 0:
        raise ValueError("mesh sizes must not be negative")
    flags = TriMeshFeature(feature_flags)
    return TriMeshData(
        triangles=[(0, 0, 0)] * num_triangles,
        points=[Point3D()] * num_points,
        vertex_uvs=[Param2D(0.5, 0.5)] * num_points if TriMeshFeature.VERTEX_UVS in flags else None,
        vertex_normals=[Vector3D(0.0, 1.0, 0.0)] * num_points
        if TriMeshFeature.VERTEX_NORMALS in flags else None,
        vertex_colors=[ColorRGBA(1.0, 1.0, 1.0, 1.0)] * num_points
        if TriMeshFeature.VERTEX_COLORS in flags else None,
        bbox=BoundingBox(Point3D(), Point3D(), True),
    )