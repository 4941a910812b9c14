"""Reading triangle meshes and textures from 3DMF model files."""

from __future__ import annotations

import dataclasses
import os
from typing import BinaryIO, Callable, NamedTuple, Optional, Union

from .fourcc import fourcc, fourcc_string
from .geometry import BoundingBox, ColorRGBA, Param2D, Point3D, Vector3D
from .qd3d import (
    ATTRIBUTE_TYPE_COUNT,
    AttributeType,
    Endian,
    MetaFile,
    PixelType,
    Pixmap,
    ShaderUVBoundary,
    TextureShader,
    TexturingMode,
    TriMeshData,
    TriMeshFlatGroup,
    new_trimesh,
)
from .streams import BigEndianReader

__all__ = ["MetaFileError", "MetaFileParser", "parse_3dmf", "load_3dmf"]

_MAGIC = fourcc("3DMF")
_CNTR = fourcc("cntr")
_BGNG = fourcc("bgng")
_ENDG = fourcc("endg")
_TMSH = fourcc("tmsh")
_ATAR = fourcc("atar")
_ATTR = fourcc("attr")
_KDIF = fourcc("kdif")
_KXPR = fourcc("kxpr")
_TXSU = fourcc("txsu")
_TXMM = fourcc("txmm")
_TXPM = fourcc("txpm")
_SHDR = fourcc("shdr")
_RFRN = fourcc("rfrn")
_TOC = fourcc("toc ")

_TRIANGLE_ATTRIBUTE = 0
_VERTEX_ATTRIBUTE = 2


class MetaFileError(ValueError):
    """Raised when a 3DMF file is malformed or uses unsupported features."""


class _EarlyEOF(Exception):
    """A zero chunk type: the rest of the file is not parsed."""


class _TocEntry(NamedTuple):
    offset: int
    chunk_type: int


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise MetaFileError(message)


def _byteswap(data: bytes, width: int) -> bytearray:
    swapped = bytearray(len(data))
    for k in range(width):
        swapped[k::width] = data[width - 1 - k::width]
    return swapped


class MetaFileParser:
    """Parses one 3DMF stream into a :class:`MetaFile`.

    Truncated input raises :class:`~pomme3d.streams.EndOfStreamError`;
    other problems raise :class:`MetaFileError`.
    """

    def __init__(self, stream: Union[BinaryIO, bytes, bytearray]) -> None:
        self._f = BigEndianReader(stream)
        self.metafile = MetaFile()
        self._depth = 0
        self._mesh: Optional[TriMeshData] = None
        self._toc: dict[int, _TocEntry] = {}
        self._known_textures: dict[int, int] = {}
        self._handlers: dict[int, Callable[[int, int], None]] = {
            _CNTR: self._parse_container,
            _BGNG: self._parse_begin_group,
            _ENDG: self._parse_end_group,
            _TMSH: self._parse_trimesh_chunk,
            _ATAR: self._parse_attribute_array,
            _ATTR: self._parse_attribute_set,
            _KDIF: self._parse_diffuse_color,
            _KXPR: self._parse_transparency_color,
            _TXSU: self._parse_texture_shader,
            _TXMM: self._parse_texture,
            _TXPM: self._parse_texture,
            _SHDR: self._parse_uv_boundary,
            _RFRN: self._parse_reference,
            _TOC: self._skip_toc,
        }
        self._chunk_type = 0

    def parse(self) -> MetaFile:
        """Read the whole stream and return what it holds."""
        f = self._f
        file_length = f.length()
        f.seek(0)

        _check(f.read_u32() == _MAGIC, "Not a 3DMF file")
        _check(f.read_u32() == 16, "Bad header length")
        major = f.read_u16()
        minor = f.read_u16()
        _check(major == 1 and minor in (5, 6), "Unsupported 3DMF version")
        _check(f.read_u32() == 0, "Database or Stream aren't supported")
        toc_offset = f.read_u64()

        if toc_offset:
            self._read_toc(toc_offset)

        try:
            while f.tell() < file_length:
                self._parse_chunk()
        except _EarlyEOF:
            pass

        return self.metafile

    def _read_toc(self, toc_offset: int) -> None:
        f = self._f
        resume_at = f.tell()
        f.seek(toc_offset)

        _check(f.read_u32() == _TOC, "Expecting toc magic here")
        f.skip(4)   # toc size
        f.skip(8)   # next toc
        f.skip(4)   # ref seed
        f.skip(4)   # type seed
        entry_type = f.read_u32()
        entry_size = f.read_u32()
        count = f.read_u32()
        _check(entry_type == 1, "only QD3D 1.5 3DMF TOCs are recognized")
        _check(entry_size == 16, "incorrect tocEntrySize")

        for _ in range(count):
            ref_id = f.read_u32()
            location = f.read_u64()
            object_type = f.read_u32()
            self._toc[ref_id] = _TocEntry(location, object_type)

        f.seek(resume_at)

    def _parse_chunk(self) -> int:
        _check(self._depth >= 0, "depth underflow")
        f = self._f
        offset = f.tell()
        chunk_type = f.read_u32()
        size = f.read_u32()

        if chunk_type == 0:
            raise _EarlyEOF()

        handler = self._handlers.get(chunk_type)
        if handler is None:
            raise MetaFileError(f"unrecognized 3DMF chunk '{fourcc_string(chunk_type)}'")
        self._chunk_type = chunk_type
        handler(offset, size)
        return chunk_type

    def _open_group_if_top_level(self) -> None:
        if self._depth == 1:
            self.metafile.top_level_groups.append(TriMeshFlatGroup())

    def _parse_container(self, offset: int, size: int) -> None:
        self._open_group_if_top_level()
        self._depth += 1
        limit = self._f.tell() + size
        while self._f.tell() < limit:
            self._parse_chunk()
        _check(self._f.tell() == limit, "chunk overruns its container")
        self._depth -= 1
        self._mesh = None

    def _parse_begin_group(self, offset: int, size: int) -> None:
        self._open_group_if_top_level()
        self._depth += 1
        self._f.skip(size)
        while self._parse_chunk() != _ENDG:
            pass
        self._depth -= 1
        self._mesh = None

    def _parse_end_group(self, offset: int, size: int) -> None:
        _check(size == 0, "illegal endg size")

    def _parse_attribute_set(self, offset: int, size: int) -> None:
        _check(size == 0, "illegal attr size")

    def _parse_trimesh_chunk(self, offset: int, size: int) -> None:
        _check(self._mesh is None, "nested meshes not supported")
        mesh = self._parse_trimesh(size)
        groups = self.metafile.top_level_groups
        if not groups:
            groups.append(TriMeshFlatGroup())
        groups[-1].meshes.append(mesh)

    def _parse_trimesh(self, size: int) -> TriMeshData:
        _check(size >= 52, "Illegal tmsh size")
        f = self._f

        num_triangles = f.read_u32()
        f.skip(4)   # triangle attribute count; attributes are read as they come
        num_edges = f.read_u32()
        num_edge_attributes = f.read_u32()
        num_vertices = f.read_u32()
        f.skip(4)   # vertex attribute count
        _check(num_edges == 0, "edges are not supported")
        _check(num_edge_attributes == 0, "edge attributes are not supported")

        mesh = new_trimesh(num_triangles, num_vertices, 0)
        self._mesh = mesh
        self.metafile.meshes.append(mesh)

        if num_vertices <= 0xFF:
            read_index = f.read_u8
        elif num_vertices <= 0xFFFF:
            read_index = f.read_u16
        else:
            read_index = f.read_u32

        triangles = [(read_index(), read_index(), read_index()) for _ in range(num_triangles)]
        for triangle in triangles:
            for index in triangle:
                _check(index < num_vertices, "3DMF parser: vertex index out of range")
        mesh.triangles = triangles

        mesh.points = [Point3D(f.read_f32(), f.read_f32(), f.read_f32()) for _ in range(num_vertices)]

        low = Point3D(f.read_f32(), f.read_f32(), f.read_f32())
        high = Point3D(f.read_f32(), f.read_f32(), f.read_f32())
        empty = f.read_u32() != 0
        mesh.bbox = BoundingBox(low, high, empty)
        return mesh

    def _parse_attribute_array(self, offset: int, size: int) -> None:
        _check(size >= 20, "Illegal atar size")
        mesh = self._mesh
        _check(mesh is not None, "no current mesh")
        f = self._f

        attribute_type = f.read_u32()
        _check(f.read_u32() == 0, "expected zero here")
        position_of_array = f.read_u32()
        position_in_array = f.read_u32()
        use_flag = f.read_u32()

        _check(1 <= attribute_type < ATTRIBUTE_TYPE_COUNT, "illegal attribute type")
        _check(position_of_array <= 2, "illegal position of array")
        _check(use_flag <= 1, "unrecognized attribute use flag")

        per_triangle = position_of_array == _TRIANGLE_ATTRIBUTE
        per_vertex = position_of_array == _VERTEX_ATTRIBUTE
        _check(per_triangle or per_vertex, "only face or vertex attributes are supported")

        count = mesh.num_points
        if per_vertex and attribute_type in (AttributeType.SHADING_UV, AttributeType.SURFACE_UV):
            _check(mesh.vertex_uvs is None, "current mesh already had a vertex UV array")
            uvs = []
            for _ in range(count):
                u = f.read_f32()
                v = f.read_f32()
                uvs.append(Param2D(u, 1.0 - v))
            mesh.vertex_uvs = uvs
        elif per_vertex and attribute_type == AttributeType.NORMAL:
            _check(position_in_array == 0, "PIA must be 0 for normals")
            _check(mesh.vertex_normals is None, "current mesh already had a vertex normal array")
            mesh.vertex_normals = [
                Vector3D(f.read_f32(), f.read_f32(), f.read_f32()) for _ in range(count)
            ]
        elif per_vertex and attribute_type == AttributeType.DIFFUSE_COLOR:
            _check(mesh.vertex_colors is None, "current mesh already had a vertex color array")
            mesh.vertex_colors = [
                ColorRGBA(f.read_f32(), f.read_f32(), f.read_f32(), 1.0) for _ in range(count)
            ]
        elif per_triangle and attribute_type == AttributeType.NORMAL:
            f.skip(mesh.num_triangles * 3 * 4)   # face normals are not kept
        else:
            raise MetaFileError("unsupported combo")

    def _parse_diffuse_color(self, offset: int, size: int) -> None:
        _check(size == 12, "illegal kdif size")
        mesh = self._mesh
        _check(mesh is not None, "stray kdif")
        f = self._f
        r, g, b = f.read_f32(), f.read_f32(), f.read_f32()
        mesh.diffuse_color = ColorRGBA(r, g, b, mesh.diffuse_color.a)

    def _parse_transparency_color(self, offset: int, size: int) -> None:
        _check(size == 12, "illegal kxpr size")
        mesh = self._mesh
        _check(mesh is not None, "stray kxpr")
        f = self._f
        r, g, b = f.read_f32(), f.read_f32(), f.read_f32()
        _check(r == g == b, "kxpr: expecting all components to be equal")
        mesh.diffuse_color = dataclasses.replace(mesh.diffuse_color, a=r)

    def _parse_texture_shader(self, offset: int, size: int) -> None:
        _check(size == 0, "illegal txsu size")
        texture_id = self._known_textures.get(offset)
        if texture_id is None:
            # First sighting; a reference may bring us back to this offset later.
            texture_id = len(self.metafile.textures)
            self.metafile.textures.append(TextureShader())
            self._known_textures[offset] = texture_id

        mesh = self._mesh
        if mesh is not None:
            _check(mesh.internal_texture_id < 0, "txmm: current mesh already has a texture")
            _check(mesh.texturing_mode == TexturingMode.OFF,
                   "txmm: current mesh already has a texturing mode")
            mesh.internal_texture_id = texture_id
            # Whether the texture is opaque is not known yet.
            mesh.texturing_mode = TexturingMode.INVALID

    def _current_texture_shader(self) -> TextureShader:
        _check(bool(self.metafile.textures), "txmm/txpm: no txsu opened")
        return self.metafile.textures[-1]

    def _parse_texture(self, offset: int, size: int) -> None:
        shader = self._current_texture_shader()
        if shader.pixmap is not None:
            self._f.skip(size)
        else:
            shader.pixmap = self._parse_pixmap(self._chunk_type, size)

    def _parse_pixmap(self, chunk_type: int, size: int) -> Pixmap:
        f = self._f
        header_size = 8 * 4 if chunk_type == _TXMM else 7 * 4
        _check(size >= header_size, "incorrect chunk header size")

        if chunk_type == _TXMM:
            use_mipmapping = f.read_u32()
            pixel_type = f.read_u32()
            bit_order = f.read_u32()
            byte_order = f.read_u32()
            width = f.read_u32()
            height = f.read_u32()
            row_bytes = f.read_u32()
            image_offset = f.read_u32()
            _check(not use_mipmapping, "mipmapping not supported")
            _check(image_offset == 0, "unsupported texture offset")
        else:
            width = f.read_u32()
            height = f.read_u32()
            row_bytes = f.read_u32()
            f.skip(4)   # pixel size; derived from the pixel type instead
            pixel_type = f.read_u32()
            bit_order = f.read_u32()
            byte_order = f.read_u32()

        image_size = (row_bytes * height + 3) & ~3
        _check(size == header_size + image_size, "incorrect chunk size")
        _check(bit_order == Endian.BIG, "unsupported bit order")

        if pixel_type in (PixelType.RGB16, PixelType.ARGB16):
            bytes_per_pixel = 2
        elif pixel_type in (PixelType.RGB32, PixelType.ARGB32):
            bytes_per_pixel = 4
        else:
            raise MetaFileError("unrecognized pixel type")

        trimmed_row_bytes = bytes_per_pixel * width
        _check(row_bytes >= trimmed_row_bytes, "row bytes shorter than a row of pixels")

        image = bytearray()
        for _ in range(height):
            image += f.read_bytes(trimmed_row_bytes)
            f.skip(row_bytes - trimmed_row_bytes)
        f.skip(image_size - row_bytes * height)

        if byte_order != Endian.NATIVE:
            image = _byteswap(image, bytes_per_pixel)
            byte_order = Endian.NATIVE

        pixmap = Pixmap(
            image=image,
            width=width,
            height=height,
            row_bytes=trimmed_row_bytes,
            pixel_size=bytes_per_pixel * 8,
            pixel_type=pixel_type,
            bit_order=bit_order,
            byte_order=byte_order,
        )
        pixmap.apply_edge_padding()
        return pixmap

    def _parse_uv_boundary(self, offset: int, size: int) -> None:
        _check(size == 8, "illegal shdr size")
        shader = self._current_texture_shader()
        f = self._f
        values = f.read_u32(), f.read_u32()
        try:
            shader.boundary_u, shader.boundary_v = (ShaderUVBoundary(v) for v in values)
        except ValueError:
            raise MetaFileError(f"unknown UV boundary mode in {values}") from None

    def _parse_reference(self, offset: int, size: int) -> None:
        _check(size == 4, "illegal rfrn size")
        f = self._f
        target = f.read_u32()
        entry = self._toc.get(target)
        if entry is None:
            raise MetaFileError(f"reference to unknown TOC entry {target}")
        resume_at = f.tell()
        f.seek(entry.offset)
        self._parse_chunk()
        f.seek(resume_at)

    def _skip_toc(self, offset: int, size: int) -> None:
        # Already read through the header's TOC offset.
        self._f.skip(size)


def parse_3dmf(stream: Union[BinaryIO, bytes, bytearray]) -> MetaFile:
    """Parse 3DMF data from a seekable binary stream or a bytes object."""
    return MetaFileParser(stream).parse()


def load_3dmf(path: Union[str, os.PathLike]) -> MetaFile:
    """Read and parse the 3DMF file at ``path``."""
    with open(path, "rb") as handle:
        return parse_3dmf(handle)