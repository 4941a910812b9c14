import io
import struct

import pytest

from pomme3d.geometry import ColorRGBA, Param2D, Point3D, Vector3D
from pomme3d.metafile import MetaFileError, MetaFileParser, load_3dmf, parse_3dmf
from pomme3d.qd3d import Endian, PixelType, ShaderUVBoundary, TexturingMode
from pomme3d.streams import EndOfStreamError

TRI = [(0, 1, 2)]
PTS = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)]


def chunk(tag, payload=b""):
    return tag.encode("latin-1") + struct.pack(">I", len(payload)) + payload


def header(toc_offset=0, major=1, minor=6, flags=0):
    return b"3DMF" + struct.pack(">IHHIQ", 16, major, minor, flags, toc_offset)


def tmsh(triangles=TRI, points=PTS, low=(0.0, 0.0, 0.0), high=(1.0, 1.0, 0.0), empty=0, edges=0):
    n = len(points)
    fmt = "B" if n <= 0xFF else "H" if n <= 0xFFFF else "I"
    payload = struct.pack(">6I", len(triangles), 0, edges, 0, n, 0)
    for t in triangles:
        payload += struct.pack(">3" + fmt, *t)
    for p in points:
        payload += struct.pack(">3f", *p)
    payload += struct.pack(">6fI", *low, *high, empty)
    return chunk("tmsh", payload)


def atar(attr_type, position, values, pia=0):
    payload = struct.pack(">5I", attr_type, 0, position, pia, 0)
    payload += struct.pack(f">{len(values)}f", *values)
    return chunk("atar", payload)


def txpm(width, height, row_bytes, pixel_type, image, byte_order=0):
    pixel_size = 16 if pixel_type in (2, 3) else 32
    payload = struct.pack(">7I", width, height, row_bytes, pixel_size, pixel_type, 0, byte_order)
    padded = image + b"\x00" * ((-len(image)) % 4)
    return chunk("txpm", payload + padded)


def native_words(data, size):
    order = Endian(Endian.NATIVE).byteorder
    return [int.from_bytes(data[i:i + size], order) for i in range(0, len(data), size)]


def test_single_mesh_goes_into_implicit_group():
    meta = parse_3dmf(header() + tmsh())
    assert len(meta.meshes) == 1
    assert len(meta.top_level_groups) == 1
    mesh = meta.meshes[0]
    assert meta.top_level_groups[0].meshes == [mesh]
    assert mesh.triangles == TRI
    assert mesh.points == [Point3D(*p) for p in PTS]
    assert mesh.bbox.min == Point3D(0.0, 0.0, 0.0)
    assert mesh.bbox.max == Point3D(1.0, 1.0, 0.0)
    assert mesh.bbox.is_empty is False
    assert mesh.texturing_mode == TexturingMode.OFF
    assert mesh.internal_texture_id == -1


def test_version_five_is_accepted():
    meta = parse_3dmf(header(minor=5) + tmsh())
    assert len(meta.meshes) == 1


def test_bbox_empty_flag():
    meta = parse_3dmf(header() + tmsh(empty=1))
    assert meta.meshes[0].bbox.is_empty is True


def test_containers_at_depth_one_make_groups():
    inner1 = chunk("cntr", tmsh())
    inner2 = chunk("cntr", tmsh() + chunk("attr"))
    meta = parse_3dmf(header() + chunk("cntr", inner1 + inner2))
    assert len(meta.meshes) == 2
    assert len(meta.top_level_groups) == 2
    assert [g.meshes for g in meta.top_level_groups] == [[meta.meshes[0]], [meta.meshes[1]]]


def test_begin_end_group():
    data = header() + chunk("bgng") + tmsh() + chunk("endg") + tmsh()
    meta = parse_3dmf(data)
    assert len(meta.meshes) == 2
    assert meta.meshes[0] is not meta.meshes[1]


def test_diffuse_and_transparency_colors():
    data = (header() + tmsh()
            + chunk("kdif", struct.pack(">3f", 0.5, 0.25, 1.0))
            + chunk("kxpr", struct.pack(">3f", 0.5, 0.5, 0.5)))
    mesh = parse_3dmf(data).meshes[0]
    assert mesh.diffuse_color == ColorRGBA(0.5, 0.25, 1.0, 0.5)


def test_unequal_transparency_is_rejected():
    data = header() + tmsh() + chunk("kxpr", struct.pack(">3f", 0.5, 0.25, 0.5))
    with pytest.raises(MetaFileError):
        parse_3dmf(data)


def test_stray_diffuse_color():
    with pytest.raises(MetaFileError):
        parse_3dmf(header() + chunk("kdif", struct.pack(">3f", 1.0, 1.0, 1.0)))


def test_vertex_uvs_are_flipped_vertically():
    uvs = [0.25, 0.25, 1.0, 0.0, 0.0, 1.0]
    mesh = parse_3dmf(header() + tmsh() + atar(2, 2, uvs)).meshes[0]
    assert mesh.vertex_uvs == [Param2D(0.25, 0.75), Param2D(1.0, 1.0), Param2D(0.0, 0.0)]


def test_vertex_normals_and_colors():
    normals = [0.0, 1.0, 0.0] * 3
    colors = [1.0, 0.5, 0.25] * 3
    data = header() + tmsh() + atar(3, 2, normals) + atar(5, 2, colors)
    mesh = parse_3dmf(data).meshes[0]
    assert mesh.vertex_normals == [Vector3D(0.0, 1.0, 0.0)] * 3
    assert mesh.has_vertex_normals
    assert mesh.vertex_colors == [ColorRGBA(1.0, 0.5, 0.25, 1.0)] * 3
    assert mesh.has_vertex_colors


def test_face_normals_are_skipped():
    data = header() + tmsh() + atar(3, 0, [0.0, 0.0, 1.0]) + chunk("attr")
    mesh = parse_3dmf(data).meshes[0]
    assert mesh.vertex_normals is None


def test_duplicate_vertex_normals_rejected():
    normals = [0.0, 1.0, 0.0] * 3
    with pytest.raises(MetaFileError):
        parse_3dmf(header() + tmsh() + atar(3, 2, normals) + atar(3, 2, normals))


def test_unsupported_attribute_combo():
    with pytest.raises(MetaFileError):
        parse_3dmf(header() + tmsh() + atar(5, 0, [1.0, 1.0, 1.0]))


def test_texture_is_attached_and_byteswapped():
    image = bytes([0x00, 0x11, 0x22, 0x33, 0x00, 0x44, 0x55, 0x66])
    data = header() + tmsh() + chunk("txsu") + txpm(2, 1, 8, PixelType.RGB32, image)
    meta = parse_3dmf(data)
    mesh = meta.meshes[0]
    assert mesh.internal_texture_id == 0
    assert mesh.texturing_mode == TexturingMode.INVALID
    assert len(meta.textures) == 1
    pixmap = meta.textures[0].pixmap
    assert pixmap.byte_order == Endian.NATIVE
    assert pixmap.width == 2 and pixmap.height == 1
    assert pixmap.pixel_size == 32
    assert native_words(pixmap.image, 4) == [0x00112233, 0x00445566]


def test_row_padding_is_trimmed():
    image = bytes([0, 0, 0, 1, 9, 9, 9, 9, 0, 0, 0, 2, 9, 9, 9, 9])
    data = header() + chunk("txsu") + txpm(1, 2, 8, PixelType.RGB32, image)
    pixmap = parse_3dmf(data).textures[0].pixmap
    assert pixmap.row_bytes == 4
    assert native_words(pixmap.image, 4) == [1, 2]


def test_odd_sized_image_padding_keeps_stream_aligned():
    image = struct.pack(">H", 0x7C00)
    data = header() + chunk("txsu") + txpm(1, 1, 2, PixelType.RGB16, image) + tmsh()
    meta = parse_3dmf(data)
    assert len(meta.meshes) == 1
    assert native_words(meta.textures[0].pixmap.image, 2) == [0x7C00]


def test_argb16_edge_padding_fills_blank_pixels():
    image = struct.pack(">HH", 0xFC00, 0)
    data = header() + chunk("txsu") + txpm(2, 1, 4, PixelType.ARGB16, image)
    pixmap = parse_3dmf(data).textures[0].pixmap
    assert native_words(pixmap.image, 2) == [0xFC00, 0xFC00 & ~0x8000]


def test_second_pixmap_for_same_shader_is_skipped():
    first = bytes([0, 0, 0, 1])
    second = bytes([0, 0, 0, 2])
    data = (header() + chunk("txsu")
            + txpm(1, 1, 4, PixelType.RGB32, first)
            + txpm(1, 1, 4, PixelType.RGB32, second))
    pixmap = parse_3dmf(data).textures[0].pixmap
    assert native_words(pixmap.image, 4) == [1]


def test_texture_without_shader():
    with pytest.raises(MetaFileError):
        parse_3dmf(header() + txpm(1, 1, 4, PixelType.RGB32, bytes(4)))


def test_unknown_pixel_type():
    data = header() + chunk("txsu") + txpm(1, 1, 4, PixelType.RGBA32, bytes(4))
    with pytest.raises(MetaFileError):
        parse_3dmf(data)


def test_uv_boundaries():
    data = header() + chunk("txsu") + chunk("shdr", struct.pack(">II", 1, 0))
    shader = parse_3dmf(data).textures[0]
    assert shader.boundary_u == ShaderUVBoundary.CLAMP
    assert shader.boundary_v == ShaderUVBoundary.WRAP
    assert shader.pixmap is None


def test_reference_to_unknown_entry():
    with pytest.raises(MetaFileError):
        parse_3dmf(header() + chunk("rfrn", struct.pack(">I", 7)))


def test_zero_chunk_stops_parsing():
    data = header() + tmsh() + b"\x00" * 8 + b"junk data"
    meta = parse_3dmf(data)
    assert len(meta.meshes) == 1


def test_sixteen_bit_indices():
    points = [(float(i), 0.0, 0.0) for i in range(256)]
    mesh = parse_3dmf(header() + tmsh(triangles=[(0, 255, 128)], points=points)).meshes[0]
    assert mesh.triangles == [(0, 255, 128)]
    assert mesh.num_points == 256


@pytest.mark.parametrize(
    "data",
    [
        b"3DMX" + header()[4:],
        header(major=2),
        header(minor=4),
        header(flags=1),
        header() + chunk("zzzz"),
        header() + tmsh(edges=1),
        header() + tmsh(triangles=[(0, 1, 3)]),
        header() + chunk("endg", b"\x00"),
    ],
)
def test_malformed_files_raise(data):
    with pytest.raises(MetaFileError):
        parse_3dmf(data)


def test_truncated_file_raises_end_of_stream():
    data = header() + tmsh()
    with pytest.raises(EndOfStreamError):
        parse_3dmf(data[:-5])


def test_parser_on_file_object():
    parser = MetaFileParser(io.BytesIO(header() + tmsh()))
    meta = parser.parse()
    assert meta is parser.metafile
    assert meta.meshes[0].triangles == TRI


def test_load_from_path(tmp_path):
    path = tmp_path / "model.3dmf"
    path.write_bytes(header() + tmsh())
    meta = load_3dmf(path)
    assert meta.meshes[0].points == [Point3D(*p) for p in PTS]


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_3dmf(tmp_path / "missing.3dmf")