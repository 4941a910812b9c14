# pomme3d

Pure-Python readers for QuickDraw 3D metafiles (`.3dmf`) and AIFF/AIFF-C sound files,
together with the small geometry and matrix toolkit that goes with them. The package has
no dependencies outside the standard library.

## Installation

From a checkout of the project:

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `pomme3d.metafile` | `parse_3dmf`, `load_3dmf`, `MetaFileParser`, `MetaFileError` |
| `pomme3d.qd3d` | `TriMeshData`, `Pixmap`, `TextureShader`, `TriMeshFlatGroup`, `MetaFile`, `new_trimesh` and the enums `TexturingMode`, `ShaderUVBoundary`, `AttributeType`, `PixelType`, `Endian`, `TriMeshFeature` |
| `pomme3d.geometry` | `Point2D`, `Vector2D`, `Point3D`, `Vector3D`, `Param2D`, `RationalPoint3D`, `ColorRGB`, `ColorRGBA`, `BoundingBox`, `degrees_to_radians`, `radians_to_degrees` |
| `pomme3d.matrix` | `Matrix3x3`, `Matrix4x4`, `transform_points`, `SingularMatrixError` |
| `pomme3d.aiff` | `read_aiff_info`, `load_aiff`, `SampledSoundInfo`, `AIFFError` |
| `pomme3d.streams` | `BigEndianReader`, `EndOfStreamError` |
| `pomme3d.fourcc` | `fourcc`, `fourcc_string`, `exit_to_shell`, `QuitRequest` |

## Loading a 3DMF model

```python
from pomme3d.metafile import load_3dmf

meta = load_3dmf("Models/Player.3dmf")
for group in meta.top_level_groups:
    for mesh in group.meshes:
        print(mesh.num_triangles, "triangles,", mesh.num_points, "points")
print(len(meta.textures), "textures")
```

`parse_3dmf(stream)` reads from an open, seekable binary stream or a `bytes` object
instead of a path. A `MetaFile` holds every mesh in file order (`meshes`), the same
meshes grouped by top-level container (`top_level_groups`), and the texture shaders
(`textures`); a mesh points at its texture through `internal_texture_id`.

Malformed files, or files using features the reader does not handle (edges, mipmaps,
database or stream 3DMF, unknown chunks), raise `MetaFileError`. Truncated data raises
`EndOfStreamError`. A chunk whose type is zero ends parsing early without an error.

Texture pixmaps (16-bit and 32-bit RGB/ARGB) have their row padding trimmed, are
converted to native byte order, and are edge-padded: fully blank texels take their
neighbours' colour with alpha cleared, which avoids dark fringes when the texture is
filtered. `Pixmap.apply_edge_padding()` can also be called on your own pixmaps.

## Working with meshes

`new_trimesh(num_triangles, num_points, feature_flags)` builds a mesh with zeroed points
and triangles; `TriMeshFeature` flags add vertex UVs (starting at 0.5, 0.5), normals
(0, 1, 0) and colours (opaque white).

`TriMeshData.duplicate()` returns an independent copy. `subdivide_triangles()` splits
every triangle into four, adding one vertex per distinct edge and interpolating points,
normals, UVs and (if present) colours at the midpoints. After subdivision the mesh
always has normals and UVs; missing ones start out as zeros.

## Geometry and matrices

```python
import math
from pomme3d.geometry import Point3D, BoundingBox
from pomme3d.matrix import Matrix4x4, transform_points

m = Matrix4x4.rotate_y(math.pi / 2) @ Matrix4x4.translate(0, 1, 0)
pts = transform_points([Point3D(1, 0, 0), Point3D(0, 0, 1)], m)
box = BoundingBox.from_points(pts)
inverse = m.inverted()
```

Points, vectors and matrices are immutable; operations return new values. Matrices use
the row-vector convention: a point is multiplied on the left, and the translation lives
in the bottom row. `transform_points` skips the division by w when the matrix is
affine. Inverting a singular matrix raises `SingularMatrixError`.

## Reading AIFF sounds

```python
from pomme3d.aiff import read_aiff_info, load_aiff

with open("Audio/Jump.aiff", "rb") as f:
    info, samples = load_aiff(f)
print(info.sample_rate, info.n_channels, info.compression_name, len(samples))
```

`load_aiff` returns the `SampledSoundInfo` together with the raw bytes of the sound
data. `read_aiff_info` returns only the description and leaves the stream at the start
of the sound data. Loop points come from the INST and MARK chunks. Unsupported or
malformed files raise `AIFFError`.

## Four-character codes

`fourcc("tmsh")` packs a four-character code into an integer, and
`fourcc_string(value, "?")` turns one back into a printable, filename-safe string.
`exit_to_shell()` flushes standard output and error and raises `QuitRequest`, for an
application's main loop to catch.

## What this package does not do

- It does not decode compressed sound (MAC3, ima4, µ-law, A-law) or play audio:
  `load_aiff` hands back the bytes as stored, and `decompressed_length` only reports
  how large the decoded sound would be.
- It does not render models or upload textures; meshes and pixmaps are plain data.
- It only reads 3DMF and AIFF files; it does not write them.