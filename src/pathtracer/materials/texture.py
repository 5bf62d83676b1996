"""2D textures and cube maps.

A Texture is an immutable grid of float4 (RGBA) pixels with row 0 at the
top. ``sample`` applies an address mode to the texture coordinates first,
then a filter:

- WRAP keeps the fractional part (negative values wrap around), CLAMP
  limits coordinates to [0, 1].
- POINT picks the nearest pixel by truncation, BILINEAR blends the four
  surrounding pixels, wrapping around at the last row and column.

Procedural checkerboards are generated with a Taichi kernel, so Taichi
must be initialized before calling ``Texture.checkerboard``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.texture import AddressMode, Texture
    >>> checker = Texture.checkerboard(64, 64, cells=8)
    >>> checker.sample((1.25, -0.25), address_mode=AddressMode.WRAP)
"""

import logging
import math
from collections.abc import Sequence
from enum import Enum
from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti
from PIL import Image as PILImage

from pathtracer.core.ray import Vec3Like, as_vec3
from pathtracer.errors import TextureLoadError

logger = logging.getLogger(__name__)

# Exponent used to bring 8-bit sRGB images back to linear values
GAMMA = 2.2


class AddressMode(Enum):
    """How texture coordinates outside [0, 1] are handled."""

    WRAP = 0
    CLAMP = 1


class TextureFilter(Enum):
    """How a pixel value is reconstructed from the grid."""

    POINT = 0
    BILINEAR = 1


def apply_address_mode(coordinate: float, mode: AddressMode) -> float:
    """Map a single texture coordinate into [0, 1]."""
    if mode is AddressMode.CLAMP:
        return min(max(coordinate, 0.0), 1.0)
    wrapped = coordinate - math.trunc(coordinate)
    if wrapped < 0.0:
        wrapped += 1.0
    return wrapped


@ti.kernel
def _fill_checkerboard(
    out: ti.types.ndarray(dtype=ti.f32, ndim=3),
    colors: ti.types.ndarray(dtype=ti.f32, ndim=2),
    cells: ti.i32,
):
    """Write a cells x cells checker pattern into an (H, W, 4) array."""
    height = out.shape[0]
    width = out.shape[1]
    for y, x in ti.ndrange(height, width):
        cell_x = x * cells // width
        cell_y = y * cells // height
        parity = (cell_x + cell_y) % 2
        for c in ti.static(range(4)):
            out[y, x, c] = colors[parity, c]


def _as_rgba(color: Sequence[float]) -> tuple[float, float, float, float]:
    values = tuple(float(c) for c in color)
    if len(values) == 3:
        return values + (1.0,)  # type: ignore[return-value]
    if len(values) == 4:
        return values  # type: ignore[return-value]
    raise ValueError(f"Color must have 3 or 4 components, got {len(values)}")


class Texture:
    """An immutable RGBA float texture.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
        pixels: Read-only float32 array of shape (height, width, 4).
    """

    def __init__(self, pixels: npt.ArrayLike) -> None:
        array = np.array(pixels, dtype=np.float32)
        if array.ndim == 2:
            array = np.repeat(array[:, :, None], 3, axis=2)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise TextureLoadError(
                f"Texture data must have shape (H, W, 3) or (H, W, 4), got {array.shape}"
            )
        if array.shape[0] == 0 or array.shape[1] == 0:
            raise TextureLoadError("Texture must be at least 1x1 pixels")
        if array.shape[2] == 3:
            alpha = np.ones(array.shape[:2] + (1,), dtype=np.float32)
            array = np.concatenate((array, alpha), axis=2)

        array.setflags(write=False)
        self._pixels = array

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_array(cls, pixels: npt.ArrayLike) -> "Texture":
        """Create a texture from an (H, W, 3) or (H, W, 4) array of floats."""
        return cls(pixels)

    @classmethod
    def from_file(cls, path: str | Path, gamma_uncorrect: bool = True) -> "Texture":
        """Load an image file with Pillow.

        Args:
            path: Path to any image format Pillow can read.
            gamma_uncorrect: If True, RGB values are raised to the power 2.2
                so the texture holds linear values.

        Returns:
            The loaded Texture.

        Raises:
            TextureLoadError: If the file is missing or cannot be decoded.
        """
        path = Path(path)
        try:
            with PILImage.open(path) as image:
                rgba = np.asarray(image.convert("RGBA"), dtype=np.float32) / 255.0
        except OSError as e:
            raise TextureLoadError(f"Cannot load texture {path}: {e}") from e

        if gamma_uncorrect:
            rgba[:, :, :3] = np.power(rgba[:, :, :3], GAMMA)
        logger.info("Loaded texture %s (%dx%d)", path.name, rgba.shape[1], rgba.shape[0])
        return cls(rgba)

    @classmethod
    def solid(cls, color: Sequence[float]) -> "Texture":
        """Create a 1x1 texture of a single color."""
        return cls(np.array([[_as_rgba(color)]], dtype=np.float32))

    @classmethod
    def checkerboard(
        cls,
        width: int = 256,
        height: int = 256,
        cells: int = 8,
        color_a: Sequence[float] = (1.0, 1.0, 1.0),
        color_b: Sequence[float] = (0.0, 0.0, 0.0),
    ) -> "Texture":
        """Generate a checkerboard pattern.

        Args:
            width: Texture width in pixels.
            height: Texture height in pixels.
            cells: Number of cells along each side.
            color_a: Color of the top-left cell (RGB or RGBA).
            color_b: Color of the alternate cells.

        Returns:
            The generated Texture.

        Raises:
            ValueError: If a size or the cell count is not positive.
        """
        if width <= 0 or height <= 0 or cells <= 0:
            raise ValueError(
                f"Checkerboard needs positive sizes, got {width}x{height} with {cells} cells"
            )
        colors = np.array((_as_rgba(color_a), _as_rgba(color_b)), dtype=np.float32)
        out = np.zeros((height, width, 4), dtype=np.float32)
        _fill_checkerboard(out, colors, cells)
        return cls(out)

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    @property
    def width(self) -> int:
        return int(self._pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self._pixels.shape[0])

    @property
    def pixels(self) -> npt.NDArray[np.float32]:
        return self._pixels

    def pixel(self, x: int, y: int) -> npt.NDArray[np.float32]:
        """Return the RGBA value at column x, row y."""
        return self._pixels[y, x]

    def sample(
        self,
        uv: Sequence[float] | np.ndarray,
        address_mode: AddressMode = AddressMode.WRAP,
        filter: TextureFilter = TextureFilter.POINT,
    ) -> npt.NDArray[np.float32]:
        """Sample the texture at a coordinate.

        Args:
            uv: Texture coordinate (u, v); (0, 0) is the top-left corner.
            address_mode: Handling of coordinates outside [0, 1].
            filter: Point or bilinear reconstruction.

        Returns:
            RGBA value as a float32 array of shape (4,).
        """
        u = apply_address_mode(float(uv[0]), address_mode)
        v = apply_address_mode(float(uv[1]), address_mode)

        fx = u * (self.width - 1)
        fy = v * (self.height - 1)

        if filter is TextureFilter.POINT:
            return self._pixels[int(fy), int(fx)]

        x0 = int(math.floor(fx))
        y0 = int(math.floor(fy))
        tx = fx - x0
        ty = fy - y0
        x1 = (x0 + 1) % self.width
        y1 = (y0 + 1) % self.height

        top = self._pixels[y0, x0] * (1.0 - tx) + self._pixels[y0, x1] * tx
        bottom = self._pixels[y1, x0] * (1.0 - tx) + self._pixels[y1, x1] * tx
        return (top * (1.0 - ty) + bottom * ty).astype(np.float32)

    def __repr__(self) -> str:
        return f"Texture(width={self.width}, height={self.height})"


# =============================================================================
# Cube Maps
# =============================================================================


class CubeFace(Enum):
    """Cube map faces, in storage order."""

    POSITIVE_X = 0
    NEGATIVE_X = 1
    POSITIVE_Y = 2
    NEGATIVE_Y = 3
    POSITIVE_Z = 4
    NEGATIVE_Z = 5


def cube_face_uv(direction: Vec3Like) -> tuple[CubeFace, float, float]:
    """Select the cube face hit by a direction and its face-local coordinate.

    The axis with the largest magnitude picks the face (ties favor X, then
    Y). The other two components are divided by that magnitude and mapped
    from [-1, 1] to [0, 1] using the usual cube map table:

        +X: (-z, -y)   -X: (+z, -y)
        +Y: (+x, +z)   -Y: (+x, -z)
        +Z: (+x, -y)   -Z: (-x, -y)

    Returns:
        Tuple (face, u, v).
    """
    x, y, z = (float(c) for c in as_vec3(direction))
    ax, ay, az = abs(x), abs(y), abs(z)

    if ax >= ay and ax >= az:
        major = ax
        if x >= 0.0:
            face, sc, tc = CubeFace.POSITIVE_X, -z, -y
        else:
            face, sc, tc = CubeFace.NEGATIVE_X, z, -y
    elif ay >= az:
        major = ay
        if y >= 0.0:
            face, sc, tc = CubeFace.POSITIVE_Y, x, z
        else:
            face, sc, tc = CubeFace.NEGATIVE_Y, x, -z
    else:
        major = az
        if z >= 0.0:
            face, sc, tc = CubeFace.POSITIVE_Z, x, -y
        else:
            face, sc, tc = CubeFace.NEGATIVE_Z, -x, -y

    if major == 0.0:
        return face, 0.5, 0.5
    scale = 0.5 / major
    return face, sc * scale + 0.5, tc * scale + 0.5


class CubeMap:
    """Six textures forming the faces of a cube, sampled by direction.

    Attributes:
        faces: Textures ordered +X, -X, +Y, -Y, +Z, -Z.
        filter: Filter used when sampling a face.
    """

    def __init__(
        self,
        faces: Sequence[Texture],
        filter: TextureFilter = TextureFilter.BILINEAR,
    ) -> None:
        if len(faces) != 6:
            raise TextureLoadError(f"A cube map needs 6 faces, got {len(faces)}")
        self.faces = tuple(faces)
        self.filter = filter

    @classmethod
    def from_files(cls, paths: Sequence[str | Path], gamma_uncorrect: bool = True) -> "CubeMap":
        """Load six face images ordered +X, -X, +Y, -Y, +Z, -Z."""
        if len(paths) != 6:
            raise TextureLoadError(f"A cube map needs 6 face images, got {len(paths)}")
        return cls([Texture.from_file(path, gamma_uncorrect) for path in paths])

    def sample(self, direction: Vec3Like) -> npt.NDArray[np.float32]:
        """Sample the face a direction points at (clamped addressing)."""
        face, u, v = cube_face_uv(direction)
        return self.faces[face.value].sample((u, v), AddressMode.CLAMP, self.filter)
