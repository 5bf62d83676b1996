"""Taichi-backed accumulation buffer for the render driver.

Each pixel holds a running RGB sum with the number of contributions in the
fourth channel. Whenever a row is accumulated, the display buffer for that
row is refreshed with the gamma-corrected average, so a progressive render
is viewable after every scanline.

The fields belong to one Framebuffer instance and are only written from the
thread that drives the render. They live in their own SNode tree, which
``destroy`` releases when the buffer is replaced. Taichi must be
initialized first.

Display values are not clamped: emitters brighter than 1.0 stay above 1.0
after gamma correction, and conversion to 8 bits clamps them.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> fb = Framebuffer(4, 2)
    >>> fb.accumulate_rows(0, 1, np.ones((4, 3), dtype=np.float32))
    >>> fb.display_image().shape
    (2, 4, 4)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti

# Display gamma (linear-to-sRGB approximation)
GAMMA = 2.2


@ti.kernel
def _clear_fields(accum: ti.template(), display: ti.template()):
    """Zero the accumulation and display buffers."""
    for y, x in accum:
        accum[y, x] = ti.Vector([0.0, 0.0, 0.0, 0.0])
        display[y, x] = ti.Vector([0.0, 0.0, 0.0, 0.0])


@ti.kernel
def _accumulate_rows(
    accum: ti.template(),
    display: ti.template(),
    colors: ti.types.ndarray(dtype=ti.f32, ndim=2),
    row_start: ti.i32,
    row_count: ti.i32,
    inv_gamma: ti.f32,
):
    """Add one color row to ``row_count`` image rows and refresh display.

    Non-finite and negative colors are treated as black.
    """
    for dy, x in ti.ndrange(row_count, colors.shape[0]):
        y = row_start + dy
        total = accum[y, x]
        for c in ti.static(range(3)):
            value = colors[x, c]
            if ti.math.isnan(value) or ti.math.isinf(value) or value < 0.0:
                value = 0.0
            total[c] += value
        total[3] += 1.0
        accum[y, x] = total

        shown = ti.Vector([0.0, 0.0, 0.0, 1.0])
        for c in ti.static(range(3)):
            shown[c] = ti.pow(total[c] / total[3], inv_gamma)
        display[y, x] = shown


@ti.kernel
def _read_row(display: ti.template(), out: ti.types.ndarray(dtype=ti.f32, ndim=2), y: ti.i32):
    """Copy one display row into an (W, 4) array."""
    for x in range(out.shape[0]):
        for c in ti.static(range(4)):
            out[x, c] = display[y, x][c]


class Framebuffer:
    """Per-render accumulation and display buffers.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Framebuffer size must be positive, got {width}x{height}")
        self._width = width
        self._height = height
        self._accum = ti.Vector.field(4, dtype=ti.f32)
        self._display = ti.Vector.field(4, dtype=ti.f32)
        builder = ti.FieldsBuilder()
        builder.dense(ti.ij, (height, width)).place(self._accum, self._display)
        self._tree = builder.finalize()
        self.clear()

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def destroyed(self) -> bool:
        return self._tree is None

    def destroy(self) -> None:
        """Release the Taichi memory behind the fields. Safe to call twice."""
        if self._tree is not None:
            self._tree.destroy()
            self._tree = None

    def _require_alive(self) -> None:
        if self._tree is None:
            raise RuntimeError("Framebuffer has been destroyed")

    def clear(self) -> None:
        self._require_alive()
        _clear_fields(self._accum, self._display)

    def accumulate_rows(
        self,
        row_start: int,
        row_count: int,
        colors: npt.NDArray[np.floating],
    ) -> None:
        """Add a row of linear colors to a band of image rows.

        Args:
            row_start: First image row to update.
            row_count: Number of rows receiving the same colors.
            colors: Linear RGB values, shape (width, 3).

        Raises:
            ValueError: If the rows fall outside the image or the color row
                has the wrong shape.
        """
        self._require_alive()
        if row_start < 0 or row_count <= 0 or row_start + row_count > self._height:
            raise ValueError(
                f"Rows {row_start}..{row_start + row_count - 1} outside image of height {self._height}"
            )
        row = np.ascontiguousarray(colors, dtype=np.float32)
        if row.shape != (self._width, 3):
            raise ValueError(f"Expected color row of shape ({self._width}, 3), got {row.shape}")
        _accumulate_rows(self._accum, self._display, row, row_start, row_count, 1.0 / GAMMA)

    def sample_counts(self) -> npt.NDArray[np.float32]:
        """Number of contributions per pixel, shape (height, width)."""
        self._require_alive()
        return self._accum.to_numpy()[:, :, 3]

    def linear_image(self) -> npt.NDArray[np.float32]:
        """Averaged linear RGB image, shape (height, width, 3)."""
        self._require_alive()
        accum = self._accum.to_numpy()
        counts = np.maximum(accum[:, :, 3:4], 1.0)
        return (accum[:, :, :3] / counts).astype(np.float32)

    def display_image(self) -> npt.NDArray[np.float32]:
        """Gamma-corrected RGBA image, shape (height, width, 4)."""
        self._require_alive()
        return self._display.to_numpy()

    def row(self, y: int) -> npt.NDArray[np.float32]:
        """One gamma-corrected RGBA row, shape (width, 4)."""
        self._require_alive()
        if not 0 <= y < self._height:
            raise IndexError(f"Row {y} outside image of height {self._height}")
        out = np.zeros((self._width, 4), dtype=np.float32)
        _read_row(self._display, out, y)
        return out
