"""Raw pixel buffer type shared by every pipeline stage."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

import numpy as np

from .enums import PixelFormat
from .errors import AllocationError, FormatMismatchError


# Rows are padded to this many bytes, like most capture drivers do.
DEFAULT_ROW_ALIGNMENT = 64


def aligned_stride(
    width: int,
    pixel_format: PixelFormat,
    alignment: int = DEFAULT_ROW_ALIGNMENT,
) -> int:
    """Smallest stride >= ``width * bpp`` that is a multiple of ``alignment``."""
    row_bytes = width * pixel_format.bytes_per_pixel
    return ((row_bytes + alignment - 1) // alignment) * alignment


def allocate_plane(rows: int, stride: int) -> np.ndarray:
    """Allocate a zeroed ``(rows, stride)`` byte plane.

    Raises:
        AllocationError: if the size is invalid or memory is exhausted.
    """
    if rows <= 0 or stride <= 0:
        raise AllocationError(f"Invalid plane size {rows}x{stride}")
    try:
        return np.zeros((rows, stride), dtype=np.uint8)
    except (MemoryError, ValueError) as e:
        raise AllocationError(f"Could not allocate {rows}x{stride} plane: {e}") from e


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """An immutable raw image.

    Storage is a tuple of 2-D ``uint8`` arrays shaped ``(height, stride)``,
    one per physical plane. Every supported format keeps its pixels in a
    single physical plane; :pyattr:`plane_count` reports the *named* planes
    (0 for interleaved 32-bit formats, 1 for single-component formats).

    The buffer keeps read-only views of its storage arrays, so the arrays
    passed in stay writeable for their owner. Transforms never edit a
    buffer in place; they allocate a new one.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
        pixel_format: Byte layout of one pixel.
        planes: Physical storage planes.
        attributes: Free-form metadata propagated to derived buffers.
    """
    width: int
    height: int
    pixel_format: PixelFormat
    planes: Tuple[np.ndarray, ...]
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise FormatMismatchError(
                f"Buffer dimensions must be positive, got {self.width}x{self.height}"
            )
        planes = tuple(self.planes)
        if len(planes) != 1:
            raise FormatMismatchError(
                f"{self.pixel_format.name} expects 1 storage plane, got {len(planes)}"
            )
        row_bytes = self.width * self.pixel_format.bytes_per_pixel
        for plane in planes:
            if plane.dtype != np.uint8 or plane.ndim != 2:
                raise FormatMismatchError("Planes must be 2-D uint8 arrays")
            if plane.shape[0] != self.height:
                raise FormatMismatchError(
                    f"Plane has {plane.shape[0]} rows, expected {self.height}"
                )
            if plane.shape[1] < row_bytes:
                raise FormatMismatchError(
                    f"Stride {plane.shape[1]} is smaller than row size {row_bytes}"
                )
        # Freeze read-only views so the caller's arrays stay writeable
        frozen = []
        for plane in planes:
            view = plane.view()
            view.flags.writeable = False
            frozen.append(view)
        object.__setattr__(self, "planes", tuple(frozen))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_array(
        cls,
        array: np.ndarray,
        pixel_format: PixelFormat,
        stride: Optional[int] = None,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> "PixelBuffer":
        """Copy a dense image array into a new, row-padded buffer.

        Args:
            array: ``(H, W, bpp)`` uint8 array in ``pixel_format`` byte order,
                or ``(H, W)`` for single-component formats.
            pixel_format: Byte layout of ``array``.
            stride: Bytes per row of the new buffer (default: 64-byte aligned).
            attributes: Metadata to attach.
        """
        bpp = pixel_format.bytes_per_pixel
        if array.dtype != np.uint8:
            raise FormatMismatchError(f"Expected uint8 pixels, got {array.dtype}")
        if bpp == 1 and array.ndim == 3 and array.shape[2] == 1:
            array = array[:, :, 0]
        expected_ndim = 2 if bpp == 1 else 3
        if array.ndim != expected_ndim or (bpp > 1 and array.shape[2] != bpp):
            raise FormatMismatchError(
                f"Array of shape {array.shape} does not match {pixel_format.name}"
            )
        height, width = array.shape[:2]
        if stride is None:
            stride = aligned_stride(width, pixel_format)
        if stride < width * bpp:
            raise FormatMismatchError(
                f"Stride {stride} is smaller than row size {width * bpp}"
            )
        plane = allocate_plane(height, stride)
        plane[:, :width * bpp] = array.reshape(height, width * bpp)
        return cls(
            width=width,
            height=height,
            pixel_format=pixel_format,
            planes=(plane,),
            attributes=dict(attributes or {}),
        )

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    def bytes_per_pixel(self) -> int:
        return self.pixel_format.bytes_per_pixel

    @property
    def plane_count(self) -> int:
        return 0 if self.pixel_format.is_packed else 1

    @property
    def stride(self) -> int:
        """Bytes per row of the first plane."""
        return self.planes[0].shape[1]

    @property
    def strides(self) -> Tuple[int, ...]:
        return tuple(p.shape[1] for p in self.planes)

    @property
    def row_bytes(self) -> int:
        """Meaningful bytes per row (without padding)."""
        return self.width * self.bytes_per_pixel

    @property
    def size(self) -> Tuple[int, int]:
        """``(width, height)``."""
        return (self.width, self.height)

    def plane(self, index: int = 0) -> np.ndarray:
        """Read-only ``(rows, stride)`` view of a storage plane."""
        return self.planes[index]

    def pixels(self) -> np.ndarray:
        """Read-only dense view without row padding.

        ``(H, W, bpp)`` for packed formats, ``(H, W)`` for single-component.
        """
        dense = self.planes[0][:, :self.row_bytes]
        if self.bytes_per_pixel == 1:
            return dense
        return dense.reshape(self.height, self.width, self.bytes_per_pixel)

    def same_pixels(self, other: "PixelBuffer") -> bool:
        """True if format, dimensions and pixel bytes match (padding ignored)."""
        return (
            self.pixel_format == other.pixel_format
            and self.size == other.size
            and np.array_equal(self.pixels(), other.pixels())
        )

    def __repr__(self) -> str:
        return (
            f"PixelBuffer({self.width}x{self.height} {self.pixel_format.name} "
            f"stride={self.stride})"
        )
