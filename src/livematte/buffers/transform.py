"""Byte-level transforms on :class:`PixelBuffer`.

Every function here is pure: it never touches its inputs and returns a
freshly allocated buffer (except for the documented fast path of
:func:`resize_crop_to_fill`).
"""

from typing import Optional

import cv2
import numpy as np

from livematte.core import (
    AllocationError,
    FormatMismatchError,
    PixelBuffer,
    PixelFormat,
    RGBColor,
    aligned_stride,
    allocate_plane,
)


# ============================================================================
# Geometry
# ============================================================================

def resize_crop_to_fill(
    buffer: PixelBuffer,
    target_width: int,
    target_height: int,
) -> PixelBuffer:
    """Scale uniformly until the target is covered, then keep the top-left
    ``target_width x target_height`` region.

    When the buffer already has the target size it is returned as is, with
    no allocation.

    Raises:
        AllocationError: if the destination buffer cannot be created.
    """
    if target_width <= 0 or target_height <= 0:
        raise AllocationError(f"Invalid target size {target_width}x{target_height}")
    if buffer.width == target_width and buffer.height == target_height:
        return buffer

    scale = max(target_width / buffer.width, target_height / buffer.height)
    scaled_w = max(target_width, int(round(buffer.width * scale)))
    scaled_h = max(target_height, int(round(buffer.height * scale)))
    interpolation = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LINEAR

    try:
        scaled = cv2.resize(
            np.array(buffer.pixels()),  # writable, contiguous copy
            (scaled_w, scaled_h),
            interpolation=interpolation,
        )
    except cv2.error as e:
        raise AllocationError(f"Resize to {scaled_w}x{scaled_h} failed: {e}") from e

    cropped = scaled[:target_height, :target_width]
    return PixelBuffer.from_array(
        cropped, buffer.pixel_format, attributes=buffer.attributes
    )


# ============================================================================
# Copy
# ============================================================================

def copy_buffer(buffer: PixelBuffer, stride: Optional[int] = None) -> PixelBuffer:
    """Independent duplicate of ``buffer``.

    Each plane is copied row by row, ``min(src_stride, dst_stride)`` bytes
    per row, so source and destination strides may differ.

    Args:
        buffer: Buffer to copy.
        stride: Destination bytes per row (default: 64-byte aligned).
    """
    dst_stride = stride if stride is not None else aligned_stride(
        buffer.width, buffer.pixel_format
    )
    if dst_stride < buffer.row_bytes:
        raise FormatMismatchError(
            f"Stride {dst_stride} cannot hold {buffer.row_bytes} bytes per row"
        )

    planes = []
    for src in buffer.planes:
        dst = allocate_plane(src.shape[0], dst_stride)
        length = min(src.shape[1], dst_stride)
        dst[:, :length] = src[:, :length]
        planes.append(dst)

    return PixelBuffer(
        width=buffer.width,
        height=buffer.height,
        pixel_format=buffer.pixel_format,
        planes=tuple(planes),
        attributes=buffer.attributes,
    )


# ============================================================================
# Alpha compositing
# ============================================================================

def _check_matte(color_buffer: PixelBuffer, alpha_buffer: PixelBuffer) -> int:
    """Validate a color/alpha pair and return the color alpha byte offset."""
    if alpha_buffer.pixel_format != PixelFormat.ONE_COMPONENT_8:
        raise FormatMismatchError(
            f"Alpha buffer must be ONE_COMPONENT_8, got {alpha_buffer.pixel_format.name}"
        )
    if alpha_buffer.size != color_buffer.size:
        raise FormatMismatchError(
            f"Alpha buffer is {alpha_buffer.width}x{alpha_buffer.height}, "
            f"color buffer is {color_buffer.width}x{color_buffer.height}"
        )
    offset = color_buffer.pixel_format.alpha_offset
    if offset is None or color_buffer.plane_count != 0:
        raise FormatMismatchError(
            f"Color buffer must be a packed 32-bit format, got "
            f"{color_buffer.pixel_format.name}"
        )
    return offset


def _blend(foreground: np.ndarray, alpha: np.ndarray, background: np.ndarray) -> np.ndarray:
    """``round((a * fg + (255 - a) * bg) / 255)`` on uint8 samples."""
    fg = foreground.astype(np.uint16)
    a = alpha.astype(np.uint16)[..., None]
    bg = background.astype(np.uint16)
    out = (fg * a + bg * (255 - a) + 127) // 255
    return out.astype(np.uint8)


def merge_alpha(
    color_buffer: PixelBuffer,
    alpha_buffer: PixelBuffer,
    background_color: RGBColor,
) -> PixelBuffer:
    """Composite ``color_buffer`` over a solid color using a separate matte.

    Each color channel becomes ``round((a * fg + (255 - a) * bg) / 255)``
    where ``a`` is the matte sample and ``bg`` the matching channel of
    ``background_color`` (RGB, 0-255). The alpha byte of the result holds
    the matte sample itself.

    Raises:
        FormatMismatchError: if the matte is not ONE_COMPONENT_8, the sizes
            differ, or the color buffer has no alpha byte.
        AllocationError: if the output buffer cannot be created.
    """
    offset = _check_matte(color_buffer, alpha_buffer)
    fmt = color_buffer.pixel_format

    bg = np.zeros(4, dtype=np.uint8)
    for channel, value in zip("RGB", background_color):
        bg[fmt.channel_index(channel)] = value

    matte = alpha_buffer.pixels()
    out = _blend(color_buffer.pixels(), matte, bg)
    out[..., offset] = matte
    return PixelBuffer.from_array(out, fmt, attributes=color_buffer.attributes)


def composite_over(
    foreground: PixelBuffer,
    alpha_buffer: PixelBuffer,
    background: PixelBuffer,
) -> PixelBuffer:
    """Composite ``foreground`` over a background image using a matte.

    Same blend as :func:`merge_alpha`, but ``bg`` is taken per pixel from
    ``background``. The result is opaque and uses the foreground's format.
    """
    offset = _check_matte(foreground, alpha_buffer)
    if background.size != foreground.size:
        raise FormatMismatchError(
            f"Background is {background.width}x{background.height}, "
            f"foreground is {foreground.width}x{foreground.height}"
        )
    fmt = foreground.pixel_format
    bg = channels(background, fmt.value)
    out = _blend(foreground.pixels(), alpha_buffer.pixels(), bg)
    out[..., offset] = 255
    return PixelBuffer.from_array(out, fmt, attributes=foreground.attributes)


# ============================================================================
# Conversion
# ============================================================================

def channels(buffer: PixelBuffer, order: str = "BGR") -> np.ndarray:
    """Dense ``(H, W, len(order))`` array with channels in ``order``.

    A missing alpha channel reads as 255. Single-component buffers are
    replicated into every color channel.
    """
    px = buffer.pixels()
    h, w = buffer.height, buffer.width
    out = np.empty((h, w, len(order)), dtype=np.uint8)
    for i, channel in enumerate(order):
        if buffer.bytes_per_pixel == 1:
            out[..., i] = 255 if channel == "A" else px
        else:
            out[..., i] = px[..., buffer.pixel_format.channel_index(channel)]
    return out


def to_display_image(buffer: PixelBuffer) -> np.ndarray:
    """BGR ``uint8`` image for OpenCV display."""
    return channels(buffer, "BGR")


def buffer_from_image(
    image: np.ndarray,
    channel_order: str = "BGR",
    pixel_format: PixelFormat = PixelFormat.BGRA,
    attributes: Optional[dict] = None,
) -> PixelBuffer:
    """Wrap a decoded image (OpenCV, Pillow, mss) into a packed buffer.

    Args:
        image: ``(H, W, C)`` uint8 array, or ``(H, W)`` grayscale.
        channel_order: Channel order of ``image``, e.g. ``"BGR"``,
            ``"RGB"``, ``"BGRA"``.
        pixel_format: Packed format of the new buffer.
        attributes: Metadata to attach.
    """
    if image.dtype != np.uint8:
        raise FormatMismatchError(f"Expected uint8 image, got {image.dtype}")
    if image.ndim == 2:
        image = image[..., None]
        channel_order = "L"
    if image.ndim != 3 or image.shape[2] != len(channel_order):
        raise FormatMismatchError(
            f"Image of shape {image.shape} does not match channel order {channel_order!r}"
        )

    if not pixel_format.is_packed and channel_order != "L":
        raise FormatMismatchError("Single-component buffers need a grayscale image")

    h, w = image.shape[:2]
    out = np.empty((h, w, pixel_format.bytes_per_pixel), dtype=np.uint8)
    for i, channel in enumerate(pixel_format.value):
        if channel in channel_order:
            out[..., i] = image[..., channel_order.index(channel)]
        elif channel_order == "L" and channel != "A":
            out[..., i] = image[..., 0]
        else:
            out[..., i] = 255
    return PixelBuffer.from_array(out, pixel_format, attributes=attributes)


def fill_solid(
    width: int,
    height: int,
    color: RGBColor,
    pixel_format: PixelFormat = PixelFormat.BGRA,
) -> PixelBuffer:
    """Opaque buffer filled with one RGB color."""
    if not pixel_format.is_packed:
        raise FormatMismatchError(f"Cannot fill {pixel_format.name} with a color")
    if width <= 0 or height <= 0:
        raise AllocationError(f"Invalid fill size {width}x{height}")
    value = dict(zip("RGB", color), A=255)
    pixel = np.array([value[c] for c in pixel_format.value], dtype=np.uint8)
    image = np.broadcast_to(pixel, (height, width, pixel_format.bytes_per_pixel))
    return PixelBuffer.from_array(
        image, pixel_format, attributes={"fill": tuple(color)}
    )
