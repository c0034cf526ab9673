"""Pixel buffer transforms for LiveMatte."""

from .transform import (
    resize_crop_to_fill,
    copy_buffer,
    merge_alpha,
    composite_over,
    channels,
    to_display_image,
    buffer_from_image,
    fill_solid,
)

__all__ = [
    "resize_crop_to_fill",
    "copy_buffer",
    "merge_alpha",
    "composite_over",
    "channels",
    "to_display_image",
    "buffer_from_image",
    "fill_solid",
]
