"""Rasterizes every background kind into a BackgroundSelection."""

import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from livematte.buffers import buffer_from_image, fill_solid, resize_crop_to_fill
from livematte.core import (
    BackgroundKind,
    BackgroundSelection,
    BackgroundUnavailable,
    PixelBuffer,
    RGBColor,
)
from livematte.utils.config import BackgroundConfig


logger = logging.getLogger(__name__)


class BackgroundLibrary:
    """Builds immutable background selections at the inference resolution.

    Solid colors are synthesized, image assets and user files are decoded
    with Pillow and crop-filled to size. Screen capture is handled by
    :class:`BackgroundController`, which feeds frames through
    :meth:`from_buffer`.

    Args:
        config: Background settings (asset paths, colors).
        resolution: ``(width, height)`` every background is normalized to.
    """

    def __init__(
        self,
        config: Optional[BackgroundConfig] = None,
        resolution: Tuple[int, int] = (1280, 720),
    ):
        self.config = config or BackgroundConfig()
        self.resolution = resolution

    def color_for(self, kind: BackgroundKind) -> RGBColor:
        colors = {
            BackgroundKind.GREEN: self.config.green,
            BackgroundKind.BLACK: self.config.black,
            BackgroundKind.WHITE: self.config.white,
        }
        if kind not in colors:
            raise ValueError(f"{kind.value} is not a solid color background")
        return tuple(colors[kind])

    def solid(self, kind: BackgroundKind) -> BackgroundSelection:
        color = self.color_for(kind)
        width, height = self.resolution
        return BackgroundSelection(
            kind=kind,
            buffer=fill_solid(width, height, color),
            color=color,
            source=f"rgb{color}",
        )

    def asset(self, kind: BackgroundKind) -> BackgroundSelection:
        name = self.config.assets.get(kind.value)
        if name is None:
            raise BackgroundUnavailable(f"No asset configured for {kind.value}")
        return self.image_file(self.config.assets_path() / name, kind=kind)

    def image_file(
        self,
        path: str | Path,
        kind: BackgroundKind = BackgroundKind.CUSTOM_FILE,
    ) -> BackgroundSelection:
        """Decode an image file and crop-fill it to the inference size."""
        path = Path(path)
        try:
            with Image.open(path) as img:
                img = ImageOps.exif_transpose(img).convert("RGB")
                pixels = np.asarray(img, dtype=np.uint8)
        except FileNotFoundError:
            raise BackgroundUnavailable(f"Background image not found: {path}") from None
        except (UnidentifiedImageError, OSError) as e:
            raise BackgroundUnavailable(f"Could not decode {path}: {e}") from e

        logger.debug(f"Decoded {path} ({pixels.shape[1]}x{pixels.shape[0]})")
        buffer = buffer_from_image(pixels, channel_order="RGB", attributes={"path": str(path)})
        return self.from_buffer(kind, buffer, source=str(path))

    def from_buffer(
        self,
        kind: BackgroundKind,
        buffer: PixelBuffer,
        source: str = "",
    ) -> BackgroundSelection:
        """Wrap an already rasterized buffer, normalizing its size."""
        return BackgroundSelection(
            kind=kind,
            buffer=resize_crop_to_fill(buffer, *self.resolution),
            source=source,
        )

    def passthrough(self) -> BackgroundSelection:
        return BackgroundSelection(kind=BackgroundKind.ORIGIN, source="camera")

    def build(
        self,
        kind: BackgroundKind,
        path: Optional[str | Path] = None,
    ) -> BackgroundSelection:
        """Build any kind except the live screen capture.

        Args:
            kind: Background to build.
            path: Image for :attr:`BackgroundKind.CUSTOM_FILE`; defaults to
                ``config.custom_file``.

        Raises:
            BackgroundUnavailable: if an asset or file cannot be loaded.
        """
        if kind.is_solid:
            return self.solid(kind)
        if kind.is_asset:
            return self.asset(kind)
        if kind == BackgroundKind.ORIGIN:
            return self.passthrough()
        if kind == BackgroundKind.CUSTOM_FILE:
            path = path or self.config.custom_file
            if path is None:
                raise BackgroundUnavailable("No background file chosen")
            return self.image_file(path)
        raise ValueError(f"{kind.value} backgrounds are built from screen capture")
