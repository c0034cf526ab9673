"""Core enumerations for LiveMatte."""

from enum import Enum, auto
from typing import Optional


class PixelFormat(Enum):
    """Raw pixel layouts understood by :class:`PixelBuffer`.

    The value spells the byte order of one pixel, so ``len(value)`` is the
    number of bytes per pixel.
    """
    BGRA = "BGRA"
    RGBA = "RGBA"
    ABGR = "ABGR"
    ARGB = "ARGB"
    ONE_COMPONENT_8 = "L"

    @property
    def bytes_per_pixel(self) -> int:
        return len(self.value)

    @property
    def is_packed(self) -> bool:
        """True for interleaved 32-bit formats."""
        return self.bytes_per_pixel == 4

    @property
    def alpha_offset(self) -> Optional[int]:
        """Byte offset of the alpha sample inside a pixel, if any."""
        if not self.is_packed:
            return None
        return self.value.index("A")

    def channel_index(self, channel: str) -> int:
        """Byte offset of ``"R"``, ``"G"``, ``"B"`` or ``"A"``."""
        return self.value.index(channel)


class BackgroundKind(Enum):
    """Background choices offered to the user."""
    TRANSPARENT = "Transparent"   # live capture of the screen behind the window
    LAKE_VIEW = "LakeView"
    DIM_BAR = "DimBar"
    ORIGIN = "Origin"             # raw camera pass-through
    GREEN = "Green"
    BLACK = "Black"
    CUSTOM_FILE = "Custom"
    WHITE = "White"

    @classmethod
    def parse(cls, name: str) -> "BackgroundKind":
        """Resolve a name (value or member name, any case).

        Unknown names fall back to :attr:`WHITE`.
        """
        key = name.strip().lower()
        for kind in cls:
            if key in (kind.value.lower(), kind.name.lower()):
                return kind
        return cls.WHITE

    @property
    def is_solid(self) -> bool:
        return self in (BackgroundKind.GREEN, BackgroundKind.BLACK, BackgroundKind.WHITE)

    @property
    def is_asset(self) -> bool:
        return self in (BackgroundKind.LAKE_VIEW, BackgroundKind.DIM_BAR)


class PipelineEvent(Enum):
    """Outcome of a single submitted frame."""
    PROCESSED = auto()
    DROPPED_BUSY = auto()
    DROPPED_PREPARE = auto()
    COMPOSITE_FAILED = auto()
    INFERENCE_FAILED = auto()
    SUPERSEDED = auto()
    PASSED_THROUGH = auto()
