"""Core types and enums for LiveMatte."""

from .enums import (
    PixelFormat,
    BackgroundKind,
    PipelineEvent,
)

from .errors import (
    LiveMatteError,
    AllocationError,
    FormatMismatchError,
    InferenceFailure,
    BackgroundUnavailable,
)

from .buffer import (
    PixelBuffer,
    aligned_stride,
    allocate_plane,
    DEFAULT_ROW_ALIGNMENT,
)

from .types import (
    RGBColor,
    RecurrentState,
    InferenceResult,
    BackgroundSelection,
    MetricsSnapshot,
    FrameMetrics,
)

__all__ = [
    # Enums
    "PixelFormat",
    "BackgroundKind",
    "PipelineEvent",
    # Errors
    "LiveMatteError",
    "AllocationError",
    "FormatMismatchError",
    "InferenceFailure",
    "BackgroundUnavailable",
    # Buffers
    "PixelBuffer",
    "aligned_stride",
    "allocate_plane",
    "DEFAULT_ROW_ALIGNMENT",
    # Types
    "RGBColor",
    "RecurrentState",
    "InferenceResult",
    "BackgroundSelection",
    "MetricsSnapshot",
    "FrameMetrics",
]
