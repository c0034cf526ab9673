"""Core data types for LiveMatte."""

import threading
from dataclasses import dataclass, replace
from typing import Any, Optional, Sequence, Tuple

from .buffer import PixelBuffer
from .enums import BackgroundKind, PipelineEvent


RGBColor = Tuple[int, int, int]


# ============================================================================
# Recurrent state
# ============================================================================

@dataclass(frozen=True, eq=False)
class RecurrentState:
    """Hidden state carried from one inference to the next.

    The four tensors are opaque to everything except the model. A state is
    produced whole by one inference and consumed whole by the next one.
    """
    r1: Any = None
    r2: Any = None
    r3: Any = None
    r4: Any = None

    @classmethod
    def empty(cls) -> "RecurrentState":
        return cls()

    @classmethod
    def from_tensors(cls, tensors: Sequence[Any]) -> "RecurrentState":
        tensors = tuple(tensors)
        if len(tensors) != 4:
            raise ValueError(f"Recurrent state needs 4 tensors, got {len(tensors)}")
        return cls(*tensors)

    @property
    def tensors(self) -> Tuple[Any, Any, Any, Any]:
        return (self.r1, self.r2, self.r3, self.r4)

    @property
    def is_empty(self) -> bool:
        return all(t is None for t in self.tensors)


# ============================================================================
# Inference
# ============================================================================

@dataclass(frozen=True)
class InferenceResult:
    """Output of one :class:`SegmentationEngine` call."""
    foreground: PixelBuffer
    state: RecurrentState
    alpha: Optional[PixelBuffer] = None  # ONE_COMPONENT_8 matte, if the model has one
    duration_ms: float = 0.0


# ============================================================================
# Backgrounds
# ============================================================================

@dataclass(frozen=True, eq=False)
class BackgroundSelection:
    """The background currently composited behind the subject.

    ``buffer`` is sized to the inference resolution. It is ``None`` only for
    the pass-through kind, where frames are shown unprocessed.
    """
    kind: BackgroundKind
    buffer: Optional[PixelBuffer] = None
    color: Optional[RGBColor] = None
    source: str = ""

    def __post_init__(self):
        if self.buffer is None and not self.is_passthrough:
            raise ValueError(f"{self.kind.value} background needs a pixel buffer")

    @property
    def is_passthrough(self) -> bool:
        return self.kind == BackgroundKind.ORIGIN

    @property
    def is_live(self) -> bool:
        """True when the pixels are refreshed continuously (screen capture)."""
        return self.kind == BackgroundKind.TRANSPARENT

    def with_buffer(self, buffer: PixelBuffer) -> "BackgroundSelection":
        return replace(self, buffer=buffer)


# ============================================================================
# Metrics
# ============================================================================

@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time copy of :class:`FrameMetrics`."""
    total_submitted: int = 0
    total_dropped: int = 0
    total_processed: int = 0
    total_failed: int = 0

    @property
    def drop_rate(self) -> float:
        """Dropped frames as a percentage of submitted frames."""
        if self.total_submitted == 0:
            return 0.0
        return self.total_dropped / self.total_submitted * 100.0


class FrameMetrics:
    """Session counters owned by the pipeline.

    Counters only ever grow. ``total_dropped`` covers every submitted frame
    that produced no result: gate rejections, preparation, inference and
    compositing failures, and results superseded by a background change.
    """

    _DROP_EVENTS = (
        PipelineEvent.DROPPED_BUSY,
        PipelineEvent.DROPPED_PREPARE,
        PipelineEvent.COMPOSITE_FAILED,
        PipelineEvent.INFERENCE_FAILED,
        PipelineEvent.SUPERSEDED,
    )

    def __init__(self):
        self._lock = threading.Lock()
        self._submitted = 0
        self._dropped = 0
        self._processed = 0
        self._failed = 0

    def record_submitted(self) -> None:
        with self._lock:
            self._submitted += 1

    def record(self, event: PipelineEvent) -> None:
        """Account for the outcome of an already submitted frame."""
        with self._lock:
            if event in self._DROP_EVENTS:
                self._dropped += 1
            if event == PipelineEvent.INFERENCE_FAILED:
                self._failed += 1
            elif event == PipelineEvent.PROCESSED:
                self._processed += 1

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                total_submitted=self._submitted,
                total_dropped=self._dropped,
                total_processed=self._processed,
                total_failed=self._failed,
            )

    @property
    def total_submitted(self) -> int:
        return self.snapshot().total_submitted

    @property
    def total_dropped(self) -> int:
        return self.snapshot().total_dropped

    @property
    def total_processed(self) -> int:
        return self.snapshot().total_processed

    @property
    def total_failed(self) -> int:
        return self.snapshot().total_failed

    @property
    def drop_rate(self) -> float:
        return self.snapshot().drop_rate

    def status_text(self, elapsed_ms: float) -> str:
        """Status line shown under the video, e.g. ``"12% dropped  48ms"``."""
        return f"{self.drop_rate:.0f}% dropped  {elapsed_ms:.0f}ms"
