"""Pytest configuration and shared fixtures for LiveMatte tests."""

import threading
import time
from typing import List, Optional

import numpy as np
import pytest
import pytest_asyncio

from livematte.buffers import buffer_from_image, fill_solid
from livematte.core import (
    BackgroundKind,
    BackgroundSelection,
    PixelBuffer,
    PixelFormat,
    RecurrentState,
)
from livematte.models import MattingModel, MattingPrediction
from livematte.pipeline import LatestResultSink, Pipeline, SegmentationEngine
from livematte.sources import Frame, FrameSource
from livematte.utils.config import PipelineConfig

# Configure pytest-asyncio
pytest_plugins = ['pytest_asyncio']


def pytest_configure(config):
    # Register custom markers
    config.addinivalue_line("markers", "gpu: mark test as requiring CUDA GPU")
    config.addinivalue_line("markers", "camera: mark test as requiring a webcam")


class StubMattingModel(MattingModel):
    """Deterministic stand-in for a trained matting network.

    Echoes the source as foreground with a constant matte. Each call
    returns a state tagged with a running call number, and every prior
    state it was given is recorded.

    Args:
        alpha_value: Matte value returned for every pixel, or None for no matte.
        release: If set, each call blocks until the semaphore is released.
        fail_on: Call numbers (1-based) that raise instead of predicting.
    """

    def __init__(
        self,
        alpha_value: Optional[int] = 255,
        release: Optional[threading.Semaphore] = None,
        fail_on: tuple = (),
    ):
        self.alpha_value = alpha_value
        self.release = release
        self.fail_on = set(fail_on)
        self.priors: List[RecurrentState] = []
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.closed = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "stub"

    def predict(self, source, background, state):
        with self._lock:
            self.calls += 1
            call = self.calls
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self.priors.append(state)
            if self.release is not None:
                assert self.release.acquire(timeout=5), "stub model never released"
            if call in self.fail_on:
                raise RuntimeError(f"stub failure on call {call}")
            alpha = None
            if self.alpha_value is not None:
                alpha = np.full(source.shape[:2], self.alpha_value, dtype=np.uint8)
            return MattingPrediction(
                foreground=source.copy(),
                alpha=alpha,
                state=RecurrentState.from_tensors([call] * 4),
            )
        finally:
            with self._lock:
                self.active -= 1

    def close(self) -> None:
        self.closed = True


def make_bgra(width: int, height: int, bgr=(10, 20, 30), **attributes) -> PixelBuffer:
    """Opaque BGRA buffer of one color given in BGR order."""
    image = np.empty((height, width, 3), dtype=np.uint8)
    image[...] = bgr
    return buffer_from_image(image, channel_order="BGR", attributes=attributes)


class FakeFrameSource(FrameSource):
    """In-memory frame source.

    Produces ``count`` frames (forever when None); frame n is filled with
    the gray level ``n % 256``.
    """

    def __init__(self, width=64, height=36, count=None, name="fake", delay=0.0):
        self.width = width
        self.height = height
        self.count = count
        self.name = name
        self.delay = delay
        self.reads = 0
        self.opened = False
        self.open_calls = 0

    def open(self) -> None:
        self.opened = True
        self.open_calls += 1

    def close(self) -> None:
        self.opened = False

    def read(self):
        if not self.opened:
            return None
        if self.count is not None and self.reads >= self.count:
            return None
        if self.delay:
            time.sleep(self.delay)
        n = self.reads
        self.reads += 1
        level = n % 256
        return Frame(
            buffer=make_bgra(self.width, self.height, bgr=(level, level, level), source=self.name),
            timestamp=float(n),
            frame_number=n,
            source_name=self.name,
        )

    @property
    def fps(self) -> float:
        return 30.0

    @property
    def resolution(self):
        return (self.width, self.height)

    @property
    def is_open(self) -> bool:
        return self.opened


@pytest.fixture
def small_config():
    """Pipeline config at a small resolution so tests stay fast."""
    return PipelineConfig(
        inference_width=64,
        inference_height=36,
        inference_timeout_seconds=5.0,
        stats_log_interval=0,
    )


@pytest.fixture
def stub_model():
    return StubMattingModel()


@pytest.fixture
def sink():
    return LatestResultSink()


@pytest.fixture
def frame():
    """A camera frame with a different size than the inference resolution."""
    return make_bgra(128, 96)


@pytest.fixture
def black_background(small_config):
    return BackgroundSelection(
        kind=BackgroundKind.BLACK,
        buffer=fill_solid(small_config.inference_width, small_config.inference_height, (0, 0, 0)),
        color=(0, 0, 0),
    )


@pytest_asyncio.fixture
async def pipeline(stub_model, sink, small_config):
    """Pipeline wired to the stub model; closed after the test."""
    p = Pipeline(SegmentationEngine(stub_model), sink, small_config)
    yield p
    await p.close()


@pytest.fixture
def gray_alpha():
    """Helper building ONE_COMPONENT_8 mattes."""
    def _make(width: int, height: int, value: int) -> PixelBuffer:
        return PixelBuffer.from_array(
            np.full((height, width), value, dtype=np.uint8),
            PixelFormat.ONE_COMPONENT_8,
        )
    return _make
