"""Tests for core types and enums."""

import threading

import pytest

from livematte.core import (
    BackgroundKind,
    BackgroundSelection,
    FrameMetrics,
    InferenceFailure,
    LiveMatteError,
    MetricsSnapshot,
    PipelineEvent,
    PixelFormat,
    RecurrentState,
)
from livematte.buffers import fill_solid


class TestPixelFormat:
    def test_bytes_per_pixel(self):
        assert PixelFormat.BGRA.bytes_per_pixel == 4
        assert PixelFormat.ARGB.bytes_per_pixel == 4
        assert PixelFormat.ONE_COMPONENT_8.bytes_per_pixel == 1

    def test_alpha_offset(self):
        assert PixelFormat.BGRA.alpha_offset == 3
        assert PixelFormat.RGBA.alpha_offset == 3
        assert PixelFormat.ABGR.alpha_offset == 0
        assert PixelFormat.ARGB.alpha_offset == 0
        assert PixelFormat.ONE_COMPONENT_8.alpha_offset is None

    def test_channel_index(self):
        assert PixelFormat.BGRA.channel_index("R") == 2
        assert PixelFormat.ARGB.channel_index("R") == 1


class TestBackgroundKind:
    def test_parse_values_and_names(self):
        assert BackgroundKind.parse("LakeView") == BackgroundKind.LAKE_VIEW
        assert BackgroundKind.parse("lake_view") == BackgroundKind.LAKE_VIEW
        assert BackgroundKind.parse("  green ") == BackgroundKind.GREEN
        assert BackgroundKind.parse("Origin") == BackgroundKind.ORIGIN

    def test_unknown_name_is_white(self):
        """Unrecognized names select the White background."""
        assert BackgroundKind.parse("Sunset") == BackgroundKind.WHITE
        assert BackgroundKind.parse("") == BackgroundKind.WHITE

    def test_categories(self):
        assert BackgroundKind.BLACK.is_solid
        assert BackgroundKind.DIM_BAR.is_asset
        assert not BackgroundKind.TRANSPARENT.is_solid
        assert not BackgroundKind.ORIGIN.is_asset


class TestRecurrentState:
    def test_empty(self):
        state = RecurrentState.empty()
        assert state.is_empty
        assert state.tensors == (None, None, None, None)

    def test_from_tensors(self):
        state = RecurrentState.from_tensors(["a", "b", "c", "d"])
        assert not state.is_empty
        assert state.r1 == "a"
        assert state.r4 == "d"

    def test_from_tensors_requires_four(self):
        with pytest.raises(ValueError):
            RecurrentState.from_tensors([1, 2, 3])

    def test_immutable(self):
        state = RecurrentState.empty()
        with pytest.raises(AttributeError):
            state.r1 = 1


class TestBackgroundSelection:
    def test_solid_selection(self):
        buffer = fill_solid(8, 4, (0, 0, 0))
        selection = BackgroundSelection(BackgroundKind.BLACK, buffer, color=(0, 0, 0))
        assert not selection.is_passthrough
        assert not selection.is_live

    def test_passthrough_needs_no_buffer(self):
        selection = BackgroundSelection(BackgroundKind.ORIGIN)
        assert selection.is_passthrough
        assert selection.buffer is None

    def test_buffer_required(self):
        with pytest.raises(ValueError):
            BackgroundSelection(BackgroundKind.LAKE_VIEW)

    def test_with_buffer_keeps_kind(self):
        first = fill_solid(8, 4, (1, 2, 3))
        second = fill_solid(8, 4, (4, 5, 6))
        live = BackgroundSelection(BackgroundKind.TRANSPARENT, first, source="screen:1")
        updated = live.with_buffer(second)
        assert updated.is_live
        assert updated.buffer is second
        assert updated.source == "screen:1"
        assert live.buffer is first


class TestFrameMetrics:
    def test_initial(self):
        metrics = FrameMetrics()
        assert metrics.total_submitted == 0
        assert metrics.total_dropped == 0
        assert metrics.drop_rate == 0.0

    def test_drop_events(self):
        metrics = FrameMetrics()
        events = [
            PipelineEvent.PROCESSED,
            PipelineEvent.DROPPED_BUSY,
            PipelineEvent.DROPPED_PREPARE,
            PipelineEvent.COMPOSITE_FAILED,
            PipelineEvent.INFERENCE_FAILED,
            PipelineEvent.SUPERSEDED,
        ]
        for event in events:
            metrics.record_submitted()
            metrics.record(event)

        snap = metrics.snapshot()
        assert snap.total_submitted == 6
        assert snap.total_dropped == 5
        assert snap.total_processed == 1
        assert snap.total_failed == 1

    def test_status_text(self):
        metrics = FrameMetrics()
        for _ in range(4):
            metrics.record_submitted()
        metrics.record(PipelineEvent.DROPPED_BUSY)
        assert metrics.status_text(48.4) == "25% dropped  48ms"

    def test_snapshot_drop_rate(self):
        snap = MetricsSnapshot(total_submitted=3, total_dropped=1)
        assert snap.drop_rate == pytest.approx(33.333, rel=1e-3)

    def test_thread_safe_counting(self):
        """Counters stay exact under concurrent updates."""
        metrics = FrameMetrics()

        def worker():
            for _ in range(1000):
                metrics.record_submitted()
                metrics.record(PipelineEvent.DROPPED_BUSY)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert metrics.total_submitted == 4000
        assert metrics.total_dropped == 4000


def test_inference_failure_reason():
    err = InferenceFailure("model exploded")
    assert isinstance(err, LiveMatteError)
    assert err.reason == "model exploded"
    assert str(err) == "model exploded"
