"""Tests for the segmentation engine."""

import numpy as np
import pytest

from livematte.core import InferenceFailure, PixelFormat, RecurrentState
from livematte.models import MattingModel, MattingPrediction
from livematte.pipeline import SegmentationEngine

from conftest import StubMattingModel, make_bgra


class BrokenOutputModel(MattingModel):
    """Returns whatever it is told to, for malformed-output tests."""

    def __init__(self, prediction):
        self.prediction = prediction

    @property
    def name(self) -> str:
        return "broken"

    def predict(self, source, background, state):
        return self.prediction


class TestInfer:
    def test_result_buffers(self):
        model = StubMattingModel(alpha_value=200)
        engine = SegmentationEngine(model)
        source = make_bgra(16, 8, bgr=(1, 2, 3), source="webcam:0")

        result = engine.infer(source, make_bgra(16, 8), RecurrentState.empty())

        assert result.foreground.size == (16, 8)
        assert result.foreground.pixel_format == PixelFormat.BGRA
        assert result.foreground.same_pixels(source)
        assert result.alpha.pixel_format == PixelFormat.ONE_COMPONENT_8
        assert (result.alpha.pixels() == 200).all()
        assert result.foreground.attributes["source"] == "webcam:0"
        assert result.duration_ms >= 0.0

    def test_model_sees_rgb(self):
        seen = {}

        class Spy(StubMattingModel):
            def predict(self, source, background, state):
                seen["source"] = source
                seen["background"] = background
                return super().predict(source, background, state)

        engine = SegmentationEngine(Spy())
        engine.infer(
            make_bgra(2, 2, bgr=(1, 2, 3)), make_bgra(2, 2, bgr=(7, 8, 9)),
            RecurrentState.empty(),
        )
        np.testing.assert_array_equal(seen["source"][0, 0], [3, 2, 1])
        np.testing.assert_array_equal(seen["background"][0, 0], [9, 8, 7])

    def test_state_threading(self):
        """The state returned by call n is what the caller passes to call n+1."""
        model = StubMattingModel()
        engine = SegmentationEngine(model)
        frame, bg = make_bgra(4, 4), make_bgra(4, 4)

        state = RecurrentState.empty()
        for _ in range(3):
            state = engine.infer(frame, bg, state).state

        assert model.priors[0].is_empty
        assert model.priors[1].tensors == (1, 1, 1, 1)
        assert model.priors[2].tensors == (2, 2, 2, 2)
        assert state.tensors == (3, 3, 3, 3)

    def test_no_alpha(self):
        engine = SegmentationEngine(StubMattingModel(alpha_value=None))
        result = engine.infer(make_bgra(4, 4), make_bgra(4, 4), RecurrentState.empty())
        assert result.alpha is None


class TestFailures:
    def test_size_mismatch(self):
        engine = SegmentationEngine(StubMattingModel())
        with pytest.raises(InferenceFailure):
            engine.infer(make_bgra(4, 4), make_bgra(8, 4), RecurrentState.empty())

    def test_model_exception_wrapped(self):
        engine = SegmentationEngine(StubMattingModel(fail_on=(1,)))
        with pytest.raises(InferenceFailure) as exc_info:
            engine.infer(make_bgra(4, 4), make_bgra(4, 4), RecurrentState.empty())
        assert "RuntimeError" in exc_info.value.reason

    @pytest.mark.parametrize("prediction", [
        None,
        MattingPrediction(np.zeros((4, 4, 3), dtype=np.uint8), state=None),
        MattingPrediction(np.zeros((4, 4, 3), dtype=np.float32), RecurrentState.empty()),
        MattingPrediction(np.zeros((2, 4, 3), dtype=np.uint8), RecurrentState.empty()),
        MattingPrediction(
            np.zeros((4, 4, 3), dtype=np.uint8), RecurrentState.empty(),
            alpha=np.zeros((4, 2), dtype=np.uint8),
        ),
    ])
    def test_malformed_prediction(self, prediction):
        engine = SegmentationEngine(BrokenOutputModel(prediction))
        with pytest.raises(InferenceFailure):
            engine.infer(make_bgra(4, 4), make_bgra(4, 4), RecurrentState.empty())
