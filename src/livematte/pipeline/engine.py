"""Segmentation engine: runs the matting model and threads recurrent state."""

import logging
import time

import numpy as np

from livematte.buffers import buffer_from_image, channels
from livematte.core import (
    FormatMismatchError,
    InferenceFailure,
    InferenceResult,
    PixelBuffer,
    PixelFormat,
    RecurrentState,
)
from livematte.models.base import MattingModel, MattingPrediction


logger = logging.getLogger(__name__)


class SegmentationEngine:
    """Wraps a :class:`MattingModel` behind a buffer-in, buffer-out contract.

    The engine holds no recurrent state of its own. The caller passes the
    state returned by the previous call and receives the next one in the
    result, so concurrent readers never see a half-updated state.

    Every failure, whether a model exception or a malformed prediction,
    surfaces as :class:`InferenceFailure`.
    """

    def __init__(self, model: MattingModel):
        self._model = model

    @property
    def model(self) -> MattingModel:
        return self._model

    def infer(
        self,
        source: PixelBuffer,
        background: PixelBuffer,
        prior: RecurrentState,
    ) -> InferenceResult:
        """Run the model on one prepared frame.

        Args:
            source: Frame already sized to the inference resolution.
            background: Background buffer of the same size.
            prior: State from the previous successful call, or empty.

        Raises:
            InferenceFailure: on any model error or malformed output.
        """
        if source.size != background.size:
            raise InferenceFailure(
                f"Source {source.width}x{source.height} and background "
                f"{background.width}x{background.height} differ in size"
            )

        t0 = time.monotonic()
        try:
            prediction = self._model.predict(
                channels(source, "RGB"),
                channels(background, "RGB"),
                prior,
            )
        except InferenceFailure:
            raise
        except Exception as e:
            logger.error(f"{self._model.name} prediction failed: {e}", exc_info=True)
            raise InferenceFailure(f"{type(e).__name__}: {e}") from e
        duration_ms = (time.monotonic() - t0) * 1000.0

        foreground, alpha = self._wrap(prediction, source)
        return InferenceResult(
            foreground=foreground,
            alpha=alpha,
            state=prediction.state,
            duration_ms=duration_ms,
        )

    def _wrap(self, prediction: MattingPrediction, source: PixelBuffer):
        """Validate a prediction and convert it into pixel buffers."""
        if not isinstance(prediction, MattingPrediction):
            raise InferenceFailure(
                f"Model returned {type(prediction).__name__}, expected MattingPrediction"
            )
        if not isinstance(prediction.state, RecurrentState):
            raise InferenceFailure("Model returned no recurrent state")

        expected = (source.height, source.width)
        fg = np.asarray(prediction.foreground)
        if fg.dtype != np.uint8 or fg.ndim != 3 or fg.shape[2] not in (3, 4):
            raise InferenceFailure(
                f"Foreground must be uint8 (H, W, 3|4), got {fg.dtype} {fg.shape}"
            )
        if fg.shape[:2] != expected:
            raise InferenceFailure(f"Foreground is {fg.shape[:2]}, expected {expected}")

        attributes = dict(source.attributes)
        try:
            foreground = buffer_from_image(
                fg,
                channel_order="RGBA" if fg.shape[2] == 4 else "RGB",
                pixel_format=source.pixel_format,
                attributes=attributes,
            )
            alpha = None
            if prediction.alpha is not None:
                matte = np.asarray(prediction.alpha)
                if matte.dtype != np.uint8 or matte.shape != expected:
                    raise InferenceFailure(
                        f"Alpha must be uint8 {expected}, got {matte.dtype} {matte.shape}"
                    )
                alpha = PixelBuffer.from_array(
                    matte, PixelFormat.ONE_COMPONENT_8, attributes=attributes
                )
        except FormatMismatchError as e:
            raise InferenceFailure(f"Malformed prediction: {e}") from e
        return foreground, alpha
