"""Abstract boundary around a recurrent matting network."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np

from livematte.core import RecurrentState


@dataclass
class MattingPrediction:
    """Raw output of a matting model.

    Attributes:
        foreground: RGB uint8 array of shape (H, W, 3). For models that
            composite the background themselves this is the final image.
        state: Recurrent state to feed into the next call.
        alpha: Optional uint8 matte of shape (H, W); 255 = foreground.
    """
    foreground: np.ndarray
    state: RecurrentState
    alpha: Optional[np.ndarray] = None


class MattingModel(ABC):
    """A trained foreground matting network.

    Implementations are treated as a black box: given a source frame, the
    background frame and the previous recurrent state, produce a foreground
    prediction and the next state. Calls are expensive and always run on a
    worker thread, one at a time.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable model identifier for logs."""

    @abstractmethod
    def predict(
        self,
        source: np.ndarray,
        background: np.ndarray,
        state: RecurrentState,
    ) -> MattingPrediction:
        """Run one inference.

        Args:
            source: RGB uint8 camera frame, shape (H, W, 3).
            background: RGB uint8 background, same shape as ``source``.
            state: State returned by the previous call, or empty.

        Returns:
            MattingPrediction with arrays of the same height and width.
        """

    def close(self) -> None:
        """Release model resources."""
