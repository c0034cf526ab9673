"""Robust Video Matting (RVM) backed by PyTorch.

The network is fetched through ``torch.hub`` on first use. It carries four
recurrent tensors between frames and predicts a foreground plus a soft
alpha matte; the pipeline composites against the selected background.
"""

import logging
import time

import numpy as np

from livematte.core import RecurrentState
from livematte.models.base import MattingModel, MattingPrediction


logger = logging.getLogger(__name__)


class RobustVideoMattingModel(MattingModel):
    """RVM wrapper.

    Args:
        variant: ``"mobilenetv3"`` (fast) or ``"resnet50"`` (accurate).
        device: Torch device string, e.g. ``"cpu"``, ``"cuda"``, ``"mps"``.
        downsample_ratio: Internal downsampling for the coarse pass.
            0.25 suits 1280x720 input.
        hub_repo: ``torch.hub`` repository to load from.
    """

    def __init__(
        self,
        variant: str = "mobilenetv3",
        device: str = "cpu",
        downsample_ratio: float = 0.25,
        hub_repo: str = "PeterL1n/RobustVideoMatting",
    ):
        try:
            import torch
        except ImportError:
            raise ImportError(
                "RobustVideoMattingModel requires the 'torch' package. "
                "Install it with: pip install 'livematte[rvm]'"
            )

        self._torch = torch
        self._variant = variant
        self._device = device
        self._downsample_ratio = downsample_ratio

        t0 = time.monotonic()
        self._model = torch.hub.load(hub_repo, variant).to(device).eval()
        logger.info(
            f"Loaded RVM {variant} on {device} in {time.monotonic() - t0:.1f}s "
            f"(downsample_ratio={downsample_ratio:.2f})"
        )

    @property
    def name(self) -> str:
        return f"rvm-{self._variant}"

    def predict(
        self,
        source: np.ndarray,
        background: np.ndarray,
        state: RecurrentState,
    ) -> MattingPrediction:
        torch = self._torch
        with torch.inference_mode():
            src = (
                torch.from_numpy(np.ascontiguousarray(source))
                .to(self._device)
                .permute(2, 0, 1)
                .unsqueeze(0)
                .float()
                .div_(255.0)
            )
            fgr, pha, *rec = self._model(
                src, *state.tensors, downsample_ratio=self._downsample_ratio
            )
            foreground = (
                fgr[0].clamp(0, 1).mul(255).round().byte().permute(1, 2, 0).cpu().numpy()
            )
            alpha = pha[0, 0].clamp(0, 1).mul(255).round().byte().cpu().numpy()

        return MattingPrediction(
            foreground=foreground,
            alpha=alpha,
            state=RecurrentState.from_tensors(rec),
        )

    def close(self) -> None:
        self._model = None
        if self._device.startswith("cuda"):
            self._torch.cuda.empty_cache()
