"""Capture-to-pipeline handoff."""

from .slot import LatestFrameSlot
from .loop import CaptureLoop

__all__ = [
    "LatestFrameSlot",
    "CaptureLoop",
]
