"""Frame sources for LiveMatte.

Quick start::

    from livematte.sources import WebcamSource

    with WebcamSource(0, width=1280, height=720) as src:
        for frame in src:
            pipeline.submit(frame.buffer)
"""

from livematte.sources.frame import Frame
from livematte.sources.base import FrameSource
from livematte.sources.webcam import WebcamSource
from livematte.sources.screen_capture import ScreenCaptureSource

__all__ = [
    "Frame",
    "FrameSource",
    "WebcamSource",
    "ScreenCaptureSource",
]
