"""Frame dataclass for the LiveMatte FrameSource abstraction."""

from dataclasses import dataclass

from livematte.core import PixelBuffer


@dataclass
class Frame:
    """A single captured frame with metadata.

    Attributes:
        buffer: Packed BGRA pixel buffer at the source's native resolution.
        timestamp: Seconds since the source was opened (monotonic).
        frame_number: Sequential counter starting from 0.
        source_name: Human-readable identifier, e.g. ``"webcam:0"`` or
            ``"screen:1"``.
    """

    buffer: PixelBuffer
    timestamp: float
    frame_number: int
    source_name: str

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height
