"""Abstract base class for all LiveMatte frame sources."""

from abc import ABC, abstractmethod
from typing import Iterator, Optional

from livematte.sources.frame import Frame


class FrameSource(ABC):
    """Uniform interface for providing frames to the pipeline.

    Concrete implementations exist for webcams and live screen capture.
    All sources produce :class:`Frame` objects holding packed BGRA
    :class:`PixelBuffer` images.

    Usage::

        with WebcamSource(0) as src:
            for frame in src:
                pipeline.submit(frame.buffer)
    """

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    def open(self) -> None:
        """Open the underlying capture device."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying capture device."""

    @abstractmethod
    def read(self) -> Optional[Frame]:
        """Read the next frame.

        Returns:
            A :class:`Frame`, or ``None`` when the source is closed or on a
            transient read error.
        """

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def fps(self) -> float:
        """Target frames per second."""

    @property
    @abstractmethod
    def resolution(self) -> tuple[int, int]:
        """``(width, height)`` of the frames produced by this source."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """``True`` when the source has been opened and not yet closed."""

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "FrameSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Iterator protocol
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[Frame]:
        return self

    def __next__(self) -> Frame:
        frame = self.read()
        if frame is None:
            raise StopIteration
        return frame
