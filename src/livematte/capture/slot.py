"""Size-one "latest frame" mailbox between capture and the pipeline."""

import asyncio
from typing import Optional

from livematte.sources.frame import Frame


class LatestFrameSlot:
    """Holds at most one frame; a newer frame replaces an unconsumed one.

    Replaced frames are late frames discarded on the capture side. They
    never reach the pipeline and are not part of its metrics. All methods
    except :meth:`put_threadsafe` must be called on the event loop.
    """

    def __init__(self):
        self._frame: Optional[Frame] = None
        self._ready = asyncio.Event()
        self._closed = False
        self._discarded = 0

    def put(self, frame: Frame) -> Optional[Frame]:
        """Store ``frame`` and return the frame it displaced, if any."""
        if self._closed:
            return frame
        displaced = self._frame
        if displaced is not None:
            self._discarded += 1
        self._frame = frame
        self._ready.set()
        return displaced

    def put_threadsafe(self, frame: Frame, loop: asyncio.AbstractEventLoop) -> None:
        loop.call_soon_threadsafe(self.put, frame)

    async def get(self) -> Optional[Frame]:
        """Wait for the next frame; ``None`` once closed and empty."""
        while self._frame is None and not self._closed:
            self._ready.clear()
            await self._ready.wait()
        frame, self._frame = self._frame, None
        return frame

    def close(self) -> None:
        self._closed = True
        self._ready.set()

    @property
    def discarded(self) -> int:
        return self._discarded

    @property
    def closed(self) -> bool:
        return self._closed
