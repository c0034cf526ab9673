"""Capture loop: frame source -> latest-frame slot -> pipeline."""

import asyncio
import logging
from typing import Optional

from livematte.capture.slot import LatestFrameSlot
from livematte.pipeline.orchestrator import Pipeline
from livematte.sources.base import FrameSource


logger = logging.getLogger(__name__)


class CaptureLoop:
    """Pumps frames from a :class:`FrameSource` into a :class:`Pipeline`.

    Blocking reads run in a worker thread and post into a
    :class:`LatestFrameSlot`; a pump on the event loop takes the newest
    frame and submits it. :meth:`stop` ends intake; frames already admitted
    by the pipeline still finish before :meth:`run` returns.

    Args:
        source: An opened (or openable) frame source.
        pipeline: Pipeline receiving the frames.
        slot: Mailbox between reader and pump; a new one by default.
    """

    def __init__(
        self,
        source: FrameSource,
        pipeline: Pipeline,
        slot: Optional[LatestFrameSlot] = None,
    ):
        self._source = source
        self._pipeline = pipeline
        self._slot = slot or LatestFrameSlot()
        self._running = False
        self._frames_read = 0

    async def run(self) -> None:
        """Capture until :meth:`stop` is called or the source runs dry."""
        if not self._source.is_open:
            self._source.open()
        self._running = True
        logger.info("Capture loop started")

        reader = asyncio.create_task(self._read_frames())
        try:
            await self._pump()
        finally:
            self._running = False
            self._slot.close()
            await asyncio.gather(reader, return_exceptions=True)
            await self._pipeline.drain()
            logger.info(
                f"Capture loop stopped: {self._frames_read} frames read, "
                f"{self._slot.discarded} discarded before submit"
            )

    def stop(self) -> None:
        self._running = False
        self._slot.close()

    async def _read_frames(self) -> None:
        try:
            while self._running:
                frame = await asyncio.to_thread(self._source.read)
                if frame is None:
                    logger.info("Frame source exhausted")
                    break
                self._frames_read += 1
                self._slot.put(frame)
        except Exception as e:
            logger.error(f"Frame source error: {e}", exc_info=True)
        finally:
            self._slot.close()

    async def _pump(self) -> None:
        while True:
            frame = await self._slot.get()
            if frame is None or not self._running:
                break
            self._pipeline.submit(frame.buffer)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def frames_read(self) -> int:
        return self._frames_read

    @property
    def discarded(self) -> int:
        return self._slot.discarded
