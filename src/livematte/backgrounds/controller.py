"""Background selection: builds backgrounds and installs them on the pipeline."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from livematte.backgrounds.library import BackgroundLibrary
from livematte.buffers import resize_crop_to_fill
from livematte.core import (
    AllocationError,
    BackgroundKind,
    BackgroundSelection,
    BackgroundUnavailable,
    PixelBuffer,
)
from livematte.pipeline.orchestrator import Pipeline
from livematte.sources.base import FrameSource


logger = logging.getLogger(__name__)


class BackgroundController:
    """Switches the pipeline's background.

    Every switch installs a new selection, which resets the recurrent
    state. The "Transparent" kind additionally starts a refresh task that
    re-captures the screen every ``refresh_interval`` seconds and updates
    the live background in place, without a state reset.

    If a background cannot be built, :class:`BackgroundUnavailable` is
    raised and the previous selection stays active.

    Args:
        pipeline: Pipeline to install selections on.
        library: Builds selections for the non-live kinds.
        screen_source: Source for the "Transparent" background.
        refresh_interval: Seconds between screen captures.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        library: BackgroundLibrary,
        screen_source: Optional[FrameSource] = None,
        refresh_interval: float = 0.05,
    ):
        self._pipeline = pipeline
        self._library = library
        self._screen_source = screen_source
        self._refresh_interval = refresh_interval
        self._refresh_task: Optional[asyncio.Task] = None
        self._current: Optional[BackgroundSelection] = None
        # mss handles must be used from the thread that created them
        self._screen_executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="livematte-screen"
        )

    @property
    def current(self) -> Optional[BackgroundSelection]:
        return self._current

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def select(
        self,
        kind: BackgroundKind | str,
        path: Optional[str | Path] = None,
    ) -> BackgroundSelection:
        """Build and install a background.

        Args:
            kind: Kind or kind name; unknown names select White.
            path: Image file for the custom kind.

        Raises:
            BackgroundUnavailable: the background could not be built.
        """
        if isinstance(kind, str):
            kind = BackgroundKind.parse(kind)

        try:
            if kind == BackgroundKind.TRANSPARENT:
                buffer = await self._grab_screen_async()
                selection = self._library.from_buffer(
                    kind, buffer, source=buffer.attributes.get("source", "screen")
                )
            else:
                selection = await asyncio.to_thread(self._library.build, kind, path)
        except BackgroundUnavailable as e:
            logger.warning(f"Keeping current background, {kind.value} unavailable: {e}")
            raise

        await self._stop_refresh()
        self._pipeline.set_background(selection)
        self._current = selection
        if selection.is_live:
            self._refresh_task = asyncio.create_task(self._refresh_screen())
        return selection

    async def _grab_screen_async(self) -> PixelBuffer:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._screen_executor, self._grab_screen)

    def _grab_screen(self) -> PixelBuffer:
        if self._screen_source is None:
            raise BackgroundUnavailable("No screen capture source configured")
        try:
            if not self._screen_source.is_open:
                self._screen_source.open()
            frame = self._screen_source.read()
        except Exception as e:
            raise BackgroundUnavailable(f"Screen capture failed: {e}") from e
        if frame is None:
            raise BackgroundUnavailable("Screen capture returned no frame")
        return resize_crop_to_fill(frame.buffer, *self._library.resolution)

    async def _refresh_screen(self) -> None:
        while True:
            await asyncio.sleep(self._refresh_interval)
            try:
                buffer = await self._grab_screen_async()
            except (BackgroundUnavailable, AllocationError) as e:
                logger.debug(f"Screen refresh skipped: {e}")
                continue
            self._pipeline.refresh_background(buffer)

    async def _stop_refresh(self) -> None:
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        try:
            await self._refresh_task
        except asyncio.CancelledError:
            pass
        self._refresh_task = None

    async def close(self) -> None:
        await self._stop_refresh()
        if self._screen_source is not None and self._screen_source.is_open:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(self._screen_executor, self._screen_source.close)
        self._screen_executor.shutdown(wait=False)
