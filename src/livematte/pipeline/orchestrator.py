"""Pipeline orchestrator: gate -> prepare -> infer -> composite -> deliver.

``submit()`` runs on the asyncio event loop and never blocks. Admitted frames
are processed on a dedicated single-thread executor, so model calls are
strictly sequential, and results are delivered back on the loop thread.
After a timeout the abandoned model call keeps the worker; frames are
dropped as busy until it returns.

Per admitted frame::

    try_enter ──► resize_crop_to_fill ──► engine.infer(prior state)
        │               │ fail: drop              │ fail/timeout: drop + reset state
        │               ▼                         ▼
        │            exit()        store state ──► composite ──► sink.deliver
        └──────────────────────────────────────────────────────────► exit()
"""

import asyncio
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Set, Tuple

import numpy as np

from livematte.buffers import (
    composite_over,
    merge_alpha,
    resize_crop_to_fill,
    to_display_image,
)
from livematte.core import (
    AllocationError,
    BackgroundSelection,
    FormatMismatchError,
    FrameMetrics,
    InferenceFailure,
    InferenceResult,
    PipelineEvent,
    PixelBuffer,
    RecurrentState,
)
from livematte.pipeline.engine import SegmentationEngine
from livematte.pipeline.gate import InferenceGate
from livematte.pipeline.sink import ResultSink
from livematte.utils.config import PipelineConfig


logger = logging.getLogger(__name__)


class Pipeline:
    """Per-frame orchestration with drop-on-busy admission.

    Owns the recurrent state, the current background and the frame
    metrics. Changing the background bumps a generation counter and empties
    the recurrent state; results from inferences started under an older
    generation are discarded.

    Args:
        engine: Segmentation engine wrapping the matting model.
        sink: Receives composited frames.
        config: Pipeline settings (resolution, timeout).
        gate: Admission gate; a fresh :class:`InferenceGate` by default.
    """

    def __init__(
        self,
        engine: SegmentationEngine,
        sink: ResultSink,
        config: Optional[PipelineConfig] = None,
        gate: Optional[InferenceGate] = None,
    ):
        self.config = config or PipelineConfig()
        self.metrics = FrameMetrics()
        self._engine = engine
        self._sink = sink
        self._gate = gate or InferenceGate()

        self._lock = threading.Lock()
        self._state = RecurrentState.empty()
        self._background: Optional[BackgroundSelection] = None
        self._generation = 0

        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="livematte-infer"
        )
        self._tasks: Set[asyncio.Task] = set()
        # Model call abandoned by a timeout; it still owns the worker thread
        self._overrun: Optional[Future] = None
        self._closed = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def resolution(self) -> Tuple[int, int]:
        """Inference ``(width, height)``."""
        return (self.config.inference_width, self.config.inference_height)

    @property
    def gate(self) -> InferenceGate:
        return self._gate

    @property
    def state(self) -> RecurrentState:
        """Most recent completed recurrent state."""
        with self._lock:
            return self._state

    @property
    def background(self) -> Optional[BackgroundSelection]:
        with self._lock:
            return self._background

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def overrunning(self) -> bool:
        """True while a timed-out model call is still running."""
        overrun = self._overrun
        return overrun is not None and not overrun.done()

    # ------------------------------------------------------------------
    # Background and state
    # ------------------------------------------------------------------

    def set_background(self, selection: BackgroundSelection) -> None:
        """Install a new background and forget the recurrent state."""
        if selection.buffer is not None and selection.buffer.size != self.resolution:
            selection = selection.with_buffer(
                resize_crop_to_fill(selection.buffer, *self.resolution)
            )
        with self._lock:
            self._background = selection
            self._generation += 1
            self._state = RecurrentState.empty()
        logger.info(
            f"Background set to {selection.kind.value}"
            + (f" ({selection.source})" if selection.source else "")
        )

    def refresh_background(self, buffer: PixelBuffer) -> bool:
        """Replace the pixels of a live background, keeping the state.

        Only a live (screen capture) selection can be refreshed; the update
        is ignored otherwise.

        Returns:
            True if the background was updated.
        """
        if buffer.size != self.resolution:
            buffer = resize_crop_to_fill(buffer, *self.resolution)
        with self._lock:
            if self._background is None or not self._background.is_live:
                return False
            self._background = self._background.with_buffer(buffer)
        return True

    def reset_state(self) -> None:
        with self._lock:
            self._state = RecurrentState.empty()

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def submit(self, frame: PixelBuffer) -> bool:
        """Offer one camera frame. Must be called on the event loop.

        Returns:
            True if the frame was admitted for inference.
        """
        loop = asyncio.get_running_loop()
        if self._closed:
            return False

        with self._lock:
            background = self._background
            generation = self._generation

        if background is None:
            return False
        if background.is_passthrough:
            self._spawn(loop, self._pass_through(frame))
            return False

        self.metrics.record_submitted()
        if self.overrunning or not self._gate.try_enter():
            self.metrics.record(PipelineEvent.DROPPED_BUSY)
            return False

        try:
            self._spawn(loop, self._process(frame, background, generation, time.monotonic()))
        except BaseException:
            self._gate.exit()
            raise
        return True

    def submit_threadsafe(self, frame: PixelBuffer, loop: asyncio.AbstractEventLoop) -> None:
        """Offer a frame from a thread other than the event loop's."""
        loop.call_soon_threadsafe(self.submit, frame)

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro) -> asyncio.Task:
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def _process(
        self,
        frame: PixelBuffer,
        background: BackgroundSelection,
        generation: int,
        admitted_at: float,
    ) -> PipelineEvent:
        try:
            event = await self._run(frame, background, generation, admitted_at)
        except Exception as e:
            logger.error(f"Unexpected pipeline error: {e}", exc_info=True)
            event = PipelineEvent.INFERENCE_FAILED
            self.reset_state()
        finally:
            self._gate.exit()

        self.metrics.record(event)
        self._log_stats(event)
        return event

    async def _run(
        self,
        frame: PixelBuffer,
        background: BackgroundSelection,
        generation: int,
        admitted_at: float,
    ) -> PipelineEvent:
        loop = asyncio.get_running_loop()
        width, height = self.resolution

        # Prepare
        try:
            prepared = await loop.run_in_executor(
                self._executor, resize_crop_to_fill, frame, width, height
            )
        except (AllocationError, FormatMismatchError) as e:
            logger.warning(f"Dropping frame, preparation failed: {e}")
            return PipelineEvent.DROPPED_PREPARE

        # Infer
        prior = self.state
        timeout = self.config.inference_timeout_seconds
        call = self._executor.submit(self._engine.infer, prepared, background.buffer, prior)
        try:
            result = await asyncio.wait_for(asyncio.wrap_future(call), timeout=timeout)
        except asyncio.TimeoutError:
            self._overrun = call
            call.add_done_callback(self._on_overrun_done)
            self._on_failure(InferenceFailure(f"inference exceeded {timeout:.2f}s"))
            return PipelineEvent.INFERENCE_FAILED
        except InferenceFailure as e:
            self._on_failure(e)
            return PipelineEvent.INFERENCE_FAILED

        with self._lock:
            current = generation == self._generation
            if current:
                self._state = result.state
        if not current:
            logger.debug("Discarding result computed for a previous background")
            return PipelineEvent.SUPERSEDED

        # Composite
        try:
            image = await loop.run_in_executor(
                self._executor, self._composite, result, background
            )
        except (AllocationError, FormatMismatchError) as e:
            logger.warning(f"Dropping frame, compositing failed: {e}")
            return PipelineEvent.COMPOSITE_FAILED

        # Deliver
        with self._lock:
            current = generation == self._generation
        if not current:
            return PipelineEvent.SUPERSEDED
        elapsed_ms = (time.monotonic() - admitted_at) * 1000.0
        await self._deliver(image, self.metrics.status_text(elapsed_ms))
        return PipelineEvent.PROCESSED

    def _on_failure(self, failure: InferenceFailure) -> None:
        logger.warning(f"Inference failed, resetting recurrent state: {failure.reason}")
        self.reset_state()

    @staticmethod
    def _on_overrun_done(call: Future) -> None:
        logger.info("Timed-out inference finished, accepting frames again")

    @staticmethod
    def _composite(result: InferenceResult, background: BackgroundSelection) -> np.ndarray:
        """Blend the prediction with the background and convert for display."""
        output = result.foreground
        if result.alpha is not None:
            if background.color is not None:
                output = merge_alpha(output, result.alpha, background.color)
            else:
                output = composite_over(output, result.alpha, background.buffer)
        return to_display_image(output)

    async def _pass_through(self, frame: PixelBuffer) -> PipelineEvent:
        await self._deliver(to_display_image(frame), "")
        return PipelineEvent.PASSED_THROUGH

    async def _deliver(self, image: np.ndarray, status_text: str) -> None:
        try:
            result = self._sink.deliver(image, status_text)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Result sink error: {e}", exc_info=True)

    def _log_stats(self, event: PipelineEvent) -> None:
        interval = self.config.stats_log_interval
        if event != PipelineEvent.PROCESSED or interval <= 0:
            return
        stats = self.metrics.snapshot()
        if stats.total_processed % interval == 0:
            logger.info(
                f"Pipeline: {stats.total_submitted} submitted, "
                f"{stats.total_processed} processed, "
                f"{stats.drop_rate:.0f}% dropped, {stats.total_failed} failed"
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait until every in-flight frame has been processed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Stop accepting frames, finish in-flight work, stop the worker."""
        self._closed = True
        await self.drain()
        self._executor.shutdown(wait=False)
        logger.info("Pipeline closed")
