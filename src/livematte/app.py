#!/usr/bin/env python3
"""
LiveMatte - live background replacement for a webcam feed.

Run with:
    livematte --config config/default.yaml

Keys in the preview window:
    1-8   switch background (see BACKGROUND_KEYS)
    q     quit
"""

import argparse
import asyncio
import logging
from typing import Dict, List, Optional

import cv2
import numpy as np

from livematte.backgrounds import BackgroundController, BackgroundLibrary
from livematte.capture import CaptureLoop
from livematte.core import BackgroundKind, BackgroundUnavailable
from livematte.models import create_model
from livematte.pipeline import Pipeline, ResultSink, SegmentationEngine
from livematte.sources import ScreenCaptureSource, WebcamSource
from livematte.utils.config import DisplayConfig, LiveMatteConfig, load_config


logger = logging.getLogger(__name__)


BACKGROUND_KEYS: Dict[str, BackgroundKind] = {
    str(i): kind for i, kind in enumerate(BackgroundKind, start=1)
}
QUIT_KEYS = (ord("q"), 27)  # q, Esc


class OpenCVWindowSink(ResultSink):
    """Shows composited frames in an OpenCV window with the status line.

    ``cv2.imshow`` and ``cv2.waitKey`` both run on the event loop thread,
    which owns the window.
    """

    def __init__(self, config: Optional[DisplayConfig] = None):
        self.config = config or DisplayConfig()
        self._window_created = False

    def deliver(self, image: np.ndarray, status_text: str) -> None:
        if not self._window_created:
            cv2.namedWindow(self.config.window_name, cv2.WINDOW_NORMAL)
            self._window_created = True

        if self.config.show_status and status_text:
            image = image.copy()
            cv2.putText(
                image, status_text, (10, image.shape[0] - 12),
                cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 0), 3, cv2.LINE_AA,
            )
            cv2.putText(
                image, status_text, (10, image.shape[0] - 12),
                cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 1, cv2.LINE_AA,
            )
        cv2.imshow(self.config.window_name, image)

    def poll_key(self) -> int:
        """Return the pressed key code, or -1."""
        if not self._window_created:
            return -1
        key = cv2.waitKey(1)
        return -1 if key == -1 else key & 0xFF

    def close(self) -> None:
        if self._window_created:
            cv2.destroyWindow(self.config.window_name)
            self._window_created = False


async def handle_keys(
    window: OpenCVWindowSink,
    controller: BackgroundController,
    capture: CaptureLoop,
    poll_interval: float = 0.01,
) -> None:
    """Translate key presses into background switches until quit."""
    while capture.is_running:
        await asyncio.sleep(poll_interval)
        key = window.poll_key()
        if key < 0:
            continue
        if key in QUIT_KEYS:
            logger.info("Quit requested")
            capture.stop()
            return
        kind = BACKGROUND_KEYS.get(chr(key))
        if kind is None:
            continue
        try:
            await controller.select(kind)
        except BackgroundUnavailable:
            pass  # logged by the controller


async def run(config: LiveMatteConfig) -> None:
    """Wire camera, model, pipeline and window, and run until quit."""
    logger.info("=" * 60)
    logger.info(f"{config.project_name} {config.version}")
    logger.info("=" * 60)

    model = create_model(config.model)
    window = OpenCVWindowSink(config.display)
    pipeline = Pipeline(SegmentationEngine(model), window, config.pipeline)

    bg_config = config.background
    controller = BackgroundController(
        pipeline,
        BackgroundLibrary(bg_config, pipeline.resolution),
        screen_source=ScreenCaptureSource(
            monitor=bg_config.screen_monitor,
            region=bg_config.screen_region,
            fps=1.0 / bg_config.screen_refresh_interval,
        ),
        refresh_interval=bg_config.screen_refresh_interval,
    )
    try:
        await controller.select(bg_config.initial)
    except BackgroundUnavailable:
        await controller.select(BackgroundKind.WHITE)

    camera = WebcamSource(
        device=config.capture.device,
        fps=config.capture.fps,
        width=config.capture.width,
        height=config.capture.height,
    )
    capture = CaptureLoop(camera, pipeline)
    capture_task = asyncio.create_task(capture.run())
    keys_task = asyncio.create_task(handle_keys(window, controller, capture))

    try:
        await capture_task
    finally:
        keys_task.cancel()
        await asyncio.gather(keys_task, return_exceptions=True)
        await controller.close()
        await pipeline.close()
        camera.close()
        model.close()
        window.close()
        stats = pipeline.metrics.snapshot()
        logger.info(
            f"Session: {stats.total_submitted} submitted, "
            f"{stats.total_processed} processed, {stats.drop_rate:.0f}% dropped"
        )


def _parse_device(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def build_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """Map command line flags onto dotted config keys."""
    overrides: Dict[str, object] = {}
    if args.device is not None:
        overrides["capture.device"] = _parse_device(args.device)
    if args.background is not None:
        overrides["background.initial"] = args.background
    if args.background_file is not None:
        overrides["background.custom_file"] = args.background_file
    if args.model_device is not None:
        overrides["model.device"] = args.model_device
    if args.debug:
        overrides["debug_mode"] = True
    return overrides


def build_parser() -> argparse.ArgumentParser:
    kinds = ", ".join(f"{key}={kind.value}" for key, kind in BACKGROUND_KEYS.items())
    parser = argparse.ArgumentParser(
        description="LiveMatte - real-time webcam background replacement",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Background keys: {kinds}, q=quit

Examples:
  # Run with default config
  livematte

  # Start on a green screen, model on the GPU
  livematte --background Green --model-device cuda

  # Use your own picture as background
  livematte --background Custom --background-file ~/beach.jpg
        """,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration file (default: config/default.yaml)",
    )
    parser.add_argument("--device", default=None, help="Camera index or device path")
    parser.add_argument("--background", default=None, help="Initial background name")
    parser.add_argument(
        "--background-file", default=None, help="Image used by the Custom background"
    )
    parser.add_argument(
        "--model-device", default=None, help="Torch device for the model (cpu, cuda, mps)"
    )
    parser.add_argument(
        "--debug", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    config = load_config(args.config, build_overrides(args))
    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
