"""Tests for the command line entry point."""

from livematte.app import (
    BACKGROUND_KEYS,
    OpenCVWindowSink,
    build_overrides,
    build_parser,
)
from livematte.core import BackgroundKind


def test_background_keys_cover_every_kind():
    assert set(BACKGROUND_KEYS.values()) == set(BackgroundKind)
    assert BACKGROUND_KEYS["1"] == BackgroundKind.TRANSPARENT
    assert BACKGROUND_KEYS["8"] == BackgroundKind.WHITE


def test_no_flags_no_overrides():
    args = build_parser().parse_args([])
    assert build_overrides(args) == {}


def test_flags_to_overrides():
    args = build_parser().parse_args([
        "--device", "2",
        "--background", "Green",
        "--background-file", "beach.jpg",
        "--model-device", "cuda",
        "--debug",
    ])
    assert build_overrides(args) == {
        "capture.device": 2,
        "background.initial": "Green",
        "background.custom_file": "beach.jpg",
        "model.device": "cuda",
        "debug_mode": True,
    }


def test_device_path_kept_as_string():
    args = build_parser().parse_args(["--device", "/dev/video1"])
    assert build_overrides(args)["capture.device"] == "/dev/video1"


def test_window_sink_without_window():
    """No key is read before the first frame opens the window."""
    sink = OpenCVWindowSink()
    assert sink.poll_key() == -1
    sink.close()
