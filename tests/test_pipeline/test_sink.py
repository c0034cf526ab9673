"""Tests for result sinks."""

import numpy as np

from livematte.pipeline import CallbackSink, LatestResultSink


def test_latest_result_sink_keeps_newest():
    sink = LatestResultSink()
    assert sink.latest is None

    first = np.zeros((2, 2, 3), dtype=np.uint8)
    second = np.ones((2, 2, 3), dtype=np.uint8)
    sink.deliver(first, "0% dropped  10ms")
    sink.deliver(second, "50% dropped  12ms")

    assert sink.delivered_count == 2
    assert sink.latest.image is second
    assert sink.latest.status_text == "50% dropped  12ms"


def test_callback_sink_forwards():
    received = []
    sink = CallbackSink(lambda image, text: received.append((image.shape, text)))
    sink.deliver(np.zeros((4, 3, 3), dtype=np.uint8), "")
    assert received == [((4, 3, 3), "")]
