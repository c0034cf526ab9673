"""Result sinks: where composited frames go for display."""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

import numpy as np


@dataclass
class DeliveredFrame:
    """A frame handed to a sink."""
    image: np.ndarray  # BGR uint8
    status_text: str
    timestamp: datetime = field(default_factory=datetime.now)


class ResultSink(ABC):
    """Receives ``(image, status_text)`` pairs from the pipeline.

    :meth:`deliver` is always called on the event loop thread, never on the
    inference worker. It may be a plain method or a coroutine.
    """

    @abstractmethod
    def deliver(self, image: np.ndarray, status_text: str) -> Any:
        """Show one composited BGR image with its status line."""


class CallbackSink(ResultSink):
    """Adapts a plain (or async) callable to :class:`ResultSink`."""

    def __init__(self, callback: Callable[[np.ndarray, str], Any]):
        self._callback = callback

    def deliver(self, image: np.ndarray, status_text: str) -> Any:
        return self._callback(image, status_text)


class LatestResultSink(ResultSink):
    """Keeps only the most recent frame, for polling display loops."""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Optional[DeliveredFrame] = None
        self._count = 0

    def deliver(self, image: np.ndarray, status_text: str) -> None:
        with self._lock:
            self._latest = DeliveredFrame(image=image, status_text=status_text)
            self._count += 1

    @property
    def latest(self) -> Optional[DeliveredFrame]:
        with self._lock:
            return self._latest

    @property
    def delivered_count(self) -> int:
        with self._lock:
            return self._count
