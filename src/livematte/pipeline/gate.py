"""Single-flight admission control for the inference path."""

import threading


class InferenceGate:
    """Admits at most one inference at a time.

    A frame that arrives while an inference is in flight is rejected, not
    queued. This bounds latency at the cost of a frame-drop rate roughly
    equal to inference time times camera frame rate.

    Usage::

        if gate.try_enter():
            try:
                ...  # guarded work
            finally:
                gate.exit()
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._admitted = 0
        self._rejected = 0

    def try_enter(self) -> bool:
        """Atomically claim the gate.

        Returns:
            ``True`` if the caller now owns the gate and must call
            :meth:`exit` exactly once, ``False`` if it is busy.
        """
        if self._lock.acquire(blocking=False):
            self._admitted += 1
            return True
        self._rejected += 1
        return False

    def exit(self) -> None:
        """Release the gate claimed by a successful :meth:`try_enter`."""
        try:
            self._lock.release()
        except RuntimeError:
            raise RuntimeError("InferenceGate.exit() called without try_enter()") from None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def admitted(self) -> int:
        return self._admitted

    @property
    def rejected(self) -> int:
        return self._rejected
