"""Exception taxonomy for LiveMatte.

None of these are fatal: the pipeline logs them, counts the frame as
dropped, and carries on with the next camera frame.
"""


class LiveMatteError(Exception):
    """Base class for all LiveMatte errors."""


class AllocationError(LiveMatteError):
    """A pixel buffer could not be created."""


class FormatMismatchError(LiveMatteError):
    """A buffer has an unexpected pixel format or dimensions."""


class InferenceFailure(LiveMatteError):
    """The matting model failed, timed out or returned malformed output."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class BackgroundUnavailable(LiveMatteError):
    """A background asset, file or screen capture could not be produced."""
