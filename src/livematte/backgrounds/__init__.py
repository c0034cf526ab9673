"""Background selection for LiveMatte."""

from .library import BackgroundLibrary
from .controller import BackgroundController

__all__ = [
    "BackgroundLibrary",
    "BackgroundController",
]
