"""Frame processing pipeline for LiveMatte."""

from .gate import InferenceGate
from .engine import SegmentationEngine
from .sink import ResultSink, CallbackSink, LatestResultSink, DeliveredFrame
from .orchestrator import Pipeline

__all__ = [
    "InferenceGate",
    "SegmentationEngine",
    "ResultSink",
    "CallbackSink",
    "LatestResultSink",
    "DeliveredFrame",
    "Pipeline",
]
