"""LiveMatte - real-time background replacement for live camera feeds.

Frames from a camera pass through a recurrent matting model and are
composited over a chosen background, with a drop-rate/latency readout.
"""

__version__ = "0.1.0"
