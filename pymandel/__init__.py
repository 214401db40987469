"""Deep zoom Mandelbrot exploration with a perturbation reference orbit."""

from .config import ConfigError, EngineConfig
from .deep_zoom import ReferenceOrbit, ResumeCursor, precision_for_zoom
from .engine import PerturbationEngine, Snapshot
from .frame_state import FRAME_DTYPE, FrameState

__all__ = [
    "ConfigError",
    "EngineConfig",
    "FRAME_DTYPE",
    "FrameState",
    "PerturbationEngine",
    "ReferenceOrbit",
    "ResumeCursor",
    "Snapshot",
    "precision_for_zoom",
]
