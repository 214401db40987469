"""Per-frame view parameters and their fixed GPU record layout.

The record handed to the upload layer is 12 little-endian 4-byte fields,
48 bytes in total, in the order of FRAME_DTYPE. Shader code relies on
these offsets, so fields may only ever be appended.
"""

from dataclasses import dataclass, field, replace

import numpy as np


FRAME_DTYPE = np.dtype([
    ("generation", "<u4"),
    ("elapsed_time", "<f4"),
    ("zoom", "<f4"),
    ("angle", "<f4"),
    ("center_delta_re", "<f4"),
    ("center_delta_im", "<f4"),
    ("epsilon", "<f4"),
    ("maximum_iterations", "<u4"),
    ("width", "<u4"),
    ("height", "<u4"),
    ("mu", "<f4"),
    ("color_palette_scale", "<f4"),
])

FRAME_RECORD_SIZE = FRAME_DTYPE.itemsize

# Zoom range that survives the float32 downcast as a finite positive normal number
MIN_ZOOM = float(np.finfo(np.float32).tiny)
MAX_ZOOM = float(np.finfo(np.float32).max)


@dataclass
class FrameState:
    """Mutable view parameters, published once per frame."""
    zoom: float
    mu: float
    width: int
    height: int
    angle: float = 0.0
    center_delta: tuple = (0.0, 0.0)
    epsilon: float = 0.001
    maximum_iterations: int = 100
    color_palette_scale: float = 1.0
    generation: int = 0
    elapsed_time: float = 0.0

    # Values restored by reset()
    initial_zoom: float = field(default=0.0, repr=False)
    initial_mu: float = field(default=0.0, repr=False)

    def __post_init__(self):
        if not self.zoom > 0:
            raise ValueError(f"zoom must be positive, got {self.zoom!r}")
        self.set_zoom(self.zoom)
        if not self.initial_zoom:
            self.initial_zoom = self.zoom
        if not self.initial_mu:
            self.initial_mu = self.mu

    def set_zoom(self, zoom: float):
        """Set the zoom, clamped to [MIN_ZOOM, MAX_ZOOM]."""
        self.zoom = min(max(float(zoom), MIN_ZOOM), MAX_ZOOM)

    def resize(self, width: int, height: int):
        self.width = int(width)
        self.height = int(height)

    def reset(self):
        """Restore zoom, angle and escape radius to their starting values."""
        self.zoom = self.initial_zoom
        self.angle = 0.0
        self.mu = self.initial_mu

    def copy(self) -> "FrameState":
        return replace(self)

    def to_record(self) -> np.ndarray:
        """Downcast into a one-element structured array."""
        record = np.zeros(1, dtype=FRAME_DTYPE)
        record["generation"] = self.generation & 0xFFFFFFFF
        record["elapsed_time"] = self.elapsed_time
        record["zoom"] = min(max(self.zoom, MIN_ZOOM), MAX_ZOOM)
        record["angle"] = self.angle
        record["center_delta_re"] = self.center_delta[0]
        record["center_delta_im"] = self.center_delta[1]
        record["epsilon"] = self.epsilon
        record["maximum_iterations"] = self.maximum_iterations
        record["width"] = self.width
        record["height"] = self.height
        record["mu"] = self.mu
        record["color_palette_scale"] = self.color_palette_scale
        return record

    def to_bytes(self) -> bytes:
        return self.to_record().tobytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "FrameState":
        """Rebuild a frame state from a published record."""
        if len(data) < FRAME_RECORD_SIZE:
            raise ValueError(
                f"frame record needs {FRAME_RECORD_SIZE} bytes, got {len(data)}"
            )
        record = np.frombuffer(data, dtype=FRAME_DTYPE, count=1)[0]
        return cls(
            zoom=float(record["zoom"]),
            mu=float(record["mu"]),
            width=int(record["width"]),
            height=int(record["height"]),
            angle=float(record["angle"]),
            center_delta=(
                float(record["center_delta_re"]),
                float(record["center_delta_im"]),
            ),
            epsilon=float(record["epsilon"]),
            maximum_iterations=int(record["maximum_iterations"]),
            color_palette_scale=float(record["color_palette_scale"]),
            generation=int(record["generation"]),
            elapsed_time=float(record["elapsed_time"]),
        )
