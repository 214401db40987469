"""Input events understood by PerturbationEngine.input().

The window layer translates its native events into these records, so the
engine never depends on a particular windowing library.
"""

import enum
from dataclasses import dataclass


class Button(enum.Enum):
    LEFT = 1
    MIDDLE = 2
    RIGHT = 3


class Key(enum.Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    ROTATE_LEFT = "rotate_left"
    ROTATE_RIGHT = "rotate_right"
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    STOP = "stop"
    RESET = "reset"
    PALETTE_UP = "palette_up"
    PALETTE_DOWN = "palette_down"
    MORE_ITERATIONS = "more_iterations"
    FEWER_ITERATIONS = "fewer_iterations"
    TOGGLE_ZOOM_MODE = "toggle_zoom_mode"


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerButton:
    button: Button
    pressed: bool


@dataclass(frozen=True)
class Scroll:
    """Wheel motion; positive ticks zoom in."""
    ticks: float


@dataclass(frozen=True)
class KeyInput:
    key: Key
    pressed: bool = True
