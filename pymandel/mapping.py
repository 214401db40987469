"""Screen space to complex plane conversions.

All functions are pure and take the view parameters explicitly. The view
spans [-zoom, zoom] vertically and [-zoom * aspect, zoom * aspect]
horizontally around its center, rotated by `angle`.
"""

import math

import numpy as np


def l1_norm(x: float, y: float) -> float:
    return abs(x) + abs(y)


def rotate(x, y, angle):
    """Rotate (x, y) counter-clockwise by angle, in the precision of the inputs."""
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    if isinstance(x, np.floating):
        cos_a = x.dtype.type(cos_a)
        sin_a = x.dtype.type(sin_a)
    return x * cos_a - y * sin_a, x * sin_a + y * cos_a


def screen_vector(dx: float, dy: float, zoom: float, angle: float,
                  width: int, height: int) -> tuple[float, float]:
    """Complex plane displacement for a screen displacement, in float64."""
    half_w = width / 2
    half_h = height / 2
    x = dx / half_w * (width / height) * zoom
    y = -dy / half_h * zoom
    return rotate(x, y, angle)


def pixel_delta_to_complex_delta(dx: float, dy: float, zoom: float, angle: float,
                                 width: int, height: int) -> tuple[float, float]:
    """Center delta change for a pointer drag of (dx, dy) pixels.

    Computed in float32 since it feeds continuous per-frame panning. The
    view center moves against the drag so the content follows the pointer.
    """
    f32 = np.float32
    x = -f32(dx) / f32(width / 2) * f32(width / height) * f32(zoom)
    y = f32(dy) / f32(height / 2) * f32(zoom)
    x, y = rotate(x, y, angle)
    return float(x), float(y)


def screen_point_to_complex_delta(px: float, py: float, zoom: float, angle: float,
                                  width: int, height: int) -> tuple[float, float]:
    """Offset of a screen point from the view center, in float64."""
    return screen_vector(px - width / 2, py - height / 2, zoom, angle, width, height)


def zoom_at(factor: float, px: float, py: float, zoom: float, angle: float,
            width: int, height: int) -> tuple[float, float]:
    """Center delta adjustment that keeps the point under (px, py) fixed.

    Apply it together with zoom *= factor.
    """
    x, y = screen_point_to_complex_delta(px, py, zoom, angle, width, height)
    return x * (1.0 - factor), y * (1.0 - factor)
