"""Perturbation engine: owns the view state and the reference orbit.

The render loop calls input() for every queued event, then update(dt) once
per frame. update() finishes all mutation before it publishes a Snapshot,
so the upload layer only ever sees a consistent frame.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

import mpmath

from . import events, mapping
from .config import EngineConfig
from .deep_zoom import ReferenceOrbit, precision_for_zoom
from .frame_state import FrameState


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Velocities are multiplied by VELOCITY_DECAY every second
VELOCITY_DECAY = 0.05
VELOCITY_EPSILON = 0.001
ZOOM_ACCELERATION_EPSILON = VELOCITY_EPSILON * 100

# Largest log-zoom change per frame; math.exp overflows just past 709
MAX_ZOOM_STEP = 700.0

# Rebase once the center strays this many zooms (L1) from the reference
REBASE_THRESHOLD = 2.0

# Iteration budget: (1 + clamp(log_base(1 / zoom), 0, depth)) * iteration_speed
ITERATION_LOG_BASE = 2.1
ITERATION_DEPTH_LIMIT = 200.0
ITERATION_SPEED_STEP = 1.1
MIN_ITERATION_SPEED = 10
MAX_ITERATION_SPEED = 10000

SCROLL_ACCELERATION = 2.0
SCROLL_ZOOM_FACTOR = 1 / 1.1  # per tick, zooming in
ZOOM_SPEED_STEP = 1.1
MIN_ZOOM_SPEED = 0.1
START_ZOOM_SPEED = 0.5
MOVE_STEP = 1.0  # view half-heights per second
ROTATE_STEP = 1.0  # radians per second
PALETTE_STEP = 1.1
MIN_PALETTE_SCALE = 0.1


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time byte copy of the state the GPU consumes."""
    frame: bytes
    orbit: bytes
    valid_length: int
    generation: int


Uploader = Callable[[Snapshot], None]


def iteration_budget(zoom: float, iteration_speed: float, limit: int) -> int:
    """Maximum iterations for a zoom level, growing with log(1 / zoom)."""
    depth = math.log(1.0 / zoom, ITERATION_LOG_BASE)
    depth = min(max(depth, 0.0), ITERATION_DEPTH_LIMIT)
    return max(1, min(int(limit), int((1.0 + depth) * iteration_speed)))


def decay(value: float, dt: float, threshold: float) -> float:
    """Exponentially decay a velocity, snapping it to zero below threshold."""
    value *= VELOCITY_DECAY ** dt
    if abs(value) < threshold:
        return 0.0
    return value


def ramp_zoom_speed(speed: float, direction: int) -> float:
    """Next cruise zoom speed after a zoom key press in `direction` (+1 in, -1 out)."""
    speed *= direction
    if speed < 0:
        speed /= ZOOM_SPEED_STEP
        if speed > -MIN_ZOOM_SPEED:
            speed = MIN_ZOOM_SPEED
    else:
        if speed < MIN_ZOOM_SPEED:
            speed = START_ZOOM_SPEED
        speed *= ZOOM_SPEED_STEP
    return speed * direction


class PerturbationEngine:
    """Tracks one reference orbit and the view relative to it."""

    def __init__(self, config: EngineConfig, uploader: Optional[Uploader] = None):
        self.config = config
        self.uploader = uploader

        self.iteration_speed = config.iteration_speed
        self.zoom_at_cursor = config.zoom_at_cursor

        mu = config.mu
        self._iteration_limit = min(config.maximum_iterations, config.capacity)
        self._frame = FrameState(
            zoom=config.zoom,
            mu=mu,
            width=config.width,
            height=config.height,
            epsilon=config.epsilon,
            maximum_iterations=iteration_budget(
                config.zoom, self.iteration_speed, self._iteration_limit
            ),
            color_palette_scale=config.color_palette_scale,
        )
        self._orbit = ReferenceOrbit(
            config.center_re,
            config.center_im,
            capacity=config.capacity,
            maximum_iterations=self._frame.maximum_iterations,
            escape_radius_sq=mu,
            precision_digits=self._precision(),
        )

        # Continuous motion
        self.zoom_speed = 0.0
        self.zoom_acceleration = 0.0
        self.rotate_speed = 0.0
        self.move_speed = (0.0, 0.0)

        # Pointer tracking
        self._pointer: Optional[tuple] = None
        self._left_pressed = False
        self._right_pressed = False

        # A fresh orbit is computed in full on the first update
        self._needs_full_extend = True

        logger.info(
            "engine ready: reference %s + %si, zoom %g, %d digits",
            config.center_re, config.center_im, config.zoom,
            self._orbit.precision_digits,
        )

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def frame(self) -> FrameState:
        """Copy of the current frame state."""
        return self._frame.copy()

    @property
    def orbit(self) -> ReferenceOrbit:
        """The reference orbit store. Callers must treat it as read-only."""
        return self._orbit

    @property
    def reference_coordinate(self) -> tuple[str, str]:
        return self._orbit.center_strings()

    def view_center(self) -> mpmath.mpc:
        """Reference coordinate plus center delta, at full precision."""
        re, im = self._frame.center_delta
        with mpmath.workdps(self._orbit.precision_digits):
            return self._orbit.center + mpmath.mpc(mpmath.mpf(re), mpmath.mpf(im))

    def snapshot(self, padded: bool = False) -> Snapshot:
        return Snapshot(
            frame=self._frame.to_bytes(),
            orbit=self._orbit.to_bytes(padded),
            valid_length=self._orbit.valid_length,
            generation=self._frame.generation,
        )

    # =========================================================================
    # Frame update
    # =========================================================================

    def update(self, dt: float) -> Snapshot:
        """Advance one frame and publish the resulting snapshot."""
        dt = max(0.0, float(dt))
        frame = self._frame

        # zoom
        self.zoom_acceleration = decay(self.zoom_acceleration, dt, ZOOM_ACCELERATION_EPSILON)
        rate = self.zoom_speed + self.zoom_acceleration
        if rate:
            step = min(max(-rate * dt, -MAX_ZOOM_STEP), MAX_ZOOM_STEP)
            frame.set_zoom(frame.zoom * math.exp(step))

        # rotation
        self.rotate_speed = decay(self.rotate_speed, dt, VELOCITY_EPSILON)
        if self.rotate_speed:
            frame.angle += self.rotate_speed * dt

        # movement
        self.move_speed = (
            decay(self.move_speed[0], dt, VELOCITY_EPSILON),
            decay(self.move_speed[1], dt, VELOCITY_EPSILON),
        )
        if self.move_speed != (0.0, 0.0):
            step_x, step_y = mapping.rotate(
                self.move_speed[0] * frame.zoom * dt,
                self.move_speed[1] * frame.zoom * dt,
                frame.angle,
            )
            frame.center_delta = (
                frame.center_delta[0] + step_x,
                frame.center_delta[1] + step_y,
            )

        # maximum iterations
        frame.maximum_iterations = iteration_budget(
            frame.zoom, self.iteration_speed, self._iteration_limit
        )
        self._orbit.maximum_iterations = frame.maximum_iterations
        self._orbit.escape_radius_sq = frame.mu

        if mapping.l1_norm(*frame.center_delta) >= REBASE_THRESHOLD * frame.zoom:
            self._rebase()

        if self._needs_full_extend:
            self._orbit.extend(None)
            self._needs_full_extend = False
        else:
            self._orbit.extend(self.config.frame_budget)

        frame.generation += 1
        frame.elapsed_time += dt

        snapshot = self.snapshot()
        if self.uploader is not None:
            self.uploader(snapshot)
        return snapshot

    def _precision(self) -> int:
        return max(self.config.precision_digits, precision_for_zoom(self._frame.zoom))

    def _rebase(self):
        """Fold the center delta into the reference coordinate."""
        delta = self._frame.center_delta
        self._orbit.set_precision(self._precision())
        self._orbit.rebase(delta)
        self._frame.center_delta = (0.0, 0.0)
        self._needs_full_extend = True
        logger.debug("rebased reference by (%.6e, %.6e)", delta[0], delta[1])

    # =========================================================================
    # Operations
    # =========================================================================

    def pan_by(self, dx: float, dy: float):
        """Pan by a pointer drag of (dx, dy) pixels."""
        frame = self._frame
        step_x, step_y = mapping.pixel_delta_to_complex_delta(
            dx, dy, frame.zoom, frame.angle, frame.width, frame.height
        )
        frame.center_delta = (frame.center_delta[0] + step_x, frame.center_delta[1] + step_y)

    def zoom_by(self, factor: float):
        """Scale the view half-height; factor < 1 zooms in."""
        if not factor > 0:
            raise ValueError(f"zoom factor must be positive, got {factor!r}")
        self._frame.set_zoom(float(self._frame.zoom) * float(factor))

    def zoom_at_point(self, factor: float, px: float, py: float):
        """Zoom by factor keeping the point under (px, py) fixed on screen."""
        frame = self._frame
        adjust_x, adjust_y = mapping.zoom_at(
            factor, px, py, frame.zoom, frame.angle, frame.width, frame.height
        )
        self.zoom_by(factor)
        frame.center_delta = (frame.center_delta[0] + adjust_x, frame.center_delta[1] + adjust_y)

    def rotate_by(self, delta_angle: float):
        self._frame.angle += delta_angle

    def recenter_at(self, px: float, py: float):
        """Move the reference to the point under (px, py) without moving the view.

        A point at least REBASE_THRESHOLD zooms (L1) from the view center leaves
        center_delta past the rebase bound, so the next update() moves the
        reference back to the view center.
        """
        frame = self._frame
        d_x, d_y = mapping.screen_point_to_complex_delta(
            px, py, frame.zoom, frame.angle, frame.width, frame.height
        )
        center_x, center_y = frame.center_delta
        self._orbit.set_precision(self._precision())
        self._orbit.rebase((d_x + center_x, d_y + center_y))
        frame.center_delta = (-d_x, -d_y)
        self._orbit.extend(None)
        self._needs_full_extend = False
        logger.debug("recentered reference at pixel (%g, %g)", px, py)

    def reset_view(self):
        self._frame.reset()

    def resize(self, width: int, height: int):
        # Minimized windows report a zero size
        if width > 0 and height > 0:
            self._frame.resize(width, height)

    def stop(self):
        """Cancel all continuous motion."""
        self.zoom_speed = 0.0
        self.zoom_acceleration = 0.0
        self.rotate_speed = 0.0
        self.move_speed = (0.0, 0.0)

    # =========================================================================
    # Event Handling
    # =========================================================================

    def input(self, event):
        """Apply one input event."""
        if isinstance(event, events.Resize):
            self.resize(event.width, event.height)
        elif isinstance(event, events.PointerMove):
            self._on_pointer_move(event)
        elif isinstance(event, events.PointerButton):
            self._on_pointer_button(event)
        elif isinstance(event, events.Scroll):
            self._on_scroll(event)
        elif isinstance(event, events.KeyInput):
            if event.pressed:
                self._on_key(event.key)

    def _on_pointer_move(self, event: events.PointerMove):
        if self._left_pressed and self._pointer is not None:
            self.pan_by(event.x - self._pointer[0], event.y - self._pointer[1])
        self._pointer = (event.x, event.y)
        if self._right_pressed:
            self._rotate_toward(event.x, event.y)

    def _on_pointer_button(self, event: events.PointerButton):
        if event.button == events.Button.LEFT:
            self._left_pressed = event.pressed
        elif event.button == events.Button.RIGHT:
            self._right_pressed = event.pressed
            if event.pressed and self._pointer is not None:
                self._rotate_toward(*self._pointer)
        elif event.button == events.Button.MIDDLE:
            if event.pressed and self._pointer is not None:
                self.recenter_at(*self._pointer)

    def _rotate_toward(self, x: float, y: float):
        frame = self._frame
        frame.angle = -math.atan2(x - frame.width / 2, y - frame.height / 2)

    def _on_scroll(self, event: events.Scroll):
        if not event.ticks:
            return
        if self.zoom_at_cursor:
            px, py = self._pointer or (self._frame.width / 2, self._frame.height / 2)
            self.zoom_at_point(SCROLL_ZOOM_FACTOR ** event.ticks, px, py)
        elif event.ticks > 0:
            self.zoom_acceleration += SCROLL_ACCELERATION
        else:
            self.zoom_acceleration -= SCROLL_ACCELERATION

    def _on_key(self, key: events.Key):
        frame = self._frame
        move_x, move_y = self.move_speed
        if key == events.Key.LEFT:
            self.move_speed = (move_x - MOVE_STEP, move_y)
        elif key == events.Key.RIGHT:
            self.move_speed = (move_x + MOVE_STEP, move_y)
        elif key == events.Key.UP:
            self.move_speed = (move_x, move_y + MOVE_STEP)
        elif key == events.Key.DOWN:
            self.move_speed = (move_x, move_y - MOVE_STEP)
        elif key == events.Key.ROTATE_LEFT:
            self.rotate_speed -= ROTATE_STEP
        elif key == events.Key.ROTATE_RIGHT:
            self.rotate_speed += ROTATE_STEP
        elif key == events.Key.ZOOM_IN:
            self.zoom_speed = ramp_zoom_speed(self.zoom_speed, 1)
        elif key == events.Key.ZOOM_OUT:
            self.zoom_speed = ramp_zoom_speed(self.zoom_speed, -1)
        elif key == events.Key.STOP:
            self.stop()
        elif key == events.Key.RESET:
            self.reset_view()
        elif key == events.Key.PALETTE_UP:
            frame.color_palette_scale *= PALETTE_STEP
        elif key == events.Key.PALETTE_DOWN:
            frame.color_palette_scale = max(
                MIN_PALETTE_SCALE, frame.color_palette_scale / PALETTE_STEP
            )
        elif key == events.Key.MORE_ITERATIONS:
            self.iteration_speed = min(
                MAX_ITERATION_SPEED, self.iteration_speed * ITERATION_SPEED_STEP
            )
        elif key == events.Key.FEWER_ITERATIONS:
            self.iteration_speed = max(
                MIN_ITERATION_SPEED, self.iteration_speed / ITERATION_SPEED_STEP
            )
        elif key == events.Key.TOGGLE_ZOOM_MODE:
            self.zoom_at_cursor = not self.zoom_at_cursor
            logger.info("zoom mode: %s", "cursor" if self.zoom_at_cursor else "velocity")
