"""Startup configuration for the perturbation engine."""

import logging
from dataclasses import dataclass

import mpmath

logger = logging.getLogger(__name__)


# Default starting location
DEFAULT_CENTER_RE = "-0.75"
DEFAULT_CENTER_IM = "0.0"
DEFAULT_ZOOM = 3.0
DEFAULT_ESCAPE_RADIUS = "100"


class ConfigError(ValueError):
    """Raised when the startup configuration cannot be used."""


def parse_decimal(value, name: str) -> mpmath.mpf:
    """Parse a decimal string into an mpmath number, rejecting junk.

    Args:
        value: Decimal string (e.g. "-0.743643887037151")
        name: Field name, used in the error message

    Returns:
        The parsed value at the current mpmath precision.
    """
    if isinstance(value, str) and not value.strip():
        raise ConfigError(f"{name}: empty value")
    try:
        parsed = mpmath.mpf(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"{name}: cannot parse {value!r}") from err
    if not mpmath.isfinite(parsed):
        raise ConfigError(f"{name}: {value!r} is not finite")
    return parsed


@dataclass
class EngineConfig:
    """Everything the engine needs at construction time."""
    # Seed reference coordinate as arbitrary-precision strings
    center_re: str = DEFAULT_CENTER_RE
    center_im: str = DEFAULT_CENTER_IM

    # Initial half-height of the view in the complex plane
    zoom: float = DEFAULT_ZOOM

    # Bailout radius; the engine works with its square (mu)
    escape_radius: str = DEFAULT_ESCAPE_RADIUS

    # Orbit storage and iteration limits
    capacity: int = 100_000
    maximum_iterations: int = 20_000
    iteration_speed: int = 100
    frame_budget: int = 50
    precision_digits: int = 50

    # Shader parameters
    epsilon: float = 0.001
    color_palette_scale: float = 1.0

    # Viewport
    width: int = 1200
    height: int = 900

    # Scroll behaviour: False = zoom velocity, True = zoom at cursor
    zoom_at_cursor: bool = False

    def __post_init__(self):
        if self.precision_digits < 1:
            raise ConfigError(
                f"precision_digits must be at least 1, got {self.precision_digits}"
            )
        with mpmath.workdps(self.precision_digits):
            parse_decimal(self.center_re, "center_re")
            parse_decimal(self.center_im, "center_im")
            radius = parse_decimal(self.escape_radius, "escape_radius")
        if radius <= 0:
            raise ConfigError(f"escape_radius must be positive, got {self.escape_radius!r}")
        if not self.zoom > 0:
            raise ConfigError(f"zoom must be positive, got {self.zoom!r}")
        if self.capacity < 1:
            raise ConfigError(f"capacity must be at least 1, got {self.capacity}")
        if self.maximum_iterations < 1:
            raise ConfigError(
                f"maximum_iterations must be at least 1, got {self.maximum_iterations}"
            )
        if self.maximum_iterations > self.capacity:
            logger.debug(
                "maximum_iterations %d exceeds capacity %d, clamping",
                self.maximum_iterations, self.capacity,
            )
            self.maximum_iterations = self.capacity
        if self.frame_budget < 1:
            raise ConfigError(f"frame_budget must be at least 1, got {self.frame_budget}")
        if self.width < 1 or self.height < 1:
            raise ConfigError(f"invalid viewport {self.width}x{self.height}")

    @property
    def mu(self) -> float:
        """Escape radius squared."""
        radius = mpmath.mpf(self.escape_radius)
        return float(radius * radius)
