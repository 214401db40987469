"""Reference orbit storage for deep zoom Mandelbrot rendering.

Uses mpmath for arbitrary precision to compute a reference orbit that the
GPU can use with perturbation theory for zooms beyond float32 limits.
The orbit is computed incrementally: each call to extend() resumes from
the last iterate instead of replaying the orbit from z_0.
"""

import logging
import math
from typing import NamedTuple, Optional

import numpy as np

try:
    import mpmath
except ImportError:
    raise ImportError(
        "mpmath is required for deep zoom: pip install mpmath"
    )

logger = logging.getLogger(__name__)

MIN_PRECISION_DIGITS = 50
MAX_PRECISION_DIGITS = 1000


class ResumeCursor(NamedTuple):
    """The most recent iterate and the index it will be stored at."""
    last_z: mpmath.mpc
    last_index: int


def precision_for_zoom(zoom: float) -> int:
    """Estimate required precision digits for a given zoom.

    Args:
        zoom: Half-height of the view in complex plane units

    Returns:
        Recommended precision in decimal digits
    """
    # One decimal digit per power of ten of magnification, plus margin
    depth = max(0.0, -math.log10(zoom)) if zoom > 0 else float(MAX_PRECISION_DIGITS)
    base_digits = int(depth) + 20
    return min(MAX_PRECISION_DIGITS, max(MIN_PRECISION_DIGITS, base_digits))


class ReferenceOrbit:
    """Arbitrary-precision reference orbit with a float32 sample cache.

    The reference orbit Z_n is computed at the reference coordinate C using
    mpmath. Samples are downcast to float32 since the shader only needs them
    to seed its low-precision delta iteration δ_n = z_n - Z_n.

    Storage is allocated once for `capacity` samples and never grows.
    """

    def __init__(
        self,
        center_re: str,
        center_im: str,
        capacity: int,
        maximum_iterations: int = 100,
        escape_radius_sq: float = 10000.0,
        precision_digits: int = MIN_PRECISION_DIGITS,
    ):
        """Initialize the orbit store.

        Args:
            center_re: Real part of the reference as decimal string (e.g., "-0.75")
            center_im: Imaginary part of the reference as decimal string
            capacity: Number of samples to pre-allocate
            maximum_iterations: Current iteration limit (clamped to capacity)
            escape_radius_sq: Escape radius squared for bailout check
            precision_digits: Decimal digits of precision for mpmath
        """
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = int(capacity)
        self._samples = np.zeros((self._capacity, 2), dtype=np.float32)
        self._dps = MIN_PRECISION_DIGITS
        self.set_precision(precision_digits)
        self.escape_radius_sq = float(escape_radius_sq)

        self._maximum_iterations = 1
        self.maximum_iterations = maximum_iterations

        # Parse the reference with full precision
        with mpmath.workdps(self._dps):
            self._center = mpmath.mpc(mpmath.mpf(center_re), mpmath.mpf(center_im))

        self.reset()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def maximum_iterations(self) -> int:
        return self._maximum_iterations

    @maximum_iterations.setter
    def maximum_iterations(self, value: int):
        value = int(value)
        if value > self._capacity:
            logger.debug(
                "maximum_iterations %d exceeds capacity %d, clamping",
                value, self._capacity,
            )
            value = self._capacity
        self._maximum_iterations = max(1, value)

    @property
    def valid_length(self) -> int:
        """Number of leading samples that satisfy the recurrence."""
        return min(self._length, self._maximum_iterations)

    @property
    def escaped(self) -> bool:
        """Whether the reference point escaped."""
        return self._escaped

    @property
    def precision_digits(self) -> int:
        return self._dps

    @property
    def center(self) -> mpmath.mpc:
        return self._center

    @property
    def cursor(self) -> ResumeCursor:
        return ResumeCursor(self._z, self._index)

    @property
    def samples(self) -> np.ndarray:
        """Read-only view of the valid samples, shape (valid_length, 2)."""
        view = self._samples[:self.valid_length]
        view.flags.writeable = False
        return view

    # =========================================================================
    # Orbit computation
    # =========================================================================

    def set_precision(self, precision_digits: int):
        """Set the working precision used for iteration and rebasing."""
        digits = min(MAX_PRECISION_DIGITS, max(MIN_PRECISION_DIGITS, int(precision_digits)))
        if digits != self._dps:
            logger.debug("reference precision %d -> %d digits", self._dps, digits)
        self._dps = digits

    def extend(self, budget: Optional[int] = None) -> bool:
        """Continue the orbit from the resume cursor.

        Iteration stops when the orbit escapes, when maximum_iterations is
        reached, or after `budget` iterations. A budget of None means no cap.

        Args:
            budget: Maximum number of iterations to perform in this call

        Returns:
            True if the orbit has escaped
        """
        if self._escaped:
            return True

        mu = self.escape_radius_sq
        limit = self._maximum_iterations
        if budget is not None:
            limit = min(limit, self._index + max(0, int(budget)))

        z = self._z
        c = self._center
        index = self._index
        samples = self._samples

        # Mandelbrot iteration: Z_{n+1} = Z_n^2 + C
        with mpmath.workdps(self._dps), np.errstate(over="ignore", invalid="ignore"):
            while index < limit:
                re = float(z.real)
                im = float(z.imag)
                samples[index, 0] = re
                samples[index, 1] = im

                norm_sq = re * re + im * im
                if not math.isfinite(norm_sq) or norm_sq > mu:
                    self._escaped = True
                    break

                z = z * z + c
                index += 1

        self._z = z
        self._index = index
        self._length = index
        return self._escaped

    def reset(self):
        """Forget the computed orbit; the reference coordinate is kept."""
        self._z = mpmath.mpc(0, 0)
        self._index = 0
        self._length = 0
        self._escaped = False

    def rebase(self, delta: tuple[float, float]):
        """Move the reference coordinate by a float64 delta and reset the orbit."""
        with mpmath.workdps(self._dps):
            self._center = self._center + mpmath.mpc(
                mpmath.mpf(float(delta[0])), mpmath.mpf(float(delta[1]))
            )
        self.reset()

    # =========================================================================
    # Export
    # =========================================================================

    def to_bytes(self, padded: bool = False) -> bytes:
        """Serialize the samples as consecutive (re, im) little-endian float32 pairs.

        Args:
            padded: Pad with zeros up to the full capacity

        Returns:
            valid_length * 8 bytes, or capacity * 8 bytes when padded
        """
        length = self.valid_length
        if not padded:
            return self._samples[:length].astype("<f4", copy=False).tobytes()
        out = np.zeros((self._capacity, 2), dtype="<f4")
        out[:length] = self._samples[:length]
        return out.tobytes()

    def center_strings(self, digits: Optional[int] = None) -> tuple[str, str]:
        """Reference coordinate as decimal strings."""
        digits = digits or self._dps
        return (
            mpmath.nstr(self._center.real, digits),
            mpmath.nstr(self._center.imag, digits),
        )

    def get_center_float64(self) -> tuple[float, float]:
        """Get center as float64 (loses precision at deep zooms)."""
        return float(self._center.real), float(self._center.imag)
