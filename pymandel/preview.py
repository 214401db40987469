"""CPU preview of what the shader draws from a published snapshot.

Decodes the frame record and the orbit samples exactly as the GPU side
would, then runs perturbation iteration with numpy:

    dz_{n+1} = (2 Z_m + dz_n) dz_n + dc

rebasing dz onto the start of the reference orbit when |Z_m + dz| < |dz|
or when the orbit runs out.
"""

import numpy as np
from PIL import Image

from .frame_state import FrameState
from .mapping import screen_vector

# Iteration cap for the preview, independent of the engine's budget
PREVIEW_MAX_ITERATIONS = 2000
PALETTE_PHASE = np.array([0.0, 0.33, 0.67])
PALETTE_FREQUENCY = 0.05


def decode_orbit(orbit_bytes: bytes, valid_length: int = None) -> np.ndarray:
    """Orbit samples as a complex128 array."""
    pairs = np.frombuffer(orbit_bytes, dtype="<f4").reshape(-1, 2)
    if valid_length is not None:
        pairs = pairs[:valid_length]
    return pairs[:, 0].astype(np.float64) + 1j * pairs[:, 1].astype(np.float64)


def pixel_offsets(frame: FrameState, width: int, height: int) -> np.ndarray:
    """Complex offset of every pixel center from the reference coordinate."""
    sx = frame.width / width
    sy = frame.height / height
    ys, xs = np.mgrid[0:height, 0:width]
    dx = (xs + 0.5) * sx - frame.width / 2
    dy = (ys + 0.5) * sy - frame.height / 2
    re, im = screen_vector(dx, dy, frame.zoom, frame.angle, frame.width, frame.height)
    return (re + frame.center_delta[0]) + 1j * (im + frame.center_delta[1])


def iterate(dc: np.ndarray, ref: np.ndarray, mu: float, max_iter: int) -> np.ndarray:
    """Escape iteration count per pixel; max_iter marks points that never escaped."""
    counts = np.full(dc.shape, max_iter, dtype=np.int32)
    if len(ref) < 2:
        return counts

    flat_dc = dc.ravel()
    flat_counts = counts.ravel()
    dz = np.zeros_like(flat_dc)
    m = np.zeros(flat_dc.shape, dtype=np.intp)
    alive = np.arange(flat_dc.size)
    last = len(ref) - 1

    with np.errstate(over="ignore", invalid="ignore"):
        for i in range(max_iter):
            if alive.size == 0:
                break
            d = dz[alive]
            mi = m[alive]
            d = (2 * ref[mi] + d) * d + flat_dc[alive]
            mi = mi + 1
            z = ref[mi] + d
            z_sq = z.real ** 2 + z.imag ** 2

            escaped = ~(z_sq <= mu)
            flat_counts[alive[escaped]] = i + 1

            rebase = (z_sq < d.real ** 2 + d.imag ** 2) | (mi == last)
            d = np.where(rebase, z, d)
            mi = np.where(rebase, 0, mi)

            keep = ~escaped
            alive = alive[keep]
            dz[alive] = d[keep]
            m[alive] = mi[keep]

    return counts


def colorize(counts: np.ndarray, max_iter: int, palette_scale: float) -> np.ndarray:
    """Cosine palette for escaped points, black inside the set."""
    t = counts[..., None] * (palette_scale * PALETTE_FREQUENCY) + PALETTE_PHASE
    rgb = (0.5 + 0.5 * np.cos(2 * np.pi * t)) * 255
    rgb[counts >= max_iter] = 0
    return rgb.astype(np.uint8)


def render_preview(frame_bytes: bytes, orbit_bytes: bytes, scale: float = 0.25,
                   max_iterations: int = PREVIEW_MAX_ITERATIONS) -> np.ndarray:
    """Render a snapshot to an RGB array of shape (height * scale, width * scale, 3)."""
    frame = FrameState.from_bytes(frame_bytes)
    ref = decode_orbit(orbit_bytes)
    width = max(1, int(frame.width * scale))
    height = max(1, int(frame.height * scale))
    max_iter = max(1, min(frame.maximum_iterations, max_iterations))

    counts = iterate(pixel_offsets(frame, width, height), ref, frame.mu, max_iter)
    return colorize(counts, max_iter, frame.color_palette_scale)


def save_png(rgb: np.ndarray, filename: str):
    Image.fromarray(rgb).save(filename)
