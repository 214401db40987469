import numpy as np
import pytest

from pymandel.frame_state import FRAME_DTYPE, FRAME_RECORD_SIZE, MAX_ZOOM, MIN_ZOOM, FrameState


def make_state(**overrides):
    params = dict(zoom=3.0, mu=10000.0, width=800, height=600)
    params.update(overrides)
    return FrameState(**params)


def test_record_layout_is_fixed():
    assert FRAME_RECORD_SIZE == 48
    assert FRAME_DTYPE.names == (
        "generation", "elapsed_time", "zoom", "angle",
        "center_delta_re", "center_delta_im", "epsilon", "maximum_iterations",
        "width", "height", "mu", "color_palette_scale",
    )
    offsets = [FRAME_DTYPE.fields[name][1] for name in FRAME_DTYPE.names]
    assert offsets == list(range(0, 48, 4))


def test_to_bytes_uses_documented_offsets():
    state = make_state(generation=7, maximum_iterations=250, center_delta=(0.5, -1.25))
    data = state.to_bytes()
    assert len(data) == 48

    words = np.frombuffer(data, dtype="<u4")
    floats = np.frombuffer(data, dtype="<f4")
    assert words[0] == 7
    assert floats[2] == np.float32(3.0)
    assert floats[4] == np.float32(0.5)
    assert floats[5] == np.float32(-1.25)
    assert words[7] == 250
    assert words[8] == 800
    assert words[9] == 600
    assert floats[10] == np.float32(10000.0)


def test_from_bytes_restores_fields():
    state = make_state(angle=0.5, center_delta=(0.25, 0.125), epsilon=0.002,
                       maximum_iterations=321, color_palette_scale=1.5,
                       generation=3, elapsed_time=2.5)
    restored = FrameState.from_bytes(state.to_bytes())
    assert restored.zoom == pytest.approx(3.0)
    assert restored.angle == pytest.approx(0.5)
    assert restored.center_delta == (0.25, 0.125)
    assert restored.epsilon == pytest.approx(0.002)
    assert restored.maximum_iterations == 321
    assert (restored.width, restored.height) == (800, 600)
    assert restored.color_palette_scale == pytest.approx(1.5)
    assert restored.generation == 3
    assert restored.elapsed_time == pytest.approx(2.5)


def test_from_bytes_rejects_short_records():
    with pytest.raises(ValueError):
        FrameState.from_bytes(b"\x00" * 12)


def test_resize_only_touches_dimensions():
    state = make_state(angle=1.0, center_delta=(0.1, 0.2))
    state.resize(1920, 1080)
    assert (state.width, state.height) == (1920, 1080)
    assert state.zoom == 3.0
    assert state.angle == 1.0
    assert state.center_delta == (0.1, 0.2)


def test_reset_restores_zoom_angle_and_escape_radius():
    state = make_state()
    state.set_zoom(1e-9)
    state.angle = 2.0
    state.mu = 4.0
    state.center_delta = (0.5, 0.5)
    state.color_palette_scale = 3.0

    state.reset()
    assert state.zoom == 3.0
    assert state.angle == 0.0
    assert state.mu == 10000.0
    assert state.center_delta == (0.5, 0.5)
    assert state.color_palette_scale == 3.0


def test_copy_is_independent():
    state = make_state()
    other = state.copy()
    other.set_zoom(1.0)
    other.resize(10, 10)
    assert state.zoom == 3.0
    assert state.width == 800


def test_zoom_stays_positive():
    with pytest.raises(ValueError):
        make_state(zoom=0.0)
    state = make_state()
    state.set_zoom(0.0)
    assert state.zoom == MIN_ZOOM
    record = state.to_record()
    assert record["zoom"][0] > 0


def test_zoom_stays_within_float32_range():
    state = make_state(zoom=1e300)
    assert state.zoom == MAX_ZOOM
    assert state.initial_zoom == MAX_ZOOM

    state.set_zoom(float("inf"))
    assert state.zoom == MAX_ZOOM
    assert np.isfinite(state.to_record()["zoom"][0])
