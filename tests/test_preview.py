import numpy as np

from pymandel.config import EngineConfig
from pymandel.deep_zoom import ReferenceOrbit
from pymandel.engine import PerturbationEngine
from pymandel.preview import decode_orbit, iterate, render_preview


def make_snapshot(**overrides):
    params = dict(width=80, height=60, capacity=5_000)
    params.update(overrides)
    engine = PerturbationEngine(EngineConfig(**params))
    return engine.update(1.0 / 60)


def test_decode_orbit():
    data = np.array([[0.0, 0.0], [-0.75, 0.5], [9.0, 9.0]], dtype="<f4").tobytes()
    ref = decode_orbit(data, valid_length=2)
    assert ref.dtype == np.complex128
    np.testing.assert_array_equal(ref, [0.0, -0.75 + 0.5j])


def test_iterate_matches_direct_escape_count():
    orbit = ReferenceOrbit("-0.75", "0.0", capacity=100, maximum_iterations=100)
    orbit.extend()
    ref = decode_orbit(orbit.to_bytes(), orbit.valid_length)

    # Offset from -0.75 to the point 0.5 + 0.5i, which escapes radius 2 at z_5
    counts = iterate(np.array([1.25 + 0.5j]), ref, 4.0, 100)
    assert counts.tolist() == [5]


def test_iterate_without_reference_marks_nothing_escaped():
    counts = iterate(np.zeros((2, 3), dtype=np.complex128), np.zeros(1), 4.0, 50)
    assert (counts == 50).all()


def test_render_preview_shape():
    snapshot = make_snapshot()
    rgb = render_preview(snapshot.frame, snapshot.orbit, scale=0.5)
    assert rgb.shape == (30, 40, 3)
    assert rgb.dtype == np.uint8
    assert rgb.any()


def test_interior_renders_black():
    snapshot = make_snapshot(center_re="-0.2", zoom=0.01)
    rgb = render_preview(snapshot.frame, snapshot.orbit, scale=0.5)
    assert not rgb.any()
