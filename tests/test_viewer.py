import pygame

from pymandel import events
from pymandel.config import EngineConfig
from pymandel.engine import PerturbationEngine
from pymandel.viewer import info_lines, translate_event


def test_key_press_and_release():
    assert translate_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_LEFT)) == [
        events.KeyInput(events.Key.LEFT, pressed=True)
    ]
    assert translate_event(pygame.event.Event(pygame.KEYUP, key=pygame.K_d)) == [
        events.KeyInput(events.Key.RIGHT, pressed=False)
    ]


def test_unbound_key_is_dropped():
    assert translate_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_z)) == []


def test_button_press_reports_position_first():
    event = pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=2, pos=(10, 20))
    assert translate_event(event) == [
        events.PointerMove(10, 20),
        events.PointerButton(events.Button.MIDDLE, pressed=True),
    ]


def test_wheel_and_motion():
    assert translate_event(pygame.event.Event(pygame.MOUSEWHEEL, x=0, y=-1)) == [
        events.Scroll(-1)
    ]
    assert translate_event(pygame.event.Event(pygame.MOUSEMOTION, pos=(3, 4))) == [
        events.PointerMove(3, 4)
    ]


def test_window_resize():
    event = pygame.event.Event(pygame.WINDOWRESIZED, x=640, y=480)
    assert translate_event(event) == [events.Resize(640, 480)]


def test_info_lines_describe_view_and_orbit():
    engine = PerturbationEngine(EngineConfig(
        center_re="-0.7436438870371587047908418", width=80, height=60, capacity=500,
    ))
    snapshot = engine.update(1.0 / 60)
    zoom_line, orbit_line, reference_line = info_lines(engine, snapshot, 12.4)
    assert zoom_line.startswith("Zoom: 3.000e+00 | imax: 100")
    assert "velocity" in zoom_line
    assert orbit_line.startswith("Orbit: 100 pts, escaped=False")
    assert "12ms" in orbit_line
    assert reference_line.startswith("Reference: -0.7436438870371587047908418")
    assert "..." in reference_line
