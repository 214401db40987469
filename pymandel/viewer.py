#!/usr/bin/env python3
"""Deep zoom Mandelbrot viewer.

Drives a PerturbationEngine from a pygame window and shows a CPU preview
of each published snapshot.

Controls:
    Left drag       Pan
    Right drag      Rotate toward cursor
    Middle click    Move the reference orbit under the cursor
    Mouse wheel     Zoom (velocity, or at cursor after C)
    Arrows/WASD     Pan velocity
    Q/E             Rotation velocity
    +/-            Zoom speed
    Space           Stop all motion
    Enter           Reset view
    PgUp/PgDn       Color palette scale
    [ ] or KP / *   Iteration speed
    C               Toggle zoom at cursor
    F               Toggle info display
    H/?            Toggle help
    Escape          Quit
"""

from typing import Optional
import os
import time

# Force X11 backend for proper window decorations on Wayland
os.environ.setdefault("SDL_VIDEODRIVER", "x11")

import pygame

from . import events
from .engine import PerturbationEngine
from .preview import render_preview


# =============================================================================
# Constants
# =============================================================================

FPS = 60
PREVIEW_SCALE = 0.25
FONT_SIZE = 24
PADDING = 10
HELP_OVERLAY_ALPHA = 200

KEY_BINDINGS = {
    pygame.K_LEFT: events.Key.LEFT,
    pygame.K_a: events.Key.LEFT,
    pygame.K_RIGHT: events.Key.RIGHT,
    pygame.K_d: events.Key.RIGHT,
    pygame.K_UP: events.Key.UP,
    pygame.K_w: events.Key.UP,
    pygame.K_DOWN: events.Key.DOWN,
    pygame.K_s: events.Key.DOWN,
    pygame.K_q: events.Key.ROTATE_LEFT,
    pygame.K_e: events.Key.ROTATE_RIGHT,
    pygame.K_EQUALS: events.Key.ZOOM_IN,
    pygame.K_PLUS: events.Key.ZOOM_IN,
    pygame.K_KP_PLUS: events.Key.ZOOM_IN,
    pygame.K_MINUS: events.Key.ZOOM_OUT,
    pygame.K_KP_MINUS: events.Key.ZOOM_OUT,
    pygame.K_SPACE: events.Key.STOP,
    pygame.K_RETURN: events.Key.RESET,
    pygame.K_KP_ENTER: events.Key.RESET,
    pygame.K_PAGEUP: events.Key.PALETTE_UP,
    pygame.K_PAGEDOWN: events.Key.PALETTE_DOWN,
    pygame.K_KP_MULTIPLY: events.Key.MORE_ITERATIONS,
    pygame.K_RIGHTBRACKET: events.Key.MORE_ITERATIONS,
    pygame.K_KP_DIVIDE: events.Key.FEWER_ITERATIONS,
    pygame.K_LEFTBRACKET: events.Key.FEWER_ITERATIONS,
    pygame.K_c: events.Key.TOGGLE_ZOOM_MODE,
}

BUTTONS = {
    1: events.Button.LEFT,
    2: events.Button.MIDDLE,
    3: events.Button.RIGHT,
}

HELP_LINES = [
    "Deep Zoom Mandelbrot Viewer",
    "",
    "Navigation:",
    "  Left drag      Pan view",
    "  Right drag     Rotate toward cursor",
    "  Middle click   Move reference here",
    "  Scroll         Zoom",
    "  C              Toggle zoom at cursor",
    "  Arrows/WASD    Pan",
    "  Q/E            Rotate",
    "  +/-            Zoom speed",
    "  Space          Stop",
    "",
    "Parameters:",
    "  [ ]            Iteration speed",
    "  PgUp/PgDn      Palette scale",
    "  Enter          Reset view",
    "",
    "Display:",
    "  F              Toggle info display",
    "  H/?            Toggle help",
    "  ESC            Quit",
]


def translate_event(event) -> list:
    """Convert a pygame event into engine input events."""
    if event.type == pygame.KEYDOWN or event.type == pygame.KEYUP:
        key = KEY_BINDINGS.get(event.key)
        if key is None:
            return []
        return [events.KeyInput(key, pressed=event.type == pygame.KEYDOWN)]
    if event.type in (pygame.MOUSEBUTTONDOWN, pygame.MOUSEBUTTONUP):
        button = BUTTONS.get(event.button)
        if button is None:
            return []
        return [
            events.PointerMove(*event.pos),
            events.PointerButton(button, pressed=event.type == pygame.MOUSEBUTTONDOWN),
        ]
    if event.type == pygame.MOUSEMOTION:
        return [events.PointerMove(*event.pos)]
    if event.type == pygame.MOUSEWHEEL:
        return [events.Scroll(event.y)]
    if event.type == pygame.VIDEORESIZE:
        return [events.Resize(event.w, event.h)]
    if event.type == pygame.WINDOWRESIZED:
        return [events.Resize(event.x, event.y)]
    return []


# =============================================================================
# Main Viewer Class
# =============================================================================

class DeepZoomViewer:
    """Interactive deep zoom Mandelbrot viewer."""

    def __init__(self, engine: PerturbationEngine, preview_scale: float = PREVIEW_SCALE):
        self.engine = engine
        self.preview_scale = preview_scale

        # UI state
        self.show_info = True
        self.show_help = False
        self.running = True

        # Timing
        self.frame_times: list[float] = []
        self.last_render_ms = 0.0
        self._last_rendered: Optional[tuple] = None

        # Pygame objects
        self.screen: Optional[pygame.Surface] = None
        self.clock: Optional[pygame.time.Clock] = None
        self.font: Optional[pygame.font.Font] = None
        self.image: Optional[pygame.Surface] = None

    def run(self):
        """Main entry point."""
        self._init_pygame()

        while self.running:
            dt = self.clock.tick(FPS) / 1000.0
            self._handle_events()
            snapshot = self.engine.update(dt)
            self._render(snapshot)

        self._print_stats()
        pygame.quit()

    def _init_pygame(self):
        frame = self.engine.frame
        pygame.init()
        self.screen = pygame.display.set_mode(
            (frame.width, frame.height), pygame.RESIZABLE
        )
        pygame.display.set_caption("Deep Zoom Mandelbrot")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("monospace", FONT_SIZE)

    def _print_stats(self):
        """Print rendering statistics on exit."""
        if self.frame_times:
            avg_ms = sum(self.frame_times) / len(self.frame_times)
            print(f"\nRendered {len(self.frame_times)} previews")
            print(f"Average preview time: {avg_ms:.1f}ms")
        real, imag = self.engine.reference_coordinate
        print(f"Final reference: {real} + {imag}i")

    # =========================================================================
    # Event Handling
    # =========================================================================

    def _handle_events(self):
        """Process pygame events, all of them before the frame update."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.KEYDOWN and self._on_viewer_key(event):
                continue
            for engine_event in translate_event(event):
                self.engine.input(engine_event)

    def _on_viewer_key(self, event) -> bool:
        """Keys handled by the window rather than the engine."""
        if event.key == pygame.K_ESCAPE:
            self.running = False
        elif event.key == pygame.K_f:
            self.show_info = not self.show_info
        elif event.key in (pygame.K_h, pygame.K_QUESTION, pygame.K_SLASH):
            self.show_help = not self.show_help
        else:
            return False
        self._last_rendered = None
        return True

    # =========================================================================
    # Rendering
    # =========================================================================

    def _render(self, snapshot):
        # Generation and elapsed time change every frame; skip them
        key = (snapshot.frame[8:], snapshot.valid_length)
        if key == self._last_rendered:
            return

        t0 = time.perf_counter()
        rgb = render_preview(snapshot.frame, snapshot.orbit, self.preview_scale)
        self.last_render_ms = (time.perf_counter() - t0) * 1000
        self.frame_times.append(self.last_render_ms)

        self.screen = pygame.display.get_surface()
        surface = pygame.surfarray.make_surface(rgb.swapaxes(0, 1))
        self.image = pygame.transform.scale(surface, self.screen.get_size())
        self.screen.blit(self.image, (0, 0))

        if self.show_info:
            self._draw_info_overlay(snapshot)
        if self.show_help:
            self._draw_help_overlay()

        pygame.display.flip()
        self._last_rendered = key

    def _draw_info_overlay(self, snapshot):
        lines = info_lines(self.engine, snapshot, self.last_render_ms)
        self._draw_panel(lines, PADDING // 2, alpha=None)

    def _draw_help_overlay(self):
        top = self.font.get_linesize() * 3 + PADDING
        self._draw_panel(HELP_LINES, top, alpha=HELP_OVERLAY_ALPHA)

    def _draw_panel(self, lines, top: int, alpha: Optional[int]):
        """Draw white text lines over a black panel at (PADDING, top).

        With alpha set the panel is translucent and padded; otherwise each
        line gets its own opaque background.
        """
        line_height = self.font.get_linesize()
        margin = PADDING if alpha is not None else 0
        if alpha is not None:
            width = max(self.font.size(line)[0] for line in lines) + 2 * margin
            panel = pygame.Surface((width, len(lines) * line_height + 2 * margin))
            panel.set_alpha(alpha)
            panel.fill((0, 0, 0))
            self.screen.blit(panel, (PADDING, top))

        background = None if alpha is not None else (0, 0, 0)
        for row, line in enumerate(lines):
            text = self.font.render(line, True, (255, 255, 255), background)
            self.screen.blit(text, (PADDING + margin, top + margin + row * line_height))


def shorten(text: str, limit: int = 30) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def info_lines(engine: PerturbationEngine, snapshot, render_ms: float) -> list:
    """Status lines for the info overlay."""
    frame = engine.frame
    orbit = engine.orbit
    mode = "cursor" if engine.zoom_at_cursor else "velocity"
    real, imag = engine.reference_coordinate
    return [
        f"Zoom: {frame.zoom:.3e} | imax: {frame.maximum_iterations} | zoom mode: {mode}",
        f"Orbit: {snapshot.valid_length} pts, escaped={orbit.escaped} "
        f"| {orbit.precision_digits} digits | Preview: {render_ms:.0f}ms",
        f"Reference: {shorten(real)} + {shorten(imag)}i",
    ]
