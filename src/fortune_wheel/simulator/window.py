"""
Desktop simulator window using pygame.

Shows the wheel, the player-facing status line, a debug panel with the
acquisition state and spin physics, and an optional log viewer. The
window's frame loop is the display refresh that drives the spin engine.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import pygame

from fortune_wheel.animation.scheduler import FrameScheduler
from fortune_wheel.app import WheelApp
from fortune_wheel.core.events import Event, EventType, spin_pressed_event
from fortune_wheel.simulator.mock_chain import SimulatedRandomnessSource, SimulatedWallet

logger = logging.getLogger(__name__)


@dataclass
class WindowConfig:
    """Simulator window configuration."""
    width: int = 720
    height: int = 520
    title: str = "Fortune Wheel Simulator"
    fps: int = 60

    # Colors
    bg_color: tuple[int, int, int] = (12, 12, 20)
    panel_color: tuple[int, int, int] = (30, 30, 44)
    text_color: tuple[int, int, int] = (200, 200, 220)
    accent_color: tuple[int, int, int] = (129, 140, 248)
    error_color: tuple[int, int, int] = (248, 113, 113)
    win_color: tuple[int, int, int] = (52, 211, 153)


class SimulatorWindow:
    """
    Main simulator window.

    Keyboard Mapping:
        SPACE / RETURN: Spin
        R: Reset the wheel
        W: Connect / disconnect the wallet
        1: Toggle rejected submissions
        2: Toggle reverted transactions
        3: Toggle never-fulfilled requests (forces a timeout)
        4: Toggle failing fee quotes
        D: Toggle debug panel
        L: Toggle log viewer
        S: Capture screenshot
        ESC / Q: Exit simulator
    """

    def __init__(
        self,
        app: WheelApp,
        scheduler: FrameScheduler,
        config: WindowConfig | None = None,
        source: Optional[SimulatedRandomnessSource] = None,
        wallet: Optional[SimulatedWallet] = None,
    ) -> None:
        self.config = config or WindowConfig()
        self.app = app
        self.scheduler = scheduler
        self.event_bus = app.event_bus
        self.source = source
        self.wallet = wallet

        # Pygame setup
        self._screen: pygame.Surface | None = None
        self._clock: pygame.time.Clock | None = None
        self._running = False
        self._frame_count = 0
        self._show_debug = True

        # Layout (calculated on init)
        self._layout: dict[str, pygame.Rect] = {}

        # Fonts
        self._font: pygame.font.Font | None = None
        self._small_font: pygame.font.Font | None = None

        # Log viewer
        self._show_log = False
        self._log_buffer: list[str] = []
        self._max_log_lines = 20
        self._log_handler: logging.Handler | None = None

        self._setup_log_capture()

        logger.info("SimulatorWindow created")

    def _setup_log_capture(self) -> None:
        """Setup log capturing for the log viewer."""
        class SimulatorLogHandler(logging.Handler):
            def __init__(self, window: 'SimulatorWindow'):
                super().__init__()
                self.window = window

            def emit(self, record):
                msg = self.format(record)
                self.window._log_buffer.append(msg)
                # Keep buffer size limited
                if len(self.window._log_buffer) > self.window._max_log_lines * 2:
                    self.window._log_buffer = self.window._log_buffer[-self.window._max_log_lines:]

        handler = SimulatorLogHandler(self)
        handler.setFormatter(logging.Formatter('%(levelname).1s %(name)s: %(message)s'))
        logging.getLogger().addHandler(handler)
        self._log_handler = handler

    def _init_pygame(self) -> None:
        """Initialize pygame and create window."""
        pygame.init()
        pygame.display.set_caption(self.config.title)

        self._screen = pygame.display.set_mode(
            (self.config.width, self.config.height),
            pygame.DOUBLEBUF,
        )
        self._clock = pygame.time.Clock()

        pygame.font.init()
        self._font = pygame.font.SysFont(None, 24)
        self._small_font = pygame.font.SysFont(None, 18)

        self._calculate_layout()

        logger.info(f"Pygame initialized: {self.config.width}x{self.config.height}")

    def _calculate_layout(self) -> None:
        """Calculate positions for all UI elements."""
        w, h = self.config.width, self.config.height
        wheel_size = self.app.view.buffer.shape[0]

        debug_w = 220
        wheel_x = max(10, (w - debug_w - wheel_size) // 2)
        wheel_y = 40

        self._layout = {
            "wheel": pygame.Rect(wheel_x, wheel_y, wheel_size, wheel_size),
            "status": pygame.Rect(10, wheel_y + wheel_size + 20, w - debug_w - 30, 36),
            "debug": pygame.Rect(w - debug_w - 10, 40, debug_w, h - 60),
        }

    def _handle_events(self) -> None:
        """Process pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._running = False
            elif event.type == pygame.KEYDOWN:
                self._handle_keydown(event)

    def _handle_keydown(self, event: pygame.event.Event) -> None:
        """Handle key press."""
        key = event.key

        if key in (pygame.K_ESCAPE, pygame.K_q):
            self._running = False
        elif key == pygame.K_d:
            self._show_debug = not self._show_debug
        elif key == pygame.K_l:
            self._show_log = not self._show_log
        elif key == pygame.K_s:
            self._capture_screenshot()
        elif key in (pygame.K_SPACE, pygame.K_RETURN):
            self.event_bus.emit(spin_pressed_event("keyboard"))
        elif key == pygame.K_r:
            self.event_bus.emit(Event(EventType.RESET_PRESSED, source="keyboard"))
        elif key == pygame.K_w and self.wallet is not None:
            self.wallet.toggle()
        elif self.source is not None:
            self._toggle_failure(key)

    def _toggle_failure(self, key: int) -> None:
        """Flip one of the simulated chain's failure switches."""
        if key == pygame.K_1:
            self.source.reject_submissions = not self.source.reject_submissions
            logger.info(f"Reject submissions: {self.source.reject_submissions}")
        elif key == pygame.K_2:
            self.source.revert_transactions = not self.source.revert_transactions
            logger.info(f"Revert transactions: {self.source.revert_transactions}")
        elif key == pygame.K_3:
            self.source.never_fulfil = not self.source.never_fulfil
            logger.info(f"Never fulfil: {self.source.never_fulfil}")
        elif key == pygame.K_4:
            self.source.fail_quotes = not self.source.fail_quotes
            logger.info(f"Fail fee quotes: {self.source.fail_quotes}")

    def _render(self) -> None:
        """Render all UI elements."""
        if not self._screen:
            return

        self._screen.fill(self.config.bg_color)

        self._render_wheel()
        self._render_status()
        if self._show_debug:
            self._render_debug_panel()
        if self._show_log:
            self._render_log_panel()
        self._render_title_bar()

        pygame.display.flip()

    def _render_wheel(self) -> None:
        """Blit the wheel's numpy buffer."""
        rect = self._layout["wheel"]
        surface = pygame.surfarray.make_surface(self.app.view.buffer.swapaxes(0, 1))
        self._screen.blit(surface, rect.topleft)

    def _render_status(self) -> None:
        """Render the player-facing status line."""
        rect = self._layout["status"]
        pygame.draw.rect(self._screen, self.config.panel_color, rect, border_radius=8)
        if not self._font:
            return

        if self.app.error:
            color = self.config.error_color
        elif self.app.winner is not None and not self.app.is_loss:
            color = self.config.win_color
        else:
            color = self.config.text_color

        text_surface = self._font.render(self.app.message, True, color)
        text_rect = text_surface.get_rect(center=rect.center)
        self._screen.blit(text_surface, text_rect)

        icon = self.app.winner_icon
        if icon is not None:
            h, w = icon.shape[:2]
            icon_surface = pygame.image.frombuffer(icon.tobytes(), (w, h), "RGBA")
            side = rect.height - 6
            icon_surface = pygame.transform.smoothscale(icon_surface, (side, side))
            self._screen.blit(icon_surface, (text_rect.left - side - 8, rect.y + 3))

    def _render_debug_panel(self) -> None:
        """Render the debug information panel."""
        rect = self._layout["debug"]
        pygame.draw.rect(self._screen, self.config.panel_color, rect, border_radius=5)

        if not self._small_font:
            return

        spin = self.app.engine.state
        session = self.app.controller.session
        attempts = f"{session.attempts}/{session.max_attempts}" if session else "--"

        lines = [
            f"FPS: {self._clock.get_fps():.1f}" if self._clock else "FPS: --",
            f"Frame: {self._frame_count}",
            f"Request: {self.app.controller.state.name}",
            f"Attempts: {attempts}",
            f"Angle: {spin.angle:.2f}",
            f"Velocity: {spin.velocity:.2f}",
            f"Target: {self.app.engine.target_index}",
            f"Wallet: {'on' if self.app.is_connected else 'off'}",
        ]
        if self.source is not None:
            lines += [
                "",
                "---- FAILURES ----",
                f"1  Reject    {'ON' if self.source.reject_submissions else 'off'}",
                f"2  Revert    {'ON' if self.source.revert_transactions else 'off'}",
                f"3  No value  {'ON' if self.source.never_fulfil else 'off'}",
            ]
        lines += [
            "",
            "---- CONTROLS ----",
            "SPACE  Spin",
            "R      Reset",
            "W      Wallet",
            "D      Debug panel",
            "L      Log viewer",
            "S      Screenshot",
            "Q      Quit",
        ]

        y = rect.y + 10
        for line in lines:
            text_surface = self._small_font.render(line, True, self.config.text_color)
            self._screen.blit(text_surface, (rect.x + 10, y))
            y += 18

    def _render_log_panel(self) -> None:
        """Render the log viewer panel."""
        if not self._small_font:
            return

        rect = pygame.Rect(10, 40, self.config.width - 260, self.config.height - 60)

        surf = pygame.Surface((rect.width, rect.height), pygame.SRCALPHA)
        surf.fill((20, 25, 35, 230))
        self._screen.blit(surf, rect.topleft)
        pygame.draw.rect(self._screen, (60, 80, 100), rect, 1, border_radius=5)

        y = rect.y + 8
        for line in self._log_buffer[-self._max_log_lines:]:
            if line.startswith('E'):
                color = (255, 100, 100)
            elif line.startswith('W'):
                color = (255, 200, 100)
            elif line.startswith('I'):
                color = (150, 200, 150)
            else:
                color = (150, 150, 170)

            max_chars = rect.width // 7
            display_line = line[:max_chars - 3] + "..." if len(line) > max_chars else line
            text_surf = self._small_font.render(display_line, True, color)
            self._screen.blit(text_surf, (rect.x + 8, y))
            y += 16

            if y > rect.bottom - 10:
                break

    def _render_title_bar(self) -> None:
        if not self._font:
            return
        title = f"Fortune Wheel | {self.app.controller.state.name}"
        text_surface = self._font.render(title, True, self.config.accent_color)
        self._screen.blit(text_surface, (20, 12))

    def _capture_screenshot(self) -> None:
        """Capture and save a screenshot."""
        if self._screen:
            filename = f"screenshot_{self._frame_count}.png"
            pygame.image.save(self._screen, filename)
            logger.info(f"Screenshot saved: {filename}")

    async def run(self) -> None:
        """Main simulator loop."""
        self._init_pygame()
        self._running = True

        logger.info("Simulator started")

        try:
            while self._running:
                self._handle_events()

                # Display refresh: run the frame callbacks with the frame clock
                self.scheduler.run_frame(float(pygame.time.get_ticks()))

                await self.event_bus.process_queue()

                self._render()

                if self._clock:
                    self._clock.tick(self.config.fps)

                self._frame_count += 1

                # Yield to the outcome request and asset loads
                await asyncio.sleep(0)
        finally:
            self.event_bus.emit(Event(EventType.SHUTDOWN, source="simulator"))
            self._cleanup()

    def _cleanup(self) -> None:
        """Clean up pygame resources."""
        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)
            self._log_handler = None
        pygame.quit()
        logger.info("Simulator stopped")

    def stop(self) -> None:
        """Stop the simulator."""
        self._running = False
