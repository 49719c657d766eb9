"""
Wheel application.

Glues the outcome controller to the spin engine:
1. spin_pressed() starts the wheel and requests an outcome
2. a resolved outcome becomes the engine's target
3. a failed outcome coasts the wheel to a stop and shows an error
4. the engine's stop callback announces the winning segment
"""

import asyncio
import logging
from typing import Optional, Sequence

from fortune_wheel.animation.spin import SpinAnimationEngine, index_under_pointer
from fortune_wheel.core.events import Event, EventBus, EventType
from fortune_wheel.core.segments import Segment, is_loss_label
from fortune_wheel.graphics.primitives import Buffer
from fortune_wheel.graphics.wheel import WheelView
from fortune_wheel.outcome.controller import (
    OutcomeAcquisitionController,
    OutcomeKind,
    OutcomeResult,
)
from fortune_wheel.outcome.provider import WalletSession

logger = logging.getLogger(__name__)

SUBMISSION_FAILED_MESSAGE = "Failed to initiate transaction. Please try again."
CONFIRMATION_FAILED_MESSAGE = "Transaction failed. Please try again."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
NOT_CONNECTED_MESSAGE = "Wallet not connected. Connect a wallet to spin."
GENERIC_FAILURE_MESSAGE = "Failed to generate random number. Please try again."

ERROR_MESSAGES = {
    OutcomeKind.QUOTE_FAILED: GENERIC_FAILURE_MESSAGE,
    OutcomeKind.SUBMISSION_FAILED: SUBMISSION_FAILED_MESSAGE,
    OutcomeKind.CONFIRMATION_FAILED: CONFIRMATION_FAILED_MESSAGE,
    OutcomeKind.TIMEOUT: TIMEOUT_MESSAGE,
    OutcomeKind.NOT_CONNECTED: NOT_CONNECTED_MESSAGE,
}


class WheelApp:
    """
    One wheel, one outcome controller, one spin engine.

    Only one spin runs at a time; presses while spinning are ignored.
    """

    def __init__(
        self,
        controller: OutcomeAcquisitionController,
        engine: SpinAnimationEngine,
        view: WheelView,
        event_bus: Optional[EventBus] = None,
        wallet: Optional[WalletSession] = None,
    ) -> None:
        if controller.segment_count != engine.segment_count:
            raise ValueError("Controller and engine disagree on the segment count")
        self.controller = controller
        self.engine = engine
        self.view = view
        self.event_bus = event_bus or EventBus()
        self.wallet = wallet

        self._spinning = False
        self._winner: Optional[Segment] = None
        self._error: Optional[str] = None
        self._last_result: Optional[OutcomeResult] = None
        self._request_task: Optional[asyncio.Task] = None

        self.engine.on_stopped(self._on_wheel_stopped)
        self._unsubscribers = [
            self.event_bus.subscribe(EventType.SPIN_PRESSED, lambda e: self.spin_pressed()),
            self.event_bus.subscribe(EventType.RESET_PRESSED, lambda e: self.reset()),
            self.event_bus.subscribe(EventType.ASSET_READY, self._on_asset_ready),
        ]

    @property
    def is_spinning(self) -> bool:
        return self._spinning

    @property
    def is_connected(self) -> bool:
        return self.wallet is None or self.wallet.is_connected

    @property
    def winner(self) -> Optional[Segment]:
        return self._winner

    @property
    def is_loss(self) -> bool:
        return self._winner is not None and is_loss_label(self._winner.label)

    @property
    def winner_icon(self) -> Optional[Buffer]:
        """Decoded icon of the winning prize, if it has loaded."""
        if self._winner is None or self.is_loss or not self._winner.asset_key:
            return None
        return self.view.assets.get(self._winner.asset_key)

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def last_result(self) -> Optional[OutcomeResult]:
        return self._last_result

    @property
    def segments(self) -> list[Segment]:
        return self.view.segments

    @property
    def message(self) -> str:
        """Status line for the player."""
        if self._error:
            return self._error
        if self._spinning:
            return "Spinning..."
        if self._winner is not None:
            if self.is_loss:
                return "Better luck next time!"
            return f"You won: {self._winner.label}!"
        if not self.is_connected:
            return "Connect a wallet to spin."
        return "Press SPIN to try your luck."

    def spin_pressed(self) -> bool:
        """Start a spin. Returns False when the press is ignored."""
        if self._spinning:
            logger.debug("Spin press ignored: wheel already spinning")
            return False
        if not self.is_connected:
            logger.warning("Spin press ignored: wallet not connected")
            return False

        self._winner = None
        self._error = None
        self._last_result = None
        self._spinning = True

        self.engine.start()
        self.event_bus.emit(Event(EventType.WHEEL_STARTED, source="app"))
        self.event_bus.emit(Event(EventType.SPIN_REQUESTED, source="app"))

        self._request_task = asyncio.get_running_loop().create_task(
            self._acquire(), name="wheel-spin"
        )
        return True

    async def _acquire(self) -> None:
        try:
            result = await self.controller.request_outcome()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Outcome request crashed: {e}")
            self._fail(GENERIC_FAILURE_MESSAGE, None)
            return

        self._last_result = result
        if result.cancelled:
            return

        if result.ok and result.index is not None:
            self.engine.set_target(result.index)
            self.event_bus.emit(Event(
                EventType.OUTCOME_RESOLVED,
                data={"index": result.index, "value": result.value, "attempts": result.attempts},
                source="app",
            ))
            return

        self._fail(ERROR_MESSAGES.get(result.kind, GENERIC_FAILURE_MESSAGE), result)

    def _fail(self, message: str, result: Optional[OutcomeResult]) -> None:
        self._error = message
        self._spinning = False
        self.engine.stop_without_target()
        self.event_bus.emit(Event(
            EventType.OUTCOME_FAILED,
            data={
                "kind": result.kind.value if result else None,
                "message": message,
            },
            source="app",
        ))

    def _on_wheel_stopped(self, index: int) -> None:
        segments = self.view.segments
        self._spinning = False
        self._winner = segments[index]

        under_pointer = index_under_pointer(self.engine.state.angle, len(segments))
        if under_pointer != index:
            logger.error(f"Wheel stopped on index {under_pointer}, expected {index}")

        logger.info(f"Winner: {self._winner.label}")
        self.event_bus.emit(Event(
            EventType.WHEEL_STOPPED,
            data={"index": index, "label": self._winner.label, "loss": self.is_loss},
            source="app",
        ))

    def _on_asset_ready(self, event: Event) -> None:
        # A running engine redraws on its next frame anyway
        if not self.engine.is_running:
            self.view.redraw()

    def set_segments(self, segments: Sequence[Segment]) -> None:
        """Replace the wheel's wedges. Not allowed mid-spin."""
        if self._spinning:
            raise RuntimeError("Cannot change segments while spinning")
        self.controller.set_segment_count(len(segments))
        self.engine.set_segment_count(len(segments))
        self.view.set_segments(segments)
        self._winner = None

    def reset(self) -> None:
        """Cancel any spin in progress and clear the result."""
        self.controller.cancel()
        self.engine.cancel()
        if self._request_task is not None and not self._request_task.done():
            self._request_task.cancel()
        self._request_task = None

        self._spinning = False
        self._winner = None
        self._error = None
        self.view.redraw()
        logger.info("Wheel reset")

    async def close(self) -> None:
        """Tear down: cancel the spin and wait for the request task to exit."""
        task = self._request_task
        self.reset()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
