"""
State machine for one outcome acquisition session.

States:
    IDLE: No request in flight
    SUBMITTING: Quoting the price and submitting the randomness request
    AWAITING_CONFIRMATION: Waiting for the request transaction to settle
    POLLING: Probing the stored value once per interval
    RESOLVED: A new value arrived and an index was derived
    TIMED_OUT: Attempt ceiling reached without a new value
    FAILED: Submission or confirmation failed
    CANCELLED: Torn down by the caller mid-flight
"""

from enum import Enum, auto
from typing import Callable
import logging

logger = logging.getLogger(__name__)


class AcquisitionState(Enum):
    """Acquisition session states."""
    IDLE = auto()
    SUBMITTING = auto()
    AWAITING_CONFIRMATION = auto()
    POLLING = auto()
    RESOLVED = auto()
    TIMED_OUT = auto()
    FAILED = auto()
    CANCELLED = auto()


TERMINAL_STATES = frozenset({
    AcquisitionState.RESOLVED,
    AcquisitionState.TIMED_OUT,
    AcquisitionState.FAILED,
    AcquisitionState.CANCELLED,
})

Listener = Callable[[AcquisitionState, AcquisitionState], None]


class StateMachine:
    """
    Tracks the acquisition state and rejects invalid transitions.

    Listeners are notified after every successful transition; a listener
    that raises is logged and skipped.
    """

    # Valid state transitions
    VALID_TRANSITIONS: list[tuple[AcquisitionState, AcquisitionState]] = [
        # From IDLE
        (AcquisitionState.IDLE, AcquisitionState.SUBMITTING),
        (AcquisitionState.IDLE, AcquisitionState.FAILED),  # Not connected
        (AcquisitionState.IDLE, AcquisitionState.CANCELLED),  # Cancelled before the flow ran

        # From SUBMITTING
        (AcquisitionState.SUBMITTING, AcquisitionState.AWAITING_CONFIRMATION),
        (AcquisitionState.SUBMITTING, AcquisitionState.FAILED),
        (AcquisitionState.SUBMITTING, AcquisitionState.CANCELLED),

        # From AWAITING_CONFIRMATION
        (AcquisitionState.AWAITING_CONFIRMATION, AcquisitionState.POLLING),
        (AcquisitionState.AWAITING_CONFIRMATION, AcquisitionState.FAILED),
        (AcquisitionState.AWAITING_CONFIRMATION, AcquisitionState.CANCELLED),

        # From POLLING
        (AcquisitionState.POLLING, AcquisitionState.RESOLVED),
        (AcquisitionState.POLLING, AcquisitionState.TIMED_OUT),
        (AcquisitionState.POLLING, AcquisitionState.CANCELLED),
        (AcquisitionState.POLLING, AcquisitionState.FAILED),  # Crashed probe loop

        # Back to IDLE after a terminal state
        (AcquisitionState.RESOLVED, AcquisitionState.IDLE),
        (AcquisitionState.TIMED_OUT, AcquisitionState.IDLE),
        (AcquisitionState.FAILED, AcquisitionState.IDLE),
        (AcquisitionState.CANCELLED, AcquisitionState.IDLE),
    ]

    def __init__(self, initial_state: AcquisitionState = AcquisitionState.IDLE) -> None:
        self._state = initial_state
        self._listeners: list[Listener] = []
        self._valid_transitions = set(self.VALID_TRANSITIONS)

    @property
    def state(self) -> AcquisitionState:
        """Get current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def is_active(self) -> bool:
        """True while a request is in flight."""
        return self._state not in TERMINAL_STATES and self._state != AcquisitionState.IDLE

    def can_transition(self, to_state: AcquisitionState) -> bool:
        """Check if transition to given state is valid."""
        return (self._state, to_state) in self._valid_transitions

    def transition(self, to_state: AcquisitionState) -> bool:
        """
        Attempt to transition to a new state.

        Returns:
            True if transition successful, False otherwise
        """
        if not self.can_transition(to_state):
            logger.warning(
                f"Invalid transition: {self._state.name} -> {to_state.name}"
            )
            return False

        old_state = self._state
        self._state = to_state
        logger.debug(f"Acquisition state: {old_state.name} -> {to_state.name}")

        for listener in self._listeners:
            try:
                listener(old_state, to_state)
            except Exception as e:
                logger.error(f"Error in state listener: {e}")

        return True

    def add_listener(self, callback: Listener) -> None:
        """Add a state change listener."""
        self._listeners.append(callback)

    def reset(self) -> None:
        """Return to IDLE from a terminal state. No-op when already idle."""
        if self._state == AcquisitionState.IDLE:
            return
        self.transition(AcquisitionState.IDLE)
