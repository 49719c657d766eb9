"""
Outcome Acquisition Controller.

Responsibilities:
- Capture the stored random value before a request (the baseline)
- Submit the randomness request and wait for its transaction to settle
- Poll the stored value once per interval until it changes
- Derive the wheel index from the new value
- Enforce the attempt ceiling and support cancellation at any point

Exactly one OutcomeResult is produced per session.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from fortune_wheel.core.state import AcquisitionState, StateMachine
from fortune_wheel.outcome.derive import derive_index, is_new_value
from fortune_wheel.outcome.errors import (
    ConfirmationFailed,
    NotConnectedError,
    OutcomeTimeout,
    QuoteFailed,
    SessionActiveError,
    SubmissionFailed,
    TransientReadFailure,
)
from fortune_wheel.outcome.poller import PollOutcome, PollTask
from fortune_wheel.outcome.provider import ConfirmationStatus, RandomnessSource, WalletSession

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    RESOLVED = "resolved"
    QUOTE_FAILED = "quote_failed"
    SUBMISSION_FAILED = "submission_failed"
    CONFIRMATION_FAILED = "confirmation_failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    NOT_CONNECTED = "not_connected"


_KIND_ERRORS = {
    OutcomeKind.QUOTE_FAILED: QuoteFailed,
    OutcomeKind.SUBMISSION_FAILED: SubmissionFailed,
    OutcomeKind.CONFIRMATION_FAILED: ConfirmationFailed,
    OutcomeKind.TIMEOUT: OutcomeTimeout,
    OutcomeKind.NOT_CONNECTED: NotConnectedError,
}

_KIND_STATES = {
    OutcomeKind.RESOLVED: AcquisitionState.RESOLVED,
    OutcomeKind.QUOTE_FAILED: AcquisitionState.FAILED,
    OutcomeKind.SUBMISSION_FAILED: AcquisitionState.FAILED,
    OutcomeKind.CONFIRMATION_FAILED: AcquisitionState.FAILED,
    OutcomeKind.NOT_CONNECTED: AcquisitionState.FAILED,
    OutcomeKind.TIMEOUT: AcquisitionState.TIMED_OUT,
    OutcomeKind.CANCELLED: AcquisitionState.CANCELLED,
}


@dataclass
class OutcomeResult:
    """Terminal result of one acquisition session."""

    kind: OutcomeKind
    index: Optional[int] = None
    value: Optional[int] = None
    attempts: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.RESOLVED

    @property
    def cancelled(self) -> bool:
        return self.kind == OutcomeKind.CANCELLED

    def raise_for_error(self) -> None:
        """Raise the matching OutcomeError for failed results."""
        error_cls = _KIND_ERRORS.get(self.kind)
        if error_cls is not None:
            raise error_cls(self.error or self.kind.value)


@dataclass
class AcquisitionSession:
    """One in-flight request for an outcome."""

    baseline: Optional[int] = None
    max_attempts: int = 90
    attempts: int = 0
    read_failures: int = 0
    last_read_error: Optional[TransientReadFailure] = None
    terminal: bool = False
    cancelled: bool = False
    poll_task: Optional[PollTask] = None
    accepted_value: Optional[int] = None
    accepted_index: Optional[int] = None
    result: Optional[OutcomeResult] = field(default=None, repr=False)


class OutcomeAcquisitionController:
    """Converts "the player wants a spin" into a definite segment index.

    Usage:
        controller = OutcomeAcquisitionController(source, segment_count=10)
        result = await controller.request_outcome()
        if result.ok:
            engine.set_target(result.index)
    """

    def __init__(
        self,
        source: RandomnessSource,
        segment_count: int,
        wallet: Optional[WalletSession] = None,
        poll_interval: float = 1.0,
        max_attempts: int = 90,
        callback_gas_limit: int = 700_000,
        on_result: Optional[Callable[[OutcomeResult], None]] = None,
    ):
        if segment_count < 1:
            raise ValueError("segment_count must be at least 1")
        self._source = source
        self._segment_count = segment_count
        self._wallet = wallet
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._callback_gas_limit = callback_gas_limit
        self._on_result = on_result

        self._state = StateMachine()
        self._session: Optional[AcquisitionSession] = None
        self._flow_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> AcquisitionState:
        return self._state.state

    @property
    def state_machine(self) -> StateMachine:
        return self._state

    @property
    def session(self) -> Optional[AcquisitionSession]:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def segment_count(self) -> int:
        return self._segment_count

    def set_segment_count(self, segment_count: int) -> None:
        if segment_count < 1:
            raise ValueError("segment_count must be at least 1")
        if self.is_active:
            raise SessionActiveError("Cannot change segments during a request")
        self._segment_count = segment_count

    async def request_outcome(self) -> OutcomeResult:
        """Request a random value and wait for the derived index.

        Raises:
            SessionActiveError: if a request is already in flight
        """
        if self._session is not None:
            raise SessionActiveError("An outcome request is already in flight")

        self._state.reset()
        session = AcquisitionSession(max_attempts=self._max_attempts)
        self._session = session

        if self._wallet is not None and not self._wallet.is_connected:
            return self._finish(session, OutcomeResult(
                kind=OutcomeKind.NOT_CONNECTED,
                error="Wallet not connected",
            ))

        self._flow_task = asyncio.get_running_loop().create_task(
            self._run(session), name="outcome-request"
        )
        try:
            return await asyncio.shield(self._flow_task)
        except asyncio.CancelledError:
            if session.cancelled and session.result is not None:
                return session.result
            # Caller itself was cancelled: tear the session down with it
            self.cancel()
            raise
        except Exception:
            self._abandon(session)
            raise

    def cancel(self) -> None:
        """Abort the in-flight request. Idempotent; no result callback fires."""
        session = self._session
        if session is None or session.terminal:
            return

        session.cancelled = True
        if session.poll_task is not None:
            session.poll_task.cancel()
        if self._flow_task is not None and not self._flow_task.done():
            self._flow_task.cancel()

        self._finish(session, OutcomeResult(
            kind=OutcomeKind.CANCELLED,
            attempts=session.attempts,
        ))
        logger.info("Outcome request cancelled")

    async def _run(self, session: AcquisitionSession) -> OutcomeResult:
        # --- SUBMIT ---
        self._state.transition(AcquisitionState.SUBMITTING)
        session.baseline = await self._read_baseline()
        try:
            price = await self._source.quote_price(self._callback_gas_limit)
        except Exception as e:
            logger.error(f"Could not quote request fee: {e}")
            return self._finish(session, OutcomeResult(
                kind=OutcomeKind.QUOTE_FAILED, error=str(e)
            ))

        try:
            submission = await self._source.submit_request(self._callback_gas_limit, price)
        except Exception as e:
            logger.error(f"Randomness request failed: {e}")
            return self._finish(session, OutcomeResult(
                kind=OutcomeKind.SUBMISSION_FAILED, error=str(e)
            ))

        if not submission.ok or not submission.tx_hash:
            logger.error(f"Randomness request rejected: {submission.error}")
            return self._finish(session, OutcomeResult(
                kind=OutcomeKind.SUBMISSION_FAILED, error=submission.error
            ))

        # --- CONFIRM ---
        self._state.transition(AcquisitionState.AWAITING_CONFIRMATION)
        logger.info(f"Randomness request submitted: {submission.tx_hash}")
        try:
            status = await self._source.wait_for_confirmation(submission.tx_hash)
        except Exception as e:
            logger.error(f"Waiting for confirmation failed: {e}")
            return self._finish(session, OutcomeResult(
                kind=OutcomeKind.CONFIRMATION_FAILED, error=str(e)
            ))

        if status != ConfirmationStatus.SUCCESS:
            logger.error(f"Randomness transaction failed: {submission.tx_hash}")
            return self._finish(session, OutcomeResult(
                kind=OutcomeKind.CONFIRMATION_FAILED, error="Transaction failed"
            ))

        # --- POLL ---
        self._state.transition(AcquisitionState.POLLING)
        poll = PollTask(
            probe=lambda attempt: self._probe(session, attempt),
            interval=self._poll_interval,
            max_attempts=session.max_attempts,
            name="randomness-poll",
        )
        session.poll_task = poll
        poll.start()
        outcome = await poll.wait()

        if session.cancelled:
            return session.result

        if outcome == PollOutcome.ACCEPTED:
            logger.info(
                f"Outcome resolved: index {session.accepted_index} "
                f"after {session.attempts} attempts"
            )
            return self._finish(session, OutcomeResult(
                kind=OutcomeKind.RESOLVED,
                index=session.accepted_index,
                value=session.accepted_value,
                attempts=session.attempts,
            ))

        logger.warning(
            f"Outcome request timed out after {session.attempts} attempts "
            f"({session.read_failures} read failures)"
        )
        return self._finish(session, OutcomeResult(
            kind=OutcomeKind.TIMEOUT,
            attempts=session.attempts,
            error="Request timed out",
        ))

    async def _read_baseline(self) -> Optional[int]:
        try:
            return await self._source.read_value()
        except Exception as e:
            logger.warning(f"Could not read baseline value: {e}")
            return None

    async def _probe(self, session: AcquisitionSession, attempt: int) -> bool:
        """One poll probe. Read failures count as a non-resolving attempt."""
        session.attempts = attempt
        try:
            value = await self._source.read_value()
        except Exception as e:
            session.read_failures += 1
            session.last_read_error = TransientReadFailure(f"Probe {attempt}: {e}")
            logger.debug(f"Probe {attempt} read failed: {e}")
            return False

        if not is_new_value(value, session.baseline):
            return False

        index = derive_index(value, self._segment_count)
        if index is None:
            return False

        session.accepted_value = value
        session.accepted_index = index
        return True

    def _abandon(self, session: AcquisitionSession) -> None:
        """Release a session whose flow crashed without a result."""
        if session.terminal:
            return
        session.terminal = True
        if session.poll_task is not None:
            session.poll_task.cancel()
            session.poll_task = None
        if self._session is session:
            self._session = None
        self._state.transition(AcquisitionState.FAILED)

    def _finish(self, session: AcquisitionSession, result: OutcomeResult) -> OutcomeResult:
        """Record the single terminal result of a session."""
        if session.terminal:
            return session.result

        session.terminal = True
        session.result = result
        session.poll_task = None
        if self._session is session:
            self._session = None

        self._state.transition(_KIND_STATES[result.kind])

        if result.kind != OutcomeKind.CANCELLED and self._on_result is not None:
            try:
                self._on_result(result)
            except Exception as e:
                logger.error(f"Error in outcome callback: {e}")

        return result
