"""Outcome acquisition: from "spin pressed" to a resolved wheel index."""

from fortune_wheel.outcome.controller import (
    AcquisitionSession,
    OutcomeAcquisitionController,
    OutcomeKind,
    OutcomeResult,
)
from fortune_wheel.outcome.derive import derive_index, is_new_value, value_to_bytes
from fortune_wheel.outcome.errors import (
    ConfirmationFailed,
    NotConnectedError,
    OutcomeError,
    OutcomeTimeout,
    RpcError,
    SessionActiveError,
    SubmissionFailed,
    TransientReadFailure,
)
from fortune_wheel.outcome.poller import PollOutcome, PollTask
from fortune_wheel.outcome.provider import (
    ConfirmationStatus,
    RandomnessSource,
    Submission,
    WalletSession,
)

__all__ = [
    "AcquisitionSession",
    "OutcomeAcquisitionController",
    "OutcomeKind",
    "OutcomeResult",
    "derive_index",
    "is_new_value",
    "value_to_bytes",
    "ConfirmationFailed",
    "NotConnectedError",
    "OutcomeError",
    "OutcomeTimeout",
    "RpcError",
    "SessionActiveError",
    "SubmissionFailed",
    "TransientReadFailure",
    "PollOutcome",
    "PollTask",
    "ConfirmationStatus",
    "RandomnessSource",
    "Submission",
    "WalletSession",
]
