"""Outcome acquisition errors."""


class OutcomeError(Exception):
    """Base outcome error"""


class SubmissionFailed(OutcomeError):
    """The randomness request could not be submitted"""


class ConfirmationFailed(OutcomeError):
    """The request was submitted but its transaction did not succeed"""


class TransientReadFailure(OutcomeError):
    """A single poll probe failed to read the stored value"""


class OutcomeTimeout(OutcomeError):
    """The attempt ceiling was reached without a new value"""


class SessionActiveError(OutcomeError):
    """A request was started while another one is still in flight"""


class NotConnectedError(OutcomeError):
    """No wallet session is connected"""


class RpcError(OutcomeError):
    """The JSON-RPC node returned an error or an unusable response"""


class QuoteFailed(SubmissionFailed):
    """The request fee could not be quoted"""
