"""
Abstract interfaces for the chain-side collaborators.

These interfaces define the contract that both the JSON-RPC client and the
simulator's in-memory chain must follow.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConfirmationStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class Submission:
    """Result of submitting a randomness request."""

    ok: bool
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def accepted(cls, tx_hash: str) -> "Submission":
        return cls(ok=True, tx_hash=tx_hash)

    @classmethod
    def rejected(cls, error: str) -> "Submission":
        return cls(ok=False, error=error)


class WalletSession(ABC):
    """Authenticated account that is allowed to request spins."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether a session is currently authenticated."""
        ...

    @property
    def address(self) -> Optional[str]:
        return None


class RandomnessSource(ABC):
    """Abstract base class for on-chain randomness access."""

    @abstractmethod
    async def read_value(self) -> Optional[int]:
        """Read the currently stored random value (None or 0 if unset)."""
        ...

    @abstractmethod
    async def quote_price(self, callback_gas_limit: int) -> int:
        """Price of a randomness request for the given callback gas budget."""
        ...

    @abstractmethod
    async def submit_request(self, callback_gas_limit: int, price: int) -> Submission:
        """Submit a "generate randomness" request.

        Expected rejections are reported through the returned Submission
        rather than raised.
        """
        ...

    @abstractmethod
    async def wait_for_confirmation(self, tx_hash: str) -> ConfirmationStatus:
        """Wait until the request transaction is durably accepted or rejected."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None
