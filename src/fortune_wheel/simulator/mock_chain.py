"""
In-memory chain for the simulator.

Behaves like the randomness consumer contract seen through a node:
a submitted request settles after ``confirm_latency`` seconds and the
stored value changes ``fulfil_latency`` seconds after submission. Failures
can be injected to exercise every error path from the desktop.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from fortune_wheel.outcome.provider import (
    ConfirmationStatus,
    RandomnessSource,
    Submission,
    WalletSession,
)

logger = logging.getLogger(__name__)

GAS_PRICE_WEI = 1_000_000_000  # 1 gwei


class SimulatedWallet(WalletSession):
    """Wallet that can be connected and disconnected from the keyboard."""

    def __init__(self, address: str = "0x5151515151515151515151515151515151515151", connected: bool = True):
        self._address = address
        self._connected = connected

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def address(self) -> Optional[str]:
        return self._address if self._connected else None

    def connect(self) -> None:
        self._connected = True
        logger.info(f"Wallet connected: {self._address}")

    def disconnect(self) -> None:
        self._connected = False
        logger.info("Wallet disconnected")

    def toggle(self) -> bool:
        if self._connected:
            self.disconnect()
        else:
            self.connect()
        return self._connected


@dataclass
class _PendingRequest:
    tx_hash: str
    confirm_at: float
    fulfil_at: Optional[float]
    value: int
    succeeds: bool


class SimulatedRandomnessSource(RandomnessSource):
    """
    Randomness source backed by the event loop clock.

    Failure injection:
        reject_submissions: submit_request returns a rejected Submission
        revert_transactions: confirmation reports FAILED
        never_fulfil: the stored value never changes (forces a timeout)
        fail_quotes: quote_price raises ConnectionError
        read_failure_rate: probability that read_value raises ConnectionError
    """

    def __init__(
        self,
        confirm_latency: float = 2.0,
        fulfil_latency: float = 4.0,
        read_failure_rate: float = 0.0,
        seed: Optional[int] = None,
        initial_value: int = 0,
    ):
        if not 0.0 <= read_failure_rate <= 1.0:
            raise ValueError("read_failure_rate must be between 0 and 1")
        self.confirm_latency = confirm_latency
        self.fulfil_latency = fulfil_latency
        self.read_failure_rate = read_failure_rate
        self.reject_submissions = False
        self.revert_transactions = False
        self.never_fulfil = False
        self.fail_quotes = False

        self._rng = random.Random(seed)
        self._value = initial_value
        self._requests: Dict[str, _PendingRequest] = {}
        self._nonce = 0
        self._closed = False

        # Counters for the debug panel and tests
        self.reads = 0
        self.submissions: List[str] = []

    @property
    def stored_value(self) -> int:
        self._apply_fulfilments()
        return self._value

    def _now(self) -> float:
        return asyncio.get_running_loop().time()

    def _apply_fulfilments(self) -> None:
        try:
            now = self._now()
        except RuntimeError:
            return
        for request in self._requests.values():
            if request.fulfil_at is not None and now >= request.fulfil_at:
                self._value = request.value
                request.fulfil_at = None
                logger.debug(f"Randomness fulfilled for {request.tx_hash[:10]}")

    async def read_value(self) -> Optional[int]:
        self.reads += 1
        if self._closed:
            raise ConnectionError("Simulated node closed")
        if self.read_failure_rate and self._rng.random() < self.read_failure_rate:
            raise ConnectionError("Simulated read failure")
        self._apply_fulfilments()
        return self._value

    async def quote_price(self, callback_gas_limit: int) -> int:
        if self.fail_quotes:
            raise ConnectionError("Simulated fee quote failure")
        return callback_gas_limit * GAS_PRICE_WEI

    async def submit_request(self, callback_gas_limit: int, price: int) -> Submission:
        if self.reject_submissions:
            logger.warning("Simulated submission rejected")
            return Submission.rejected("User rejected the request")
        if price < callback_gas_limit * GAS_PRICE_WEI:
            return Submission.rejected("Insufficient fee")

        self._nonce += 1
        tx_hash = "0x" + f"{self._rng.getrandbits(256):064x}"
        now = self._now()

        # A reverted transaction never delivers randomness
        succeeds = not self.revert_transactions
        fulfil_at = None if (self.never_fulfil or not succeeds) else now + self.fulfil_latency
        value = self._rng.getrandbits(256) or 1

        self._requests[tx_hash] = _PendingRequest(
            tx_hash=tx_hash,
            confirm_at=now + self.confirm_latency,
            fulfil_at=fulfil_at,
            value=value,
            succeeds=succeeds,
        )
        self.submissions.append(tx_hash)
        logger.info(f"Simulated request #{self._nonce} submitted: {tx_hash[:10]}...")
        return Submission.accepted(tx_hash)

    async def wait_for_confirmation(self, tx_hash: str) -> ConfirmationStatus:
        request = self._requests.get(tx_hash)
        if request is None:
            return ConfirmationStatus.FAILED

        delay = request.confirm_at - self._now()
        if delay > 0:
            await asyncio.sleep(delay)
        return ConfirmationStatus.SUCCESS if request.succeeds else ConfirmationStatus.FAILED

    async def close(self) -> None:
        self._closed = True
