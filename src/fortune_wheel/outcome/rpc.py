"""JSON-RPC randomness source.

Talks to an Ethereum-compatible node over HTTP:
- ``eth_call`` reads the stored random value and quotes the request price
- ``eth_sendTransaction`` submits the request from an unlocked account
- ``eth_getTransactionReceipt`` is polled until the request settles

Calldata is a configured 4-byte selector followed by ABI-encoded
``uint256`` arguments.
"""

import asyncio
import itertools
import logging
from typing import Any, Optional

import aiohttp

from fortune_wheel.outcome.errors import RpcError
from fortune_wheel.outcome.provider import (
    ConfirmationStatus,
    RandomnessSource,
    Submission,
    WalletSession,
)
from fortune_wheel.settings import ChainSettings

logger = logging.getLogger(__name__)


def encode_call(selector: str, *args: int) -> str:
    """Build ``0x`` calldata from a 4-byte selector and uint256 arguments."""
    selector = selector.lower().removeprefix("0x")
    if len(selector) != 8:
        raise ValueError(f"Invalid function selector: {selector!r}")
    words = "".join(f"{arg:064x}" for arg in args)
    return f"0x{selector}{words}"


def decode_uint(result: Optional[str]) -> int:
    """Decode the first 32-byte word of an ``eth_call`` result."""
    if not result or result == "0x":
        return 0
    return int(result[2:66] or "0", 16)


class RpcWallet(WalletSession):
    """Wallet session backed by the configured sending account."""

    def __init__(self, address: str):
        self._address = address

    @property
    def is_connected(self) -> bool:
        return bool(self._address)

    @property
    def address(self) -> Optional[str]:
        return self._address or None


class JsonRpcRandomnessSource(RandomnessSource):
    """Randomness consumer contract accessed through a JSON-RPC node."""

    def __init__(self, settings: ChainSettings):
        if not settings.rpc_url:
            raise ValueError("WHEEL_CHAIN__RPC_URL is not set")
        if not settings.contract_address:
            raise ValueError("WHEEL_CHAIN__CONTRACT_ADDRESS is not set")
        for name in ("randomness_selector", "generate_selector", "price_selector"):
            encode_call(getattr(settings, name))  # validates
        self._settings = settings
        self._session: Optional[aiohttp.ClientSession] = None
        self._ids = itertools.count(1)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._settings.request_timeout),
                headers={"Content-Type": "application/json"},
            )
        return self._session

    async def _rpc(self, method: str, params: list) -> Any:
        """Perform one JSON-RPC call and return its ``result``."""
        session = await self._get_session()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        async with session.post(self._settings.rpc_url, json=payload) as response:
            if response.status != 200:
                raise RpcError(f"{method}: HTTP {response.status}")
            data = await response.json()

        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise RpcError(f"{method}: {message}")
        return data.get("result")

    async def _call(self, to: str, data: str) -> str:
        return await self._rpc("eth_call", [{"to": to, "data": data}, "latest"])

    async def read_value(self) -> Optional[int]:
        data = encode_call(self._settings.randomness_selector)
        result = await self._call(self._settings.contract_address, data)
        return decode_uint(result)

    async def quote_price(self, callback_gas_limit: int) -> int:
        target = self._settings.sender_address or self._settings.contract_address
        data = encode_call(self._settings.price_selector, callback_gas_limit)
        price = decode_uint(await self._call(target, data))
        logger.debug(f"Request price for {callback_gas_limit} gas: {price} wei")
        return price

    async def submit_request(self, callback_gas_limit: int, price: int) -> Submission:
        if not self._settings.from_address:
            return Submission.rejected("No sending account configured")

        tx = {
            "from": self._settings.from_address,
            "to": self._settings.contract_address,
            "data": encode_call(self._settings.generate_selector, callback_gas_limit),
            "value": hex(price),
        }
        try:
            tx_hash = await self._rpc("eth_sendTransaction", [tx])
        except asyncio.TimeoutError:
            logger.error("Timeout submitting randomness request")
            return Submission.rejected("TIMEOUT")
        except aiohttp.ClientError as e:
            logger.error(f"Network error submitting randomness request: {e}")
            return Submission.rejected("NETWORK_ERROR")
        except RpcError as e:
            logger.error(f"Node rejected randomness request: {e}")
            return Submission.rejected(str(e))

        if not tx_hash:
            return Submission.rejected("Empty transaction hash")
        return Submission.accepted(tx_hash)

    async def wait_for_confirmation(self, tx_hash: str) -> ConfirmationStatus:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._settings.receipt_timeout

        while loop.time() < deadline:
            try:
                receipt = await self._rpc("eth_getTransactionReceipt", [tx_hash])
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.debug(f"Receipt lookup failed, retrying: {e}")
                receipt = None

            if receipt:
                status = int(receipt.get("status", "0x0"), 16)
                return ConfirmationStatus.SUCCESS if status == 1 else ConfirmationStatus.FAILED

            await asyncio.sleep(self._settings.receipt_poll_interval)

        logger.error(f"No receipt for {tx_hash} within {self._settings.receipt_timeout}s")
        return ConfirmationStatus.FAILED

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
