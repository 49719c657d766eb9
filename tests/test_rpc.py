# tests/test_rpc.py
import unittest

from aiohttp import web
from aiohttp import test_utils

from fortune_wheel.outcome.errors import RpcError
from fortune_wheel.outcome.provider import ConfirmationStatus
from fortune_wheel.outcome.rpc import (
    JsonRpcRandomnessSource,
    RpcWallet,
    decode_uint,
    encode_call,
)
from fortune_wheel.settings import ChainSettings

RANDOMNESS = "aaaaaaaa"
GENERATE = "bbbbbbbb"
PRICE = "cccccccc"
CONTRACT = "0x00000000000000000000000000000000000000c0"
SENDER = "0x00000000000000000000000000000000000000d0"
ACCOUNT = "0x00000000000000000000000000000000000000e0"


def _word(value: int) -> str:
    return f"0x{value:064x}"


class TestCalldata(unittest.TestCase):
    """Test selector and uint256 encoding."""

    def test_encode_without_arguments(self):
        self.assertEqual(encode_call("0xAABBCCDD"), "0xaabbccdd")

    def test_encode_uint_arguments(self):
        data = encode_call("aabbccdd", 700_000, 1)
        self.assertEqual(len(data), 2 + 8 + 64 * 2)
        self.assertEqual(int(data[10:74], 16), 700_000)
        self.assertEqual(int(data[74:], 16), 1)

    def test_invalid_selector(self):
        for selector in ("", "0x123", "aabbccddee"):
            with self.subTest(selector=selector):
                with self.assertRaises(ValueError):
                    encode_call(selector)

    def test_decode_first_word(self):
        self.assertEqual(decode_uint(_word(417)), 417)
        self.assertEqual(decode_uint(_word(5) + f"{9:064x}"), 5)

    def test_decode_empty_result(self):
        self.assertEqual(decode_uint(None), 0)
        self.assertEqual(decode_uint("0x"), 0)


class TestRpcWallet(unittest.TestCase):

    def test_connected_with_address(self):
        wallet = RpcWallet(ACCOUNT)
        self.assertTrue(wallet.is_connected)
        self.assertEqual(wallet.address, ACCOUNT)

    def test_disconnected_without_address(self):
        wallet = RpcWallet("")
        self.assertFalse(wallet.is_connected)
        self.assertIsNone(wallet.address)


class FakeNode:
    """Minimal JSON-RPC node serving the randomness consumer contract."""

    def __init__(self):
        self.value = 0
        self.price = 1_400_000
        self.receipt_status = "0x1"
        self.receipt_after = 0
        self.reject_send = False
        self.calls = []
        self.sent = []

    async def handle(self, request: web.Request) -> web.Response:
        payload = await request.json()
        method = payload["method"]
        params = payload["params"]
        self.calls.append(method)

        if method == "eth_call":
            call = params[0]
            selector = call["data"][2:10]
            if selector == RANDOMNESS and call["to"] == CONTRACT:
                result = _word(self.value)
            elif selector == PRICE and call["to"] == SENDER:
                result = _word(self.price)
            else:
                return self._error(payload, "execution reverted")
        elif method == "eth_sendTransaction":
            if self.reject_send:
                return self._error(payload, "insufficient funds")
            self.sent.append(params[0])
            result = "0x" + "ab" * 32
        elif method == "eth_getTransactionReceipt":
            if self.receipt_after > 0:
                self.receipt_after -= 1
                result = None
            else:
                result = {"status": self.receipt_status}
        else:
            return self._error(payload, "method not found")

        return web.json_response({"jsonrpc": "2.0", "id": payload["id"], "result": result})

    @staticmethod
    def _error(payload, message):
        return web.json_response({
            "jsonrpc": "2.0",
            "id": payload["id"],
            "error": {"code": -32000, "message": message},
        })


class TestJsonRpcRandomnessSource(unittest.IsolatedAsyncioTestCase):
    """Test the JSON-RPC source against an in-process node."""

    async def asyncSetUp(self):
        self.node = FakeNode()
        app = web.Application()
        app.router.add_post("/", self.node.handle)
        self.server = test_utils.TestServer(app)
        await self.server.start_server()

        self.settings = self._settings()
        self.source = JsonRpcRandomnessSource(self.settings)

    async def asyncTearDown(self):
        await self.source.close()
        await self.server.close()

    def _settings(self, **overrides):
        values = dict(
            rpc_url=str(self.server.make_url("/")),
            contract_address=CONTRACT,
            sender_address=SENDER,
            from_address=ACCOUNT,
            randomness_selector=RANDOMNESS,
            generate_selector=GENERATE,
            price_selector=PRICE,
            receipt_poll_interval=0.01,
            receipt_timeout=1.0,
        )
        values.update(overrides)
        return ChainSettings(**values)

    async def test_read_value(self):
        self.node.value = 417
        self.assertEqual(await self.source.read_value(), 417)

    async def test_quote_price_uses_sender(self):
        self.assertEqual(await self.source.quote_price(700_000), 1_400_000)

    async def test_submit_request(self):
        submission = await self.source.submit_request(700_000, 1_400_000)

        self.assertTrue(submission.ok)
        self.assertEqual(submission.tx_hash, "0x" + "ab" * 32)
        tx = self.node.sent[0]
        self.assertEqual(tx["from"], ACCOUNT)
        self.assertEqual(tx["to"], CONTRACT)
        self.assertEqual(tx["value"], hex(1_400_000))
        self.assertEqual(tx["data"], encode_call(GENERATE, 700_000))

    async def test_submit_rejected_by_node(self):
        self.node.reject_send = True
        submission = await self.source.submit_request(700_000, 1)
        self.assertFalse(submission.ok)
        self.assertIn("insufficient funds", submission.error)

    async def test_submit_without_account(self):
        source = JsonRpcRandomnessSource(self._settings(from_address=""))
        submission = await source.submit_request(700_000, 1)
        self.assertFalse(submission.ok)
        self.assertEqual(self.node.sent, [])
        await source.close()

    async def test_confirmation_waits_for_receipt(self):
        self.node.receipt_after = 2
        status = await self.source.wait_for_confirmation("0x01")
        self.assertEqual(status, ConfirmationStatus.SUCCESS)
        self.assertEqual(self.node.calls.count("eth_getTransactionReceipt"), 3)

    async def test_reverted_transaction(self):
        self.node.receipt_status = "0x0"
        status = await self.source.wait_for_confirmation("0x01")
        self.assertEqual(status, ConfirmationStatus.FAILED)

    async def test_missing_receipt_times_out(self):
        source = JsonRpcRandomnessSource(self._settings(receipt_timeout=0.05))
        self.node.receipt_after = 1000
        self.assertEqual(await source.wait_for_confirmation("0x01"), ConfirmationStatus.FAILED)
        await source.close()

    async def test_node_error_raises(self):
        source = JsonRpcRandomnessSource(self._settings(contract_address=SENDER))
        with self.assertRaises(RpcError):
            await source.read_value()
        await source.close()

    def test_required_settings(self):
        with self.assertRaises(ValueError):
            JsonRpcRandomnessSource(self._settings(rpc_url=""))
        with self.assertRaises(ValueError):
            JsonRpcRandomnessSource(self._settings(contract_address=""))
        with self.assertRaises(ValueError):
            JsonRpcRandomnessSource(self._settings(generate_selector="12"))


if __name__ == '__main__':
    unittest.main()
