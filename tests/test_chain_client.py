"""
Chain Client Tests

Runs the chain client against a mocked Web3 instance: batched availability
through a single aggregate3 call, per-slot revert tolerance and the lockup
fallback read.
"""

import unittest
import sys
import os
from unittest import mock

from eth_abi import decode, encode
from eth_utils import is_checksum_address, keccak

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from airdrop_proofs.api.chain_client import (
    AMOUNT_AVAILABLE_SELECTOR,
    ChainClient,
    ChainClientError,
    decode_amount_result,
    encode_amount_available_call,
)
from airdrop_proofs.constants import (
    AIRDROP_ABI,
    AIRDROP_LOCKUP_END_TIME_INDEX,
    MULTICALL3_ADDRESS,
    TREE_FORMAT,
)
from airdrop_proofs.results import ResultKind

AIRDROP = "0x" + "ad" * 20
TOKEN = "0x" + "70" * 20
RECIPIENTS = [("0x" + "01" * 20, 100), ("0x" + "02" * 20, 50), ("0x" + "03" * 20, 30)]


def amount_data(amount):
    return encode(["uint256"], [amount])


class TestChainConstants(unittest.TestCase):

    def test_multicall3_address_is_checksummed(self):
        self.assertTrue(is_checksum_address(MULTICALL3_ADDRESS))

    def test_lockup_end_time_index_matches_abi(self):
        airdrops = next(f for f in AIRDROP_ABI if f["name"] == "airdrops")
        self.assertEqual(airdrops["outputs"][AIRDROP_LOCKUP_END_TIME_INDEX]["name"], "lockupEndTime")

    def test_tree_format(self):
        self.assertEqual(TREE_FORMAT, "standard-v1")


class TestCallEncoding(unittest.TestCase):

    def test_selector(self):
        expected = keccak(text="amountAvailableToClaim(address,address,uint256)")[:4]
        self.assertEqual(AMOUNT_AVAILABLE_SELECTOR, expected)

    def test_encode_call(self):
        data = encode_amount_available_call(TOKEN, RECIPIENTS[0][0], 100)
        self.assertEqual(data[:4], AMOUNT_AVAILABLE_SELECTOR)
        token, recipient, amount = decode(["address", "address", "uint256"], data[4:])
        self.assertEqual(token.lower(), TOKEN)
        self.assertEqual(recipient.lower(), RECIPIENTS[0][0])
        self.assertEqual(amount, 100)

    def test_decode_amount_result(self):
        self.assertEqual(decode_amount_result(True, amount_data(42)), 42)
        self.assertEqual(decode_amount_result(False, amount_data(42)), 0)
        self.assertEqual(decode_amount_result(True, b""), 0)
        self.assertEqual(decode_amount_result(True, b"\x01"), 0)


class TestChainClient(unittest.TestCase):

    def setUp(self):
        self.w3 = mock.MagicMock()
        self.client = ChainClient(web3=self.w3)
        self.client.multicall = mock.MagicMock()
        self.aggregate3 = self.client.multicall.functions.aggregate3

    def test_requires_rpc_url_without_web3(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                ChainClient()

    def test_batch_availability_single_call(self):
        self.aggregate3.return_value.call.return_value = [
            (True, amount_data(100)),
            (True, amount_data(0)),
            (True, amount_data(30)),
        ]

        result = self.client.batch_availability(AIRDROP, TOKEN, RECIPIENTS)

        self.assertEqual(result.kind, ResultKind.OK)
        self.assertEqual(result.data, [100, 0, 30])
        self.aggregate3.assert_called_once()
        (calls,), _ = self.aggregate3.call_args
        self.assertEqual(len(calls), 3)
        for (target, allow_failure, call_data), (address, amount) in zip(calls, RECIPIENTS):
            self.assertEqual(target.lower(), AIRDROP)
            self.assertTrue(allow_failure)
            self.assertEqual(call_data, encode_amount_available_call(TOKEN, address, amount))

    def test_reverting_slot_resolves_to_zero(self):
        self.aggregate3.return_value.call.return_value = [
            (True, amount_data(100)),
            (False, b"\x08\xc3\x79\xa0"),
            (True, amount_data(30)),
        ]

        result = self.client.batch_availability(AIRDROP, TOKEN, RECIPIENTS)

        self.assertTrue(result.is_ok)
        self.assertEqual(result.data, [100, 0, 30])

    def test_whole_batch_failure_defaults_to_zero(self):
        self.aggregate3.return_value.call.side_effect = Exception("execution reverted")

        result = self.client.batch_availability(AIRDROP, TOKEN, RECIPIENTS)

        self.assertEqual(result.kind, ResultKind.TRANSIENT_ERROR)
        self.assertEqual(result.data, [0, 0, 0])

    def test_result_count_mismatch_defaults_to_zero(self):
        self.aggregate3.return_value.call.return_value = [(True, amount_data(1))]

        result = self.client.batch_availability(AIRDROP, TOKEN, RECIPIENTS)

        self.assertEqual(result.kind, ResultKind.TRANSIENT_ERROR)
        self.assertEqual(result.data, [0, 0, 0])

    def test_empty_recipients_issue_no_call(self):
        result = self.client.batch_availability(AIRDROP, TOKEN, [])
        self.assertTrue(result.is_ok)
        self.assertEqual(result.data, [])
        self.aggregate3.assert_not_called()

    def test_block_timestamp(self):
        self.w3.eth.get_block.return_value = {"timestamp": 1_700_000_000}
        self.assertEqual(self.client.get_block_timestamp(), 1_700_000_000)
        self.w3.eth.get_block.assert_called_once_with("latest")

    def test_block_timestamp_failure(self):
        self.w3.eth.get_block.side_effect = ConnectionError("rpc down")
        with self.assertRaises(ChainClientError):
            self.client.get_block_timestamp()

    def test_read_lockup_end_time(self):
        airdrops = self.w3.eth.contract.return_value.functions.airdrops
        airdrops.return_value.call.return_value = (
            "0x" + "00" * 20, b"\x00" * 32, 1000, 0, 1_700_086_400, 1_700_172_800,
        )
        self.assertEqual(self.client.read_lockup_end_time(AIRDROP, TOKEN), 1_700_086_400)

    def test_read_lockup_end_time_failure(self):
        airdrops = self.w3.eth.contract.return_value.functions.airdrops
        airdrops.return_value.call.side_effect = Exception("execution reverted")
        with self.assertRaises(ChainClientError):
            self.client.read_lockup_end_time(AIRDROP, TOKEN)

    def test_health_check(self):
        self.w3.is_connected.return_value = True
        self.assertTrue(self.client.health_check())
        self.w3.is_connected.side_effect = Exception("down")
        self.assertFalse(self.client.health_check())


if __name__ == "__main__":
    unittest.main()
