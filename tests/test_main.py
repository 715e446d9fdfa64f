"""
Tree Building and Proof Workflow Tests

Covers the file-based workflow shared by the CLI and API: loading
allocations, building the tree with the treasury last, generating and
verifying proofs from dump files and storing trees with lockup metadata.
"""

import json
import unittest
import sys
import os
import tempfile
from unittest import mock

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from airdrop_proofs.main import (
    build_airdrop_tree,
    derive_store_metadata,
    generate_recipient_proof,
    load_allocations,
    load_tree_file,
    store_airdrop_tree,
    verify_recipient_proof,
)
from airdrop_proofs.merkle import IndexOutOfRange, InvalidTreeError, bytes_to_hex
from airdrop_proofs.timing import CommitmentMetadata

RECIPIENT_A = "0x" + "0a" * 20
RECIPIENT_B = "0x" + "0b" * 20
TREASURY = "0x" + "fe" * 20
TOKEN = "0x" + "70" * 20


class TestBuildAirdropTree(unittest.TestCase):

    def test_treasury_appended_last(self):
        result = build_airdrop_tree([(RECIPIENT_A, 100), (RECIPIENT_B, 50)], TREASURY, 30)

        self.assertEqual(result.recipient_count, 3)
        self.assertEqual(result.total_amount, 180)
        self.assertEqual(result.tree.value(2), [TREASURY, "30"])
        self.assertEqual(result.tree.value(0), [RECIPIENT_A, "100"])

    def test_without_treasury(self):
        result = build_airdrop_tree([(RECIPIENT_A, 100)])
        self.assertEqual(result.recipient_count, 1)
        self.assertEqual(len(result.tree), 1)

    def test_negative_amount_rejected(self):
        with self.assertRaises(ValueError):
            build_airdrop_tree([(RECIPIENT_A, -1)])

    def test_empty_allocations_rejected(self):
        with self.assertRaises(ValueError):
            build_airdrop_tree([])


class TestFileWorkflow(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def write(self, name, content):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, "w") as f:
            f.write(content)
        return path

    def test_load_csv_allocations(self):
        path = self.write("allocations.csv", f"address,amount\n{RECIPIENT_A},100\n{RECIPIENT_B}, 50\n")
        self.assertEqual(load_allocations(path), [(RECIPIENT_A, 100), (RECIPIENT_B, 50)])

    def test_load_json_allocations(self):
        path = self.write(
            "allocations.json",
            json.dumps([{"account": RECIPIENT_A, "amount": "100"}, [RECIPIENT_B, 50]]),
        )
        self.assertEqual(load_allocations(path), [(RECIPIENT_A, 100), (RECIPIENT_B, 50)])

    def test_load_empty_allocations(self):
        path = self.write("allocations.csv", "address,amount\n")
        with self.assertRaises(ValueError):
            load_allocations(path)

    def test_proof_from_bare_dump(self):
        tree = build_airdrop_tree([(RECIPIENT_A, 100), (RECIPIENT_B, 50)], TREASURY, 30).tree
        path = self.write("tree.json", json.dumps(tree.dump()))

        result = generate_recipient_proof(path, 1)

        self.assertEqual(result.root, tree.root)
        self.assertEqual(result.proof, tree.get_proof(1))
        self.assertEqual(result.metadata["address"], RECIPIENT_B)
        self.assertEqual(result.metadata["amount"], "50")
        self.assertEqual(result.metadata["recipient_count"], 3)
        self.assertNotIn("lockup_end_time", result.metadata)
        self.assertTrue(
            verify_recipient_proof(
                bytes_to_hex(tree.root), RECIPIENT_B, 50, [bytes_to_hex(p) for p in result.proof]
            )
        )
        self.assertFalse(
            verify_recipient_proof(
                bytes_to_hex(tree.root), RECIPIENT_B, 51, [bytes_to_hex(p) for p in result.proof]
            )
        )

    def test_proof_from_stored_payload(self):
        tree = build_airdrop_tree([(RECIPIENT_A, 100)], TREASURY, 30).tree
        payload = {
            "format": "standard-v1",
            "tree": tree.dump(),
            "metadata": {"lockupEndTime": 1748773066000, "lockupDuration": 86400},
        }
        path = self.write("stored.json", json.dumps(payload))

        loaded, metadata = load_tree_file(path)
        result = generate_recipient_proof(path, 0)

        self.assertEqual(loaded.root, tree.root)
        self.assertEqual(metadata, CommitmentMetadata(1748773066000, 86400))
        self.assertEqual(result.metadata["lockup_end_time"], 1748773066000)

    def test_tree_file_must_hold_an_object(self):
        path = self.write("list.json", "[1, 2]")
        with self.assertRaises(InvalidTreeError):
            load_tree_file(path)

    def test_proof_index_out_of_range(self):
        tree = build_airdrop_tree([(RECIPIENT_A, 100)]).tree
        path = self.write("tree.json", json.dumps(tree.dump()))
        with self.assertRaises(IndexOutOfRange):
            generate_recipient_proof(path, 1)


class TestStoreAirdropTree(unittest.TestCase):

    def setUp(self):
        self.tree = build_airdrop_tree([(RECIPIENT_A, 100)], TREASURY, 30).tree
        self.store = mock.Mock()
        self.store.store.return_value = "bafytest"
        self.chain = mock.Mock()
        self.chain.read_lockup_end_time.return_value = 1_700_086_400
        self.chain.get_block_timestamp.return_value = 1_700_000_000

    def test_explicit_metadata(self):
        metadata = CommitmentMetadata(1, 2)
        cid = store_airdrop_tree(self.tree, TOKEN, 8453, self.store, metadata=metadata)
        self.assertEqual(cid, "bafytest")
        self.store.store.assert_called_once_with(TOKEN, 8453, self.tree, metadata)

    def test_metadata_from_contract(self):
        metadata = derive_store_metadata(self.chain, TOKEN, "0x" + "ad" * 20)
        self.assertEqual(metadata, CommitmentMetadata(1_700_086_400_000, 86400))

    def test_metadata_from_latest_block(self):
        metadata = derive_store_metadata(self.chain, TOKEN)
        self.assertEqual(metadata, CommitmentMetadata((1_700_000_000 + 86400) * 1000, 86400))

    def test_derived_metadata_is_stored(self):
        store_airdrop_tree(self.tree, TOKEN, 8453, self.store, chain_client=self.chain)
        _, _, _, metadata = self.store.store.call_args[0]
        self.assertEqual(metadata.lockup_duration, 86400)

    def test_requires_metadata_or_chain(self):
        with self.assertRaises(ValueError):
            store_airdrop_tree(self.tree, TOKEN, 8453, self.store)


if __name__ == "__main__":
    unittest.main()
