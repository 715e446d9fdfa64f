"""
CLI Tests
"""

import json
import unittest
import sys
import os
import tempfile
from unittest import mock

from click.testing import CliRunner

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from airdrop_proofs.cli import cli
from airdrop_proofs.api.status_service import AirdropStatus, StatusReason
from airdrop_proofs.merkle import StandardMerkleTree

RECIPIENT_A = "0x" + "0a" * 20
RECIPIENT_B = "0x" + "0b" * 20
TREASURY = "0x" + "fe" * 20


class TestCli(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.allocations = os.path.join(self.tmpdir.name, "allocations.csv")
        with open(self.allocations, "w") as f:
            f.write(f"address,amount\n{RECIPIENT_A},100\n{RECIPIENT_B},50\n")
        self.tree_file = os.path.join(self.tmpdir.name, "tree.json")

    def tearDown(self):
        self.tmpdir.cleanup()

    def build_tree(self):
        return self.runner.invoke(
            cli,
            ["build", self.allocations, "--treasury", TREASURY, "--treasury-amount", "30", "-o", self.tree_file],
        )

    def test_build_writes_dump(self):
        result = self.build_tree()
        self.assertEqual(result.exit_code, 0, result.output)
        with open(self.tree_file) as f:
            dump = json.load(f)
        self.assertEqual(dump["format"], "standard-v1")
        self.assertEqual(len(dump["values"]), 3)
        self.assertEqual(dump["values"][2]["value"], [TREASURY, "30"])

    def test_proof_then_verify(self):
        self.build_tree()
        with open(self.tree_file) as f:
            tree = StandardMerkleTree.load(json.load(f))
        proof = tree.get_hex_proof(1)

        result = self.runner.invoke(cli, ["proof", self.tree_file, "1"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn(tree.root_hex, result.output)
        for step in proof:
            self.assertIn(step, result.output)

        verify = self.runner.invoke(cli, ["verify", tree.root_hex, RECIPIENT_B, "50", *proof])
        self.assertEqual(verify.exit_code, 0, verify.output)

        bad = self.runner.invoke(cli, ["verify", tree.root_hex, RECIPIENT_B, "49", *proof])
        self.assertEqual(bad.exit_code, 1)

    def test_proof_out_of_range(self):
        self.build_tree()
        result = self.runner.invoke(cli, ["proof", self.tree_file, "9"])
        self.assertNotEqual(result.exit_code, 0)

    def assert_click_error(self, result):
        self.assertEqual(result.exit_code, 1, result.output)
        self.assertIsInstance(result.exception, SystemExit)
        self.assertIn("Error:", result.output)

    def test_proof_rejects_non_object_json(self):
        path = os.path.join(self.tmpdir.name, "list.json")
        with open(path, "w") as f:
            f.write("[1, 2]")
        self.assert_click_error(self.runner.invoke(cli, ["proof", path, "0"]))

    def test_proof_rejects_invalid_json(self):
        path = os.path.join(self.tmpdir.name, "broken.json")
        with open(path, "w") as f:
            f.write("{not json")
        self.assert_click_error(self.runner.invoke(cli, ["proof", path, "0"]))

    def test_verify_rejects_negative_amount(self):
        self.build_tree()
        with open(self.tree_file) as f:
            tree = StandardMerkleTree.load(json.load(f))
        result = self.runner.invoke(cli, ["verify", "--", tree.root_hex, RECIPIENT_B, "-1"])
        self.assert_click_error(result)

    def test_build_rejects_amount_above_uint256(self):
        with open(self.allocations, "w") as f:
            f.write(f"address,amount\n{RECIPIENT_A},{2 ** 256}\n")
        self.assert_click_error(self.runner.invoke(cli, ["build", self.allocations]))

    def test_status_not_configured(self):
        with mock.patch("airdrop_proofs.cli.AirdropStatusService") as service_cls:
            service_cls.return_value.get_airdrop_status.return_value = AirdropStatus(
                reason=StatusReason.NOT_CONFIGURED, error="No tree stored for this token"
            )
            result = self.runner.invoke(
                cli, ["status", "0x" + "70" * 20, "--treasury", TREASURY, "--chain-id", "8453"]
            )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("No airdrop configured", result.output)

    def test_status_unavailable_fails(self):
        with mock.patch("airdrop_proofs.cli.AirdropStatusService") as service_cls:
            service_cls.return_value.get_airdrop_status.return_value = AirdropStatus(
                reason=StatusReason.UNAVAILABLE, error="Timeout fetching tree"
            )
            result = self.runner.invoke(
                cli, ["status", "0x" + "70" * 20, "--treasury", TREASURY, "--chain-id", "8453"]
            )
        self.assertNotEqual(result.exit_code, 0)


if __name__ == "__main__":
    unittest.main()
