"""
Lockup Timing Tests
"""

import unittest
import sys
import os
from unittest import mock

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from airdrop_proofs.timing import (
    CommitmentMetadata,
    MetadataTiming,
    OnChainFallbackTiming,
    TimingSourceKind,
    resolve_timing,
    select_timing_source,
)


class TestResolveTiming(unittest.TestCase):

    def test_metadata_used_verbatim(self):
        fallback = mock.Mock(return_value=1)
        metadata = CommitmentMetadata(lockup_end_time=1_700_086_400_000,lockup_duration=7200)

        timing = resolve_timing(metadata, fallback)

        fallback.assert_not_called()
        self.assertEqual(timing.source, TimingSourceKind.METADATA)
        self.assertEqual(timing.lockup_end_time, metadata.lockup_end_time)
        self.assertEqual(timing.lockup_duration, 7200)
        self.assertEqual(timing.lockup_duration_hours, 2)
        self.assertEqual(timing.deployment_timestamp, metadata.lockup_end_time - 7200 * 1000)

    def test_fallback_converts_seconds_to_ms(self):
        fallback = mock.Mock(return_value=1_700_000_000)

        timing = resolve_timing(None, fallback)

        fallback.assert_called_once_with()
        self.assertEqual(timing.source, TimingSourceKind.ON_CHAIN_FALLBACK)
        self.assertEqual(timing.lockup_end_time, 1_700_000_000_000)
        self.assertEqual(timing.lockup_duration, 86400)
        self.assertEqual(timing.lockup_duration_hours, 24)
        self.assertEqual(timing.deployment_timestamp, (1_700_000_000 - 86400) * 1000)

    def test_fallback_errors_propagate(self):
        fallback = mock.Mock(side_effect=RuntimeError("rpc down"))
        with self.assertRaises(RuntimeError):
            resolve_timing(None, fallback)

    def test_select_timing_source(self):
        metadata = CommitmentMetadata(lockup_end_time=5000, lockup_duration=1)
        self.assertIsInstance(select_timing_source(metadata, lambda: 0), MetadataTiming)
        self.assertIsInstance(select_timing_source(None, lambda: 0), OnChainFallbackTiming)


class TestCommitmentMetadata(unittest.TestCase):

    def test_round_trip(self):
        metadata = CommitmentMetadata(lockup_end_time=1748773066000, lockup_duration=86400)
        self.assertEqual(
            metadata.to_dict(), {"lockupEndTime": 1748773066000, "lockupDuration": 86400}
        )
        self.assertEqual(CommitmentMetadata.from_dict(metadata.to_dict()), metadata)

    def test_missing_or_zero_end_time_is_absent(self):
        self.assertIsNone(CommitmentMetadata.from_dict(None))
        self.assertIsNone(CommitmentMetadata.from_dict({}))
        self.assertIsNone(CommitmentMetadata.from_dict({"lockupEndTime": 0, "lockupDuration": 10}))

    def test_duration_defaults_to_one_day(self):
        metadata = CommitmentMetadata.from_dict({"lockupEndTime": "1748773066000"})
        self.assertEqual(metadata.lockup_end_time, 1748773066000)
        self.assertEqual(metadata.lockup_duration, 86400)


if __name__ == "__main__":
    unittest.main()
