"""
Tests for auction status derivation and the last-known-good tracker.

Run with: python -m pytest blindpool/tests/test_status.py
"""

import unittest

from blindpool.core.status import (
    AuctionStatus,
    StatusTracker,
    blocks_to_duration,
    derive_status,
    time_remaining,
)


class TestDeriveStatus(unittest.TestCase):

    def test_boundaries(self):
        self.assertEqual(derive_status(100, 200, 99), AuctionStatus.UPCOMING)
        self.assertEqual(derive_status(100, 200, 100), AuctionStatus.ACTIVE)
        self.assertEqual(derive_status(100, 200, 199), AuctionStatus.ACTIVE)
        self.assertEqual(derive_status(100, 200, 200), AuctionStatus.ENDED)
        self.assertEqual(derive_status(100, 200, 10_000), AuctionStatus.ENDED)
        print("\n✓ Start block is active, end block is ended")

    def test_labels(self):
        self.assertEqual(AuctionStatus.ACTIVE.label, "Active")
        self.assertEqual(AuctionStatus("ended"), AuctionStatus.ENDED)


class TestStatusTracker(unittest.TestCase):

    def test_missing_block_keeps_last_status(self):
        tracker = StatusTracker(100, 200)
        self.assertEqual(tracker.update(150), AuctionStatus.ACTIVE)
        self.assertEqual(tracker.update(None), AuctionStatus.ACTIVE)
        self.assertEqual(tracker.last_block, 150)
        self.assertTrue(tracker.can_bid)
        print("\n✓ Absent block height does not recompute status")

    def test_no_status_before_first_block(self):
        tracker = StatusTracker(100, 200)
        self.assertIsNone(tracker.update(None))
        self.assertFalse(tracker.can_bid)

    def test_transitions_forward(self):
        tracker = StatusTracker(100, 200)
        statuses = [tracker.update(b) for b in (50, None, 120, None, 250)]
        self.assertEqual(statuses, [
            AuctionStatus.UPCOMING,
            AuctionStatus.UPCOMING,
            AuctionStatus.ACTIVE,
            AuctionStatus.ACTIVE,
            AuctionStatus.ENDED,
        ])
        self.assertFalse(tracker.can_bid)

    def test_rebind_keeps_last_status(self):
        tracker = StatusTracker(100, 200)
        tracker.update(150)
        tracker.rebind(100, 300)
        self.assertEqual(tracker.update(None), AuctionStatus.ACTIVE)
        self.assertEqual(tracker.update(250), AuctionStatus.ACTIVE)


class TestDurations(unittest.TestCase):

    def test_blocks_to_duration(self):
        self.assertEqual(blocks_to_duration(4), "48s")
        self.assertEqual(blocks_to_duration(25), "5m")
        self.assertEqual(blocks_to_duration(300), "1h")
        self.assertEqual(blocks_to_duration(7200), "1d")
        self.assertEqual(blocks_to_duration(-5), "0s")

    def test_time_remaining(self):
        self.assertEqual(time_remaining(200, 150, AuctionStatus.ACTIVE), "~10m")
        self.assertEqual(time_remaining(200, 250, AuctionStatus.ENDED), "Closed")
        self.assertEqual(time_remaining(200, None, AuctionStatus.ACTIVE), "-")
        print("\n✓ Remaining time rendered from block distance")


if __name__ == "__main__":
    unittest.main(verbosity=2)
