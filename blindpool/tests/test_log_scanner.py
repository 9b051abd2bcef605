"""
Tests for the chunked log scanner.

Prerequisites:
- None (fetch function is faked)

Run with: python -m pytest blindpool/tests/test_log_scanner.py
"""

import unittest
import asyncio

import pytest

from blindpool.core.errors import TransientFetchFailure
from blindpool.core.log_scanner import LogCursor, LogScanner, chunk_ranges


class RecordingFetch:
    """Fake eth_getLogs returning one event per chunk and recording ranges."""

    def __init__(self, failures=None, error=None):
        self.calls = []
        self.failures = dict(failures or {})
        self.error = error

    async def __call__(self, lo, hi):
        self.calls.append((lo, hi))
        remaining = self.failures.get((lo, hi), 0)
        if remaining:
            self.failures[(lo, hi)] = remaining - 1
            raise self.error or TransientFetchFailure(f"rate limited {lo}-{hi}")
        return [{"blockNumber": lo, "range": (lo, hi)}]


class TestChunkRanges(unittest.TestCase):

    def test_contiguous_non_overlapping_chunks(self):
        self.assertEqual(
            chunk_ranges(0, 2500, 1000),
            [(0, 999), (1000, 1999), (2000, 2500)]
        )
        print("\n✓ Ranges partition the window with the last chunk clipped")

    def test_exact_multiple(self):
        self.assertEqual(chunk_ranges(10, 29, 10), [(10, 19), (20, 29)])

    def test_single_block(self):
        self.assertEqual(chunk_ranges(7, 7, 1000), [(7, 7)])

    def test_empty_when_from_is_past_head(self):
        self.assertEqual(chunk_ranges(11, 10, 1000), [])

    def test_rejects_non_positive_chunk_size(self):
        with self.assertRaises(ValueError):
            chunk_ranges(0, 10, 0)
        with self.assertRaises(ValueError):
            LogScanner(chunk_size=-1)


class TestLogScanner(unittest.TestCase):

    def test_scan_concatenates_in_chunk_order(self):
        async def _test():
            fetch = RecordingFetch()
            result = await LogScanner(chunk_size=1000).scan(fetch, 0, 2500)

            self.assertEqual(fetch.calls, [(0, 999), (1000, 1999), (2000, 2500)])
            self.assertEqual([e["blockNumber"] for e in result.events], [0, 1000, 2000])
            self.assertEqual(result.cursor, LogCursor(0, 2500))
            print("\n✓ Scan covers every chunk in order")

        asyncio.run(_test())

    def test_synthetic_log_has_no_gaps_or_duplicates(self):
        async def _test():
            for n_events, n_chunks in [(1, 1), (10, 3), (57, 7), (200, 13)]:
                chunk_size = 100
                head = n_chunks * chunk_size - 1
                blocks = [(i * 37) % (head + 1) for i in range(n_events)]
                log = [{"blockNumber": b, "id": i} for i, b in enumerate(blocks)]

                async def fetch(lo, hi):
                    return [e for e in log if lo <= e["blockNumber"] <= hi]

                result = await LogScanner(chunk_size=chunk_size).scan(fetch, 0, head)
                ids = [e["id"] for e in result.events]
                self.assertEqual(len(ids), n_events)
                self.assertEqual(sorted(ids), list(range(n_events)))
            print("\n✓ Every synthetic event returned exactly once")

        asyncio.run(_test())

    def test_resume_from_cursor_scans_only_new_blocks(self):
        async def _test():
            scanner = LogScanner(chunk_size=1000)
            first = await scanner.scan(RecordingFetch(), 0, 1500)

            fetch = RecordingFetch()
            second = await scanner.scan(fetch, 0, 2200, cursor=first.cursor)

            self.assertEqual(fetch.calls, [(1501, 2200)])
            self.assertEqual(second.cursor, LogCursor(0, 2200))
            print("\n✓ Incremental scan resumes right after the cursor")

        asyncio.run(_test())

    def test_no_new_blocks_keeps_cursor(self):
        async def _test():
            fetch = RecordingFetch()
            cursor = LogCursor(0, 500)
            result = await LogScanner().scan(fetch, 0, 500, cursor=cursor)

            self.assertEqual(fetch.calls, [])
            self.assertEqual(result.events, [])
            self.assertEqual(result.cursor, cursor)

        asyncio.run(_test())

    def test_empty_window_without_cursor(self):
        async def _test():
            result = await LogScanner().scan(RecordingFetch(), 100, 50)
            self.assertEqual(result.events, [])
            self.assertIsNone(result.cursor)

        asyncio.run(_test())

    def test_transient_failure_is_retried(self):
        async def _test():
            fetch = RecordingFetch(failures={(1000, 1999): 2})
            result = await LogScanner(chunk_size=1000, max_retries=2).scan(fetch, 0, 1999)

            self.assertEqual(fetch.calls, [(0, 999), (1000, 1999), (1000, 1999), (1000, 1999)])
            self.assertEqual(len(result.events), 2)
            print("\n✓ Failed chunk retried without rescanning earlier chunks")

        asyncio.run(_test())

    def test_exhausted_retries_raise_with_range(self):
        async def _test():
            fetch = RecordingFetch(failures={(1000, 1999): 10})
            with self.assertRaises(TransientFetchFailure) as ctx:
                await LogScanner(chunk_size=1000, max_retries=1).scan(fetch, 0, 2500)

            self.assertEqual(ctx.exception.from_block, 1000)
            self.assertEqual(ctx.exception.to_block, 1999)
            self.assertEqual(fetch.calls.count((1000, 1999)), 2)
            self.assertNotIn((2000, 2500), fetch.calls)
            print("\n✓ Scan fails with the failing chunk's range after retries")

        asyncio.run(_test())

    def test_other_errors_are_not_retried(self):
        async def _test():
            fetch = RecordingFetch(failures={(0, 500): 1}, error=KeyError("bad abi"))
            with self.assertRaises(KeyError):
                await LogScanner(chunk_size=1000).scan(fetch, 0, 500)
            self.assertEqual(fetch.calls, [(0, 500)])

        asyncio.run(_test())


class TestScannerDefaults:
    """Factory-sized chunks over a long history."""

    @pytest.mark.asyncio
    async def test_default_chunk_size(self):
        fetch = RecordingFetch()
        result = await LogScanner().scan(fetch, 10_184_000, 10_186_500)

        assert fetch.calls == [
            (10_184_000, 10_184_999),
            (10_185_000, 10_185_999),
            (10_186_000, 10_186_500),
        ]
        assert result.cursor == LogCursor(10_184_000, 10_186_500)


if __name__ == "__main__":
    unittest.main(verbosity=2)
