"""
Chunked event-log scanner.

RPC providers cap the block range of a single eth_getLogs query, so a scan of
[from_block, head_block] is split into fixed-width, contiguous, non-overlapping
chunks that are queried in order and concatenated.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .errors import TransientFetchFailure

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000

FetchChunk = Callable[[int, int], Awaitable[List[Dict[str, Any]]]]


@dataclass(frozen=True)
class LogCursor:
    """Block window [from_block, to_block] already covered by a scan."""
    from_block: int
    to_block: int

    def extend(self, to_block: int) -> "LogCursor":
        return LogCursor(self.from_block, max(self.to_block, to_block))


@dataclass
class ScanResult:
    """Events found by a scan and the window it covered."""
    events: List[Dict[str, Any]] = field(default_factory=list)
    cursor: Optional[LogCursor] = None


def chunk_ranges(from_block: int, head_block: int, chunk_size: int) -> List[Tuple[int, int]]:
    """
    Partition [from_block, head_block] into inclusive (lo, hi) chunks.

    Each chunk's upper bound is the next chunk's lower bound minus one; the
    last chunk is clipped to head_block.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    ranges = []
    lo = from_block
    while lo <= head_block:
        hi = min(lo + chunk_size - 1, head_block)
        ranges.append((lo, hi))
        lo = hi + 1
    return ranges


class LogScanner:
    """
    Stateless chunked scanner.

    The only state carried between scans is the LogCursor returned in each
    ScanResult, and only if the caller hands it back.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, max_retries: int = 2):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.max_retries = max_retries

    async def scan(
        self,
        fetch: FetchChunk,
        from_block: int,
        head_block: int,
        cursor: Optional[LogCursor] = None
    ) -> ScanResult:
        """
        Fetch all events between from_block (or past the cursor) and head_block.

        Args:
            fetch: Coroutine function returning the events of one inclusive range
            from_block: First block of the scan
            head_block: Current chain head
            cursor: Window already scanned; scanning resumes right after it

        Returns:
            ScanResult with events in chunk order and the updated cursor

        Raises:
            TransientFetchFailure: if a chunk still fails after max_retries retries
        """
        start = from_block
        if cursor is not None:
            start = max(from_block, cursor.to_block + 1)

        events: List[Dict[str, Any]] = []
        ranges = chunk_ranges(start, head_block, self.chunk_size)

        for lo, hi in ranges:
            chunk = await self._fetch_chunk(fetch, lo, hi)
            events.extend(chunk)
            logger.debug(f"Scanned blocks {lo}-{hi}: {len(chunk)} events")

        if cursor is not None:
            new_cursor = cursor.extend(head_block) if ranges else cursor
        elif ranges:
            new_cursor = LogCursor(start, head_block)
        else:
            new_cursor = None

        return ScanResult(events=events, cursor=new_cursor)

    async def _fetch_chunk(self, fetch: FetchChunk, lo: int, hi: int) -> List[Dict[str, Any]]:
        """Query one chunk, retrying transient failures."""
        attempt = 0
        while True:
            try:
                return list(await fetch(lo, hi))
            except TransientFetchFailure as e:
                error = e

            attempt += 1
            if attempt > self.max_retries:
                logger.error(f"Log query for blocks {lo}-{hi} failed after {attempt} attempts: {error}")
                raise TransientFetchFailure(
                    f"Log query for blocks {lo}-{hi} failed: {error}",
                    from_block=lo,
                    to_block=hi
                ) from error
            logger.warning(f"Retrying log query for blocks {lo}-{hi} ({attempt}/{self.max_retries}): {error}")
