"""Auction lifecycle status derived from block height."""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

SECONDS_PER_BLOCK = 12


class AuctionStatus(str, Enum):
    """Lifecycle status of an auction."""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"

    @property
    def label(self) -> str:
        return self.value.capitalize()


def derive_status(start_block: int, end_block: int, current_block: int) -> AuctionStatus:
    """Map (start, end, current block) to a lifecycle status."""
    if current_block >= end_block:
        return AuctionStatus.ENDED
    if current_block >= start_block:
        return AuctionStatus.ACTIVE
    return AuctionStatus.UPCOMING


class StatusTracker:
    """
    Last-known-good status for one auction.

    A missing block height (between polls, failed RPC) never recomputes the
    status: the last successfully derived value is returned instead, so an
    active auction cannot flicker back to upcoming and an open bid form is
    not torn down by a data gap.
    """

    def __init__(self, start_block: int, end_block: int):
        self.start_block = start_block
        self.end_block = end_block
        self.last_status: Optional[AuctionStatus] = None
        self.last_block: Optional[int] = None

    def update(self, current_block: Optional[int]) -> Optional[AuctionStatus]:
        """
        Derive the status for current_block, or keep the last one if it is missing.

        Returns:
            The current status, or None if no status was ever derived
        """
        if current_block is None:
            return self.last_status

        status = derive_status(self.start_block, self.end_block, current_block)
        if status != self.last_status:
            logger.debug(
                f"Status {self.last_status.value if self.last_status else None} -> "
                f"{status.value} at block {current_block}"
            )
        self.last_status = status
        self.last_block = current_block
        return status

    def rebind(self, start_block: int, end_block: int) -> None:
        """Update the block range after a re-read without dropping the last status."""
        self.start_block = start_block
        self.end_block = end_block

    @property
    def can_bid(self) -> bool:
        """The bid form stays available while the last known status is active."""
        return self.last_status == AuctionStatus.ACTIVE


def blocks_to_duration(blocks: int) -> str:
    """Approximate wall-clock duration of a block count (12s blocks)."""
    seconds = max(0, int(blocks)) * SECONDS_PER_BLOCK
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{round(seconds / 60)}m"
    if seconds < 86400:
        return f"{round(seconds / 3600)}h"
    return f"{round(seconds / 86400)}d"


def time_remaining(end_block: int, current_block: Optional[int], status: Optional[AuctionStatus]) -> str:
    """Human-readable 'ends in' value for listings."""
    if status == AuctionStatus.ENDED:
        return "Closed"
    if current_block is None:
        return "-"
    return f"~{blocks_to_duration(end_block - current_block)}"
