#!/usr/bin/env python3
"""
Watch CCA auctions from the command line.

Lists every auction created by the factory and keeps the list fresh by
polling the chain. With --bids, shows the latest bids on one auction.

Usage:
    python -m blindpool.scripts.watch_auctions
    python -m blindpool.scripts.watch_auctions --once --status active
    python -m blindpool.scripts.watch_auctions --bids 0xAuctionAddress
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from blindpool.config import config
from blindpool.core.auction_repository import AuctionRepository, RepositorySnapshot
from blindpool.core.errors import BlindPoolError
from blindpool.core.status import AuctionStatus, time_remaining
from blindpool.infrastructure.blockchain_client import BlockchainClient

logger = logging.getLogger(__name__)


def render(snapshot: RepositorySnapshot, status: Optional[AuctionStatus] = None):
    """Print one snapshot as a table."""
    if snapshot.error and not snapshot.has_data:
        print(f"❌ Failed to load auctions: {snapshot.error}")
        return
    if snapshot.error:
        print(f"⚠️  Showing cached data, last refresh failed: {snapshot.error}")

    head_block = getattr(snapshot, "head_block", 0)
    auctions = [a for a in snapshot.auctions if status is None or a.status == status]
    print(f"\n📊 {len(auctions)} auctions at block {head_block}")
    for auction in auctions:
        label = auction.status.label if auction.status else "-"
        remaining = time_remaining(auction.end_block, head_block, auction.status) if auction.status else "-"
        print(f"  {auction.display_name:<6} {label:<9} clearing={auction.clearing_price:<12} "
              f"floor={auction.floor_price:<12} bids={auction.bid_count:<4} {remaining:<8} {auction.address}")
        link = config.chain.address_url(auction.address)
        if link:
            print(f"         {link}")


async def show_bids(repository: AuctionRepository, address: str, limit: int):
    auction = await repository.get_auction(address)
    bids = await repository.get_bids(auction, config.chain.blind_pool_address, limit)
    print(f"\n🧾 Latest bids on {auction.display_name} ({address})")
    if not bids:
        print("  No bids yet")
    for bid in bids:
        row = bid.to_dict()
        if bid.encrypted:
            print(f"  #{bid.bid_id:<5} block {bid.block_number:<10} {bid.owner}  🔒 encrypted")
        else:
            print(f"  #{bid.bid_id:<5} block {bid.block_number:<10} {bid.owner}  "
                  f"{row['amount']} ETH @ {row['max_price']}")


async def main():
    parser = argparse.ArgumentParser(description="Watch CCA auctions")
    parser.add_argument(
        "--status",
        choices=[s.value for s in AuctionStatus],
        help="Only show auctions in this status"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Refresh once and exit"
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=config.refresh_interval,
        help="Seconds between refreshes"
    )
    parser.add_argument(
        "--bids",
        metavar="AUCTION",
        help="Show the latest bids on this auction and exit"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=config.latest_bids_limit,
        help="Number of bids to show"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print(config.display())

    client = BlockchainClient(config)
    await client.initialize()
    if not await client.is_connected():
        print(f"Error: cannot reach {config.chain.rpc_url}")
        sys.exit(1)

    repository = AuctionRepository(client, config)
    status = AuctionStatus(args.status) if args.status else None

    if args.bids:
        try:
            await show_bids(repository, args.bids, args.limit)
        except BlindPoolError as e:
            print(f"❌ Cannot show bids: {e}")
            sys.exit(1)
        return

    if args.once:
        render(await repository.refresh(), status)
        return

    repository.subscribe(lambda snapshot: render(snapshot, status))
    loop_task = repository.start(args.interval)
    try:
        await loop_task
    finally:
        await repository.stop()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nStopped")


if __name__ == "__main__":
    run()
