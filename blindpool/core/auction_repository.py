"""
Auction repository.

Materializes every auction created by the CCA factory from two sources:
the factory's AuctionCreated log (one event per auction) and a batched read
of each auction contract's state. Nothing is persisted; the view lives in
memory and is rebuilt from the chain on refresh.
"""

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from eth_utils import to_checksum_address

from ..config import BlindPoolConfig, config
from ..infrastructure.auction_data import Auction, Bid, sort_bids_newest_first
from ..infrastructure.contract_abis import (
    AUCTION_ABI,
    AUCTION_STATE_FIELDS,
    BLIND_POOL_ABI,
    FACTORY_ABI,
)
from .errors import BlindPoolError, InvalidInput, TransientFetchFailure
from .log_scanner import LogCursor, LogScanner
from .status import AuctionStatus, StatusTracker

logger = logging.getLogger(__name__)


def _normalize(address: str) -> str:
    """Checksummed form, used for every per-auction key."""
    try:
        return to_checksum_address(address)
    except (TypeError, ValueError):
        raise InvalidInput("auction", f"not a valid address: {address!r}")


# Snapshot states. "No data yet" and "data present but the last refresh
# failed" are distinct types so consumers cannot conflate them.

@dataclass(frozen=True)
class RepositorySnapshot:
    @property
    def auctions(self) -> Tuple[Auction, ...]:
        return ()

    @property
    def error(self) -> Optional[str]:
        return None

    @property
    def has_data(self) -> bool:
        return False


@dataclass(frozen=True)
class NoData(RepositorySnapshot):
    """Nothing fetched yet."""


@dataclass(frozen=True)
class Loaded(RepositorySnapshot):
    """Last refresh succeeded."""
    items: Tuple[Auction, ...] = ()
    head_block: int = 0

    @property
    def auctions(self) -> Tuple[Auction, ...]:
        return self.items

    @property
    def has_data(self) -> bool:
        return True


@dataclass(frozen=True)
class StaleData(RepositorySnapshot):
    """Cached auctions still shown; the last refresh failed."""
    items: Tuple[Auction, ...] = ()
    head_block: int = 0
    failure: str = ""

    @property
    def auctions(self) -> Tuple[Auction, ...]:
        return self.items

    @property
    def error(self) -> Optional[str]:
        return self.failure

    @property
    def has_data(self) -> bool:
        return True


@dataclass(frozen=True)
class LoadFailed(RepositorySnapshot):
    """Nothing cached and the refresh failed; the only state that surfaces an error."""
    failure: str = ""

    @property
    def error(self) -> Optional[str]:
        return self.failure


@dataclass(frozen=True)
class AuctionCreation:
    """One AuctionCreated event."""
    auction: str
    token: str
    block_number: int
    log_index: int


@dataclass
class _BidCache:
    cursor: Optional[LogCursor] = None
    rows: List[Bid] = field(default_factory=list)


Subscriber = Callable[[RepositorySnapshot], None]


def _as_int(value: Any) -> int:
    return int(value) if value is not None else 0


def _optional_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


class AuctionRepository:
    """
    Cached view of all auctions with stale-while-revalidate refresh.

    - refresh() never clears displayed data on failure
    - concurrent refresh() calls join the one already in flight
    - status per auction goes through a StatusTracker, so a missing block
      height keeps the last known status
    """

    def __init__(
        self,
        client,
        repo_config: Optional[BlindPoolConfig] = None,
        scanner: Optional[LogScanner] = None,
        bid_scanner: Optional[LogScanner] = None
    ):
        self.client = client
        self.config = repo_config or config
        self.scanner = scanner or LogScanner(self.config.factory_chunk_size, self.config.chunk_retries)
        self.bid_scanner = bid_scanner or LogScanner(self.config.bid_chunk_size, self.config.chunk_retries)

        self.snapshot: RepositorySnapshot = NoData()

        self._creations: List[AuctionCreation] = []
        self._cursor: Optional[LogCursor] = None
        self._trackers: Dict[str, StatusTracker] = {}
        # Keyed by (auction, source contract, encrypted); the blind pool is shared by all auctions
        self._bid_caches: Dict[Tuple[str, str, bool], _BidCache] = {}

        self._inflight: Optional[asyncio.Task] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._subscribers: List[Subscriber] = []

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> RepositorySnapshot:
        """
        Refresh the view, or join the refresh already in flight.

        Returns:
            The snapshot published by the refresh
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(self._inflight)

    def cancel_refresh(self) -> bool:
        """Cancel the in-flight refresh; nothing it fetched is published."""
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
            return True
        return False

    async def _refresh(self) -> RepositorySnapshot:
        try:
            head_block = await self.client.get_block_number()
            creations, cursor = await self._scan_creations(head_block)
            auctions = await asyncio.gather(
                *(self._read_state(creation) for creation in creations)
            )
        except BlindPoolError as e:
            return self._publish_failure(e)

        # Publish only after every read succeeded
        self._creations = creations
        self._cursor = cursor
        materialized = tuple(
            self._materialize(creation, ordinal, state, head_block)
            for ordinal, (creation, state) in enumerate(zip(creations, auctions), start=1)
        )
        self._publish(Loaded(items=materialized, head_block=head_block))
        logger.info(f"✅ Loaded {len(materialized)} auctions at block {head_block}")
        return self.snapshot

    def _publish_failure(self, error: Exception) -> RepositorySnapshot:
        previous = self.snapshot
        if previous.has_data:
            logger.warning(f"Refresh failed, keeping {len(previous.auctions)} cached auctions: {error}")
            head_block = getattr(previous, "head_block", 0)
            self._publish(StaleData(items=previous.auctions, head_block=head_block, failure=str(error)))
        else:
            logger.error(f"Failed to load auctions: {error}")
            self._publish(LoadFailed(failure=str(error)))
        return self.snapshot

    def _publish(self, snapshot: RepositorySnapshot):
        self.snapshot = snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Subscriber {callback!r} failed: {e}", exc_info=True)

    async def _scan_creations(self, head_block: int) -> Tuple[List[AuctionCreation], Optional[LogCursor]]:
        """Incrementally scan AuctionCreated events past the stored cursor."""
        factory = self.config.chain.factory_address

        async def fetch(lo: int, hi: int):
            return await self.client.get_logs(factory, FACTORY_ABI, "AuctionCreated", lo, hi)

        result = await self.scanner.scan(
            fetch,
            self.config.chain.deploy_block,
            head_block,
            cursor=self._cursor
        )

        known = {c.auction for c in self._creations}
        creations = list(self._creations)
        for event in result.events:
            args = event.get('args', {})
            auction = args.get('auction')
            token = args.get('token')
            if not auction or not token:
                continue
            auction = _normalize(auction)
            if auction in known:
                continue
            known.add(auction)
            creations.append(AuctionCreation(
                auction=auction,
                token=token,
                block_number=event.get('blockNumber', 0),
                log_index=event.get('logIndex', 0),
            ))

        creations.sort(key=lambda c: (c.block_number, c.log_index))
        if result.events:
            logger.debug(f"Found {len(result.events)} new AuctionCreated events")
        return creations, result.cursor

    async def _read_state(self, creation: AuctionCreation) -> Dict[str, Any]:
        values = await self.client.batch_call(creation.auction, AUCTION_ABI, AUCTION_STATE_FIELDS)
        return dict(zip(AUCTION_STATE_FIELDS, values))

    def _tracker(self, address: str, start_block: int, end_block: int) -> StatusTracker:
        tracker = self._trackers.get(address)
        if tracker is None:
            tracker = StatusTracker(start_block, end_block)
            self._trackers[address] = tracker
        else:
            tracker.rebind(start_block, end_block)
        return tracker

    def _materialize(
        self,
        creation: AuctionCreation,
        ordinal: int,
        state: Dict[str, Any],
        head_block: Optional[int]
    ) -> Auction:
        start, end = state.get('startBlock'), state.get('endBlock')
        if start is None or end is None:
            # Unknown block range: keep the last known range and status
            tracker = self._trackers.get(creation.auction)
            if tracker is not None:
                start_block, end_block = tracker.start_block, tracker.end_block
                status = tracker.update(None)
            else:
                start_block = end_block = 0
                status = None
            logger.warning(f"Block range unavailable for {creation.auction}, keeping last status {status}")
        else:
            start_block, end_block = int(start), int(end)
            status = self._tracker(creation.auction, start_block, end_block).update(head_block)

        return Auction(
            address=creation.auction,
            token=state.get('token') or creation.token,
            auction_number=ordinal,
            start_block=start_block,
            end_block=end_block,
            clearing_price_raw=_optional_int(state.get('clearingPrice')),
            floor_price_raw=_optional_int(state.get('floorPrice')),
            tick_spacing=_optional_int(state.get('tickSpacing')),
            bid_count=_as_int(state.get('nextBidId')),
            currency_raised=_as_int(state.get('currencyRaised')),
            total_supply=_as_int(state.get('totalSupply')),
            status=status,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_auctions(self, status: Optional[AuctionStatus] = None) -> List[Auction]:
        """Auctions from the current snapshot, optionally filtered by status."""
        auctions = list(self.snapshot.auctions)
        if status is None:
            return auctions
        return [a for a in auctions if a.status == status]

    def status_of(self, address: str, current_block: Optional[int] = None) -> Optional[AuctionStatus]:
        """Status for current_block, or the last known status when it is missing."""
        tracker = self._trackers.get(_normalize(address))
        if tracker is None:
            return None
        return tracker.update(current_block)

    def can_bid(self, address: str) -> bool:
        tracker = self._trackers.get(_normalize(address))
        return tracker.can_bid if tracker else False

    async def get_auction(self, address: str) -> Auction:
        """
        Fresh detail read of a single auction.

        An address not seen yet triggers one refresh, so an auction created
        since the last scan still gets its creation-order name.

        Raises:
            InvalidInput: if the address is malformed or the factory never created it
            TransientFetchFailure: if the auction state cannot be read
        """
        address = _normalize(address)
        if self._find_creation(address) is None:
            snapshot = await self.refresh()
            if self._find_creation(address) is None:
                if snapshot.error:
                    raise TransientFetchFailure(f"cannot look up {address}: {snapshot.error}")
                raise InvalidInput("auction", f"{address} was not created by the factory")

        head_block: Optional[int]
        try:
            head_block = await self.client.get_block_number()
        except TransientFetchFailure as e:
            logger.warning(f"Block height unavailable, keeping last status for {address}: {e}")
            head_block = None

        creation = self._find_creation(address)
        ordinal = self._creations.index(creation) + 1
        state = await self._read_state(creation)
        return self._materialize(creation, ordinal, state, head_block)

    def _find_creation(self, address: str) -> Optional[AuctionCreation]:
        return next((c for c in self._creations if c.auction == address), None)

    async def get_bids(
        self,
        auction: Auction,
        blind_pool: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Bid]:
        """
        Latest bids on an auction, newest first.

        Plain BidSubmitted events come from the auction contract; encrypted
        BlindBidPlaced events come from the blind pool, if one is given.
        Previously scanned ranges are not scanned again.
        """
        head_block = await self.client.get_block_number()
        rows = list(await self._scan_bids(auction, auction.address, head_block, encrypted=False))
        if blind_pool:
            rows.extend(await self._scan_bids(auction, blind_pool, head_block, encrypted=True))

        limit = self.config.latest_bids_limit if limit is None else limit
        return sort_bids_newest_first(rows)[:limit]

    async def _scan_bids(self, auction: Auction, address: str, head_block: int, encrypted: bool) -> List[Bid]:
        key = (_normalize(auction.address), address, encrypted)
        cache = self._bid_caches.setdefault(key, _BidCache())
        event_name = "BlindBidPlaced" if encrypted else "BidSubmitted"
        abi = BLIND_POOL_ABI if encrypted else AUCTION_ABI

        async def fetch(lo: int, hi: int):
            return await self.client.get_logs(address, abi, event_name, lo, hi)

        result = await self.bid_scanner.scan(fetch, auction.start_block, head_block, cursor=cache.cursor)

        new_rows = [self._parse_bid(event, encrypted) for event in result.events]
        cache.rows.extend(new_rows)
        cache.cursor = result.cursor
        return cache.rows

    @staticmethod
    def _parse_bid(event: Dict[str, Any], encrypted: bool) -> Bid:
        args = event.get('args', {})
        if encrypted:
            return Bid(
                bid_id=args['blindBidId'],
                owner=args['bidder'],
                block_number=event.get('blockNumber', 0),
                encrypted=True,
            )
        return Bid(
            bid_id=args['id'],
            owner=args['owner'],
            block_number=event.get('blockNumber', 0),
            amount=args['amount'],
            price=args['price'],
        )

    # ------------------------------------------------------------------
    # Background refresh and subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register for snapshot updates; returns the matching unsubscribe."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def start(self, interval: Optional[float] = None) -> asyncio.Task:
        """Start the background refresh loop (idempotent)."""
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.ensure_future(
                self._run(interval if interval is not None else self.config.refresh_interval)
            )
        return self._loop_task

    async def _run(self, interval: float):
        while True:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                # Only the refresh was cancelled (cancel_refresh); keep polling
                if asyncio.current_task().cancelling():
                    raise
                logger.info(f"Refresh cancelled, next attempt in {interval}s")
            except Exception as e:
                logger.error(f"Background refresh failed, next attempt in {interval}s: {e}", exc_info=True)
            await asyncio.sleep(interval)

    async def stop(self):
        """Cancel the loop and any in-flight refresh, and drop all subscribers."""
        tasks = [t for t in (self._loop_task, self._inflight) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._loop_task = None
        self._subscribers.clear()
        logger.info("Auction repository stopped")
