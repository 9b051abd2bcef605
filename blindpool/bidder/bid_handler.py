"""Bid handler: validate, simulate and submit bids on CCA auctions."""

import logging
from typing import Any, Dict, Optional

from ..config import BlindPoolConfig, config
from ..core.auction_repository import AuctionRepository
from ..core.bid_validator import (
    build_bid_call,
    build_blind_bid_call,
    validate_bid_for_auction,
    validate_blind_bid_for_auction,
)
from ..core.errors import BlindPoolError, InvalidInput
from ..core.status import AuctionStatus
from ..infrastructure.auction_data import Auction, CallDescriptor
from ..infrastructure.blockchain_client import BlockchainClient
from ..infrastructure.confidential import ConfidentialEncryptor, encrypt_bid_inputs

logger = logging.getLogger(__name__)


class BidHandler:
    """
    Places plain and blind bids.

    Every submission is simulated first, so a bid the contract would reject
    surfaces the contract's own revert reason before any transaction is sent.
    """

    def __init__(
        self,
        repository: AuctionRepository,
        blockchain_client: Optional[BlockchainClient] = None,
        encryptor: Optional[ConfidentialEncryptor] = None,
        handler_config: Optional[BlindPoolConfig] = None
    ):
        self.config = handler_config or config
        self.repository = repository
        self.client = blockchain_client or repository.client
        self.encryptor = encryptor

    async def initialize(self) -> bool:
        """Initialize the blockchain client shared with the repository."""
        try:
            await self.client.initialize()
            return True
        except Exception as e:
            logger.error(f"Failed to initialize bid handler: {e}")
            return False

    def _result(
        self,
        auction: Optional[Auction],
        tx_hash: Optional[str] = None,
        block_number: Optional[int] = None,
        error: Optional[Exception] = None
    ) -> Dict[str, Any]:
        return {
            "auction_address": auction.address if auction else None,
            "tx_hash": tx_hash,
            "block_number": block_number,
            "success": error is None and tx_hash is not None,
            "error": str(error) if error else None,
            "error_type": type(error).__name__ if error else None,
            "field": getattr(error, "field", None),
        }

    async def _load_open_auction(self, auction_address: str) -> Auction:
        auction = await self.repository.get_auction(auction_address)
        if auction.status != AuctionStatus.ACTIVE:
            status = auction.status.label if auction.status else "Unknown"
            raise InvalidInput("auction", f"auction is not accepting bids ({status})")
        return auction

    async def _submit(self, auction: Auction, descriptor: CallDescriptor) -> Dict[str, Any]:
        await self.client.simulate(descriptor)
        tx_hash = await self.client.send_transaction(descriptor)
        logger.info(f"Bid transaction sent: {tx_hash}")

        receipt = await self.client.wait_for_transaction(tx_hash)
        if not receipt.succeeded:
            logger.error(f"Bid transaction {tx_hash} reverted")
            return self._result(auction, tx_hash, receipt.block_number,
                                error=BlindPoolError("transaction reverted"))

        logger.info(f"✅ Bid confirmed in block {receipt.block_number}")
        return self._result(auction, tx_hash, receipt.block_number)

    async def place_bid(self, auction_address: str, price: str, amount: str) -> Dict[str, Any]:
        """
        Place a plain bid.

        Args:
            auction_address: CCA auction contract
            price: Max price in ETH per token
            amount: ETH to commit

        Returns:
            Dictionary with tx_hash, block_number, success and any error
        """
        auction: Optional[Auction] = None
        try:
            auction = await self._load_open_auction(auction_address)
            submission = validate_bid_for_auction(price, amount, auction)

            owner = self.client.address
            if not owner:
                raise InvalidInput("wallet", "no signer configured")

            logger.info(f"Placing bid on {auction.display_name}: {amount} ETH "
                        f"at max {submission.max_price_display} ETH/token")
            return await self._submit(auction, build_bid_call(auction.address, submission, owner))

        except BlindPoolError as e:
            logger.error(f"Bid on {auction_address} failed: {e}")
            return self._result(auction, error=e)

    async def place_blind_bid(self, auction_address: str, price: str, amount: str) -> Dict[str, Any]:
        """
        Place a confidential bid through the blind pool.

        Price and amount are validated like a plain bid, scaled into
        confidential units, encrypted, and submitted with the ETH deposit.
        """
        auction: Optional[Auction] = None
        try:
            blind_pool = self.config.chain.blind_pool_address
            if not blind_pool:
                raise InvalidInput("blind_pool", "no blind pool address configured")
            if self.encryptor is None:
                raise InvalidInput("encryptor", "no encryption service configured")

            owner = self.client.address
            if not owner:
                raise InvalidInput("wallet", "no signer configured")

            auction = await self._load_open_auction(auction_address)
            submission = validate_blind_bid_for_auction(price, amount, auction)

            encrypted = await encrypt_bid_inputs(
                self.encryptor,
                blind_pool,
                owner,
                submission.confidential_price,
                submission.confidential_amount,
            )

            logger.info(f"Placing blind bid on {auction.display_name} via {blind_pool}")
            return await self._submit(auction, build_blind_bid_call(blind_pool, submission, encrypted))

        except BlindPoolError as e:
            logger.error(f"Blind bid on {auction_address} failed: {e}")
            return self._result(auction, error=e)

    async def latest_bids(self, auction_address: str, limit: Optional[int] = None) -> list:
        """Newest bids on an auction, plain and blind, as dictionaries."""
        auction = await self.repository.get_auction(auction_address)
        bids = await self.repository.get_bids(auction, self.config.chain.blind_pool_address, limit)
        return [bid.to_dict() for bid in bids]
