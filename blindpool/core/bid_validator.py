"""
Bid validation for CCA auctions.

Checks run in a fixed order and stop at the first failure:

1. amount is a finite positive number
2. price is a finite positive number
3. tick-snapped price is strictly above a non-zero clearing price
4. tick-snapped price is at or above a non-zero floor price

Validation has no side effects; it only produces immutable submission
descriptors. Simulation and broadcasting belong to the bid handler.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..infrastructure.auction_data import Auction, CallDescriptor
from ..infrastructure.confidential import EncryptedInputs
from ..infrastructure.contract_abis import AUCTION_ABI, BLIND_POOL_ABI
from .errors import InvalidInput, InvalidPrice, TransientFetchFailure
from .price_codec import (
    decode_price,
    encode_price,
    parse_ether,
    snap_up_to_tick,
    to_confidential_units,
)

logger = logging.getLogger(__name__)

UINT128_MAX = 2 ** 128 - 1


@dataclass(frozen=True)
class BidSubmission:
    """A validated plain bid."""
    price_text: str
    amount_text: str
    max_price: int          # Q96, snapped up to the tick grid
    amount: int             # wei
    prev_tick_price: int    # hint for the contract's tick list

    @property
    def max_price_display(self) -> str:
        return decode_price(self.max_price)


@dataclass(frozen=True)
class BlindBidSubmission:
    """A validated confidential bid, with values in 8-decimal confidential units."""
    bid: BidSubmission
    confidential_price: int
    confidential_amount: int

    @property
    def deposit(self) -> int:
        return self.bid.amount


def validate_bid(
    price: str,
    amount: str,
    floor_price: int,
    clearing_price: int,
    tick_spacing: int
) -> BidSubmission:
    """
    Validate a candidate bid against the auction's current prices.

    Args:
        price: Max price in ETH per token (decimal string)
        amount: Amount in ETH (decimal string)
        floor_price: Auction floor price (Q96, 0 if unset)
        clearing_price: Current clearing price (Q96, 0 if none yet)
        tick_spacing: Tick spacing (Q96 units)

    Returns:
        BidSubmission

    Raises:
        InvalidInput: for the first failed check, naming the field
    """
    amount_wei = parse_ether(amount, "amount")
    if amount_wei > UINT128_MAX:
        raise InvalidInput("amount", "value is too large")

    encoded = encode_price(price)
    if encoded == 0:
        raise InvalidPrice("value is too small to represent")

    snapped = snap_up_to_tick(encoded, tick_spacing)

    if clearing_price and snapped <= clearing_price:
        raise InvalidPrice(
            f"max price must be above the current clearing price of {decode_price(clearing_price)} ETH"
        )

    if floor_price and snapped < floor_price:
        raise InvalidPrice(
            f"max price must be at least the floor price of {decode_price(floor_price)} ETH"
        )

    if snapped != encoded:
        logger.debug(f"Snapped price {price} up to tick boundary {decode_price(snapped)}")

    return BidSubmission(
        price_text=price.strip(),
        amount_text=amount.strip(),
        max_price=snapped,
        amount=amount_wei,
        prev_tick_price=floor_price,
    )


def _require_prices(auction: Auction):
    if not auction.prices_known:
        raise TransientFetchFailure(f"price data for {auction.display_name} is unavailable, refresh and retry")


def validate_bid_for_auction(price: str, amount: str, auction: Auction) -> BidSubmission:
    """
    validate_bid using a materialized auction's current price data.

    Raises:
        TransientFetchFailure: if clearing price, floor price or tick spacing
            could not be read
    """
    _require_prices(auction)
    return validate_bid(
        price,
        amount,
        floor_price=auction.floor_price_raw,
        clearing_price=auction.clearing_price_raw,
        tick_spacing=auction.tick_spacing,
    )


def validate_blind_bid(
    price: str,
    amount: str,
    floor_price: int,
    clearing_price: int,
    tick_spacing: int
) -> BlindBidSubmission:
    """
    Validate a confidential bid.

    Runs every plain-bid check, then scales price (rounded up) and amount
    (rounded down) into confidential units.

    Raises:
        InvalidInput: for a failed plain-bid check
        EncodingRangeExceeded: if a scaled value exceeds the 64-bit width
    """
    bid = validate_bid(price, amount, floor_price, clearing_price, tick_spacing)
    confidential_price = to_confidential_units(price, "price", round_up=True)
    confidential_amount = to_confidential_units(amount, "amount")
    return BlindBidSubmission(
        bid=bid,
        confidential_price=confidential_price,
        confidential_amount=confidential_amount,
    )


def validate_blind_bid_for_auction(price: str, amount: str, auction: Auction) -> BlindBidSubmission:
    """validate_blind_bid using a materialized auction's current price data."""
    _require_prices(auction)
    return validate_blind_bid(
        price,
        amount,
        floor_price=auction.floor_price_raw,
        clearing_price=auction.clearing_price_raw,
        tick_spacing=auction.tick_spacing,
    )


def build_bid_call(auction_address: str, submission: BidSubmission, owner: str) -> CallDescriptor:
    """CCA.submitBid(maxPrice, amount, owner, prevTickPrice, hookData), paying amount in ETH."""
    return CallDescriptor(
        to=auction_address,
        abi=AUCTION_ABI,
        function="submitBid",
        args=(submission.max_price, submission.amount, owner, submission.prev_tick_price, b""),
        value=submission.amount,
    )


def build_blind_bid_call(
    blind_pool_address: str,
    submission: BlindBidSubmission,
    encrypted: EncryptedInputs,
    deposit: Optional[int] = None
) -> CallDescriptor:
    """BlindPool.submitBlindBid(encMaxPrice, encAmount, inputProof) with the ETH deposit."""
    enc_max_price, enc_amount = encrypted.handles
    return CallDescriptor(
        to=blind_pool_address,
        abi=BLIND_POOL_ABI,
        function="submitBlindBid",
        args=(enc_max_price, enc_amount, encrypted.input_proof),
        value=submission.deposit if deposit is None else deposit,
    )
