"""Auction-state derivation and bid-construction engine."""

from .errors import (
    BlindPoolError,
    InvalidInput,
    InvalidPrice,
    EncodingRangeExceeded,
    SimulationReverted,
    TransientFetchFailure,
    WalletOrNetworkFailure,
)
from .price_codec import (
    Q96,
    CONFIDENTIAL_SCALE,
    CONFIDENTIAL_MAX,
    encode_price,
    decode_price,
    snap_up_to_tick,
    to_confidential_units,
    format_ether,
)
from .status import AuctionStatus, StatusTracker, derive_status
from .log_scanner import LogCursor, LogScanner, ScanResult, chunk_ranges
from .auction_repository import (
    AuctionRepository,
    RepositorySnapshot,
    NoData,
    Loaded,
    StaleData,
    LoadFailed,
)
from .bid_validator import (
    BidSubmission,
    BlindBidSubmission,
    validate_bid,
    validate_blind_bid,
)
from .commitment_flow import CommitmentFlow, Phase, ReceiptFacts, derive_phase

__all__ = [
    "BlindPoolError",
    "InvalidInput",
    "InvalidPrice",
    "EncodingRangeExceeded",
    "SimulationReverted",
    "TransientFetchFailure",
    "WalletOrNetworkFailure",
    "Q96",
    "CONFIDENTIAL_SCALE",
    "CONFIDENTIAL_MAX",
    "encode_price",
    "decode_price",
    "snap_up_to_tick",
    "to_confidential_units",
    "format_ether",
    "AuctionStatus",
    "StatusTracker",
    "derive_status",
    "LogCursor",
    "LogScanner",
    "ScanResult",
    "chunk_ranges",
    "AuctionRepository",
    "RepositorySnapshot",
    "NoData",
    "Loaded",
    "StaleData",
    "LoadFailed",
    "BidSubmission",
    "BlindBidSubmission",
    "validate_bid",
    "validate_blind_bid",
    "CommitmentFlow",
    "Phase",
    "ReceiptFacts",
    "derive_phase",
]
