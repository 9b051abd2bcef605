"""
BlindPool - client core for sealed-bid CCA auctions

Structure:
- core/: Price codec, log scanning, status, repository, bid validation, launch flow
- infrastructure/: Blockchain client, ABIs, data classes, confidential encryption
- seller/: Auction launch (create, fund, activate)
- bidder/: Plain and blind bid placement
- config.py: Shared configuration
"""

__version__ = "0.1.0"

from .config import config
from .core import (
    AuctionRepository,
    AuctionStatus,
    CommitmentFlow,
    LogScanner,
    Phase,
    decode_price,
    encode_price,
    validate_bid,
    validate_blind_bid,
)
from .infrastructure import (
    Auction,
    Bid,
    BlockchainClient,
    HttpEncryptor,
)
from .seller import LaunchHandler, LaunchParams
from .bidder import BidHandler

__all__ = [
    "config",
    "AuctionRepository",
    "AuctionStatus",
    "CommitmentFlow",
    "LogScanner",
    "Phase",
    "decode_price",
    "encode_price",
    "validate_bid",
    "validate_blind_bid",
    "Auction",
    "Bid",
    "BlockchainClient",
    "HttpEncryptor",
    "LaunchHandler",
    "LaunchParams",
    "BidHandler",
    "__version__",
]
