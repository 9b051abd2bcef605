"""Data classes for auctions, bids, call descriptors and receipts."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from web3 import Web3

from ..core.price_codec import decode_price, format_ether
from ..core.status import AuctionStatus


def _price_text(raw: Optional[int]) -> str:
    return decode_price(raw) if raw is not None else "-"


@dataclass(frozen=True)
class Auction:
    """Materialized view of one CCA auction contract."""
    address: str
    token: str
    auction_number: int
    start_block: int
    end_block: int
    clearing_price_raw: Optional[int]   # None when the read failed
    floor_price_raw: Optional[int]
    tick_spacing: Optional[int]
    bid_count: int
    currency_raised: int
    total_supply: int
    status: Optional[AuctionStatus] = None

    @property
    def display_name(self) -> str:
        """CCA1, CCA2, ... by creation order; not an identity."""
        return f"CCA{self.auction_number}"

    @property
    def clearing_price(self) -> str:
        return _price_text(self.clearing_price_raw)

    @property
    def floor_price(self) -> str:
        return _price_text(self.floor_price_raw)

    @property
    def prices_known(self) -> bool:
        return None not in (self.clearing_price_raw, self.floor_price_raw, self.tick_spacing)

    def __repr__(self):
        status = self.status.value if self.status else None
        return f"Auction({self.display_name}, address={self.address[:10]}..., status={status})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'address': self.address,
            'token': self.token,
            'auction_number': self.auction_number,
            'display_name': self.display_name,
            'start_block': self.start_block,
            'end_block': self.end_block,
            'clearing_price': self.clearing_price,
            'floor_price': self.floor_price,
            'tick_spacing': self.tick_spacing,
            'bid_count': self.bid_count,
            'currency_raised': format_ether(self.currency_raised),
            'total_supply': format_ether(self.total_supply),
            'status': self.status.value if self.status else None,
        }


@dataclass(frozen=True)
class Bid:
    """One bid row; encrypted bids carry no visible price or amount."""
    bid_id: int
    owner: str
    block_number: int
    amount: int = 0
    price: int = 0
    encrypted: bool = False

    @property
    def key(self) -> Tuple[int, int, bool]:
        return (self.block_number, self.bid_id, self.encrypted)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bid_id': self.bid_id,
            'owner': self.owner,
            'block_number': self.block_number,
            'amount': None if self.encrypted else format_ether(self.amount),
            'max_price': None if self.encrypted else decode_price(self.price),
            'encrypted': self.encrypted,
        }


@dataclass(frozen=True)
class CallDescriptor:
    """Fully formed contract call handed to the write interface."""
    to: str
    abi: Tuple[Dict[str, Any], ...]
    function: str
    args: Tuple[Any, ...] = ()
    value: int = 0

    def __repr__(self):
        return f"CallDescriptor({self.function}@{self.to[:10]}..., value={self.value})"


@dataclass(frozen=True)
class TxReceipt:
    """Transaction receipt reduced to the fields the core reads."""
    tx_hash: str
    block_number: int
    status: int
    gas_used: int = 0
    logs: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_web3(cls, receipt: Any) -> "TxReceipt":
        """Build from a web3 AttributeDict receipt."""
        tx_hash = receipt['transactionHash']
        return cls(
            tx_hash=tx_hash if isinstance(tx_hash, str) else Web3.to_hex(tx_hash),
            block_number=receipt['blockNumber'],
            status=receipt['status'],
            gas_used=receipt.get('gasUsed', 0),
            logs=tuple(dict(log) for log in receipt.get('logs', [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'transactionHash': self.tx_hash,
            'blockNumber': self.block_number,
            'gasUsed': self.gas_used,
            'status': self.status,
            'logs': list(self.logs),
        }


def sort_bids_newest_first(bids: List[Bid]) -> List[Bid]:
    """Newest block first; ties broken by higher bid id."""
    return sorted(bids, key=lambda b: (b.block_number, b.bid_id), reverse=True)
