"""
Contract ABIs for the CCA factory, CCA auctions, the blind pool and ERC-20 tokens.

Only the entries the client actually calls or decodes are listed.
"""

from typing import Any, Dict, List, Tuple

FACTORY_ABI: Tuple[Dict[str, Any], ...] = (
    {
        "type": "event",
        "name": "AuctionCreated",
        "anonymous": False,
        "inputs": [
            {"name": "auction", "type": "address", "indexed": True},
            {"name": "token", "type": "address", "indexed": True},
            {"name": "amount", "type": "uint256", "indexed": False},
            {"name": "configData", "type": "bytes", "indexed": False},
        ],
    },
    {
        "type": "function",
        "name": "initializeDistribution",
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "configData", "type": "bytes"},
            {"name": "salt", "type": "bytes32"},
        ],
        "outputs": [{"name": "distributionContract", "type": "address"}],
        "stateMutability": "nonpayable",
    },
)

BID_SUBMITTED_EVENT: Dict[str, Any] = {
    "type": "event",
    "name": "BidSubmitted",
    "anonymous": False,
    "inputs": [
        {"name": "id", "type": "uint256", "indexed": True},
        {"name": "owner", "type": "address", "indexed": True},
        {"name": "price", "type": "uint256", "indexed": False},
        {"name": "amount", "type": "uint128", "indexed": False},
    ],
}


def _view(name: str, output_type: str) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [],
        "outputs": [{"name": "", "type": output_type}],
        "stateMutability": "view",
    }


AUCTION_ABI: Tuple[Dict[str, Any], ...] = (
    _view("token", "address"),
    _view("startBlock", "uint64"),
    _view("endBlock", "uint64"),
    _view("clearingPrice", "uint256"),
    _view("floorPrice", "uint256"),
    _view("nextBidId", "uint256"),
    _view("currencyRaised", "uint256"),
    _view("totalSupply", "uint128"),
    _view("tickSpacing", "uint256"),
    # 5-arg submitBid with a prevTickPrice hint so the contract skips tick iteration
    {
        "type": "function",
        "name": "submitBid",
        "inputs": [
            {"name": "maxPrice", "type": "uint256"},
            {"name": "amount", "type": "uint128"},
            {"name": "owner", "type": "address"},
            {"name": "prevTickPrice", "type": "uint256"},
            {"name": "hookData", "type": "bytes"},
        ],
        "outputs": [{"name": "bidId", "type": "uint256"}],
        "stateMutability": "payable",
    },
    {
        "type": "function",
        "name": "onTokensReceived",
        "inputs": [],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    BID_SUBMITTED_EVENT,
)

# Fields read for every auction, in the order they are materialized
AUCTION_STATE_FIELDS: Tuple[str, ...] = (
    "token",
    "startBlock",
    "endBlock",
    "clearingPrice",
    "floorPrice",
    "tickSpacing",
    "nextBidId",
    "currencyRaised",
    "totalSupply",
)

BLIND_POOL_ABI: Tuple[Dict[str, Any], ...] = (
    {
        "type": "function",
        "name": "submitBlindBid",
        "inputs": [
            {"name": "encMaxPrice", "type": "bytes32"},
            {"name": "encAmount", "type": "bytes32"},
            {"name": "inputProof", "type": "bytes"},
        ],
        "outputs": [{"name": "blindBidId", "type": "uint256"}],
        "stateMutability": "payable",
    },
    {
        "type": "event",
        "name": "BlindBidPlaced",
        "anonymous": False,
        "inputs": [
            {"name": "blindBidId", "type": "uint256", "indexed": True},
            {"name": "bidder", "type": "address", "indexed": True},
        ],
    },
)

ERC20_ABI: Tuple[Dict[str, Any], ...] = (
    {
        "type": "function",
        "name": "transfer",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "balanceOf",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    _view("symbol", "string"),
    _view("name", "string"),
)

# CCA AuctionParameters, ABI-encoded into the factory's configData
AUCTION_PARAMETERS_TYPE = (
    "(address,address,address,uint64,uint64,uint64,uint256,address,uint256,uint128,bytes)"
)


def get_factory_abi() -> List[Dict[str, Any]]:
    """Get the CCA factory ABI."""
    return list(FACTORY_ABI)


def get_auction_abi() -> List[Dict[str, Any]]:
    """Get the CCA auction ABI."""
    return list(AUCTION_ABI)


def get_blind_pool_abi() -> List[Dict[str, Any]]:
    """Get the blind pool ABI."""
    return list(BLIND_POOL_ABI)


def get_erc20_abi() -> List[Dict[str, Any]]:
    """Get the ERC-20 ABI."""
    return list(ERC20_ABI)
