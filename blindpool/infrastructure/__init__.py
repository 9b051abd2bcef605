"""Shared blockchain infrastructure: client, ABIs, data classes, encryption."""

from .auction_data import Auction, Bid, CallDescriptor, TxReceipt
from .blockchain_client import BlockchainClient, extract_revert_reason
from .confidential import (
    ConfidentialEncryptor,
    EncryptedInputs,
    HttpEncryptor,
    encrypt_bid_inputs,
)
from .contract_abis import (
    get_factory_abi,
    get_auction_abi,
    get_blind_pool_abi,
    get_erc20_abi,
)

__all__ = [
    "Auction",
    "Bid",
    "CallDescriptor",
    "TxReceipt",
    "BlockchainClient",
    "extract_revert_reason",
    "ConfidentialEncryptor",
    "EncryptedInputs",
    "HttpEncryptor",
    "encrypt_bid_inputs",
    "get_factory_abi",
    "get_auction_abi",
    "get_blind_pool_abi",
    "get_erc20_abi",
]
