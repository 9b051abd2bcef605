"""
Confidential computation interface for blind bids.

The encryption engine is a black box: plaintext integers go in, opaque
ciphertext handles and an input proof come out, and both are passed to the
blind pool contract unmodified.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import aiohttp
from web3 import Web3

from ..config import BlindPoolConfig, config
from ..core.errors import WalletOrNetworkFailure
from ..core.price_codec import check_confidential_range

logger = logging.getLogger(__name__)

HexOrBytes = Union[str, bytes, bytearray]


def to_hex(value: HexOrBytes) -> str:
    """Normalize a handle or proof that may come back as bytes or hex."""
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return Web3.to_hex(bytes(value))


@dataclass(frozen=True)
class EncryptedInputs:
    """Ciphertext handles (one per plaintext, in order) and the validity proof."""
    handles: Tuple[str, ...]
    input_proof: str


class ConfidentialEncryptor(ABC):
    """Encrypts 64-bit plaintexts bound to a contract and a submitter."""

    @abstractmethod
    async def encrypt(
        self,
        contract_address: str,
        user_address: str,
        values: Sequence[int]
    ) -> EncryptedInputs:
        """Encrypt values for contract_address on behalf of user_address."""


async def encrypt_bid_inputs(
    encryptor: ConfidentialEncryptor,
    blind_pool_address: str,
    user_address: str,
    max_price: int,
    amount: int
) -> EncryptedInputs:
    """
    Encrypt (maxPrice, amount) for BlindPool.submitBlindBid.

    Both values must already be in confidential units.
    """
    check_confidential_range(max_price, "price")
    check_confidential_range(amount, "amount")

    logger.debug(f"Encrypting bid inputs for {blind_pool_address} from {user_address}")
    encrypted = await encryptor.encrypt(blind_pool_address, user_address, [max_price, amount])
    if len(encrypted.handles) != 2:
        raise WalletOrNetworkFailure(
            f"Encryption service returned {len(encrypted.handles)} handles, expected 2"
        )
    return encrypted


class HttpEncryptor(ConfidentialEncryptor):
    """
    Client for an encryption sidecar exposing POST /encrypt.

    Request: {"contractAddress", "userAddress", "values": [decimal strings]}
    Response: {"handles": [hex], "inputProof": hex}
    """

    def __init__(self, base_url: Optional[str] = None, client_config: Optional[BlindPoolConfig] = None, timeout: int = 60):
        cfg = client_config or config
        self.base_url = (base_url or cfg.encryption_service_url or "").rstrip("/")
        self.timeout = timeout
        if not self.base_url:
            raise ValueError("No encryption service URL configured")

    async def encrypt(
        self,
        contract_address: str,
        user_address: str,
        values: Sequence[int]
    ) -> EncryptedInputs:
        payload = {
            "contractAddress": Web3.to_checksum_address(contract_address),
            "userAddress": Web3.to_checksum_address(user_address),
            # uint64 values exceed JSON's safe integer range
            "values": [str(int(v)) for v in values],
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    f"{self.base_url}/encrypt",
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as resp:
                    if resp.status != 200:
                        text = await resp.text()
                        raise WalletOrNetworkFailure(f"Encryption service error {resp.status}: {text}")
                    result: Dict[str, Any] = await resp.json()
        except aiohttp.ClientError as e:
            logger.error(f"Encryption service unreachable: {e}")
            raise WalletOrNetworkFailure(f"Encryption service unreachable: {e}") from e

        handles: List[str] = [to_hex(h) for h in result.get("handles", [])]
        input_proof = result.get("inputProof")
        if input_proof is None:
            raise WalletOrNetworkFailure("Encryption service returned no input proof")

        logger.info(f"✅ Encrypted {len(handles)} values for {contract_address}")
        return EncryptedInputs(handles=tuple(handles), input_proof=to_hex(input_proof))
