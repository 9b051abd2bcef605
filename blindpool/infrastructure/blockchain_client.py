"""Blockchain client for reading CCA auction state and submitting calls."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_account import Account
from eth_utils import to_checksum_address
from web3 import AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.logs import DISCARD

from ..config import BlindPoolConfig, config
from ..core.errors import (
    SimulationReverted,
    TransientFetchFailure,
    WalletOrNetworkFailure,
)
from .auction_data import CallDescriptor, TxReceipt

logger = logging.getLogger(__name__)

# Solidity Error(string) selector
ERROR_STRING_SELECTOR = "08c379a0"


def extract_revert_reason(error: ContractLogicError) -> str:
    """
    Pull the human-readable revert reason out of a ContractLogicError.

    Error(string) payloads are ABI-decoded; custom errors fall back to the
    node's message with the generic prefix removed.
    """
    data = getattr(error, "data", None)
    if isinstance(data, str) and data.startswith("0x" + ERROR_STRING_SELECTOR):
        try:
            (reason,) = decode(["string"], bytes.fromhex(data[10:]))
            return reason
        except (DecodingError, ValueError):
            logger.debug(f"Could not decode revert data {data[:20]}...")

    message = getattr(error, "message", None) or str(error)
    for prefix in ("execution reverted: ", "execution reverted"):
        if message.startswith(prefix) and len(message) > len(prefix):
            return message[len(prefix):]
    return message


class BlockchainClient:
    """
    Asynchronous client for an Ethereum-compatible network.

    Provides methods for:
    - Point and batched contract reads
    - Bounded-range event log queries
    - Pre-flight simulation of calls
    - Transaction submission and receipt waiting
    """

    def __init__(self, client_config: Optional[BlindPoolConfig] = None):
        self.config = client_config or config
        self.w3: Optional[AsyncWeb3] = None
        self.account = None
        self.contracts: Dict[str, Any] = {}

    async def initialize(self):
        """Initialize the blockchain connection."""
        if self.w3 is not None:
            return

        try:
            self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self.config.chain.rpc_url))

            if self.config.private_key:
                self.account = Account.from_key(self.config.private_key)
                logger.info(f"Initialized account: {self.account.address}")

            if await self.is_connected():
                chain_id = await self.w3.eth.chain_id
                logger.info(f"Connected to {self.config.chain.network_name} - Chain ID: {chain_id}")
            else:
                logger.error(f"Failed to connect to {self.config.chain.rpc_url}")

        except Exception as e:
            logger.error(f"Error initializing blockchain client: {e}")
            raise

    async def is_connected(self) -> bool:
        """Check if connected to the blockchain."""
        try:
            if not self.w3:
                return False
            await self.w3.eth.block_number
            return True
        except Exception:
            return False

    @property
    def address(self) -> Optional[str]:
        """Address of the configured signer, if any."""
        return self.account.address if self.account else None

    def _require_w3(self) -> AsyncWeb3:
        if not self.w3:
            raise RuntimeError("Blockchain client not initialized")
        return self.w3

    def contract(self, address: str, abi: Sequence[Dict[str, Any]]) -> Any:
        """Get (and cache) a contract instance."""
        w3 = self._require_w3()
        address = to_checksum_address(address)
        key = f"{address}:{id(abi)}"
        if key not in self.contracts:
            self.contracts[key] = w3.eth.contract(address=address, abi=list(abi))
        return self.contracts[key]

    async def get_block_number(self) -> int:
        """Get the current chain head."""
        w3 = self._require_w3()
        try:
            return await w3.eth.block_number
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchFailure(f"Failed to read block number: {e}") from e

    async def call(self, address: str, abi: Sequence[Dict[str, Any]], method_name: str, *args) -> Any:
        """Call a read-only contract method."""
        contract = self.contract(address, abi)
        method = getattr(contract.functions, method_name)
        try:
            return await method(*args).call()
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchFailure(f"Read {method_name} on {address} failed: {e}") from e

    async def batch_call(
        self,
        address: str,
        abi: Sequence[Dict[str, Any]],
        method_names: Sequence[str]
    ) -> List[Any]:
        """
        Read several no-argument view methods of one contract in one fan-out.

        A method that fails reads as None, like a multicall with failures
        allowed; only a batch where every read fails is an error.
        """
        contract = self.contract(address, abi)
        results = await asyncio.gather(
            *(getattr(contract.functions, name)().call() for name in method_names),
            return_exceptions=True
        )

        values = []
        errors = []
        for name, result in zip(method_names, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.debug(f"Read {name} on {address} failed: {result}")
                errors.append(result)
                values.append(None)
            else:
                values.append(result)

        if method_names and len(errors) == len(method_names):
            raise TransientFetchFailure(f"All reads on {address} failed: {errors[0]}")
        return values

    async def get_logs(
        self,
        address: str,
        abi: Sequence[Dict[str, Any]],
        event_name: str,
        from_block: int,
        to_block: int,
        argument_filters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Get decoded events of one kind within an inclusive block range."""
        contract = self.contract(address, abi)
        event = getattr(contract.events, event_name)
        try:
            logs = await event.get_logs(
                from_block=from_block,
                to_block=to_block,
                argument_filters=argument_filters
            )
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchFailure(
                f"{event_name} query {from_block}-{to_block} failed: {e}",
                from_block=from_block,
                to_block=to_block
            ) from e
        return [dict(log) for log in logs]

    async def simulate(self, descriptor: CallDescriptor) -> Any:
        """
        Run the call against current chain state without broadcasting it.

        Raises:
            SimulationReverted: with the revert reason, if the call would fail
        """
        contract = self.contract(descriptor.to, descriptor.abi)
        method = getattr(contract.functions, descriptor.function)
        tx_params = {'value': descriptor.value}
        if self.account:
            tx_params['from'] = self.account.address

        try:
            return await method(*descriptor.args).call(tx_params)
        except ContractLogicError as e:
            reason = extract_revert_reason(e)
            logger.warning(f"Simulation of {descriptor.function} reverted: {reason}")
            raise SimulationReverted(reason) from e
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise WalletOrNetworkFailure(f"Simulation of {descriptor.function} failed: {e}") from e

    async def send_transaction(
        self,
        descriptor: CallDescriptor,
        gas_limit: Optional[int] = None
    ) -> str:
        """Sign and broadcast a call; returns the transaction hash."""
        if not self.account:
            raise WalletOrNetworkFailure("No account configured for sending transactions")

        w3 = self._require_w3()
        contract = self.contract(descriptor.to, descriptor.abi)
        method = getattr(contract.functions, descriptor.function)

        try:
            transaction = await method(*descriptor.args).build_transaction({
                'from': self.account.address,
                'value': descriptor.value,
                'gas': gas_limit or self.config.gas_limit,
                'nonce': await w3.eth.get_transaction_count(self.account.address),
                'chainId': self.config.chain.chain_id,
            })

            signed_txn = self.account.sign_transaction(transaction)
            tx_hash = await w3.eth.send_raw_transaction(signed_txn.raw_transaction)
        except ContractLogicError as e:
            raise SimulationReverted(extract_revert_reason(e)) from e
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Failed to send {descriptor.function}: {e}")
            raise WalletOrNetworkFailure(str(e)) from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Sent transaction {descriptor.function}: {tx_hash_hex}")
        return tx_hash_hex

    async def estimate_gas(self, descriptor: CallDescriptor) -> int:
        """Estimate gas for a call."""
        contract = self.contract(descriptor.to, descriptor.abi)
        method = getattr(contract.functions, descriptor.function)
        tx_params = {'value': descriptor.value}
        if self.account:
            tx_params['from'] = self.account.address

        try:
            return await method(*descriptor.args).estimate_gas(tx_params)
        except ContractLogicError as e:
            raise SimulationReverted(extract_revert_reason(e)) from e
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise WalletOrNetworkFailure(str(e)) from e

    async def wait_for_transaction(self, tx_hash: str, timeout: Optional[int] = None) -> TxReceipt:
        """Wait for transaction confirmation."""
        w3 = self._require_w3()
        try:
            receipt = await w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=timeout or self.config.receipt_timeout
            )
        except TimeExhausted as e:
            logger.error(f"Timed out waiting for transaction {tx_hash}")
            raise WalletOrNetworkFailure(f"Timed out waiting for {tx_hash}") from e
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error waiting for transaction {tx_hash}: {e}")
            raise WalletOrNetworkFailure(str(e)) from e

        return TxReceipt.from_web3(receipt)

    async def get_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        """Fetch an existing receipt, or None if the transaction is not mined."""
        w3 = self._require_w3()
        try:
            receipt = await w3.eth.get_transaction_receipt(tx_hash)
        except Web3Exception as e:
            # TransactionNotFound is a Web3Exception
            logger.debug(f"No receipt for {tx_hash}: {e}")
            return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchFailure(f"Failed to fetch receipt {tx_hash}: {e}") from e
        return TxReceipt.from_web3(receipt)

    def decode_events(
        self,
        address: str,
        abi: Sequence[Dict[str, Any]],
        event_name: str,
        receipt: TxReceipt
    ) -> List[Dict[str, Any]]:
        """Decode events of one kind emitted by address in a receipt."""
        contract = self.contract(address, abi)
        event = getattr(contract.events, event_name)()
        address = to_checksum_address(address)
        logs = [log for log in receipt.logs if to_checksum_address(log['address']) == address]
        return [dict(e) for e in event.process_receipt({'logs': logs}, errors=DISCARD)]
