"""Launch handler: drives the create -> fund -> activate sequence on chain."""

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from eth_abi import encode
from eth_utils import to_checksum_address

from ..config import BlindPoolConfig, config
from ..core.commitment_flow import CommitmentFlow, Phase
from ..core.errors import BlindPoolError, InvalidInput, WalletOrNetworkFailure
from ..core.price_codec import encode_price, snap_up_to_tick
from ..core.status import SECONDS_PER_BLOCK
from ..infrastructure.auction_data import CallDescriptor, TxReceipt
from ..infrastructure.blockchain_client import BlockchainClient
from ..infrastructure.contract_abis import (
    AUCTION_ABI,
    AUCTION_PARAMETERS_TYPE,
    ERC20_ABI,
    FACTORY_ABI,
)

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Token release schedule is expressed in milli-basis-points per block; steps must sum to this
MPS_TOTAL = 10_000_000

DURATION_OPTIONS: Dict[str, int] = {
    "5m": 5 * 60 // SECONDS_PER_BLOCK,
    "1h": 3600 // SECONDS_PER_BLOCK,
    "6h": 6 * 3600 // SECONDS_PER_BLOCK,
    "1d": 86400 // SECONDS_PER_BLOCK,
    "7d": 7 * 86400 // SECONDS_PER_BLOCK,
}

# Default tick spacing is this fraction of the floor price
DEFAULT_TICKS_PER_FLOOR = 100


@dataclass(frozen=True)
class LaunchParams:
    """What the operator fills in to create an auction."""
    token: str
    amount: int                          # token base units offered
    floor_price: str                     # ETH per token
    duration_blocks: int = DURATION_OPTIONS["5m"]
    start_delay_blocks: int = 5
    tick_spacing: Optional[int] = None   # Q96; defaults to floor / 100
    currency: str = ZERO_ADDRESS         # native ETH
    tokens_recipient: Optional[str] = None
    funds_recipient: Optional[str] = None
    required_currency_raised: int = 0
    validation_hook: str = ZERO_ADDRESS


def uniform_steps(duration_blocks: int) -> List[Tuple[int, int]]:
    """
    Release schedule spreading the supply evenly over duration_blocks.

    Returns (mps, block_delta) steps whose mps * block_delta sums to MPS_TOTAL.
    """
    if duration_blocks <= 0 or duration_blocks > MPS_TOTAL:
        raise InvalidInput("duration", f"duration must be between 1 and {MPS_TOTAL} blocks")
    per_block, remainder = divmod(MPS_TOTAL, duration_blocks)
    if remainder == 0:
        return [(per_block, duration_blocks)]
    return [(per_block, duration_blocks - remainder), (per_block + 1, remainder)]


def pack_steps(steps: List[Tuple[int, int]]) -> bytes:
    """Pack steps as uint24 mps followed by uint40 block delta."""
    return b"".join(mps.to_bytes(3, "big") + delta.to_bytes(5, "big") for mps, delta in steps)


def build_auction_config(params: LaunchParams, current_block: int, owner: str) -> bytes:
    """ABI-encode the auction parameters passed as the factory's configData."""
    if params.amount <= 0:
        raise InvalidInput("amount", "supply must be greater than zero")

    floor_price = encode_price(params.floor_price)
    if floor_price == 0:
        raise InvalidInput("floor_price", "value is too small to represent")

    tick_spacing = params.tick_spacing or max(1, floor_price // DEFAULT_TICKS_PER_FLOOR)
    floor_price = snap_up_to_tick(floor_price, tick_spacing)

    start_block = current_block + params.start_delay_blocks
    end_block = start_block + params.duration_blocks

    parameters = (
        to_checksum_address(params.currency),
        to_checksum_address(params.tokens_recipient or owner),
        to_checksum_address(params.funds_recipient or owner),
        start_block,
        end_block,
        end_block,  # claim block
        tick_spacing,
        to_checksum_address(params.validation_hook),
        floor_price,
        params.required_currency_raised,
        pack_steps(uniform_steps(params.duration_blocks)),
    )
    return encode([AUCTION_PARAMETERS_TYPE], [parameters])


class LaunchHandler:
    """
    Executes the launch flow against the chain.

    The CommitmentFlow decides which action is legal; this handler performs
    it, waits for the receipt and records it. Token and amount for funding
    are read back from the creation receipt, so a resumed session needs only
    transaction hashes.
    """

    def __init__(
        self,
        blockchain_client: Optional[BlockchainClient] = None,
        handler_config: Optional[BlindPoolConfig] = None
    ):
        self.config = handler_config or config
        self.client = blockchain_client or BlockchainClient(self.config)
        self.flow = CommitmentFlow()
        self._initialized = False

    async def initialize(self) -> bool:
        """Initialize the blockchain client."""
        if self._initialized:
            return True
        try:
            await self.client.initialize()
            self._initialized = True
            return True
        except Exception as e:
            logger.error(f"Failed to initialize launch handler: {e}")
            return False

    @property
    def phase(self) -> Phase:
        return self.flow.phase

    def _result(self, tx_hash: Optional[str] = None, error: Optional[Exception] = None) -> Dict[str, Any]:
        return {
            "phase": self.flow.phase.value,
            "auction_address": self.flow.auction_address,
            "tx_hash": tx_hash,
            "error": str(error) if error else None,
            "error_type": type(error).__name__ if error else None,
        }

    async def _execute(self, descriptor: CallDescriptor) -> TxReceipt:
        """Simulate, send and wait for one call."""
        await self.client.simulate(descriptor)
        tx_hash = await self.client.send_transaction(descriptor)
        receipt = await self.client.wait_for_transaction(tx_hash)
        if not receipt.succeeded:
            logger.warning(f"{descriptor.function} transaction {tx_hash} reverted")
        return receipt

    def _creation_event(self, receipt: Optional[TxReceipt]) -> Optional[Dict[str, Any]]:
        if receipt is None or not receipt.succeeded:
            return None
        events = self.client.decode_events(
            self.config.chain.factory_address, FACTORY_ABI, "AuctionCreated", receipt
        )
        return dict(events[0]['args']) if events else None

    async def create_auction(self, params: LaunchParams) -> Dict[str, Any]:
        """
        Create an auction through the CCA factory.

        Returns:
            Dictionary with phase, auction_address, tx_hash and any error
        """
        try:
            if not await self.initialize():
                raise WalletOrNetworkFailure("blockchain client failed to initialize")
            if self.flow.phase != Phase.FORM:
                raise InvalidInput("phase", f"cannot create while in phase '{self.flow.phase.value}'")

            owner = self.client.address
            if not owner:
                raise InvalidInput("wallet", "no signer configured")

            current_block = await self.client.get_block_number()
            config_data = build_auction_config(params, current_block, owner)

            logger.info(f"Creating auction: token={params.token}, amount={params.amount}, "
                        f"floor={params.floor_price} ETH, duration={params.duration_blocks} blocks")

            descriptor = CallDescriptor(
                to=self.config.chain.factory_address,
                abi=FACTORY_ABI,
                function="initializeDistribution",
                args=(to_checksum_address(params.token), params.amount, config_data, secrets.token_bytes(32)),
            )
            receipt = await self._execute(descriptor)

            event = self._creation_event(receipt)
            auction_address = event['auction'] if event else None
            self.flow.record_creation(receipt, auction_address)

            if auction_address:
                logger.info(f"✅ Auction created at {auction_address}, tx={receipt.tx_hash}")
            return self._result(tx_hash=receipt.tx_hash)

        except BlindPoolError as e:
            logger.error(f"Failed to create auction: {e}")
            return self._result(error=e)

    async def fund_auction(self) -> Dict[str, Any]:
        """Transfer the offered supply to the auction contract."""
        try:
            if self.flow.phase != Phase.FUNDING:
                raise InvalidInput("phase", f"cannot fund while in phase '{self.flow.phase.value}'")

            event = self._creation_event(self.flow.creation_receipt)
            if event is None:
                raise InvalidInput("creation", "creation receipt carries no AuctionCreated event")

            auction_address = self.flow.auction_address
            logger.info(f"Funding auction {auction_address} with {event['amount']} of {event['token']}")

            descriptor = CallDescriptor(
                to=event['token'],
                abi=ERC20_ABI,
                function="transfer",
                args=(auction_address, event['amount']),
            )
            receipt = await self._execute(descriptor)
            self.flow.record_funding(receipt)

            if receipt.succeeded:
                logger.info(f"✅ Auction funded, tx={receipt.tx_hash}")
            return self._result(tx_hash=receipt.tx_hash)

        except BlindPoolError as e:
            logger.error(f"Failed to fund auction: {e}")
            return self._result(error=e)

    def skip_funding(self) -> Dict[str, Any]:
        """Operator asserts the auction already holds its tokens."""
        try:
            self.flow.skip_funding()
            logger.info(f"Funding skipped for {self.flow.auction_address}")
            return self._result()
        except BlindPoolError as e:
            return self._result(error=e)

    async def activate_auction(self) -> Dict[str, Any]:
        """Call onTokensReceived so the auction checks its balance and opens."""
        try:
            if self.flow.phase != Phase.ACTIVATING:
                raise InvalidInput("phase", f"cannot activate while in phase '{self.flow.phase.value}'")

            descriptor = CallDescriptor(
                to=self.flow.auction_address,
                abi=AUCTION_ABI,
                function="onTokensReceived",
            )
            receipt = await self._execute(descriptor)
            self.flow.record_activation(receipt)

            if receipt.succeeded:
                logger.info(f"✅ Auction {self.flow.auction_address} activated, tx={receipt.tx_hash}")
            return self._result(tx_hash=receipt.tx_hash)

        except BlindPoolError as e:
            logger.error(f"Failed to activate auction: {e}")
            return self._result(error=e)

    async def resume(
        self,
        creation_tx: Optional[str] = None,
        funding_tx: Optional[str] = None,
        funding_skipped: bool = False,
        activation_tx: Optional[str] = None
    ) -> Phase:
        """Rebuild the flow from transaction hashes; the phase comes from their receipts."""
        if not await self.initialize():
            raise WalletOrNetworkFailure("blockchain client failed to initialize")

        creation = await self.client.get_receipt(creation_tx) if creation_tx else None
        funding = await self.client.get_receipt(funding_tx) if funding_tx else None
        activation = await self.client.get_receipt(activation_tx) if activation_tx else None

        event = self._creation_event(creation)
        self.flow = CommitmentFlow.from_receipts(
            creation=creation,
            created_auction=event['auction'] if event else None,
            funding=funding,
            funding_skipped=funding_skipped,
            activation=activation,
        )
        logger.info(f"Resumed launch flow in phase '{self.flow.phase.value}'")
        return self.flow.phase

    def start_over(self) -> Phase:
        """Discard the session and return to the form."""
        return self.flow.start_over()

    @property
    def tx_hashes(self) -> Dict[str, Any]:
        """Hashes (and the skip flag) needed to resume this session later."""
        return {
            "creation_tx": self.flow.creation_receipt.tx_hash if self.flow.creation_receipt else None,
            "funding_tx": self.flow.funding_receipt.tx_hash if self.flow.funding_receipt else None,
            "funding_skipped": self.flow.funding_skipped,
            "activation_tx": self.flow.activation_receipt.tx_hash if self.flow.activation_receipt else None,
        }
