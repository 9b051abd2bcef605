"""
Auction launch flow: create -> fund -> activate.

The phase is never stored. It is reduced from the facts observed in
transaction receipts (plus the operator's explicit choice to skip funding),
so re-deriving from the same receipts always lands on the same phase and a
session can be resumed from transaction hashes alone.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..infrastructure.auction_data import TxReceipt
from .errors import InvalidInput

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Launch phases, in their only allowed order."""
    FORM = "form"
    FUNDING = "funding"
    ACTIVATING = "activating"
    DONE = "done"


# The single forward action available in each phase
NEXT_ACTION = {
    Phase.FORM: "create",
    Phase.FUNDING: "fund_or_skip",
    Phase.ACTIVATING: "activate",
    Phase.DONE: None,
}


@dataclass(frozen=True)
class ReceiptFacts:
    """What the receipts say happened."""
    auction_address: Optional[str] = None
    funded: bool = False
    funding_skipped: bool = False
    activated: bool = False


def derive_phase(facts: ReceiptFacts) -> Phase:
    """Pure reducer from receipt facts to the launch phase."""
    if not facts.auction_address:
        return Phase.FORM
    if not (facts.funded or facts.funding_skipped):
        return Phase.FUNDING
    if not facts.activated:
        return Phase.ACTIVATING
    return Phase.DONE


def facts_from_receipts(
    creation: Optional[TxReceipt] = None,
    created_auction: Optional[str] = None,
    funding: Optional[TxReceipt] = None,
    funding_skipped: bool = False,
    activation: Optional[TxReceipt] = None
) -> ReceiptFacts:
    """
    Build facts from receipts.

    Args:
        creation: Creation receipt
        created_auction: Auction address decoded from the creation receipt's event
        funding: Funding receipt
        funding_skipped: Operator chose to skip funding
        activation: Activation receipt
    """
    auction_address = created_auction if creation is not None and creation.succeeded else None
    return ReceiptFacts(
        auction_address=auction_address,
        funded=funding is not None and funding.succeeded,
        funding_skipped=funding_skipped,
        activated=activation is not None and activation.succeeded,
    )


class CommitmentFlow:
    """
    One launch session.

    Holds only receipts and the skip choice; every query re-derives the phase
    from them. Each record_* method is legal only in its own phase.
    """

    def __init__(self):
        self.creation_receipt: Optional[TxReceipt] = None
        self.created_auction: Optional[str] = None
        self.funding_receipt: Optional[TxReceipt] = None
        self.funding_skipped = False
        self.activation_receipt: Optional[TxReceipt] = None

    @classmethod
    def from_receipts(
        cls,
        creation: Optional[TxReceipt] = None,
        created_auction: Optional[str] = None,
        funding: Optional[TxReceipt] = None,
        funding_skipped: bool = False,
        activation: Optional[TxReceipt] = None
    ) -> "CommitmentFlow":
        """Rebuild a session from previously observed receipts."""
        flow = cls()
        flow.creation_receipt = creation
        flow.created_auction = created_auction
        flow.funding_receipt = funding
        flow.funding_skipped = funding_skipped
        flow.activation_receipt = activation
        return flow

    @property
    def facts(self) -> ReceiptFacts:
        return facts_from_receipts(
            creation=self.creation_receipt,
            created_auction=self.created_auction,
            funding=self.funding_receipt,
            funding_skipped=self.funding_skipped,
            activation=self.activation_receipt,
        )

    @property
    def phase(self) -> Phase:
        return derive_phase(self.facts)

    @property
    def next_action(self) -> Optional[str]:
        return NEXT_ACTION[self.phase]

    @property
    def auction_address(self) -> Optional[str]:
        return self.facts.auction_address

    def _require(self, phase: Phase, action: str):
        current = self.phase
        if current != phase:
            raise InvalidInput("phase", f"cannot {action} while in phase '{current.value}'")

    def record_creation(self, receipt: TxReceipt, auction_address: Optional[str]) -> Phase:
        """Record the creation receipt and the auction address decoded from it."""
        self._require(Phase.FORM, "create")
        self.creation_receipt = receipt
        self.created_auction = auction_address
        phase = self.phase
        if phase == Phase.FORM:
            logger.warning(f"Creation tx {receipt.tx_hash} did not yield an auction address")
        return phase

    def record_funding(self, receipt: TxReceipt) -> Phase:
        self._require(Phase.FUNDING, "fund")
        self.funding_receipt = receipt
        return self.phase

    def skip_funding(self) -> Phase:
        self._require(Phase.FUNDING, "skip funding")
        self.funding_skipped = True
        return self.phase

    def record_activation(self, receipt: TxReceipt) -> Phase:
        self._require(Phase.ACTIVATING, "activate")
        self.activation_receipt = receipt
        return self.phase

    def start_over(self) -> Phase:
        """Discard every observed receipt and return to the form."""
        self.creation_receipt = None
        self.created_auction = None
        self.funding_receipt = None
        self.funding_skipped = False
        self.activation_receipt = None
        return self.phase
