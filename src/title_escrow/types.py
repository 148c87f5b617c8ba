"""Core types for the title escrow.

Addresses are 32-byte identifiers; asset identifiers are non-negative ints
issued by the external title registry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

Address = bytes
AssetId = int


class BalancePolicy(Enum):
    # Source behaviour: every settlement moves the whole escrow balance.
    POOLED = "pooled"
    # Each sale settles only the collateral deposited for it.
    PER_SALE = "per_sale"


class SaleStatus(Enum):
    LISTED = "listed"
    FINALIZED = "finalized"
    CANCELED = "canceled"
    # Closed for settlement; a payment or custody call is in flight.
    SETTLING = "settling"
    # Seller was paid but the custody leg to the buyer has not completed.
    CUSTODY_PENDING = "custody_pending"


class EventKind(Enum):
    LISTED = "listed"
    VERIFIED = "verified"
    COLLATERAL_DEPOSITED = "collateral_deposited"
    APPROVED = "approved"
    FINALIZED = "finalized"
    CANCELED = "canceled"
    CUSTODY_PENDING = "custody_pending"
    CUSTODY_RECLAIMED = "custody_reclaimed"


@dataclass(frozen=True)
class Roles:
    seller: Address
    verifier: Address
    lender: Optional[Address] = None


@dataclass
class SaleRecord:
    sale_id: int
    asset_id: AssetId
    seller: Address
    buyer: Address
    purchase_price: int
    collateral_required: int
    listed: bool = True
    verification_passed: bool = False
    approvals: set[Address] = field(default_factory=set)
    status: SaleStatus = SaleStatus.LISTED
    deposited: int = 0
    escrowed: int = 0
    settled_to: Optional[Address] = None
    settled_amount: int = 0

    @property
    def buyer_approved(self) -> bool:
        return self.buyer in self.approvals

    @property
    def seller_approved(self) -> bool:
        return self.seller in self.approvals

    @property
    def terminal(self) -> bool:
        return not self.listed


@dataclass(frozen=True)
class SaleEvent:
    sequence: int
    kind: EventKind
    asset_id: AssetId
    sale_id: int
    actor: Optional[Address] = None
    amount: int = 0
