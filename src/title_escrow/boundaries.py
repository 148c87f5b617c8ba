"""External collaborators: the title registry and the payment rail.

Both boundaries report success or failure explicitly through
``TransferResult``. The in-memory implementations are the reference
collaborators used by the CLI, the fixture tooling and the tests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .types import Address, AssetId

logger = logging.getLogger(__name__)


class TransferResult:
    """Outcome of a custody or payment transfer."""

    def __init__(self, ok: bool, reason: Optional[str] = None):
        self.ok = ok
        self.reason = reason

    @classmethod
    def success(cls) -> "TransferResult":
        return cls(True, None)

    @classmethod
    def failure(cls, reason: str) -> "TransferResult":
        return cls(False, reason)

    def __repr__(self) -> str:
        if self.ok:
            return "TransferResult(ok)"
        return f"TransferResult(failed: {self.reason})"


class AssetCustody(ABC):
    """Holds and moves exclusive custody of asset identifiers."""

    @abstractmethod
    def transfer_custody(self, asset_id: AssetId, from_: Address, to: Address) -> TransferResult:
        """Move custody atomically; on failure custody must be unchanged."""

    @abstractmethod
    def holder_of(self, asset_id: AssetId) -> Optional[Address]:
        """Current custody holder, or None for an unknown asset."""


class PaymentGateway(ABC):
    """Pays currency out of escrow."""

    @abstractmethod
    def pay(self, to: Address, amount: int) -> TransferResult:
        """Pay ``amount`` to ``to``; a failed payment moves nothing."""


class CustodyRegistry(AssetCustody):
    """In-memory title registry."""

    def __init__(self, holders: Optional[Dict[AssetId, Address]] = None):
        self.holders: Dict[AssetId, Address] = dict(holders or {})

    def mint(self, asset_id: AssetId, owner: Address) -> None:
        if asset_id in self.holders:
            raise ValueError(f"asset {asset_id} already registered")
        self.holders[asset_id] = owner

    def holder_of(self, asset_id: AssetId) -> Optional[Address]:
        return self.holders.get(asset_id)

    def transfer_custody(self, asset_id: AssetId, from_: Address, to: Address) -> TransferResult:
        holder = self.holders.get(asset_id)
        if holder is None:
            return TransferResult.failure(f"asset {asset_id} not registered")
        if holder != from_:
            return TransferResult.failure(f"asset {asset_id} not held by {from_.hex()}")
        self.holders[asset_id] = to
        logger.debug(f"custody of asset {asset_id}: {from_.hex()[:8]} -> {to.hex()[:8]}")
        return TransferResult.success()


class PaymentLedger(PaymentGateway):
    """In-memory payment rail crediting recipient accounts."""

    def __init__(self) -> None:
        self.accounts: Dict[Address, int] = {}
        self.total_paid = 0

    def balance_of(self, address: Address) -> int:
        return self.accounts.get(address, 0)

    def pay(self, to: Address, amount: int) -> TransferResult:
        if amount < 0:
            return TransferResult.failure("negative payment")
        self.accounts[to] = self.accounts.get(to, 0) + amount
        self.total_paid += amount
        logger.debug(f"paid {amount} to {to.hex()[:8]}")
        return TransferResult.success()
