"""Public call surface of one escrow instance."""

from __future__ import annotations

from typing import List, Optional

from .boundaries import AssetCustody, PaymentGateway
from .codec import state_to_json
from .config import EscrowConfig
from .ledger import SaleLedger
from .roles import RoleAuthority
from .settlement import SettlementEngine
from .state_digest import compute_state_digest
from .types import Address, AssetId, Roles, SaleEvent, SaleRecord


class TitleEscrow:
    """Wires roles, ledger and settlement around the two external boundaries.

    Every mutating call takes the caller's address first. Each call either
    completes or raises ``EscrowError`` with no partial effect, except the
    documented custody-pending outcome of ``finalize_sale``.
    """

    def __init__(
        self,
        roles: Roles,
        custody: AssetCustody,
        payments: PaymentGateway,
        config: Optional[EscrowConfig] = None,
    ):
        self.config = config or EscrowConfig()
        self.authority = RoleAuthority(roles)
        self.ledger = SaleLedger(self.authority, custody, self.config)
        self.settlement = SettlementEngine(self.ledger, payments)

    @property
    def roles(self) -> Roles:
        return self.authority.roles

    @property
    def escrow_address(self) -> Address:
        return self.ledger.escrow_address

    def list_asset(
        self, caller: Address, asset_id: AssetId, buyer: Address, price: int, collateral: int
    ) -> SaleRecord:
        return self.ledger.list_asset(asset_id, buyer, price, collateral, caller)

    def verify_asset_status(self, caller: Address, asset_id: AssetId, passed: bool) -> None:
        self.ledger.set_verification(asset_id, passed, caller)

    def deposit_collateral(self, caller: Address, asset_id: AssetId, amount: int) -> int:
        return self.ledger.deposit_collateral(asset_id, amount, caller)

    def approve_sale(self, caller: Address, asset_id: AssetId) -> None:
        self.ledger.approve(asset_id, caller)

    def finalize_sale(self, caller: Address, asset_id: AssetId) -> SaleRecord:
        return self.settlement.finalize(asset_id, caller)

    def cancel_sale(self, caller: Address, asset_id: AssetId) -> SaleRecord:
        return self.settlement.cancel(asset_id, caller)

    def retry_custody_transfer(self, caller: Address, asset_id: AssetId) -> SaleRecord:
        return self.settlement.retry_custody_transfer(asset_id, caller)

    def reclaim_asset(self, caller: Address, asset_id: AssetId) -> SaleRecord:
        return self.settlement.reclaim_asset(asset_id, caller)

    def get_balance(self) -> int:
        return self.ledger.get_balance()

    def get_record(self, asset_id: AssetId) -> Optional[SaleRecord]:
        return self.ledger.get_record(asset_id)

    def get_sale_history(self, asset_id: AssetId) -> List[SaleRecord]:
        return self.ledger.get_sale_history(asset_id)

    def events(self) -> List[SaleEvent]:
        return self.ledger.events()

    def state_digest(self) -> str:
        return compute_state_digest(state_to_json(self))
