"""Sale ledger: listing, verification, collateral and approval state.

The ledger is the single source of truth for every sale. Mutations of one
asset are serialized by a re-entrant per-asset lock; the escrow balance,
the sale counter and the event log sit behind a short ledger-wide lock that
is never held across a boundary call.
"""

from __future__ import annotations

import logging
import threading
from copy import deepcopy
from typing import Dict, List, Optional, Tuple

from .boundaries import AssetCustody, TransferResult
from .config import MAX_AMOUNT, EscrowConfig
from .errors import ErrorCode, EscrowError
from .roles import RoleAuthority, check_address
from .types import (
    Address,
    AssetId,
    BalancePolicy,
    EventKind,
    SaleEvent,
    SaleRecord,
    SaleStatus,
)

logger = logging.getLogger(__name__)


def _check_asset_id(asset_id: object) -> AssetId:
    if isinstance(asset_id, bool) or not isinstance(asset_id, int) or asset_id < 0:
        raise EscrowError(ErrorCode.INVALID_CALL, f"invalid asset id: {asset_id!r}")
    return asset_id


def _check_amount(amount: object, what: str) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise EscrowError(ErrorCode.INVALID_AMOUNT, f"{what} must be an integer")
    if amount < 0 or amount > MAX_AMOUNT:
        raise EscrowError(ErrorCode.INVALID_AMOUNT, f"{what} out of range")
    return amount


def call_boundary(fn, *args) -> TransferResult:
    """Invoke a boundary method, folding a raised exception into a failure."""
    try:
        result = fn(*args)
    except Exception as exc:
        logger.exception(f"boundary call {getattr(fn, '__name__', fn)} raised")
        return TransferResult.failure(f"{type(exc).__name__}: {exc}")
    if not isinstance(result, TransferResult):
        return TransferResult.failure(f"boundary returned {type(result).__name__}")
    return result


class SaleLedger:
    def __init__(
        self,
        authority: RoleAuthority,
        custody: AssetCustody,
        config: Optional[EscrowConfig] = None,
    ):
        self.config = config or EscrowConfig()
        check_address(self.config.escrow_address, "escrow address")
        self.authority = authority
        self.custody = custody

        self._records: Dict[AssetId, SaleRecord] = {}
        self._archive: Dict[AssetId, List[SaleRecord]] = {}
        self._balance = 0
        self._next_sale_id = 1
        self._events: List[SaleEvent] = []

        self._asset_locks: Dict[AssetId, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self._ledger_lock = threading.Lock()

        if self.config.balance_policy == BalancePolicy.POOLED:
            logger.warning(
                "balance policy is POOLED: settling any sale pays out collateral "
                "deposited for every open sale"
            )

    @property
    def escrow_address(self) -> Address:
        return self.config.escrow_address

    @property
    def policy(self) -> BalancePolicy:
        return self.config.balance_policy

    def lock_for(self, asset_id: AssetId) -> threading.RLock:
        with self._locks_guard:
            lock = self._asset_locks.get(asset_id)
            if lock is None:
                lock = threading.RLock()
                self._asset_locks[asset_id] = lock
            return lock

    # --- reads ---
    #
    # Every mutation of a record, the balance or the archive happens under
    # ``_ledger_lock``, so copies taken under it are never torn.

    def get_record(self, asset_id: AssetId) -> Optional[SaleRecord]:
        with self.lock_for(asset_id), self._ledger_lock:
            record = self._records.get(asset_id)
            return deepcopy(record) if record is not None else None

    def get_sale_history(self, asset_id: AssetId) -> List[SaleRecord]:
        """Every sale of ``asset_id``, oldest first, including the current one."""
        with self.lock_for(asset_id), self._ledger_lock:
            history = list(self._archive.get(asset_id, []))
            current = self._records.get(asset_id)
            if current is not None:
                history.append(current)
            return deepcopy(history)

    def get_balance(self) -> int:
        with self._ledger_lock:
            return self._balance

    def events(self) -> List[SaleEvent]:
        with self._ledger_lock:
            return list(self._events)

    def snapshot(self) -> Tuple[int, Dict[AssetId, List[SaleRecord]]]:
        """Consistent copy of the balance and every asset's sale history."""
        with self._ledger_lock:
            histories = {
                asset_id: self._archive.get(asset_id, []) + [self._records[asset_id]]
                for asset_id in sorted(self._records)
            }
            return self._balance, deepcopy(histories)

    def active_record(self, asset_id: AssetId) -> SaleRecord:
        record = self._records.get(asset_id)
        if record is None:
            raise EscrowError(ErrorCode.NO_SUCH_SALE, f"asset {asset_id} has no sale")
        if not record.listed:
            raise EscrowError(ErrorCode.NO_SUCH_SALE, f"sale of asset {asset_id} is closed")
        return record

    def latest_record(self, asset_id: AssetId) -> SaleRecord:
        record = self._records.get(asset_id)
        if record is None:
            raise EscrowError(ErrorCode.NO_SUCH_SALE, f"asset {asset_id} has no sale")
        return record

    def attributable_balance(self, record: SaleRecord) -> int:
        if self.policy == BalancePolicy.POOLED:
            return self._balance
        return record.escrowed

    # --- mutations ---

    def list_asset(
        self,
        asset_id: AssetId,
        buyer: Address,
        price: int,
        collateral: int,
        caller: Address,
    ) -> SaleRecord:
        _check_asset_id(asset_id)
        with self.lock_for(asset_id):
            self.authority.require_seller(caller)

            previous = self._records.get(asset_id)
            if previous is not None and previous.listed:
                raise EscrowError(ErrorCode.ALREADY_LISTED, f"asset {asset_id} is already listed")
            if previous is not None and previous.status == SaleStatus.SETTLING:
                raise EscrowError(ErrorCode.WRONG_STATE, f"sale {previous.sale_id} is still settling")

            check_address(buyer, "buyer")
            if buyer in (self.authority.seller, self.escrow_address):
                raise EscrowError(ErrorCode.SELF_OPERATION, "buyer cannot be the seller or the escrow")
            _check_amount(price, "purchase price")
            _check_amount(collateral, "collateral")
            if price == 0:
                raise EscrowError(ErrorCode.INVALID_AMOUNT, "purchase price must be > 0")

            result = call_boundary(
                self.custody.transfer_custody, asset_id, caller, self.escrow_address
            )
            if not result.ok:
                raise EscrowError(
                    ErrorCode.CUSTODY_TRANSFER_FAILED,
                    f"custody of asset {asset_id} could not move into escrow: {result.reason}",
                )

            with self._ledger_lock:
                sale_id = self._next_sale_id
                self._next_sale_id += 1
                record = SaleRecord(
                    sale_id=sale_id,
                    asset_id=asset_id,
                    seller=self.authority.seller,
                    buyer=buyer,
                    purchase_price=price,
                    collateral_required=collateral,
                )
                if previous is not None:
                    self._archive.setdefault(asset_id, []).append(previous)
                self._records[asset_id] = record
            self.emit(EventKind.LISTED, record, caller, price)
            logger.info(
                f"sale {sale_id}: asset {asset_id} listed for {price} "
                f"(collateral {collateral}) to buyer {buyer.hex()[:8]}"
            )
            return deepcopy(record)

    def set_verification(self, asset_id: AssetId, passed: bool, caller: Address) -> None:
        with self.lock_for(asset_id):
            self.authority.require_verifier(caller)
            record = self.active_record(asset_id)
            with self._ledger_lock:
                record.verification_passed = bool(passed)
            self.emit(EventKind.VERIFIED, record, caller, int(bool(passed)))
            logger.info(f"sale {record.sale_id}: verification {'passed' if passed else 'failed'}")

    def deposit_collateral(self, asset_id: AssetId, amount: int, caller: Address) -> int:
        """Credit a buyer deposit; returns the new escrow balance."""
        with self.lock_for(asset_id):
            record = self.active_record(asset_id)
            self.authority.require_buyer(record, caller)
            _check_amount(amount, "collateral deposit")
            if amount < record.collateral_required:
                raise EscrowError(
                    ErrorCode.INSUFFICIENT_COLLATERAL,
                    f"deposit {amount} below required collateral {record.collateral_required}",
                )
            if amount == 0:
                raise EscrowError(ErrorCode.INVALID_AMOUNT, "deposit must be > 0")

            with self._ledger_lock:
                if self._balance + amount > MAX_AMOUNT:
                    raise EscrowError(ErrorCode.INVALID_AMOUNT, "escrow balance overflow")
                self._balance += amount
                if self.policy == BalancePolicy.PER_SALE:
                    record.escrowed += amount
                record.deposited += amount
                balance = self._balance
            self.emit(EventKind.COLLATERAL_DEPOSITED, record, caller, amount)
            logger.info(f"sale {record.sale_id}: buyer deposited {amount}, escrow balance {balance}")
            return balance

    def approve(self, asset_id: AssetId, caller: Address) -> None:
        with self.lock_for(asset_id):
            record = self.active_record(asset_id)
            with self._ledger_lock:
                record.approvals.add(caller)
            self.emit(EventKind.APPROVED, record, caller)
            logger.info(f"sale {record.sale_id}: approved by {caller.hex()[:8]}")

    # --- settlement support (caller holds the asset lock) ---

    def close_sale(self, record: SaleRecord, payee: Address, minimum: int = 0) -> int:
        """Close ``record`` for settlement and withdraw its attributable balance.

        The record is left ``SETTLING`` until ``set_status`` or ``restore``,
        so nothing can reopen, relist or reclaim it while a boundary call is
        in flight. Raises INSUFFICIENT_BALANCE without touching anything when
        the attributable balance is below ``minimum``.
        """
        with self._ledger_lock:
            amount = self.attributable_balance(record)
            if amount < minimum:
                raise EscrowError(
                    ErrorCode.INSUFFICIENT_BALANCE,
                    f"escrow balance {amount} below purchase price {minimum}",
                )
            record.listed = False
            record.status = SaleStatus.SETTLING
            record.escrowed = 0
            record.settled_to = payee
            record.settled_amount = amount
            self._balance -= amount
        return amount

    def set_status(self, record: SaleRecord, status: SaleStatus) -> None:
        with self._ledger_lock:
            record.status = status

    def restore(self, closed: SaleRecord, snapshot: SaleRecord, amount: int) -> None:
        """Undo ``close_sale`` after a failed boundary call."""
        asset_id = closed.asset_id
        with self._ledger_lock:
            self._balance += amount
            if self._records.get(asset_id) is not closed:
                # Keep the funds attributable to the closed sale.
                if self.policy == BalancePolicy.PER_SALE:
                    closed.escrowed = amount
                closed.status = SaleStatus.CANCELED
                raise EscrowError(
                    ErrorCode.INTERNAL_ERROR,
                    f"sale {closed.sale_id} was replaced before rollback; {amount} kept in escrow",
                )
            self._records[asset_id] = snapshot
        logger.warning(f"sale {snapshot.sale_id}: settlement rolled back, {amount} returned to escrow")

    def emit(
        self,
        kind: EventKind,
        record: SaleRecord,
        actor: Optional[Address] = None,
        amount: int = 0,
    ) -> SaleEvent:
        with self._ledger_lock:
            event = SaleEvent(
                sequence=len(self._events) + 1,
                kind=kind,
                asset_id=record.asset_id,
                sale_id=record.sale_id,
                actor=actor,
                amount=amount,
            )
            self._events.append(event)
        return event
