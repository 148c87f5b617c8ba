"""Settlement engine: finalize and cancel.

Every settlement follows the same order under the asset lock: check the
preconditions, close the record in the ledger, then call out to the payment
rail and the title registry. While those calls are in flight the record is
``SETTLING``, which every other operation refuses. A failed payment restores
the snapshot taken before the record was closed.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Optional

from .boundaries import PaymentGateway
from .errors import ErrorCode, EscrowError
from .ledger import SaleLedger, call_boundary
from .types import Address, AssetId, EventKind, SaleRecord, SaleStatus

logger = logging.getLogger(__name__)


class SettlementEngine:
    def __init__(self, ledger: SaleLedger, payments: PaymentGateway):
        self.ledger = ledger
        self.authority = ledger.authority
        self.custody = ledger.custody
        self.payments = payments

    def _pay_or_restore(
        self, record: SaleRecord, snapshot: SaleRecord, payee: Address, amount: int
    ) -> None:
        result = call_boundary(self.payments.pay, payee, amount)
        if not result.ok:
            self.ledger.restore(record, snapshot, amount)
            raise EscrowError(
                ErrorCode.PAYMENT_FAILED,
                f"payment of {amount} for sale {record.sale_id} failed: {result.reason}",
            )

    def finalize(self, asset_id: AssetId, caller: Optional[Address] = None) -> SaleRecord:
        """Pay the seller and hand custody to the buyer.

        Preconditions, checked in order: the sale is listed, the asset passed
        verification, both buyer and seller approved, and the balance
        attributable to the sale covers the purchase price.

        The seller is paid before custody moves. If the custody leg fails the
        payment stands, the record is left in ``CUSTODY_PENDING`` and
        ``CUSTODY_TRANSFER_FAILED`` is raised; ``retry_custody_transfer``
        completes it.
        """
        with self.ledger.lock_for(asset_id):
            record = self.ledger.active_record(asset_id)
            if not record.verification_passed:
                raise EscrowError(ErrorCode.NOT_VERIFIED, f"asset {asset_id} has not passed verification")
            missing = [
                party
                for party, approved in (("buyer", record.buyer_approved), ("seller", record.seller_approved))
                if not approved
            ]
            if missing:
                raise EscrowError(
                    ErrorCode.APPROVAL_MISSING,
                    f"sale {record.sale_id} missing approval from {', '.join(missing)}",
                )

            snapshot = deepcopy(record)
            amount = self.ledger.close_sale(record, record.seller, minimum=record.purchase_price)
            self._pay_or_restore(record, snapshot, record.seller, amount)

            custody = call_boundary(
                self.custody.transfer_custody, asset_id, self.ledger.escrow_address, record.buyer
            )
            if not custody.ok:
                self.ledger.set_status(record, SaleStatus.CUSTODY_PENDING)
                self.ledger.emit(EventKind.CUSTODY_PENDING, record, caller, amount)
                logger.error(
                    f"sale {record.sale_id}: seller paid {amount} but custody of asset "
                    f"{asset_id} did not reach the buyer: {custody.reason}"
                )
                raise EscrowError(
                    ErrorCode.CUSTODY_TRANSFER_FAILED,
                    f"custody of asset {asset_id} could not move to the buyer: {custody.reason}",
                )

            self.ledger.set_status(record, SaleStatus.FINALIZED)
            self.ledger.emit(EventKind.FINALIZED, record, caller, amount)
            logger.info(f"sale {record.sale_id}: finalized, seller paid {amount}")
            return deepcopy(record)

    def cancel(self, asset_id: AssetId, caller: Address) -> SaleRecord:
        """Refund the escrowed balance and close the sale.

        Only a party to the sale (seller, buyer, verifier or lender) may
        cancel; anyone else gets UNAUTHORIZED. The refund goes to the buyer
        unless verification passed, in which case it goes to the seller.
        Custody stays with escrow until the seller reclaims it.
        """
        with self.ledger.lock_for(asset_id):
            record = self.ledger.active_record(asset_id)
            self.authority.require_party(record, caller)
            payee = record.seller if record.verification_passed else record.buyer

            snapshot = deepcopy(record)
            amount = self.ledger.close_sale(record, payee)
            if amount:
                self._pay_or_restore(record, snapshot, payee, amount)
            self.ledger.set_status(record, SaleStatus.CANCELED)

            self.ledger.emit(EventKind.CANCELED, record, caller, amount)
            logger.info(f"sale {record.sale_id}: canceled, refunded {amount} to {payee.hex()[:8]}")
            return deepcopy(record)

    def retry_custody_transfer(self, asset_id: AssetId, caller: Optional[Address] = None) -> SaleRecord:
        with self.ledger.lock_for(asset_id):
            record = self.ledger.latest_record(asset_id)
            if record.status != SaleStatus.CUSTODY_PENDING:
                raise EscrowError(
                    ErrorCode.WRONG_STATE,
                    f"sale {record.sale_id} is {record.status.value}, not awaiting custody",
                )
            self.ledger.set_status(record, SaleStatus.SETTLING)
            result = call_boundary(
                self.custody.transfer_custody, asset_id, self.ledger.escrow_address, record.buyer
            )
            if not result.ok:
                self.ledger.set_status(record, SaleStatus.CUSTODY_PENDING)
                raise EscrowError(
                    ErrorCode.CUSTODY_TRANSFER_FAILED,
                    f"custody of asset {asset_id} could not move to the buyer: {result.reason}",
                )
            self.ledger.set_status(record, SaleStatus.FINALIZED)
            self.ledger.emit(EventKind.FINALIZED, record, caller, 0)
            logger.info(f"sale {record.sale_id}: custody delivered on retry")
            return deepcopy(record)

    def reclaim_asset(self, asset_id: AssetId, caller: Address) -> SaleRecord:
        """Return custody of a canceled sale's asset from escrow to the seller."""
        with self.ledger.lock_for(asset_id):
            self.authority.require_seller(caller)
            record = self.ledger.latest_record(asset_id)
            if record.status != SaleStatus.CANCELED:
                raise EscrowError(
                    ErrorCode.WRONG_STATE,
                    f"sale {record.sale_id} is {record.status.value}, not canceled",
                )
            if self.custody.holder_of(asset_id) != self.ledger.escrow_address:
                raise EscrowError(ErrorCode.WRONG_STATE, f"escrow no longer holds asset {asset_id}")

            self.ledger.set_status(record, SaleStatus.SETTLING)
            result = call_boundary(
                self.custody.transfer_custody, asset_id, self.ledger.escrow_address, record.seller
            )
            self.ledger.set_status(record, SaleStatus.CANCELED)
            if not result.ok:
                raise EscrowError(
                    ErrorCode.CUSTODY_TRANSFER_FAILED,
                    f"custody of asset {asset_id} could not return to the seller: {result.reason}",
                )
            self.ledger.emit(EventKind.CUSTODY_RECLAIMED, record, caller)
            logger.info(f"sale {record.sale_id}: asset {asset_id} reclaimed by seller")
            return deepcopy(record)
