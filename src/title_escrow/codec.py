"""JSON-friendly export of escrow state and calls."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from .types import SaleEvent, SaleRecord

if TYPE_CHECKING:
    from .escrow import TitleEscrow


def _bytes_to_hex(v: Optional[bytes]) -> str:
    return v.hex() if v is not None else ""


def record_to_json(record: SaleRecord) -> dict[str, Any]:
    return {
        "sale_id": record.sale_id,
        "asset_id": record.asset_id,
        "seller": _bytes_to_hex(record.seller),
        "buyer": _bytes_to_hex(record.buyer),
        "purchase_price": record.purchase_price,
        "collateral_required": record.collateral_required,
        "listed": record.listed,
        "verification_passed": record.verification_passed,
        "approvals": sorted(_bytes_to_hex(a) for a in record.approvals),
        "status": record.status.value,
        "deposited": record.deposited,
        "escrowed": record.escrowed,
        "settled_to": _bytes_to_hex(record.settled_to),
        "settled_amount": record.settled_amount,
    }


def event_to_json(event: SaleEvent) -> dict[str, Any]:
    return {
        "sequence": event.sequence,
        "kind": event.kind.value,
        "asset_id": event.asset_id,
        "sale_id": event.sale_id,
        "actor": _bytes_to_hex(event.actor),
        "amount": event.amount,
    }


def state_to_json(escrow: "TitleEscrow") -> dict[str, Any]:
    roles = escrow.roles
    balance, histories = escrow.ledger.snapshot()
    sales = [record_to_json(r) for history in histories.values() for r in history]

    return {
        "balance_policy": escrow.config.balance_policy.value,
        "escrow_address": _bytes_to_hex(escrow.escrow_address),
        "roles": {
            "seller": _bytes_to_hex(roles.seller),
            "verifier": _bytes_to_hex(roles.verifier),
            "lender": _bytes_to_hex(roles.lender),
        },
        "balance": balance,
        "sales": sales,
    }
