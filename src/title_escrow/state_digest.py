"""Canonical escrow state digest (v1)."""
from __future__ import annotations

from typing import Any

from blake3 import blake3

from .types import BalancePolicy, SaleStatus

DIGEST_VERSION = 1

_POLICY_TAGS = {BalancePolicy.POOLED.value: 0, BalancePolicy.PER_SALE.value: 1}
_STATUS_TAGS = {
    SaleStatus.LISTED.value: 0,
    SaleStatus.FINALIZED.value: 1,
    SaleStatus.CANCELED.value: 2,
    SaleStatus.CUSTODY_PENDING.value: 3,
    SaleStatus.SETTLING.value: 4,
}


def _hex_to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    return bytes.fromhex(v)


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _u256_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u256 must be non-negative")
    return int(value).to_bytes(32, "big", signed=False)


def _address(value: str | None) -> bytes:
    # Absent addresses (no lender, unsettled sale) encode as 32 zero bytes.
    raw = _hex_to_bytes(value)
    if not raw:
        return bytes(32)
    if len(raw) != 32:
        raise ValueError(f"address must be 32 bytes, got {len(raw)}")
    return raw


def compute_state_digest(state: dict[str, Any]) -> str:
    """Compute state digest v1 from an exported escrow state.

    Fields are encoded in canonical order and hashed with BLAKE3-256.
    Sales are ordered by (asset_id, sale_id); approvals by address.
    """
    buf = bytearray()
    buf += bytes([DIGEST_VERSION, _POLICY_TAGS[state.get("balance_policy", "per_sale")]])
    buf += _address(state.get("escrow_address"))

    roles = state.get("roles", {})
    for field in ("seller", "verifier", "lender"):
        buf += _address(roles.get(field))
    buf += _u64_be(int(state.get("balance", 0)))

    sales = sorted(state.get("sales", []), key=lambda s: (int(s["asset_id"]), int(s["sale_id"])))
    buf += _u64_be(len(sales))
    for sale in sales:
        buf += _u256_be(int(sale["asset_id"]))
        buf += _u64_be(int(sale["sale_id"]))
        buf += _address(sale.get("seller"))
        buf += _address(sale.get("buyer"))
        for field in ("purchase_price", "collateral_required", "deposited", "escrowed", "settled_amount"):
            buf += _u64_be(int(sale.get(field, 0)))
        flags = (1 if sale.get("listed") else 0) | (2 if sale.get("verification_passed") else 0)
        buf += bytes([flags, _STATUS_TAGS[sale["status"]]])
        buf += _address(sale.get("settled_to"))

        approvals = sorted(_address(a) for a in sale.get("approvals", []))
        buf += _u64_be(len(approvals))
        for addr in approvals:
            buf += addr

    return blake3(buf).hexdigest()
