"""Pooled versus per-sale escrow balances."""

from __future__ import annotations

import pytest

from title_escrow.accounts import BUYER, SELLER, VERIFIER
from title_escrow.errors import ErrorCode, EscrowError
from title_escrow.types import SaleStatus


def _two_open_sales(h) -> None:
    h.ready(1, deposits=(100,))
    h.list(2)
    h.escrow.deposit_collateral(BUYER, 2, 50)


def test_per_sale_settles_only_its_own_deposits(harness) -> None:
    _two_open_sales(harness)

    record = harness.escrow.finalize_sale(BUYER, 1)
    assert record.settled_amount == 100
    assert harness.payments.balance_of(SELLER) == 100
    assert harness.escrow.get_balance() == 50
    assert harness.escrow.get_record(2).escrowed == 50


def test_per_sale_balance_is_not_shared(harness) -> None:
    # Sale 1 is ready except for funding; sale 2's deposit must not cover it.
    harness.ready(1, deposits=(20,))
    harness.list(2)
    harness.escrow.deposit_collateral(BUYER, 2, 500)

    with pytest.raises(EscrowError) as excinfo:
        harness.escrow.finalize_sale(BUYER, 1)
    assert excinfo.value.code == ErrorCode.INSUFFICIENT_BALANCE
    assert harness.escrow.get_balance() == 520


def test_pooled_finalize_pays_out_the_whole_pool(pooled) -> None:
    _two_open_sales(pooled)

    record = pooled.escrow.finalize_sale(BUYER, 1)
    assert record.settled_amount == 150
    assert pooled.payments.balance_of(SELLER) == 150
    assert pooled.escrow.get_balance() == 0

    # Sale 2 is still listed but its collateral is gone.
    pooled.escrow.verify_asset_status(VERIFIER, 2, True)
    pooled.escrow.approve_sale(BUYER, 2)
    pooled.escrow.approve_sale(SELLER, 2)
    with pytest.raises(EscrowError) as excinfo:
        pooled.escrow.finalize_sale(BUYER, 2)
    assert excinfo.value.code == ErrorCode.INSUFFICIENT_BALANCE


def test_pooled_balance_covers_other_sales_price(pooled) -> None:
    pooled.ready(1, deposits=(20,))
    pooled.list(2)
    pooled.escrow.deposit_collateral(BUYER, 2, 80)

    record = pooled.escrow.finalize_sale(BUYER, 1)
    assert record.status == SaleStatus.FINALIZED
    assert record.settled_amount == 100


def test_pooled_cancel_refunds_whole_pool(pooled) -> None:
    pooled.list(1)
    pooled.escrow.deposit_collateral(BUYER, 1, 30)
    pooled.list(2)
    pooled.escrow.deposit_collateral(BUYER, 2, 20)
    pooled.escrow.verify_asset_status(VERIFIER, 2, False)

    record = pooled.escrow.cancel_sale(BUYER, 2)
    assert record.settled_amount == 50
    assert pooled.payments.balance_of(BUYER) == 50
    assert pooled.escrow.get_balance() == 0
    assert not record.listed


def test_pooled_records_track_deposits_only(pooled) -> None:
    pooled.list(1)
    pooled.escrow.deposit_collateral(BUYER, 1, 30)
    record = pooled.escrow.get_record(1)
    assert record.deposited == 30
    assert record.escrowed == 0
    assert pooled.escrow.get_balance() == 30
