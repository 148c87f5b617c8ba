"""Deterministic named addresses used by scenarios and tests."""

from __future__ import annotations

import pytest
from blake3 import blake3

from title_escrow.accounts import BUYER, NAMED, SELLER, derive_address, label, resolve
from title_escrow.config import ADDRESS_LEN, DEFAULT_ESCROW_ADDRESS


def test_accounts_deterministic() -> None:
    assert SELLER == blake3(b"title-escrow/account/seller").digest()[:ADDRESS_LEN]
    assert derive_address("Seller") == SELLER
    assert len(set(NAMED.values())) == len(NAMED)
    for addr in NAMED.values():
        assert len(addr) == ADDRESS_LEN


def test_resolve_names_and_hex() -> None:
    assert resolve("buyer") == BUYER
    assert resolve("ESCROW") == DEFAULT_ESCROW_ADDRESS
    assert resolve(BUYER.hex()) == BUYER
    assert resolve("0x" + BUYER.hex()) == BUYER
    assert resolve(BUYER) is BUYER


@pytest.mark.parametrize("value", ["nobody", "abcd", "zz" * 32, 123, None])
def test_resolve_rejects_unknown(value: object) -> None:
    with pytest.raises(ValueError):
        resolve(value)


def test_label() -> None:
    assert label(SELLER) == "seller"
    assert label(DEFAULT_ESCROW_ADDRESS) == "escrow"
    assert label(b"\x01" * 32) == "01" * 32
