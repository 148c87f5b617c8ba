"""Deterministic named addresses for scenarios, fixtures and tests."""

from __future__ import annotations

from typing import Dict, Union

from blake3 import blake3

from .config import ADDRESS_LEN, DEFAULT_ESCROW_ADDRESS

_DOMAIN = b"title-escrow/account/"


def derive_address(name: str) -> bytes:
    return blake3(_DOMAIN + name.lower().encode("utf-8")).digest()[:ADDRESS_LEN]


SELLER = derive_address("seller")
BUYER = derive_address("buyer")
VERIFIER = derive_address("verifier")
LENDER = derive_address("lender")
MALLORY = derive_address("mallory")
CAROL = derive_address("carol")

NAMED: Dict[str, bytes] = {
    "seller": SELLER,
    "buyer": BUYER,
    "verifier": VERIFIER,
    "lender": LENDER,
    "mallory": MALLORY,
    "carol": CAROL,
    "escrow": DEFAULT_ESCROW_ADDRESS,
}

_BY_ADDRESS: Dict[bytes, str] = {addr: name for name, addr in NAMED.items()}


def resolve(value: Union[str, bytes]) -> bytes:
    """Resolve a scenario party: a known name or a hex address."""
    if isinstance(value, bytes):
        return value
    if not isinstance(value, str):
        raise ValueError(f"party must be a name or hex address, got {type(value).__name__}")
    named = NAMED.get(value.lower())
    if named is not None:
        return named
    v = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        raw = bytes.fromhex(v)
    except ValueError:
        raise ValueError(f"unknown party: {value!r}") from None
    if len(raw) != ADDRESS_LEN:
        raise ValueError(f"address must be {ADDRESS_LEN} bytes, got {len(raw)}")
    return raw


def label(address: bytes) -> str:
    return _BY_ADDRESS.get(address, address.hex())
