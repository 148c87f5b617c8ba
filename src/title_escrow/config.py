"""Title escrow configuration constants and runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .types import BalancePolicy

# Addresses
ADDRESS_LEN = 32
DEFAULT_ESCROW_ADDRESS = b"\xee" * ADDRESS_LEN

# Amounts
MAX_AMOUNT = 2**64 - 1

# Environment
ENV_BALANCE_POLICY = "TITLE_ESCROW_BALANCE_POLICY"
ENV_ESCROW_ADDRESS = "TITLE_ESCROW_ADDRESS"
ENV_LOG_LEVEL = "TITLE_ESCROW_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "INFO"


def _parse_policy(value: Union[str, BalancePolicy]) -> BalancePolicy:
    if isinstance(value, BalancePolicy):
        return value
    normalized = value.strip().lower().replace("-", "_")
    try:
        return BalancePolicy(normalized)
    except ValueError:
        raise ValueError(f"unknown balance policy: {value!r}") from None


def _parse_address(value: Union[str, bytes]) -> bytes:
    if isinstance(value, bytes):
        raw = value
    else:
        v = value[2:] if value.startswith(("0x", "0X")) else value
        raw = bytes.fromhex(v)
    if len(raw) != ADDRESS_LEN:
        raise ValueError(f"escrow address must be {ADDRESS_LEN} bytes, got {len(raw)}")
    return raw


@dataclass
class EscrowConfig:
    """Runtime settings for one escrow instance."""
    balance_policy: BalancePolicy = BalancePolicy.PER_SALE
    escrow_address: bytes = DEFAULT_ESCROW_ADDRESS
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "EscrowConfig":
        """Load configuration from environment variables."""
        env = os.environ if environ is None else environ
        config = cls()

        policy = env.get(ENV_BALANCE_POLICY)
        if policy:
            config.balance_policy = _parse_policy(policy)

        address = env.get(ENV_ESCROW_ADDRESS)
        if address:
            config.escrow_address = _parse_address(address)

        config.log_level = env.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()
        return config

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "EscrowConfig":
        config = cls()
        if "balance_policy" in data:
            config.balance_policy = _parse_policy(data["balance_policy"])
        if "escrow_address" in data:
            config.escrow_address = _parse_address(data["escrow_address"])
        if "log_level" in data:
            config.log_level = str(data["log_level"]).upper()
        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EscrowConfig":
        """Load configuration from a YAML file.

        Settings may sit at the top level or under an ``escrow:`` key.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: config must be a mapping")
        section = data.get("escrow", data)
        return cls.from_mapping(section)
