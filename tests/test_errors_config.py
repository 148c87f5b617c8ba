"""Error codes and configuration loading."""

from __future__ import annotations

import dataclasses

import pytest

from title_escrow.config import DEFAULT_ESCROW_ADDRESS, EscrowConfig
from title_escrow.errors import ErrorCategory, ErrorCode, EscrowError, err
from title_escrow.types import BalancePolicy


# --- errors ---


def test_error_rendering() -> None:
    exc = err(ErrorCode.NO_SUCH_SALE, "asset 1 has no sale")
    assert str(exc) == "NO_SUCH_SALE(0x0401): asset 1 has no sale"
    assert exc.code.category == ErrorCategory.STATE
    assert ErrorCode.PAYMENT_FAILED.category == ErrorCategory.BOUNDARY
    assert ErrorCode.UNAUTHORIZED.category == ErrorCategory.AUTHORIZATION


def test_error_fields_are_frozen() -> None:
    exc = err(ErrorCode.UNAUTHORIZED, "nope")
    with pytest.raises(dataclasses.FrozenInstanceError):
        exc.code = ErrorCode.SUCCESS  # type: ignore[misc]


def test_error_chaining() -> None:
    with pytest.raises(EscrowError) as excinfo:
        try:
            {}["asset_id"]
        except KeyError as exc:
            raise EscrowError(ErrorCode.INVALID_CALL, "missing asset_id") from exc
    assert isinstance(excinfo.value.__cause__, KeyError)


# --- config ---


def test_config_defaults() -> None:
    config = EscrowConfig.from_env({})
    assert config.balance_policy == BalancePolicy.PER_SALE
    assert config.escrow_address == DEFAULT_ESCROW_ADDRESS
    assert config.log_level == "INFO"


def test_config_from_env() -> None:
    config = EscrowConfig.from_env(
        {
            "TITLE_ESCROW_BALANCE_POLICY": "Pooled",
            "TITLE_ESCROW_ADDRESS": "0x" + "ab" * 32,
            "TITLE_ESCROW_LOG_LEVEL": "debug",
        }
    )
    assert config.balance_policy == BalancePolicy.POOLED
    assert config.escrow_address == b"\xab" * 32
    assert config.log_level == "DEBUG"


def test_config_rejects_bad_values() -> None:
    with pytest.raises(ValueError):
        EscrowConfig.from_env({"TITLE_ESCROW_BALANCE_POLICY": "shared"})
    with pytest.raises(ValueError):
        EscrowConfig.from_env({"TITLE_ESCROW_ADDRESS": "abcd"})


def test_config_from_yaml(tmp_path) -> None:
    path = tmp_path / "escrow.yaml"
    path.write_text(
        "escrow:\n"
        "  balance_policy: per-sale\n"
        f"  escrow_address: '{'cd' * 32}'\n"
        "  log_level: warning\n"
    )
    config = EscrowConfig.from_yaml(path)
    assert config.balance_policy == BalancePolicy.PER_SALE
    assert config.escrow_address == b"\xcd" * 32
    assert config.log_level == "WARNING"


def test_config_from_flat_yaml(tmp_path) -> None:
    path = tmp_path / "escrow.yaml"
    path.write_text("balance_policy: pooled\n")
    assert EscrowConfig.from_yaml(path).balance_policy == BalancePolicy.POOLED
