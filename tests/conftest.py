"""Pytest fixtures: wired escrow instances and scenario vector collection."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from title_escrow.accounts import BUYER, LENDER, SELLER, VERIFIER
from title_escrow.boundaries import CustodyRegistry, PaymentLedger
from title_escrow.config import EscrowConfig
from title_escrow.escrow import TitleEscrow
from title_escrow.scenario import Scenario, run_scenario, scenario_to_dict
from title_escrow.types import BalancePolicy, Roles

ASSET = 1
PRICE = 100
COLLATERAL = 20

_SCENARIO_CASES: dict[str, list[dict[str, Any]]] = {}


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


class Harness:
    """An escrow wired to in-memory collaborators, with shortcuts for tests."""

    def __init__(self, policy: BalancePolicy = BalancePolicy.PER_SALE, payments=None, custody=None):
        self.registry = custody if custody is not None else CustodyRegistry()
        self.payments = payments if payments is not None else PaymentLedger()
        self.escrow = TitleEscrow(
            Roles(seller=SELLER, verifier=VERIFIER, lender=LENDER),
            self.registry,
            self.payments,
            EscrowConfig(balance_policy=policy),
        )
        for asset_id in range(1, 6):
            self.registry.mint(asset_id, SELLER)

    def list(self, asset_id: int = ASSET, price: int = PRICE, collateral: int = COLLATERAL):
        return self.escrow.list_asset(SELLER, asset_id, BUYER, price, collateral)

    def ready(self, asset_id: int = ASSET, deposits: tuple[int, ...] = (COLLATERAL, PRICE - COLLATERAL)):
        """List, fund, verify and approve so that finalize can succeed."""
        self.list(asset_id)
        for amount in deposits:
            self.escrow.deposit_collateral(BUYER, asset_id, amount)
        self.escrow.verify_asset_status(VERIFIER, asset_id, True)
        self.escrow.approve_sale(BUYER, asset_id)
        self.escrow.approve_sale(SELLER, asset_id)


@pytest.fixture
def harness() -> Harness:
    return Harness()


@pytest.fixture
def pooled() -> Harness:
    return Harness(BalancePolicy.POOLED)


@pytest.fixture
def make_harness() -> Callable[..., Harness]:
    return Harness


@pytest.fixture
def scenario_vector() -> Callable[[str, Scenario], Any]:
    """Run a scenario, record it as a vector and return its report."""

    def _scenario_vector(rel_path: str, scenario: Scenario):
        report = run_scenario(scenario)
        case = scenario_to_dict(scenario)
        case["expected_digest"] = report.digest
        case["expected"] = {
            "balance": report.balance,
            "payments": report.payments,
            "custody": {str(k): v for k, v in report.custody.items()},
        }
        _SCENARIO_CASES.setdefault(rel_path, []).append(case)
        return report

    return _scenario_vector


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _SCENARIO_CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"scenarios": cases}, indent=2))
