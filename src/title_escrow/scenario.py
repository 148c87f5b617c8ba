"""Scripted escrow scenarios.

A scenario is a YAML (or JSON) document describing the escrow settings, the
initial custody holders and an ordered list of calls, each with the error
code it is expected to produce::

    name: happy_path
    escrow:
      balance_policy: per_sale
    assets:
      1: seller
    calls:
      - {method: list_asset, caller: seller,
         args: {asset_id: 1, buyer: buyer, price: 100, collateral: 20}}
      - {method: finalize_sale, caller: buyer, args: {asset_id: 1},
         expect: NOT_VERIFIED}

Parties are names from ``accounts.NAMED`` or hex addresses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .accounts import LENDER, SELLER, VERIFIER, label, resolve
from .boundaries import CustodyRegistry, PaymentLedger
from .calls import Call, call_from_json, call_to_json, execute_call
from .codec import state_to_json
from .config import EscrowConfig
from .errors import ErrorCode
from .escrow import TitleEscrow
from .state_digest import compute_state_digest
from .types import Roles

logger = logging.getLogger(__name__)


@dataclass
class ScenarioStep:
    call: Call
    expect: ErrorCode = ErrorCode.SUCCESS


@dataclass
class Scenario:
    name: str
    config: EscrowConfig
    roles: Roles
    assets: dict[int, bytes] = field(default_factory=dict)
    steps: list[ScenarioStep] = field(default_factory=list)
    expected_digest: Optional[str] = None


@dataclass
class StepOutcome:
    index: int
    method: str
    expected: str
    actual: str

    @property
    def matched(self) -> bool:
        return self.expected == self.actual


@dataclass
class ScenarioReport:
    name: str
    outcomes: list[StepOutcome]
    digest: str
    balance: int
    payments: dict[str, int]
    custody: dict[int, str]
    expected_digest: Optional[str] = None

    @property
    def digest_matched(self) -> bool:
        return self.expected_digest is None or self.expected_digest == self.digest

    @property
    def passed(self) -> bool:
        return self.digest_matched and all(o.matched for o in self.outcomes)


def _parse_expect(value: Any) -> ErrorCode:
    if value is None or str(value).lower() in ("ok", "success"):
        return ErrorCode.SUCCESS
    try:
        return ErrorCode[str(value).upper()]
    except KeyError:
        raise ValueError(f"unknown expected error: {value!r}") from None


def scenario_from_dict(data: dict[str, Any], name: Optional[str] = None) -> Scenario:
    if not isinstance(data, dict):
        raise ValueError("scenario must be a mapping")

    config = EscrowConfig.from_mapping(data.get("escrow") or {})

    # An explicit `lender: null` runs the escrow without a lender.
    roles_data = data.get("roles") or {}
    lender = roles_data.get("lender", LENDER)
    roles = Roles(
        seller=resolve(roles_data.get("seller", SELLER)),
        verifier=resolve(roles_data.get("verifier", VERIFIER)),
        lender=resolve(lender) if lender else None,
    )

    assets = {int(asset_id): resolve(holder) for asset_id, holder in (data.get("assets") or {}).items()}

    steps = []
    for raw in data.get("calls") or []:
        steps.append(ScenarioStep(call=call_from_json(raw), expect=_parse_expect(raw.get("expect"))))

    return Scenario(
        name=name or data.get("name", "scenario"),
        config=config,
        roles=roles,
        assets=assets,
        steps=steps,
        expected_digest=data.get("expected_digest"),
    )


def load_scenario(path: Union[str, Path]) -> Scenario:
    with open(path) as f:
        data = yaml.safe_load(f)
    return scenario_from_dict(data, name=data.get("name") if isinstance(data, dict) else None)


def scenario_to_dict(scenario: Scenario) -> dict[str, Any]:
    calls = []
    for step in scenario.steps:
        entry = call_to_json(step.call)
        entry["expect"] = step.expect.name
        calls.append(entry)
    out: dict[str, Any] = {
        "name": scenario.name,
        "escrow": {
            "balance_policy": scenario.config.balance_policy.value,
            "escrow_address": scenario.config.escrow_address.hex(),
        },
        "roles": {
            "seller": scenario.roles.seller.hex(),
            "verifier": scenario.roles.verifier.hex(),
            "lender": scenario.roles.lender.hex() if scenario.roles.lender else None,
        },
        "assets": {asset_id: holder.hex() for asset_id, holder in scenario.assets.items()},
        "calls": calls,
    }
    if scenario.expected_digest:
        out["expected_digest"] = scenario.expected_digest
    return out


def build_escrow(scenario: Scenario) -> tuple[TitleEscrow, CustodyRegistry, PaymentLedger]:
    registry = CustodyRegistry(scenario.assets)
    payments = PaymentLedger()
    escrow = TitleEscrow(scenario.roles, registry, payments, scenario.config)
    return escrow, registry, payments


def run_scenario(scenario: Scenario) -> ScenarioReport:
    escrow, registry, payments = build_escrow(scenario)

    outcomes = []
    for index, step in enumerate(scenario.steps):
        result = execute_call(escrow, step.call)
        outcome = StepOutcome(
            index=index,
            method=step.call.method.value,
            expected=step.expect.name,
            actual=result.code.name,
        )
        if not outcome.matched:
            logger.warning(
                f"[{scenario.name}] step {index} {outcome.method}: "
                f"expected {outcome.expected}, got {outcome.actual}"
            )
        outcomes.append(outcome)

    digest = compute_state_digest(state_to_json(escrow))
    return ScenarioReport(
        name=scenario.name,
        outcomes=outcomes,
        digest=digest,
        balance=escrow.get_balance(),
        payments={label(addr): amount for addr, amount in sorted(payments.accounts.items())},
        custody={asset_id: label(holder) for asset_id, holder in sorted(registry.holders.items())},
        expected_digest=scenario.expected_digest,
    )
