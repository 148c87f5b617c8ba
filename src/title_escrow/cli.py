#!/usr/bin/env python3
"""
Title escrow scenario runner.

Replays scripted scenarios against an in-memory escrow and reports each
call's outcome and the final state digest.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .config import EscrowConfig
from .errors import EscrowError
from .scenario import ScenarioReport, load_scenario, run_scenario
from .types import BalancePolicy

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = EscrowConfig.from_env().log_level
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _print_report(report: ScenarioReport) -> None:
    click.echo(f"Scenario: {report.name}")
    for outcome in report.outcomes:
        status = "PASS" if outcome.matched else "FAIL"
        click.echo(f"  [{status}] {outcome.index:>3} {outcome.method:<24} {outcome.actual}")
        if not outcome.matched:
            click.echo(f"        expected {outcome.expected}")
    click.echo(f"  balance: {report.balance}")
    for party, amount in report.payments.items():
        click.echo(f"  paid {party}: {amount}")
    for asset_id, holder in report.custody.items():
        click.echo(f"  asset {asset_id} held by {holder}")
    click.echo(f"  digest: {report.digest}")
    if not report.digest_matched:
        click.echo(f"  expected digest: {report.expected_digest}")


@click.group()
@click.option("--verbose", is_flag=True, help="Enable verbose output")
def main(verbose: bool) -> None:
    """Run title escrow scenarios."""
    _configure_logging(verbose)


@main.command()
@click.argument("scenarios", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--policy",
    type=click.Choice([p.value for p in BalancePolicy]),
    default=None,
    help="Override the scenario's balance policy",
)
@click.option("--json-output", "json_output", default=None, help="Write reports as JSON to this file")
def run(scenarios: tuple[str, ...], policy: Optional[str], json_output: Optional[str]) -> None:
    """Run SCENARIOS and exit non-zero on any unexpected outcome."""
    reports = []
    for path in scenarios:
        try:
            scenario = load_scenario(path)
        except (ValueError, EscrowError) as exc:
            raise click.ClickException(f"{path}: {exc}") from exc
        if policy:
            scenario.config.balance_policy = BalancePolicy(policy)
        logger.info(f"Running scenario {scenario.name} from {path}")
        report = run_scenario(scenario)
        _print_report(report)
        reports.append(report)

    if json_output:
        payload = [
            {
                "name": r.name,
                "passed": r.passed,
                "digest": r.digest,
                "balance": r.balance,
                "payments": r.payments,
                "custody": {str(k): v for k, v in r.custody.items()},
                "outcomes": [
                    {"index": o.index, "method": o.method, "expected": o.expected, "actual": o.actual}
                    for o in r.outcomes
                ],
            }
            for r in reports
        ]
        Path(json_output).write_text(json.dumps(payload, indent=2))

    failed = [r.name for r in reports if not r.passed]
    if failed:
        logger.error(f"{len(failed)} scenario(s) failed: {', '.join(failed)}")
        sys.exit(1)


@main.command()
@click.argument("scenario", type=click.Path(exists=True, dir_okay=False))
def digest(scenario: str) -> None:
    """Print the final state digest of SCENARIO."""
    try:
        loaded = load_scenario(scenario)
    except (ValueError, EscrowError) as exc:
        raise click.ClickException(f"{scenario}: {exc}") from exc
    click.echo(run_scenario(loaded).digest)


if __name__ == "__main__":
    main()
