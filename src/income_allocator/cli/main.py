"""
Income Allocator CLI

Command-line interface over the allocation engine. Each command loads a
snapshot file, runs one engine operation and prints the result; --write
saves the settled bucket set back to the snapshot.

Snapshot file layout:
    {"monthly_income": "5000", "buckets": [{"type": "emergencyFund",
     "amount": "500", "isLocked": false, "originalAmount": "500"}, ...]}

Usage:
    allocator show --state plan.json
    allocator edit --state plan.json --bucket emergencyFund --amount 1000 --write
    allocator reset --state plan.json --bucket emergencyFund
    allocator lock --state plan.json --bucket essentialSpending --write
    allocator validate --state plan.json --essential 3200
    allocator income --state plan.json --income 5500 --write
"""

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from income_allocator.allocation.models import BucketSet, BucketType, EditResult
from income_allocator.engine import AllocationEngine
from income_allocator.kernel.errors import AllocatorError
from income_allocator.kernel.logging import configure_from_env
from income_allocator.kernel.money import to_money
from income_allocator.kernel.safety_policy import SafetyPolicy

# Logs go to stderr; stdout carries command output only
configure_from_env()

app = typer.Typer(
    name="allocator",
    help="Income Allocator - Budget allocation engine",
    add_completion=False,
)

DEFAULT_STATE = Path("allocation.json")

StateOption = Annotated[Path, typer.Option("--state", help="Snapshot file path")]
PolicyOption = Annotated[
    Optional[Path],
    typer.Option("--policy", help="Safety policy override (JSON)"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]
WriteOption = Annotated[
    bool, typer.Option("--write", help="Save the settled bucket set to the snapshot")
]
BucketOption = Annotated[
    str,
    typer.Option(
        "--bucket",
        help="Bucket type (essentialSpending, discretionarySpending, "
        "emergencyFund, investments, debtService)",
    ),
]


def load_state(path: Path) -> tuple[BucketSet, Any]:
    """Load (bucket set, monthly income) from a snapshot file"""
    if not path.exists():
        typer.echo(f"Error: Snapshot not found: {path}", err=True)
        raise typer.Exit(1)
    try:
        data = json.loads(path.read_text())
        bucket_set = BucketSet.from_records(data["buckets"])
        monthly_income = to_money(data["monthly_income"])
    except (KeyError, ValueError, InvalidOperation, ValidationError, AllocatorError) as e:
        typer.echo(f"Error: Invalid snapshot {path}: {e}", err=True)
        raise typer.Exit(1)
    return bucket_set, monthly_income


def save_state(path: Path, bucket_set: BucketSet, monthly_income: Any) -> None:
    data = {"monthly_income": str(monthly_income), "buckets": bucket_set.to_records()}
    path.write_text(json.dumps(data, indent=2))


def get_engine(policy_path: Optional[Path]) -> AllocationEngine:
    """Get engine, with the policy override if one was given"""
    if policy_path is None:
        return AllocationEngine()
    if not policy_path.exists():
        typer.echo(f"Error: Policy file not found: {policy_path}", err=True)
        raise typer.Exit(1)
    try:
        policy = SafetyPolicy.model_validate_json(policy_path.read_text())
    except ValidationError as e:
        typer.echo(f"Error: Invalid policy {policy_path}: {e}", err=True)
        raise typer.Exit(1)
    return AllocationEngine(policy)


def parse_amount(value: str) -> Decimal:
    try:
        return to_money(value)
    except InvalidOperation:
        typer.echo(f"Error: Invalid amount: {value}", err=True)
        raise typer.Exit(1)


def parse_bucket(value: str) -> BucketType:
    try:
        return BucketType(value)
    except ValueError:
        valid = ", ".join(bt.value for bt in BucketType)
        typer.echo(f"Error: Unknown bucket type: {value} (expected one of {valid})", err=True)
        raise typer.Exit(1)


def echo_buckets(bucket_set: BucketSet, monthly_income: Any) -> None:
    typer.echo(f"\nMonthly income: ${monthly_income}")
    for bucket in bucket_set.buckets:
        percentage = int(bucket.amount / monthly_income * 100) if monthly_income > 0 else 0
        flags = []
        if bucket.is_locked:
            flags.append("locked")
        if not bucket.is_modifiable:
            flags.append("fixed")
        if bucket.is_changed():
            change = bucket.change_from_original()
            flags.append(f"{'+' if change > 0 else ''}{change} from original")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        typer.echo(
            f"  {bucket.bucket_type.display_name():<24} ${bucket.amount:>10} "
            f"({percentage}%){suffix}"
        )
    typer.echo(f"  {'Total':<24} ${bucket_set.total_allocated():>10}")


def echo_result(result: EditResult, monthly_income: Any, json_output: bool) -> None:
    if json_output:
        typer.echo(
            json.dumps(
                {
                    "monthly_income": str(monthly_income),
                    "buckets": result.bucket_set.to_records(),
                    "condition": result.condition.value if result.condition else None,
                    "requested_amount": (
                        str(result.requested_amount)
                        if result.requested_amount is not None
                        else None
                    ),
                    "settled_amount": (
                        str(result.settled_amount)
                        if result.settled_amount is not None
                        else None
                    ),
                    "adjustments": [a.model_dump(mode="json") for a in result.adjustments],
                    "findings": [f.model_dump(mode="json") for f in result.findings],
                },
                indent=2,
            )
        )
        return

    if result.condition is not None:
        typer.echo(f"! {result.condition.value}")
    if result.adjustments:
        typer.echo("Auto-adjusted to keep your total at 100%:")
        for adjustment in result.adjustments:
            arrow = "+" if adjustment.is_increase else "-"
            typer.echo(
                f"  {adjustment.bucket_type.display_name()}: "
                f"{arrow}${abs(adjustment.amount_changed)}"
            )
    echo_buckets(result.bucket_set, monthly_income)
    echo_findings(result)


def echo_findings(result: EditResult) -> None:
    notable = [f for f in result.findings if f.severity.value != "info"]
    if not notable:
        return
    typer.echo("\nFindings:")
    for finding in notable:
        typer.echo(
            f"  [{finding.severity.value}] {finding.bucket_type.display_name()}: "
            f"{finding.message.value} ({int(finding.percentage_of_income)}%)"
        )


@app.command()
def show(
    state: StateOption = DEFAULT_STATE,
    json_output: JsonOption = False,
) -> None:
    """Show the bucket set in a snapshot"""
    bucket_set, monthly_income = load_state(state)

    if json_output:
        typer.echo(
            json.dumps(
                {"monthly_income": str(monthly_income), "buckets": bucket_set.to_records()},
                indent=2,
            )
        )
        return

    echo_buckets(bucket_set, monthly_income)


@app.command()
def edit(
    bucket: BucketOption,
    amount: Annotated[str, typer.Option("--amount", help="Requested amount")],
    state: StateOption = DEFAULT_STATE,
    policy: PolicyOption = None,
    write: WriteOption = False,
    json_output: JsonOption = False,
) -> None:
    """Set one bucket's amount and rebalance the others"""
    bucket_set, monthly_income = load_state(state)
    engine = get_engine(policy)

    try:
        result = engine.apply_edit(
            bucket_set, monthly_income, parse_bucket(bucket), parse_amount(amount)
        )
    except AllocatorError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if write and not result.was_rejected():
        save_state(state, result.bucket_set, monthly_income)
    echo_result(result, monthly_income, json_output)


@app.command()
def reset(
    bucket: BucketOption,
    state: StateOption = DEFAULT_STATE,
    policy: PolicyOption = None,
    write: WriteOption = False,
    json_output: JsonOption = False,
) -> None:
    """Restore one bucket to its original amount"""
    bucket_set, monthly_income = load_state(state)
    engine = get_engine(policy)

    try:
        result = engine.reset_bucket(bucket_set, monthly_income, parse_bucket(bucket))
    except AllocatorError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if write and not result.was_rejected():
        save_state(state, result.bucket_set, monthly_income)
    echo_result(result, monthly_income, json_output)


@app.command()
def lock(
    bucket: BucketOption,
    state: StateOption = DEFAULT_STATE,
    write: WriteOption = False,
) -> None:
    """Toggle a bucket's lock"""
    bucket_set, monthly_income = load_state(state)
    bucket_type = parse_bucket(bucket)

    try:
        updated = AllocationEngine().toggle_lock(bucket_set, bucket_type)
    except AllocatorError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if write:
        save_state(state, updated, monthly_income)
    status = "locked" if updated.get(bucket_type).is_locked else "unlocked"
    typer.echo(f"✓ {bucket_type.display_name()} {status}")


@app.command()
def income(
    new_income: Annotated[str, typer.Option("--income", help="New monthly income")],
    state: StateOption = DEFAULT_STATE,
    policy: PolicyOption = None,
    write: WriteOption = False,
    json_output: JsonOption = False,
) -> None:
    """Change monthly income and rebalance the unlocked buckets"""
    bucket_set, _ = load_state(state)
    engine = get_engine(policy)
    monthly_income = parse_amount(new_income)

    result = engine.rebalance_to_income(bucket_set, monthly_income)

    if write and not result.was_rejected():
        save_state(state, result.bucket_set, monthly_income)
    echo_result(result, monthly_income, json_output)


@app.command()
def validate(
    state: StateOption = DEFAULT_STATE,
    essential: Annotated[
        Optional[str],
        typer.Option("--essential", help="Essential spending amount"),
    ] = None,
    policy: PolicyOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show validation findings without editing"""
    bucket_set, monthly_income = load_state(state)
    engine = get_engine(policy)

    essential_amount = parse_amount(essential) if essential is not None else None
    findings = engine.validate_all(bucket_set, monthly_income, essential_amount)
    summary = engine.summarize(bucket_set, monthly_income)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "summary": summary.model_dump(mode="json"),
                    "findings": [f.model_dump(mode="json") for f in findings],
                },
                indent=2,
            )
        )
        return

    typer.echo(
        f"\nAllocated: ${summary.total_allocated} of ${summary.monthly_income} "
        f"({int(summary.allocation_percentage)}%) - "
        f"{'valid' if summary.is_valid else 'invalid'}"
    )
    for finding in findings:
        coverage = ""
        if finding.months_to_target is not None:
            coverage = f", {finding.months_to_target} months to target"
        typer.echo(
            f"  [{finding.severity.value}] {finding.bucket_type.display_name()}: "
            f"{finding.message.value} ({int(finding.percentage_of_income)}%{coverage})"
        )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
