"""
CLI Integration Tests for Allocator Commands

Tests the allocator commands end-to-end against snapshot files.
"""

import json
from pathlib import Path

from typer.testing import CliRunner

from income_allocator.cli.main import app

runner = CliRunner()


def write_snapshot(path: Path, monthly_income: str = "5000", debt: str = "0") -> Path:
    """Write a balanced five-bucket snapshot for the given income"""
    amounts = {
        "essentialSpending": "3200",
        "discretionarySpending": "800",
        "emergencyFund": "500",
        "investments": "500",
        "debtService": debt,
    }
    path.write_text(
        json.dumps(
            {
                "monthly_income": monthly_income,
                "buckets": [
                    {"type": bucket_type, "amount": amount, "isLocked": False}
                    for bucket_type, amount in amounts.items()
                ],
            }
        )
    )
    return path


def amounts_of(payload: dict) -> dict:
    return {record["type"]: record["amount"] for record in payload["buckets"]}


def test_show_json(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(app, ["show", "--state", str(state), "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["monthly_income"] == "5000.00"
    assert amounts_of(payload)["essentialSpending"] == "3200.00"
    # Seeded buckets start at their original amount
    assert payload["buckets"][0]["originalAmount"] == "3200.00"


def test_show_human_readable(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(app, ["show", "--state", str(state)])

    assert result.exit_code == 0
    assert "Monthly income: $5000.00" in result.stdout
    assert "Emergency Fund" in result.stdout
    assert "(64%)" in result.stdout


def test_edit_rebalances_without_writing(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")
    original = state.read_text()

    result = runner.invoke(
        app,
        [
            "edit",
            "--state",
            str(state),
            "--bucket",
            "emergencyFund",
            "--amount",
            "1000",
            "--json",
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["condition"] is None
    assert amounts_of(payload) == {
        "essentialSpending": "2844.44",
        "discretionarySpending": "711.11",
        "emergencyFund": "1000.00",
        "investments": "444.45",
        "debtService": "0.00",
    }
    assert len(payload["adjustments"]) == 3
    assert state.read_text() == original


def test_edit_write_persists_settled_set(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(
        app,
        ["edit", "--state", str(state), "--bucket", "investments", "--amount", "0", "--write"],
    )
    assert result.exit_code == 0
    assert "Auto-adjusted to keep your total at 100%" in result.stdout

    saved = json.loads(state.read_text())
    investments = next(r for r in saved["buckets"] if r["type"] == "investments")
    assert investments["amount"] == "0.00"
    assert investments["originalAmount"] == "500.00"


def test_rejected_edit_is_not_written(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json", debt="300", monthly_income="5300")
    original = state.read_text()

    result = runner.invoke(
        app,
        [
            "edit",
            "--state",
            str(state),
            "--bucket",
            "debtService",
            "--amount",
            "0",
            "--write",
            "--json",
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["condition"] == "NotModifiable"
    assert state.read_text() == original


def test_lock_then_edit_locked_bucket(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(
        app, ["lock", "--state", str(state), "--bucket", "emergencyFund", "--write"]
    )
    assert result.exit_code == 0
    assert "Emergency Fund locked" in result.stdout

    result = runner.invoke(
        app,
        [
            "edit",
            "--state",
            str(state),
            "--bucket",
            "emergencyFund",
            "--amount",
            "900",
            "--json",
        ],
    )
    assert result.exit_code == 0
    assert json.loads(result.stdout)["condition"] == "NotModifiable"


def test_reset_restores_original(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")
    runner.invoke(
        app,
        ["edit", "--state", str(state), "--bucket", "investments", "--amount", "900", "--write"],
    )

    result = runner.invoke(
        app, ["reset", "--state", str(state), "--bucket", "investments", "--json"]
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert amounts_of(payload)["investments"] == "500.00"
    assert payload["settled_amount"] == "500.00"


def test_income_change_rebalances(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(
        app, ["income", "--state", str(state), "--income", "5500", "--write", "--json"]
    )

    assert result.exit_code == 0
    assert amounts_of(json.loads(result.stdout))["essentialSpending"] == "3520.00"
    assert json.loads(state.read_text())["monthly_income"] == "5500.00"


def test_validate_json(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(app, ["validate", "--state", str(state), "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["summary"]["is_valid"] is True
    assert [f["severity"] for f in payload["findings"]] == ["info"] * 5
    emergency_fund = next(
        f for f in payload["findings"] if f["bucket_type"] == "emergencyFund"
    )
    assert emergency_fund["months_to_target"] == 39


def test_validate_with_essential_amount(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(
        app, ["validate", "--state", str(state), "--essential", "2500"]
    )

    assert result.exit_code == 0
    assert "30 months to target" in result.stdout
    assert "valid" in result.stdout


def test_policy_override(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")
    policy = tmp_path / "policy.json"
    policy.write_text(
        json.dumps(
            {"discretionary_warning_percent": "10", "discretionary_hard_limit_percent": "15"}
        )
    )

    result = runner.invoke(
        app, ["validate", "--state", str(state), "--policy", str(policy), "--json"]
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    discretionary = next(
        f for f in payload["findings"] if f["bucket_type"] == "discretionarySpending"
    )
    assert discretionary["severity"] == "hardLimit"
    assert payload["summary"]["is_valid"] is False


def test_missing_snapshot(tmp_path: Path) -> None:
    result = runner.invoke(app, ["show", "--state", str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "Snapshot not found" in result.output


def test_invalid_snapshot(tmp_path: Path) -> None:
    state = tmp_path / "plan.json"
    state.write_text(json.dumps({"buckets": []}))

    result = runner.invoke(app, ["show", "--state", str(state)])

    assert result.exit_code == 1
    assert "Invalid snapshot" in result.output


def test_unknown_bucket_type(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(
        app, ["edit", "--state", str(state), "--bucket", "savings", "--amount", "10"]
    )

    assert result.exit_code == 1
    assert "Unknown bucket type" in result.output


def test_invalid_amount(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(
        app,
        ["edit", "--state", str(state), "--bucket", "investments", "--amount", "lots"],
    )

    assert result.exit_code == 1
    assert "Invalid amount" in result.output


def test_missing_policy_file(tmp_path: Path) -> None:
    state = write_snapshot(tmp_path / "plan.json")

    result = runner.invoke(
        app, ["validate", "--state", str(state), "--policy", str(tmp_path / "nope.json")]
    )

    assert result.exit_code == 1
    assert "Policy file not found" in result.output
