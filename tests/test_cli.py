"""Tests for CLI commands."""

import subprocess
import sys

import pytest

from lp_rewards.cli import main
from lp_rewards.distribution import DistributionRecord, Payout
from lp_rewards.ledger import RewardLedger


def test_cli_help():
    """Test CLI help command."""
    result = subprocess.run(
        [sys.executable, "-m", "lp_rewards.cli", "--help"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "lp-rewards" in result.stdout or "usage" in result.stdout.lower()


def test_cli_run_subcommand():
    """Test run subcommand help."""
    result = subprocess.run(
        [sys.executable, "-m", "lp_rewards.cli", "run", "--help"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "--soft" in result.stdout


def test_snapshot_from_event_file(events_json, tmp_path, capsys):
    """Test snapshot command on an event file."""
    trace_csv = tmp_path / "trace.csv"
    main(
        [
            "--data-dir",
            str(tmp_path),
            "snapshot",
            "--pool",
            "411756",
            "--from-round",
            "10",
            "--to-round",
            "20",
            "--budget",
            "110000000",
            "--events",
            str(events_json),
            "--trace-csv",
            str(trace_csv),
        ]
    )
    out = capsys.readouterr().out.splitlines()
    accrual_lines = [ln for ln in out if ln.startswith(("A ", "B "))]
    # 10_000_000 per round: A alone for 10 rounds, then half of round 20
    assert accrual_lines == ["A 105.000000", "B 5.000000"]
    assert "TVL: 0.000109" in out
    assert trace_csv.exists()


def test_export_writes_ledger_payouts(tmp_path, capsys):
    """Test export command."""
    led = RewardLedger(from_round=1)
    led.add_pool(5, 0.1)
    led.add_distribution(DistributionRecord(5, 1, 10, 100, 7, (Payout("A", 7, 100, txn_id="T"),)))
    led.save(tmp_path / "data.json")

    main(["--data-dir", str(tmp_path), "export"])

    out_csv = tmp_path / "payouts.csv"
    assert out_csv.exists()
    assert "A,1,10,100,100,7,T,False" in out_csv.read_text()


def test_missing_ledger_is_an_error(tmp_path):
    """Test verify without a ledger file."""
    with pytest.raises(FileNotFoundError):
        main(["--data-dir", str(tmp_path), "verify"])
