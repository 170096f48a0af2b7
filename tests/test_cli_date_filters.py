"""Tests for the CLI date range helper."""

from datetime import date

import click
import pytest

from qbrecon.cli.date_filters import resolve_cli_date_range
from qbrecon.cli.main import cli
from qbrecon.utils.date_parser import get_date_range

NO_PERIOD = {"this-month": False, "this-year": False, "last-month": False, "last-year": False}


def _resolve(start_date=None, end_date=None, **flags):
    ctx = click.Context(click.Command("ledger"))
    return resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags={**NO_PERIOD, **flags}
    )


def _exit_code(capsys, **kwargs):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        _resolve(**kwargs)
    return excinfo.value.exit_code, capsys.readouterr().err


def test_open_ended_without_options():
    assert _resolve() == (None, None)


def test_single_bound():
    assert _resolve(start_date="2026-01-10") == (date(2026, 1, 10), None)
    assert _resolve(end_date="2026-01-31") == (None, date(2026, 1, 31))


def test_period_flag_uses_period_range():
    assert _resolve(**{"last-month": True}) == get_date_range("last-month")


def test_two_periods_rejected(capsys):
    code, err = _exit_code(capsys, **{"this-month": True, "last-year": True})
    assert code == 1
    assert "Only one period option" in err
    assert "--this-year" in err


def test_period_with_explicit_date_rejected(capsys):
    code, err = _exit_code(capsys, end_date="2026-01-31", **{"this-year": True})
    assert code == 1
    assert "cannot be combined" in err


def test_reversed_range_rejected(capsys):
    code, err = _exit_code(capsys, start_date="2026-02-01", end_date="2026-01-01")
    assert code == 1
    assert "Start date 2026-02-01 is after end date 2026-01-01" in err


@pytest.mark.parametrize("option,label", [("start_date", "start"), ("end_date", "end")])
def test_unparseable_date(capsys, option, label):
    code, err = _exit_code(capsys, **{option: "not-a-date"})
    assert code == 1
    assert f"Invalid {label} date" in err


def test_ledger_command_rejects_conflicting_options(cli_runner, temp_db, sample_account):
    """The ledger command reports the conflict and exits 1."""
    result = cli_runner.invoke(
        cli,
        [
            "--db-path", temp_db.database_path, "--user", "alice",
            "balance", "ledger", "Checking", "--this-month", "--start-date", "2026-01-01",
        ],
    )
    assert result.exit_code == 1
    assert "cannot be combined" in result.output
