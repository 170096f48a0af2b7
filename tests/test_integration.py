"""Integration tests for the full reconciliation workflow through the CLI."""

import pytest

from qbrecon.cli.main import cli


@pytest.fixture
def run(cli_runner, temp_db):
    """Invoke the CLI as alice against the temporary database."""

    def _run(*args, **kwargs):
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "--user", "alice", *args], **kwargs)

    return _run


@pytest.fixture
def setup_mappings(run):
    """Create the checking account and the categories the ledger uses."""
    commands = [
        ["account", "create", "Checking", "--qb-name", "1000 Checking"],
        ["category", "create", "Groceries", "--qb-name", "6100 Groceries"],
        ["category", "create", "Mortgage", "--qb-name", "2500 Mortgage"],
        ["category", "create", "Salary", "--type", "income", "--qb-name", "4000 Salary"],
    ]
    for args in commands:
        result = run(*args)
        assert result.exit_code == 0, result.output


def test_full_workflow(run, setup_mappings, fixtures_dir):
    """Import, reconcile balances, inspect debts and undo the import."""
    ledger = str(fixtures_dir / "general_ledger.csv")

    # Unmapped names block the import
    result = run("import", "gl", ledger)
    assert result.exit_code == 1
    assert "Unmapped QuickBooks names:" in result.output
    assert "2100 Visa" in result.output
    assert "suggested: ignored" in result.output

    result = run("import", "list")
    assert "No imports found" in result.output

    # Decide the card explicitly and accept the equity suggestion
    result = run("import", "gl", ledger, "--decide", "2100 Visa=liability:Visa Card", "--accept-suggestions")
    assert result.exit_code == 0, result.output
    assert "Import complete:" in result.output
    assert "Imported: 3 transactions" in result.output
    assert "Linked: 3, categorized: 3" in result.output
    assert "Skipped: 1 from ignored accounts" in result.output

    result = run("account", "list")
    assert "Visa Card" in result.output
    assert "credit_card" in result.output

    result = run("balance", "show", "Checking")
    assert result.exit_code == 0
    assert "Balance: 1,500.00" in result.output

    result = run("balance", "set", "Checking", "1000", "--date", "2026-01-01")
    assert result.exit_code == 0
    assert "Starting balance set to 1,000.00 as of 2026-01-01" in result.output

    result = run("balance", "show", "Checking")
    assert "Balance: 2,500.00" in result.output

    result = run("balance", "networth")
    assert result.exit_code == 0
    assert "2,500.00" in result.output
    assert "120.50" in result.output
    assert "2,379.50" in result.output

    result = run("balance", "ledger", "Checking", "--start-date", "2026-01-10")
    assert result.exit_code == 0
    assert "Acme Corp - Paycheck" in result.output
    assert "PennyMac" not in result.output
    assert "Ending balance: 2,500.00" in result.output

    result = run("account", "update", "Visa Card", "--apr", "12", "--min-payment", "50")
    assert result.exit_code == 0

    result = run("debt")
    assert result.exit_code == 0
    assert "Visa Card" in result.output
    assert "3 months" in result.output
    assert "Total debt:             120.50" in result.output

    # Importing the same file again stores nothing
    result = run("import", "gl", ledger)
    assert result.exit_code == 0
    assert "Imported: 0 transactions" in result.output
    assert "Skipped: 3 duplicates" in result.output

    result = run("import", "show", "1")
    assert "Transactions: 3" in result.output
    assert "Dates: 2026-01-02 to 2026-01-15" in result.output

    result = run("duplicates", "find")
    assert "No duplicates found" in result.output

    result = run("import", "delete", "1", "--yes")
    assert result.exit_code == 0
    assert "Deleted import 'general_ledger.csv' (3 transactions)" in result.output

    result = run("balance", "show", "Checking")
    assert "Balance: 1,000.00" in result.output


def test_mapping_commands(run, setup_mappings, fixtures_dir):
    """Decisions saved through 'mapping classify' unblock the import."""
    ledger = str(fixtures_dir / "general_ledger.csv")

    result = run("mapping", "classify", ledger)
    assert result.exit_code == 0
    assert "1000 Checking" in result.output
    assert "Unmapped QuickBooks names:" in result.output

    result = run("mapping", "classify", ledger, "--decide", "3000 Opening Balance Equity=ignore")
    assert result.exit_code == 0
    assert "Saved 1 decisions (0 new accounts)" in result.output

    result = run("account", "create", "Visa", "--type", "credit_card")
    assert result.exit_code == 0
    result = run("mapping", "map-account", "2100 Visa", "Visa")
    assert "Mapped '2100 Visa' to account 2" in result.output

    result = run("mapping", "classify", ledger)
    assert "All names are mapped." in result.output

    result = run("mapping", "list")
    assert "3000 Opening Balance Equity" in result.output
    assert "(ignored)" in result.output

    result = run("import", "gl", ledger)
    assert result.exit_code == 0
    assert "Imported: 3 transactions" in result.output

    result = run("mapping", "clear", "3000 Opening Balance Equity")
    assert "is unmapped" in result.output


def test_link_and_categorize_after_mapping(run, fixtures_dir):
    """Rows imported before their mappings exist are fixed up later."""
    detail = str(fixtures_dir / "transaction_detail.csv")

    result = run("import", "detail", detail, "--decide", "1000 Checking=asset", "--decide", "2100 Visa=expense")
    assert result.exit_code == 0, result.output
    assert "Imported: 3 transactions" in result.output
    assert "Linked: 2, categorized: 0" in result.output

    result = run("category", "create", "Repairs", "--qb-name", "2100 Visa")
    assert result.exit_code == 0

    result = run("categorize", "auto")
    assert result.exit_code == 0
    assert "Categorized 1 of 3 transactions" in result.output

    result = run("link")
    assert "Linked 0 of 1 transactions" in result.output
    assert "Remaining: 1" in result.output

    result = run("account", "create", "Visa", "--type", "credit_card", "--qb-name", "2100 Visa")
    assert result.exit_code == 0

    result = run("link")
    assert "Linked 1 of 1 transactions" in result.output
    assert "Via own account: 1" in result.output
    assert "Remaining: 0" in result.output


def test_mapping_type_memory(run):
    result = run("mapping", "type", "Credit Card Credit", "income")
    assert result.exit_code == 0
    assert "'Credit Card Credit' is now income" in result.output

    result = run("mapping", "type", "Credit Card Credit", "clear")
    assert "Cleared mapping for 'Credit Card Credit'" in result.output


def test_invalid_decision(run, fixtures_dir):
    result = run("import", "gl", str(fixtures_dir / "general_ledger.csv"), "--decide", "2100 Visa=savings")
    assert result.exit_code == 1
    assert "Unknown mapping type 'savings'" in result.output


def test_help_does_not_need_user(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "QuickBooks" in result.output
