"""Balance and net worth commands."""

from datetime import date

import click
from qbrecon.cli.account_resolution import resolve_account_or_exit
from qbrecon.cli.date_filters import resolve_cli_date_range
from qbrecon.cli.error_handling import handle_domain_error
from qbrecon.domain.balance import BalanceService
from qbrecon.domain.errors import DomainError
from qbrecon.utils.amount_parser import parse_amount
from qbrecon.utils.date_parser import parse_date


def _service(ctx) -> BalanceService:
    try:
        return BalanceService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)


@click.group()
def balance_group():
    """Show and anchor account balances."""
    pass


@balance_group.command("show")
@click.argument("account", metavar="ACCOUNT", required=False)
@click.option("--include-inactive", is_flag=True, help="Also show inactive accounts")
@click.pass_context
def show_balances(ctx, account: str | None, include_inactive: bool):
    """Show current balances, for one account (name or ID) or all."""
    service = _service(ctx)

    if account is not None:
        account_id = resolve_account_or_exit(ctx, service.account_service, account)
        result = service.compute_account_balance(account_id)
        click.echo(f"Balance: {result.balance:,.2f}")
        anchor = f" as of {result.starting_date}" if result.starting_date else ""
        click.echo(f"  Starting balance: {result.starting_balance:,.2f}{anchor}")
        click.echo(f"  Transactions: {result.transaction_count}")
        return

    items = service.accounts_with_balances(active_only=not include_inactive)
    if not items:
        click.echo("No accounts found.")
        return

    click.echo("\nBalances:")
    click.echo("-" * 70)
    for item in items:
        market = " (market value)" if item.display_balance != item.current_balance else ""
        click.echo(
            f"ID: {item.account.id:3d} | {item.account.name:24s} | "
            f"{item.display_balance:>14,.2f}{market}"
        )


@balance_group.command("set")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount")
@click.option("--date", "balance_date", help="Date of the balance (default: today)")
@click.pass_context
def set_balance(ctx, account: str, amount: str, balance_date: str | None):
    """Anchor an account's balance on a date.

    Replaces any earlier manual anchor. Transactions dated on or after the
    anchor date are added to it.

    Examples:
        qbrecon balance set "Chase Checking" 2500.00 --date 2024-01-01
        qbrecon balance set Visa -- -812.40
    """
    service = _service(ctx)
    account_id = resolve_account_or_exit(ctx, service.account_service, account)

    try:
        value = parse_amount(amount)
        anchor_date = parse_date(balance_date) if balance_date else date.today()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        service.set_starting_balance(account_id, value, anchor_date)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Starting balance set to {value:,.2f} as of {anchor_date}")


@balance_group.command("ledger")
@click.argument("account", metavar="ACCOUNT")
@click.option("--start-date", help="First date shown (YYYY-MM-DD or relative)")
@click.option("--end-date", help="Last date shown (YYYY-MM-DD or relative)")
@click.option("--this-month", is_flag=True)
@click.option("--this-year", is_flag=True)
@click.option("--last-month", is_flag=True)
@click.option("--last-year", is_flag=True)
@click.pass_context
def show_ledger(
    ctx,
    account: str,
    start_date: str | None,
    end_date: str | None,
    this_month: bool,
    this_year: bool,
    last_month: bool,
    last_year: bool,
):
    """Show an account's transactions with a running balance."""
    service = _service(ctx)
    account_id = resolve_account_or_exit(ctx, service.account_service, account)
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags={
            "this-month": this_month,
            "this-year": this_year,
            "last-month": last_month,
            "last-year": last_year,
        },
    )

    ledger = service.compute_ledger(account_id, start_date=start, end_date=end)
    anchor = f" as of {ledger.starting_date}" if ledger.starting_date else ""
    click.echo(f"Starting balance: {ledger.starting_balance:,.2f}{anchor}")
    for row in ledger.rows:
        txn = row.transaction
        click.echo(
            f"{txn.transaction_date}  {row.balance_change:>12,.2f}  {row.running_balance:>14,.2f}  "
            f"{txn.description or ''}"
        )
    click.echo(f"Ending balance: {ledger.final_balance:,.2f}")


@balance_group.command("networth")
@click.pass_context
def show_net_worth(ctx):
    """Show assets, liabilities and net worth over active accounts."""
    totals = _service(ctx).net_worth_totals()
    click.echo(f"Assets:      {totals.total_assets:>14,.2f}")
    click.echo(f"Liabilities: {totals.total_liabilities:>14,.2f}")
    click.echo(f"Net worth:   {totals.net_worth:>14,.2f}")
    if totals.by_bucket:
        click.echo("\nBy bucket:")
        for bucket, amount in sorted(totals.by_bucket.items(), key=lambda kv: kv[0].value):
            click.echo(f"  {bucket.value:12s} {amount:>14,.2f}")


def register_commands(cli):
    """Register balance commands with main CLI."""
    cli.add_command(balance_group, name="balance")
