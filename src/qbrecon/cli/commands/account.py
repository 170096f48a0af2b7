"""Account management commands."""

from decimal import Decimal

import click
from qbrecon.cli.account_resolution import resolve_account_or_exit
from qbrecon.cli.error_handling import handle_domain_error
from qbrecon.domain.account import AccountService
from qbrecon.domain.entities import AccountType, NetWorthBucket
from qbrecon.domain.errors import DomainError
from qbrecon.utils.amount_parser import parse_amount
from qbrecon.utils.date_parser import parse_date

ACCOUNT_TYPES = [t.value for t in AccountType]
BUCKETS = [b.value for b in NetWorthBucket]


def _amount_option(ctx, value: str | None, label: str) -> Decimal | None:
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    default="checking",
    help="Account type (default: checking)",
)
@click.option(
    "--bucket",
    type=click.Choice(BUCKETS, case_sensitive=False),
    help="Net worth bucket (derived from the type if not provided)",
)
@click.option("--institution", help="Bank or brokerage name")
@click.option("--qb-name", "qb_names", multiple=True, help="QuickBooks account name (repeatable)")
@click.pass_context
def create_account(ctx, name: str, account_type: str, bucket: str | None, institution: str | None, qb_names):
    """Create a new account.

    Examples:
        qbrecon account create "Chase Checking" --qb-name "1010 Chase Checking"
        qbrecon account create "Visa" --type credit_card --qb-name "2100 Visa"
    """
    try:
        service = AccountService(ctx.obj["db"], ctx.obj["user_id"])
        account_id = service.create_account(
            name=name,
            account_type=account_type.lower(),
            net_worth_bucket=bucket.lower() if bucket else None,
            institution=institution,
            qb_account_names=qb_names,
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--active-only", is_flag=True, help="Hide inactive accounts")
@click.pass_context
def list_accounts(ctx, active_only: bool):
    """List all accounts with their QuickBooks names."""
    try:
        service = AccountService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    accounts = service.list_accounts(active_only=active_only)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:24s} | {acc.account_type.value:12s} | "
            f"{acc.net_worth_bucket.value}{status}"
        )
        if acc.qb_account_names:
            click.echo(f"        QuickBooks: {', '.join(acc.qb_account_names)}")


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--name", help="New display name")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES, case_sensitive=False))
@click.option("--bucket", type=click.Choice(BUCKETS, case_sensitive=False))
@click.option("--institution")
@click.option("--active/--inactive", "is_active", default=None, help="Include in totals or not")
@click.option("--apr", help="Interest rate in percent, e.g. 19.99")
@click.option("--min-payment", help="Minimum monthly payment")
@click.option("--target-date", help="Target payoff date")
@click.option("--priority", type=int, help="Manual payoff priority (1 is paid first)")
@click.option("--clear-priority", is_flag=True, help="Remove the manual payoff priority")
@click.option("--market-value", help="Current market value (investment and retirement accounts)")
@click.option("--add-qb-name", "add_qb_names", multiple=True, help="Add a QuickBooks alias")
@click.option("--remove-qb-name", "remove_qb_names", multiple=True, help="Remove a QuickBooks alias")
@click.pass_context
def update_account(
    ctx,
    account: str,
    name: str | None,
    account_type: str | None,
    bucket: str | None,
    institution: str | None,
    is_active: bool | None,
    apr: str | None,
    min_payment: str | None,
    target_date: str | None,
    priority: int | None,
    clear_priority: bool,
    market_value: str | None,
    add_qb_names,
    remove_qb_names,
) -> None:
    """Update an account.

    ACCOUNT can be an account name or ID. Only the options given are changed.

    Examples:
        qbrecon account update "Visa" --apr 22.9 --min-payment 45
        qbrecon account update 3 --add-qb-name "2100 Visa (old)"
    """
    try:
        service = AccountService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)
    account_id = resolve_account_or_exit(ctx, service, account)

    payoff_date = None
    if target_date is not None:
        try:
            payoff_date = parse_date(target_date)
        except ValueError as e:
            click.echo(f"Error: Invalid target date: {e}", err=True)
            ctx.exit(1)

    try:
        service.update_account(
            account_id,
            name=name,
            account_type=account_type.lower() if account_type else None,
            net_worth_bucket=bucket.lower() if bucket else None,
            institution=institution,
            is_active=is_active,
            interest_rate=_amount_option(ctx, apr, "APR"),
            minimum_payment=_amount_option(ctx, min_payment, "minimum payment"),
            target_payoff_date=payoff_date,
            payoff_priority=priority,
            clear_payoff_priority=clear_priority,
            market_value=_amount_option(ctx, market_value, "market value"),
        )
        for qb_name in add_qb_names:
            if not service.add_qb_name(account_id, qb_name):
                click.echo(f"QuickBooks name '{qb_name}' already attached")
        for qb_name in remove_qb_names:
            if not service.remove_qb_name(account_id, qb_name):
                click.echo(f"QuickBooks name '{qb_name}' was not attached")
        click.echo(f"Updated account {account_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def delete_account(ctx, account: str) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID. Its transactions are kept and
    become unlinked; run 'link' after mapping their QuickBooks names again.

    Examples:
        qbrecon account delete "Old Savings"
        qbrecon account delete 1
    """
    try:
        service = AccountService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)
    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.get_account(account_id)

    if not click.confirm(f"Are you sure you want to delete account '{account_obj.name}' (ID: {account_id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        detached = service.delete_account(account_id)
        click.echo(f"Deleted account '{account_obj.name}'")
        if detached:
            click.echo(f"{detached} transaction{'s' if detached != 1 else ''} unlinked")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
