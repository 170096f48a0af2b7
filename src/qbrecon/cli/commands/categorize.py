"""Category assignment commands."""

import click
from qbrecon.cli.account_resolution import resolve_category_or_exit
from qbrecon.cli.error_handling import handle_domain_error
from qbrecon.domain.categorization import CategorizationService
from qbrecon.domain.category import CategoryService
from qbrecon.domain.errors import DomainError
from qbrecon.domain.transaction import TransactionService


@click.group()
def categorize_group():
    """Assign categories to transactions."""
    pass


@categorize_group.command("auto")
@click.option("--all", "recategorize_all", is_flag=True, help="Also revisit categorized transactions")
@click.pass_context
def categorize_auto(ctx, recategorize_all: bool):
    """Categorize transactions from their QuickBooks account names."""
    try:
        service = CategorizationService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    result = service.categorize_transactions(recategorize_all=recategorize_all)
    click.echo(f"Categorized {result.categorized} of {result.total} transactions")
    for txn_id, error in result.failures:
        click.echo(f"  Transaction {txn_id}: {error}", err=True)


@categorize_group.command("set")
@click.argument("transaction_ids", nargs=-1, required=True, type=int)
@click.argument("category", nargs=1)
@click.pass_context
def categorize_transaction(ctx, transaction_ids: tuple[int, ...], category: str):
    """Assign a category (name or ID) to one or more transactions.

    Examples:
        qbrecon categorize set 1 Groceries
        qbrecon categorize set 1 2 3 4 5 "Office Supplies"
    """
    db = ctx.obj["db"]
    try:
        service = TransactionService(db, ctx.obj["user_id"])
        category_service = CategoryService(db, service.user_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    # Validate category exists before processing any transactions
    category_id = resolve_category_or_exit(ctx, category_service, category)

    # Remove duplicates while preserving order
    unique_ids = list(dict.fromkeys(transaction_ids))
    errors = []
    for txn_id in unique_ids:
        try:
            service.update_category(txn_id, category_id)
        except DomainError as e:
            errors.append((txn_id, str(e)))

    click.echo(f"Categorized {len(unique_ids) - len(errors)} of {len(unique_ids)} transactions")
    if errors:
        for txn_id, error in errors:
            click.echo(f"  Transaction {txn_id}: {error}", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register categorize commands with main CLI."""
    cli.add_command(categorize_group, name="categorize")
