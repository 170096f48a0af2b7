"""QuickBooks and holdings import commands."""

from pathlib import Path

import click
from qbrecon.cli.account_resolution import resolve_account_or_exit
from qbrecon.cli.error_handling import echo_warnings, handle_domain_error
from qbrecon.cli.mapping_decisions import DECIDE_HELP, build_pending, echo_unmapped
from qbrecon.domain.account import AccountService
from qbrecon.domain.category import CategoryService
from qbrecon.domain.errors import DomainError, MappingIncompleteError
from qbrecon.domain.quickbooks_import import ImportDialect, QuickBooksImportService
from qbrecon.utils.date_parser import parse_date


@click.group()
def import_group():
    """Import QuickBooks exports and brokerage holdings."""
    pass


def _quickbooks_options(func):
    func = click.option(
        "--accept-suggestions",
        is_flag=True,
        help="Use the suggested disposition for every name not decided explicitly",
    )(func)
    func = click.option("--decide", "decisions", multiple=True, help=DECIDE_HELP)(func)
    func = click.option("--account", help="Link every row to this account (name or ID)")(func)
    func = click.argument("file", type=click.Path(exists=True, dir_okay=False))(func)
    return func


def _run_quickbooks_import(
    ctx, file: str, dialect: ImportDialect, account: str | None, decisions, accept_suggestions: bool
) -> None:
    db = ctx.obj["db"]
    try:
        service = QuickBooksImportService(db, ctx.obj["user_id"])
        account_service = AccountService(db, service.user_id)
        category_service = CategoryService(db, service.user_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None
    path = Path(file)

    try:
        parse_result = service.ingest(path.read_bytes(), dialect, path.name)
        classification = service.classify(parse_result)
        pending = build_pending(
            ctx, decisions, classification, account_service, category_service, accept_suggestions
        )
        result = service.persist(
            parse_result, path.name, dialect, pending=pending, account_id=account_id
        )
    except MappingIncompleteError as e:
        echo_unmapped(classification, pending)
        click.echo("\nDecide each name with --decide NAME=TYPE or use --accept-suggestions.", err=True)
        handle_domain_error(ctx, e)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo("\nImport complete:")
    click.echo(f"  Batch: {result.batch_id}")
    click.echo(f"  Imported: {result.inserted_count} transactions")
    click.echo(f"  Linked: {result.linked_count}, categorized: {result.categorized_count}")
    if result.skipped_ignored:
        click.echo(f"  Skipped: {result.skipped_ignored} from ignored accounts")
    if result.skipped_duplicates:
        click.echo(f"  Skipped: {result.skipped_duplicates} duplicates")
    echo_warnings(result.errors)


@import_group.command("gl")
@_quickbooks_options
@click.pass_context
def import_general_ledger(ctx, file: str, account: str | None, decisions, accept_suggestions: bool):
    """Import a QuickBooks General Ledger export (CSV or Excel).

    Examples:
        qbrecon import gl ledger.csv --accept-suggestions
        qbrecon import gl ledger.xlsx --decide "2100 Visa=liability:Visa Card"
    """
    _run_quickbooks_import(
        ctx, file, ImportDialect.GENERAL_LEDGER, account, decisions, accept_suggestions
    )


@import_group.command("detail")
@_quickbooks_options
@click.pass_context
def import_transaction_detail(ctx, file: str, account: str | None, decisions, accept_suggestions: bool):
    """Import a QuickBooks Transaction Detail export (CSV or Excel)."""
    _run_quickbooks_import(
        ctx, file, ImportDialect.TRANSACTION_DETAIL, account, decisions, accept_suggestions
    )


@import_group.command("investments")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", help="Investment account name or ID")
@click.option("--as-of", help="Snapshot date; replaces an earlier snapshot of that date")
@click.pass_context
def import_investments(ctx, file: str, account: str | None, as_of: str | None):
    """Import a brokerage positions export."""
    db = ctx.obj["db"]
    try:
        service = QuickBooksImportService(db, ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    account_id = resolve_account_or_exit(ctx, service.account_service, account) if account else None
    as_of_date = None
    if as_of is not None:
        try:
            as_of_date = parse_date(as_of)
        except ValueError as e:
            click.echo(f"Error: Invalid date: {e}", err=True)
            ctx.exit(1)

    path = Path(file)
    try:
        result = service.import_investments(
            path.read_bytes(), path.name, account_id=account_id, as_of=as_of_date
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo("\nImport complete:")
    click.echo(f"  Batch: {result.batch_id}")
    click.echo(f"  Imported: {result.inserted_count} holdings")
    click.echo(f"  Total value: {result.total_value:,.2f}")
    if result.skipped_count:
        click.echo(f"  Skipped: {result.skipped_count} rows")
    echo_warnings(result.errors)


@import_group.command("list")
@click.pass_context
def list_batches(ctx):
    """List import batches, newest first."""
    try:
        service = QuickBooksImportService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    batches = service.list_import_batches()
    if not batches:
        click.echo("No imports found.")
        return

    click.echo("\nImports:")
    click.echo("-" * 80)
    for batch in batches:
        click.echo(
            f"ID: {batch.id:3d} | {batch.created_at:%Y-%m-%d %H:%M} | {batch.status.value:10s} | "
            f"{batch.record_count:5d} | {batch.filename}"
        )


@import_group.command("show")
@click.argument("batch_id", type=int)
@click.pass_context
def show_batch(ctx, batch_id: int):
    """Show what an import batch contains."""
    try:
        service = QuickBooksImportService(ctx.obj["db"], ctx.obj["user_id"])
        stats = service.get_import_batch_stats(batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    batch = stats.batch
    click.echo(f"\nImport {batch.id}: {batch.filename}")
    click.echo(f"  Type: {batch.file_type.value}")
    click.echo(f"  Status: {batch.status.value}")
    if batch.error_message:
        click.echo(f"  Error: {batch.error_message}")
    click.echo(f"  Transactions: {stats.transaction_count}")
    click.echo(f"  Linked: {stats.linked_count}, categorized: {stats.categorized_count}")
    click.echo(f"  Income: {stats.total_income:,.2f}")
    click.echo(f"  Expenses: {stats.total_expenses:,.2f}")
    if stats.first_date is not None:
        click.echo(f"  Dates: {stats.first_date} to {stats.last_date}")


@import_group.command("delete")
@click.argument("batch_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_batch(ctx, batch_id: int, yes: bool):
    """Delete an import batch and every transaction it created."""
    try:
        service = QuickBooksImportService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(f"Delete import {batch_id} and its transactions?"):
        click.echo("Deletion cancelled.")
        return

    try:
        filename, deleted = service.delete_import_batch(batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted import '{filename}' ({deleted} transactions)")


@import_group.command("clear")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear_batches(ctx, yes: bool):
    """Delete every import batch and its transactions."""
    try:
        service = QuickBooksImportService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm("Delete ALL imports and their transactions?"):
        click.echo("Deletion cancelled.")
        return

    batches, deleted = service.clear_all_imports()
    click.echo(f"Deleted {batches} imports ({deleted} transactions)")


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_group, name="import")
