"""QuickBooks name mapping commands."""

from pathlib import Path

import click
from qbrecon.cli.account_resolution import resolve_account_or_exit, resolve_category_or_exit
from qbrecon.cli.error_handling import handle_domain_error
from qbrecon.cli.mapping_decisions import DECIDE_HELP, build_pending, echo_unmapped
from qbrecon.domain.account import AccountService
from qbrecon.domain.category import CategoryService
from qbrecon.domain.classification import ClassificationService
from qbrecon.domain.errors import DomainError
from qbrecon.domain.qb_mapping import QBMappingService
from qbrecon.domain.quickbooks_import import ImportDialect, QuickBooksImportService

DIALECTS = {"gl": ImportDialect.GENERAL_LEDGER, "detail": ImportDialect.TRANSACTION_DETAIL}


@click.group()
def mapping_group():
    """Map QuickBooks account names to accounts and categories."""
    pass


def _mapping_service(ctx) -> QBMappingService:
    try:
        return QBMappingService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)


@mapping_group.command("list")
@click.pass_context
def list_mappings(ctx):
    """List every mapping record."""
    service = _mapping_service(ctx)
    records = service.list_all_mappings()
    if not records:
        click.echo("No mappings found.")
        return

    click.echo("\nMappings:")
    click.echo("-" * 80)
    for record in records:
        target = f" -> {record.target}" if record.target else ""
        click.echo(f"{record.qb_name:40s} {record.mapping_type.value:10s} ({record.source}){target}")


@mapping_group.command("classify")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "dialect",
    type=click.Choice(sorted(DIALECTS)),
    default="gl",
    help="Export layout (default: gl)",
)
@click.option("--decide", "decisions", multiple=True, help=DECIDE_HELP)
@click.option("--accept-suggestions", is_flag=True, help="Save the suggestion for every open name")
@click.pass_context
def classify_file(ctx, file: str, dialect: str, decisions, accept_suggestions: bool):
    """Show how the names in an export are mapped, and save decisions.

    Without --decide or --accept-suggestions nothing is written.
    """
    db = ctx.obj["db"]
    try:
        import_service = QuickBooksImportService(db, ctx.obj["user_id"])
        path = Path(file)
        parse_result = import_service.ingest(path.read_bytes(), DIALECTS[dialect], path.name)
        classification = import_service.classify(parse_result)
    except DomainError as e:
        handle_domain_error(ctx, e)

    for item in classification.mapped:
        target = f" -> {item.target.name}" if item.target is not None else ""
        click.echo(f"  {item.name:40s} {item.mapping_type.value}{target}")

    if not decisions and not accept_suggestions:
        echo_unmapped(classification)
        if classification.is_complete:
            click.echo("\nAll names are mapped.")
        return

    try:
        pending = build_pending(
            ctx,
            decisions,
            classification,
            import_service.account_service,
            CategoryService(db, import_service.user_id),
            accept_suggestions,
        )
        service = ClassificationService(db, import_service.user_id)
        decided = [name for name in classification.unmapped_names if name in pending]
        summary = service.resolve_pending(decided, pending)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nSaved {summary.total} decisions ({len(summary.created_accounts)} new accounts)")
    remaining = service.classify(classification.unmapped_names)
    echo_unmapped(remaining)


@mapping_group.command("ignore")
@click.argument("qb_name")
@click.pass_context
def ignore_name(ctx, qb_name: str):
    """Skip rows of a QuickBooks account on every import."""
    service = _mapping_service(ctx)
    try:
        service.add_ignored(qb_name)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Ignoring '{qb_name}'")


@mapping_group.command("unignore")
@click.argument("qb_name")
@click.pass_context
def unignore_name(ctx, qb_name: str):
    """Stop ignoring a QuickBooks account."""
    service = _mapping_service(ctx)
    if service.remove_ignored(qb_name):
        click.echo(f"No longer ignoring '{qb_name}'")
    else:
        click.echo(f"'{qb_name}' was not ignored")


@mapping_group.command("map-account")
@click.argument("qb_name")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def map_account(ctx, qb_name: str, account: str):
    """Attach a QuickBooks name to an account (name or ID)."""
    service = _mapping_service(ctx)
    account_id = resolve_account_or_exit(ctx, AccountService(service.db, service.user_id), account)
    try:
        added = service.add_account_alias(qb_name, account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if added:
        click.echo(f"Mapped '{qb_name}' to account {account_id}")
    else:
        click.echo(f"'{qb_name}' is already mapped to account {account_id}")


@mapping_group.command("map-category")
@click.argument("qb_name")
@click.argument("category", metavar="CATEGORY")
@click.pass_context
def map_category(ctx, qb_name: str, category: str):
    """Attach a QuickBooks name to a category (name or ID)."""
    service = _mapping_service(ctx)
    category_id = resolve_category_or_exit(ctx, CategoryService(service.db, service.user_id), category)
    try:
        added = service.add_category_alias(qb_name, category_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if added:
        click.echo(f"Mapped '{qb_name}' to category {category_id}")
    else:
        click.echo(f"'{qb_name}' is already mapped to category {category_id}")


@mapping_group.command("clear")
@click.argument("qb_name")
@click.pass_context
def clear_name(ctx, qb_name: str):
    """Forget every decision about a QuickBooks name."""
    service = _mapping_service(ctx)
    if service.clear_mapping(qb_name):
        click.echo(f"'{qb_name}' is unmapped")
    else:
        click.echo(f"No mapping for '{qb_name}'")


@mapping_group.command("type")
@click.argument("qb_transaction_type")
@click.argument("mapped_type", type=click.Choice(["income", "expense", "clear"], case_sensitive=False))
@click.pass_context
def map_transaction_type(ctx, qb_transaction_type: str, mapped_type: str):
    """Remember whether a QuickBooks transaction type is income or expense.

    Use 'clear' to forget the choice.

    Examples:
        qbrecon mapping type "Credit Card Credit" income
    """
    service = _mapping_service(ctx)
    if mapped_type.lower() == "clear":
        if service.remove_transaction_type_mapping(qb_transaction_type):
            click.echo(f"Cleared mapping for '{qb_transaction_type}'")
        else:
            click.echo(f"No mapping for '{qb_transaction_type}'")
        return

    try:
        service.set_transaction_type_mapping(qb_transaction_type, mapped_type.lower())
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"'{qb_transaction_type}' is now {mapped_type.lower()}")


@mapping_group.command("similar")
@click.argument("qb_name")
@click.option("--threshold", type=float, default=0.65, show_default=True, help="Minimum similarity (0-1)")
@click.pass_context
def similar_names(ctx, qb_name: str, threshold: float):
    """Suggest unmapped QuickBooks names that look like QB_NAME."""
    try:
        service = ClassificationService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    matches = service.suggest_similar(qb_name, threshold=threshold)
    if not matches:
        click.echo("No similar names found.")
        return
    for match in matches:
        click.echo(f"  {match.name:40s} {match.similarity:.0%}")


def register_commands(cli):
    """Register mapping commands with main CLI."""
    cli.add_command(mapping_group, name="mapping")
