"""Duplicate detection commands."""

import click
from qbrecon.cli.error_handling import handle_domain_error
from qbrecon.domain.duplicates import DuplicateResolution, DuplicateService, select_all_but_earliest
from qbrecon.domain.errors import DomainError

RESOLUTIONS = [r.value for r in DuplicateResolution]


def _service(ctx) -> DuplicateService:
    try:
        return DuplicateService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)


def _describe(txn) -> str:
    return f"#{txn.id:<5d} {txn.transaction_date} {txn.amount:>12,.2f}  {txn.description or txn.memo or ''}"


@click.group()
def duplicates_group():
    """Find and remove duplicate transactions."""
    pass


@duplicates_group.command("find")
@click.pass_context
def find_duplicates(ctx):
    """List groups of identical transactions."""
    groups = _service(ctx).find_duplicates()
    if not groups:
        click.echo("No duplicates found.")
        return

    extra = len(select_all_but_earliest(groups))
    click.echo(f"\n{len(groups)} duplicate groups ({extra} extra transactions):")
    for group in groups:
        click.echo(
            f"\n{group.transaction_date}  {group.amount:,.2f}  {group.description}  [{group.qb_account}]"
        )
        for txn in group.transactions:
            marker = "keep" if txn.id == group.keep.id else "    "
            click.echo(f"  {marker} {_describe(txn)}")


@duplicates_group.command("delete")
@click.argument("transaction_ids", nargs=-1, type=int)
@click.option(
    "--all-but-earliest",
    is_flag=True,
    help="Delete every duplicate except the earliest of each group",
)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_duplicates(ctx, transaction_ids: tuple[int, ...], all_but_earliest: bool, yes: bool):
    """Delete duplicate transactions by ID."""
    service = _service(ctx)
    ids = list(transaction_ids)
    if all_but_earliest:
        ids.extend(select_all_but_earliest(service.find_duplicates()))
    ids = list(dict.fromkeys(ids))

    if not ids:
        click.echo("Nothing to delete.")
        return
    if not yes and not click.confirm(f"Delete {len(ids)} transactions?"):
        click.echo("Deletion cancelled.")
        return

    try:
        deleted = service.delete_transactions(ids)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted {deleted} transactions")


@duplicates_group.command("potential")
@click.argument("batch_id", type=int)
@click.option(
    "--decide",
    "decisions",
    multiple=True,
    help=f"NEW_ID=DECISION with DECISION one of {', '.join(RESOLUTIONS)}; undecided pairs keep both",
)
@click.pass_context
def potential_duplicates(ctx, batch_id: int, decisions):
    """Show near duplicates between an import and earlier data, and resolve them."""
    service = _service(ctx)
    try:
        pairs = service.find_potential_duplicates(batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not pairs:
        click.echo("No potential duplicates found.")
        return

    for pair in pairs:
        click.echo(f"\nnew      {_describe(pair.new)}")
        click.echo(f"existing {_describe(pair.existing)}")

    if not decisions:
        return

    parsed = {}
    for text in decisions:
        new_id, sep, value = text.partition("=")
        if not sep or not new_id.strip().isdigit() or value.strip().lower() not in RESOLUTIONS:
            click.echo(f"Error: Invalid decision '{text}', expected NEW_ID=DECISION", err=True)
            ctx.exit(1)
        parsed[int(new_id)] = DuplicateResolution(value.strip().lower())

    result = service.resolve_potential_duplicates(pairs, parsed)
    click.echo(
        f"\nDeleted {result.deleted} transactions "
        f"(kept new: {result.kept_new}, kept existing: {result.kept_existing}, kept both: {result.kept_both})"
    )


def register_commands(cli):
    """Register duplicates commands with main CLI."""
    cli.add_command(duplicates_group, name="duplicates")
