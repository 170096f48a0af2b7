"""Transaction linking command."""

import click
from qbrecon.cli.error_handling import handle_domain_error
from qbrecon.domain.errors import DomainError
from qbrecon.domain.linking import LinkScope, TransactionLinkingService


@click.command("link")
@click.option("--all", "relink_all", is_flag=True, help="Revisit transactions that are already linked")
@click.option(
    "--primary-only",
    is_flag=True,
    help="Only use each row's own QuickBooks account; amounts are never negated",
)
@click.pass_context
def link_transactions(ctx, relink_all: bool, primary_only: bool):
    """Link transactions to accounts through their QuickBooks names.

    A row is linked through its own QuickBooks account first; failing that,
    through its split account, in which case its amount is negated.
    """
    try:
        service = TransactionLinkingService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    if primary_only:
        result = service.apply_account_mappings(remap_all=relink_all)
    else:
        scope = LinkScope.ALL if relink_all else LinkScope.UNLINKED_ONLY
        result = service.link_transactions(scope)

    click.echo(f"Linked {result.updated} of {result.total} transactions")
    click.echo(f"  Via own account: {result.linked_via_primary}")
    click.echo(f"  Via split account: {result.linked_via_counter}")
    if result.unchanged:
        click.echo(f"  Already linked: {result.unchanged}")
    click.echo(f"  Remaining: {result.remaining}")
    for failure in result.failures:
        click.echo(f"  Transaction {failure.transaction_id}: {failure.error}", err=True)


def register_commands(cli):
    """Register link command with main CLI."""
    cli.add_command(link_transactions)
