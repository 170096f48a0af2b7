"""Main CLI entry point."""

import logging
import os

import click
from qbrecon.database.factories import create_sqlite_database

# Import and register all commands at module level
from qbrecon.cli.commands import (
    account,
    balance,
    categorize,
    category,
    debt,
    duplicates,
    import_cmd,
    link,
    mapping,
)

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Configure logging from QBRECON_LOG_LEVEL, or DEBUG when verbose."""
    level = "DEBUG" if verbose else os.environ.get("QBRECON_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides QBRECON_DB_PATH environment variable)",
    envvar="QBRECON_DB_PATH",
)
@click.option(
    "--user",
    "user_id",
    help="User the data belongs to (overrides QBRECON_USER environment variable)",
    envvar="QBRECON_USER",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, db_path: str | None, user_id: str | None, verbose: bool):
    """qbrecon - QuickBooks reconciliation.

    Import QuickBooks Transaction Detail and General Ledger exports, map
    their account names onto your own accounts and categories, and derive
    balances, net worth and debt payoff projections.
    """
    ctx.ensure_object(dict)
    configure_logging(verbose)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["user_id"] = user_id
        logger.debug("Using database %s as user %s", db_path or "default", user_id)


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
import_cmd.register_commands(cli)
mapping.register_commands(cli)
link.register_commands(cli)
categorize.register_commands(cli)
duplicates.register_commands(cli)
balance.register_commands(cli)
debt.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
