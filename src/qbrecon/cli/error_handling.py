"""CLI error handling helpers."""

from typing import Sequence

import click

from qbrecon.domain.errors import DomainError, MappingIncompleteError

MAX_WARNINGS_SHOWN = 10


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, MappingIncompleteError):
        for name in error.missing:
            click.echo(f"  - {name}", err=True)
    ctx.exit(1)


def echo_warnings(warnings: Sequence[str], limit: int = MAX_WARNINGS_SHOWN) -> None:
    """Print up to limit warnings to stderr, summarizing the rest."""
    if not warnings:
        return
    click.echo(f"  Warnings: {len(warnings)}", err=True)
    for warning in warnings[:limit]:
        click.echo(f"    {warning}", err=True)
    if len(warnings) > limit:
        click.echo(f"    ... and {len(warnings) - limit} more", err=True)
