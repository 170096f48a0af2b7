"""Date range options shared by commands that show a period of a ledger."""

from datetime import date
from typing import Mapping

import click

from qbrecon.utils.date_parser import get_date_range, parse_date


def _fail(ctx: click.Context, message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    ctx.exit(1)


def _parse_bound(ctx: click.Context, label: str, value: str | None) -> date | None:
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        _fail(ctx, f"Invalid {label} date: {e}")


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: Mapping[str, bool],
) -> tuple[date | None, date | None]:
    """Turn --start-date/--end-date or a single period flag into a date range.

    Either bound may be None (open-ended). Exits with status 1 on conflicting
    or unparseable options.
    """
    periods = [name for name, is_set in period_flags.items() if is_set]
    if len(periods) > 1:
        flags = ", ".join(f"--{name}" for name in period_flags)
        _fail(ctx, f"Only one period option ({flags}) can be specified at a time.")
    if periods:
        if start_date or end_date:
            _fail(ctx, "Period options cannot be combined with --start-date or --end-date.")
        return get_date_range(periods[0])

    start = _parse_bound(ctx, "start", start_date)
    end = _parse_bound(ctx, "end", end_date)
    if start is not None and end is not None and start > end:
        _fail(ctx, f"Start date {start} is after end date {end}.")
    return start, end
