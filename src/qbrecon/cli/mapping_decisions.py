"""CLI helpers turning --decide options into pending mapping decisions."""

from __future__ import annotations

import click
from qbrecon.cli.account_resolution import resolve_category_or_exit
from qbrecon.domain.account import AccountService
from qbrecon.domain.category import CategoryService
from qbrecon.domain.classification import (
    BALANCE_SHEET_TYPES,
    ClassificationResult,
    MappingDecision,
    PendingMappings,
)
from qbrecon.domain.entities import MappingType

DECIDE_HELP = (
    "Decision for an unmapped QuickBooks name, as NAME=TYPE or NAME=TYPE:TARGET. "
    "TYPE is ignore, asset, liability, income or expense; TARGET is an account "
    "or category name or ID (a new account is created for an unknown account name)."
)

_TYPE_ALIASES = {"ignore": MappingType.IGNORED}


def parse_mapping_type(ctx: click.Context, value: str) -> MappingType:
    value = value.strip().lower()
    try:
        mapping_type = _TYPE_ALIASES.get(value) or MappingType(value)
    except ValueError:
        mapping_type = None
    if mapping_type is None or mapping_type == MappingType.UNMAPPED:
        click.echo(
            f"Error: Unknown mapping type '{value}' (use ignore, asset, liability, income or expense)",
            err=True,
        )
        ctx.exit(1)
    return mapping_type


def parse_decision(
    ctx: click.Context,
    text: str,
    account_service: AccountService,
    category_service: CategoryService,
) -> tuple[str, MappingDecision]:
    """Parse NAME=TYPE[:TARGET] into a QuickBooks name and its decision."""
    qb_name, sep, rest = text.partition("=")
    if not sep or not qb_name.strip():
        click.echo(f"Error: Invalid decision '{text}', expected NAME=TYPE[:TARGET]", err=True)
        ctx.exit(1)
    type_text, _, target = rest.partition(":")
    mapping_type = parse_mapping_type(ctx, type_text)
    target = target.strip()

    if not target or mapping_type == MappingType.IGNORED:
        return qb_name.strip(), MappingDecision(mapping_type)

    if mapping_type in BALANCE_SHEET_TYPES:
        account = None
        if target.isdigit():
            account = account_service.require_account(int(target))
        else:
            account = account_service.find_account_by_name(target)
        if account is None:
            return qb_name.strip(), MappingDecision(mapping_type, new_account_name=target)
        return qb_name.strip(), MappingDecision(mapping_type, target_id=account.id)

    category_id = resolve_category_or_exit(ctx, category_service, target)
    return qb_name.strip(), MappingDecision(mapping_type, target_id=category_id)


def build_pending(
    ctx: click.Context,
    decisions,
    classification: ClassificationResult,
    account_service: AccountService,
    category_service: CategoryService,
    accept_suggestions: bool = False,
) -> PendingMappings:
    """Collect explicit decisions, then suggestions for the names still open."""
    pending = PendingMappings()
    for text in decisions:
        qb_name, decision = parse_decision(ctx, text, account_service, category_service)
        pending.set(qb_name, decision)

    if accept_suggestions:
        for item in classification.unmapped:
            if item.name not in pending and item.suggestion != MappingType.UNMAPPED:
                pending.set(item.name, MappingDecision(item.suggestion))
    return pending


def echo_unmapped(classification: ClassificationResult, pending: PendingMappings | None = None) -> None:
    """List unmapped names with their suggested disposition."""
    open_items = [
        item for item in classification.unmapped if pending is None or item.name not in pending
    ]
    if not open_items:
        return
    click.echo("\nUnmapped QuickBooks names:")
    for item in open_items:
        click.echo(f"  {item.name:40s} suggested: {item.suggestion.value}")
