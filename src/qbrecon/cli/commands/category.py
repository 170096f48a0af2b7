"""Category management commands."""

import click
from qbrecon.cli.account_resolution import resolve_category_or_exit
from qbrecon.cli.error_handling import handle_domain_error
from qbrecon.domain.category import CategoryService
from qbrecon.domain.errors import DomainError


def print_category_tree(categories, indent: int = 0) -> None:
    """Print root categories followed by their children."""
    by_parent: dict = {}
    for cat in categories:
        by_parent.setdefault(cat.parent_id, []).append(cat)

    def _print(parent_id, depth):
        for cat in by_parent.get(parent_id, []):
            prefix = "  " * depth
            aliases = f" [{', '.join(cat.qb_category_names)}]" if cat.qb_category_names else ""
            click.echo(f"{prefix}{cat.name} ({cat.category_type.value}, ID: {cat.id}){aliases}")
            _print(cat.id, depth + 1)

    _print(None, indent)


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.option(
    "--type",
    "category_type",
    type=click.Choice(["expense", "income", "transfer"], case_sensitive=False),
    help="Only show categories of this type",
)
@click.pass_context
def list_categories(ctx, category_type: str | None):
    """List all categories in tree format."""
    try:
        service = CategoryService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    categories = service.list_categories(category_type.lower() if category_type else None)
    if not categories:
        click.echo("No categories found. Use 'category create' to add one.")
        return

    click.echo("\nCategories:")
    print_category_tree(categories)


@category_group.command("create")
@click.argument("name")
@click.option("--parent", help="Parent category name or ID")
@click.option("--type", "category_type", type=click.Choice(["expense", "income", "transfer"], case_sensitive=False), default="expense", help="Category type (default: expense)")
@click.option("--color", help="Display color, e.g. #4caf50")
@click.option("--qb-name", "qb_names", multiple=True, help="QuickBooks account name (repeatable)")
@click.pass_context
def create_category(ctx, name: str, parent: str | None, category_type: str, color: str | None, qb_names):
    """Create a new category."""
    try:
        service = CategoryService(ctx.obj["db"], ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    parent_id = resolve_category_or_exit(ctx, service, parent) if parent else None
    try:
        category_id = service.create_category(
            name=name,
            category_type=category_type.lower(),
            parent_id=parent_id,
            color=color,
            qb_category_names=qb_names,
        )
        parent_str = f" under '{parent}'" if parent else ""
        click.echo(f"Created category '{name}'{parent_str} (ID: {category_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
