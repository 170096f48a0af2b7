"""Debt payoff command."""

import click
from qbrecon.cli.error_handling import handle_domain_error
from qbrecon.domain.debt import DebtService, PayoffStrategy
from qbrecon.domain.errors import DomainError


@click.command("debt")
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in PayoffStrategy], case_sensitive=False),
    help="Payoff order (default: manual when any priority is set, else avalanche)",
)
@click.pass_context
def show_debts(ctx, strategy: str | None):
    """Show liabilities in payoff order with payoff projections."""
    try:
        service = DebtService(ctx.obj["db"], ctx.obj["user_id"])
        view = service.compute_debt_view(strategy.lower() if strategy else None)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not view.debts:
        click.echo("No debts found.")
        return

    click.echo(f"\nDebts ({view.strategy.value}):")
    click.echo("-" * 90)
    for index, projection in enumerate(view.debts, start=1):
        debt = projection.debt
        apr = f"{debt.interest_rate:.2f}%" if debt.interest_rate is not None else "-"
        payment = f"{debt.minimum_payment:,.2f}" if debt.minimum_payment is not None else "-"
        payoff = projection.payoff_label
        if projection.payoff_date is not None and projection.months_to_payoff:
            payoff += f" ({projection.payoff_date:%b %Y})"
        click.echo(
            f"{index:2d}. {debt.name:24s} {abs(debt.display_balance):>12,.2f}  APR {apr:>7s}  "
            f"min {payment:>9s}  {payoff}"
        )

    click.echo("-" * 90)
    click.echo(f"Total debt:             {view.total_debt:,.2f}")
    click.echo(f"Total minimum payments: {view.total_minimum_payments:,.2f}")
    click.echo(f"Monthly interest:       {view.total_monthly_interest:,.2f}")
    click.echo(f"Weighted APR:           {view.weighted_apr:.2f}%")


def register_commands(cli):
    """Register debt command with main CLI."""
    cli.add_command(show_debts)
