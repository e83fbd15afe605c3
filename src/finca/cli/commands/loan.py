"""Loan amortization commands."""

from decimal import Decimal

import click
from finca.cli.error_handling import handle_domain_error
from finca.domain.loan import amortization_schedule
from finca.utils.amount_parser import parse_amount
from finca.utils.date_parser import parse_date


@click.group()
def loan_group():
    """Loan calculations."""
    pass


@loan_group.command("schedule")
@click.option("--principal", required=True, help="Loan principal, e.g. 150000 or 150.000,00")
@click.option("--rate", required=True, help="Nominal annual rate in percent, e.g. 3,25")
@click.option("--months", required=True, type=click.IntRange(min=1), help="Number of monthly payments")
@click.option("--start-date", help="Date of the first payment")
@click.pass_context
def schedule(ctx, principal: str, rate: str, months: int, start_date: str | None):
    """Print the French amortization schedule of a loan."""
    try:
        principal_amount = parse_amount(principal)
        annual_rate = parse_amount(rate) / Decimal(100)
        start = parse_date(start_date) if start_date else None
        rows = amortization_schedule(principal_amount, annual_rate, months, start)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"{'#':>4} {'Date':10} {'Payment':>12} {'Interest':>12} {'Principal':>12} {'Balance':>14}")
    for row in rows:
        row_date = row.date.isoformat() if row.date else ""
        click.echo(
            f"{row.period:>4} {row_date:10} {row.payment:>12.2f} {row.interest:>12.2f} "
            f"{row.principal:>12.2f} {row.balance:>14.2f}"
        )
    total_interest = sum(row.interest for row in rows)
    click.echo(f"\nTotal interest: {total_interest:.2f}")


def register_commands(cli):
    """Register loan commands with main CLI."""
    cli.add_command(loan_group, name="loan")
