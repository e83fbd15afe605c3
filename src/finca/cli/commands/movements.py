"""Movement viewing commands."""

import click
from finca.cli.account_resolution import resolve_account_or_exit
from finca.domain.account import AccountService
from finca.utils.date_parser import parse_date


@click.group()
def movements_group():
    """Inspect imported movements."""
    pass


@movements_group.command("list")
@click.option("--account", help="Account name or ID")
@click.option("--start-date", help="Start date (dd/mm/yyyy or yyyy-mm-dd)")
@click.option("--end-date", help="End date (dd/mm/yyyy or yyyy-mm-dd)")
@click.option("--verbose", "-v", is_flag=True, help="Show value date, balance and source row")
@click.pass_context
def list_movements(ctx, account: str | None, start_date: str | None, end_date: str | None, verbose: bool):
    """List movements with optional filters."""
    db = ctx.obj["db"]
    account_service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None

    start = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    end = None
    if end_date:
        try:
            end = parse_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    movements = db.list_movements(account_id=account_id, start_date=start, end_date=end)
    if not movements:
        click.echo("No movements found.")
        return

    accounts = {acc.id: acc.name for acc in account_service.list_accounts()}
    click.echo(f"\nFound {len(movements)} movement(s):")
    click.echo("-" * 100)
    total = sum(m.amount for m in movements)
    for movement in movements:
        line = (
            f"{movement.date.isoformat()} | {accounts.get(movement.account_id, 'Unknown'):15s} "
            f"| {movement.amount:>12.2f} | {movement.description}"
        )
        if verbose:
            balance = f"{movement.balance:.2f}" if movement.balance is not None else "-"
            value_date = movement.value_date.isoformat() if movement.value_date else "-"
            line += (
                f"\n    value date {value_date} | balance {balance} | "
                f"{movement.source_file or '-'} row {movement.source_row or '-'} | hash {movement.duplicate_hash}"
            )
        click.echo(line)
    click.echo("-" * 100)
    click.echo(f"Total: {total:.2f}")


def register_commands(cli):
    """Register movement commands with main CLI."""
    cli.add_command(movements_group, name="movements")
