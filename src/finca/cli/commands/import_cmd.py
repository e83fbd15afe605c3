"""Bank statement import command."""

import click
from finca.cli.account_resolution import resolve_account_or_exit
from finca.cli.error_handling import handle_domain_error
from finca.cli.key_values import parse_key_values
from finca.domain.account import AccountService
from finca.domain.bank_import import BankImportService
from finca.domain.header_detection import MOVEMENT_FIELDS


def _echo_fallback(columns: list[str], header_row: int) -> None:
    click.echo("Could not recognise the statement columns.", err=True)
    if columns:
        click.echo(f"Header guess (row {header_row + 1}): {', '.join(columns)}", err=True)
    click.echo(
        "Re-run with a mapping, e.g. --map date=Fecha --map amount=Importe "
        f"(fields: {', '.join(MOVEMENT_FIELDS)})",
        err=True,
    )


@click.command("import")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", help="Account name or ID (required unless --preview)")
@click.option(
    "--map",
    "mappings",
    multiple=True,
    metavar="FIELD=HEADER",
    help="Map a movement field to a column header; saved as a bank profile",
)
@click.option("--header-row", type=click.IntRange(min=1), help="Header row number (1-based)")
@click.option("--keep-duplicates", is_flag=True, help="Import duplicate movements too")
@click.option("--preview", is_flag=True, help="Show what would be imported without saving")
@click.pass_context
def import_statement(
    ctx,
    statement_file: str,
    account: str | None,
    mappings: tuple[str, ...],
    header_row: int | None,
    keep_duplicates: bool,
    preview: bool,
):
    """Import movements from a bank statement (CSV, TXT or XLSX).

    The header row is found automatically. Layouts that cannot be recognised
    need a --map for each column once; the mapping is remembered.

    Examples:
        finca import extracto.xlsx --account "Cuenta nómina"
        finca import movimientos.csv --account 1 --map date="F. Operación" --map amount=Importe
        finca import movimientos.csv --preview
    """
    db = ctx.obj["db"]
    service = BankImportService(db)
    mapping = parse_key_values(ctx, mappings, "--map") or None
    header_index = header_row - 1 if header_row is not None else None

    if preview:
        try:
            result = service.preview(statement_file, mapping=mapping, header_row=header_index)
        except (ValueError, OSError) as e:
            handle_domain_error(ctx, e)

        detection = result["detection"]
        if result["fallback_required"]:
            for warning in result["warnings"]:
                click.echo(f"  {warning}", err=True)
            _echo_fallback(result["columns"], detection.header_row)
            ctx.exit(1)

        click.echo(f"Header row: {detection.header_row + 1} (source: {detection.source})")
        if detection.bank_name:
            click.echo(f"Bank: {detection.bank_name}")
        for movement in result["movements"]:
            flag = " [duplicate]" if movement.is_duplicate else ""
            click.echo(
                f"  {movement.date.isoformat()} {movement.amount:>12.2f}  {movement.description}{flag}"
            )
        stats = result["stats"]
        click.echo(
            f"\n{stats.total} movements: {stats.unique} unique, "
            f"{stats.duplicates} duplicates in {stats.duplicate_groups} group(s)"
        )
        for warning in result["warnings"]:
            click.echo(f"  {warning}", err=True)
        return

    if account is None:
        click.echo("Error: --account is required unless --preview is given", err=True)
        ctx.exit(1)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        result = service.import_file(
            statement_file,
            account_id,
            mapping=mapping,
            header_row=header_index,
            keep_duplicates=keep_duplicates,
        )
    except (ValueError, OSError) as e:
        handle_domain_error(ctx, e)

    if result["fallback_required"]:
        for warning in result["warnings"]:
            click.echo(f"  {warning}", err=True)
        _echo_fallback(result["columns"], result["header_row"])
        ctx.exit(1)

    click.echo("\nImport complete:")
    if result["bank_name"]:
        click.echo(f"  Bank: {result['bank_name']}")
    click.echo(f"  Imported: {result['imported']} movements")
    click.echo(f"  Skipped: {result['skipped']} duplicates")
    for skipped in result["skipped_details"]:
        click.echo(
            f"    Row {skipped['row']}: {skipped['date']} {skipped['amount']} "
            f"{skipped['description']} ({skipped['reason']})"
        )
    if result["warnings"]:
        click.echo(f"  Warnings: {len(result['warnings'])}")
        for warning in result["warnings"]:
            click.echo(f"    {warning}", err=True)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_statement)
