"""Treasury record validation command."""

import json

import click
from finca.domain.validation import (
    format_validation_errors,
    validate_treasury_batch,
    validation_status,
)

_KINDS = ("ingresos", "gastos", "capex")


def _is_record_list(value) -> bool:
    return isinstance(value, list) and all(isinstance(record, dict) for record in value)


@click.command("validate")
@click.argument("records_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate_records(ctx, records_file: str):
    """Validate income, expense and CAPEX records from a JSON file.

    The file holds an object with optional "ingresos", "gastos" and "capex"
    lists. Exits with status 1 when any record is invalid.
    """
    try:
        with open(records_file, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        click.echo(f"Error: {records_file} is not valid JSON: {e}", err=True)
        ctx.exit(1)

    if (
        not isinstance(data, dict)
        or not any(isinstance(data.get(k), list) for k in _KINDS)
        or not all(_is_record_list(data[k]) for k in _KINDS if k in data and data[k] is not None)
    ):
        click.echo(f"Error: expected an object with {', '.join(_KINDS)} lists of objects", err=True)
        ctx.exit(1)

    batch = validate_treasury_batch(
        ingresos=data.get("ingresos"), gastos=data.get("gastos"), capex=data.get("capex")
    )
    for kind in _KINDS:
        for index, result in enumerate(batch[kind], start=1):
            status = validation_status(result)
            details = format_validation_errors(result)
            click.echo(f"{kind}[{index}]: {status}" + (f" - {details}" if details else ""))

    summary = batch["summary"]
    click.echo(
        f"\n{summary['total']} records: {summary['valid']} valid, {summary['invalid']} invalid, "
        f"{summary['with_warnings']} with warnings"
    )
    if summary["invalid"]:
        ctx.exit(1)


def register_commands(cli):
    """Register validate command with main CLI."""
    cli.add_command(validate_records)
