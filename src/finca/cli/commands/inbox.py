"""Document inbox commands."""

import click
from finca.cli.error_handling import handle_domain_error
from finca.cli.key_values import parse_key_values
from finca.domain.entities import InboxStatus
from finca.domain.inbox import InboxService
from finca.domain.ocr import json_file_extractor
from finca.domain.routing import Assignment


@click.group()
def inbox_group():
    """Manage uploaded documents."""
    pass


@inbox_group.command("add")
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option("--mime-type", help="MIME type (guessed from the file name by default)")
@click.pass_context
def add_document(ctx, document: str, mime_type: str | None):
    """Add a document to the inbox."""
    service = InboxService(ctx.obj["db"])
    try:
        item_id = service.add_document(document, mime_type=mime_type)
    except (ValueError, OSError) as e:
        handle_domain_error(ctx, e)
    item = service.get_item(item_id)
    click.echo(f"Added '{item.filename}' to the inbox (ID: {item_id}, kind: {item.document_kind.value})")


@inbox_group.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in InboxStatus], case_sensitive=False),
    help="Only items in this routing status",
)
@click.pass_context
def list_items(ctx, status: str | None):
    """List inbox items."""
    service = InboxService(ctx.obj["db"])

    items = service.list_items(status=status.upper() if status else None)
    if not items:
        click.echo("Inbox is empty.")
        return

    click.echo("\nInbox:")
    click.echo("-" * 90)
    for item in items:
        kind = item.document_kind.value if item.document_kind else "-"
        click.echo(
            f"ID: {item.id:3d} | {item.filename:30s} | {kind:14s} "
            f"| OCR: {item.ocr_status.value:15s} | {item.status.value}"
        )


@inbox_group.command("show")
@click.argument("item_id", type=int)
@click.pass_context
def show_item(ctx, item_id: int):
    """Show an item with its extracted fields and audit log."""
    service = InboxService(ctx.obj["db"])

    item = service.get_item(item_id)
    if item is None:
        click.echo(f"Error: Inbox item {item_id} not found", err=True)
        ctx.exit(1)

    click.echo(f"Item {item.id}: {item.filename}")
    click.echo(f"  Kind: {item.document_kind.value if item.document_kind else '-'}")
    click.echo(f"  MIME type: {item.mime_type or '-'}")
    confidence = f" (confidence {item.ocr_confidence:.2f})" if item.ocr_confidence is not None else ""
    click.echo(f"  OCR: {item.ocr_status.value}{confidence}")
    click.echo(f"  Status: {item.status.value}")
    if item.scope:
        click.echo(f"  Scope: {item.scope.value}" + (f" ({item.property_id})" if item.property_id else ""))
    if item.destination:
        click.echo(f"  Destination: {item.destination}")
    if item.message:
        click.echo(f"  Message: {item.message}")
    if item.extracted_fields:
        click.echo("  Fields:")
        for key, value in sorted(item.extracted_fields.items()):
            click.echo(f"    {key}: {value}")

    click.echo("  Log:")
    for entry in service.get_log(item_id):
        click.echo(f"    {entry.created_at:%Y-%m-%d %H:%M} {entry.action}: {entry.message}")


@inbox_group.command("ocr")
@click.argument("item_id", type=int)
@click.option(
    "--response",
    "response_file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="OCR response JSON (entities, confidence, text)",
)
@click.pass_context
def run_ocr(ctx, item_id: int, response_file: str):
    """Load OCR results for an item."""
    service = InboxService(ctx.obj["db"])
    try:
        item = service.process_ocr(item_id, json_file_extractor(response_file))
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"OCR status: {item.ocr_status.value}")
    if item.message:
        click.echo(item.message)


@inbox_group.command("correct")
@click.argument("item_id", type=int)
@click.option("--set", "values", multiple=True, required=True, metavar="FIELD=VALUE", help="Field to correct")
@click.pass_context
def correct_item(ctx, item_id: int, values: tuple[str, ...]):
    """Correct extracted fields by hand.

    Example:
        finca inbox correct 3 --set amount=49,10 --set provider=Iberdrola
    """
    service = InboxService(ctx.obj["db"])
    fields = parse_key_values(ctx, values, "--set")
    try:
        item = service.correct_fields(item_id, fields)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated {', '.join(sorted(fields))} (OCR status: {item.ocr_status.value})")


@inbox_group.command("route")
@click.argument("item_id", type=int)
@click.option("--property", "property_id", help="Property the document belongs to")
@click.option("--personal", is_flag=True, help="Document is personal")
@click.option("--account", "account_id", type=int, help="Target account ID for bank statements")
@click.pass_context
def route_item(ctx, item_id: int, property_id: str | None, personal: bool, account_id: int | None):
    """File a document in its destination."""
    service = InboxService(ctx.obj["db"])
    assignment = Assignment(property_id=property_id, is_personal=personal, account_id=account_id)
    try:
        result = service.route_item(item_id, assignment)
    except ValueError as e:
        handle_domain_error(ctx, e)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if result.success and not result.missing_fields:
        click.echo(f"Saved to {result.destination}: {result.message}")
        return

    click.echo(f"Needs review: {result.message}", err=True)
    if result.missing_fields:
        click.echo(f"Missing: {', '.join(result.missing_fields)}", err=True)
    ctx.exit(1)


def register_commands(cli):
    """Register inbox commands with main CLI."""
    cli.add_command(inbox_group, name="inbox")
