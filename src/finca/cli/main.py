"""Main CLI entry point."""

import logging

import click
from finca.database.factories import DB_PATH_ENV_VAR, create_sqlite_database
from finca.logging_config import setup_logging

# Import and register all commands at module level
from finca.cli.commands import (
    account,
    profile,
    import_cmd,
    movements,
    inbox,
    validate,
    loan,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {DB_PATH_ENV_VAR} environment variable)",
    envvar=DB_PATH_ENV_VAR,
)
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Finca - personal and rental property finance ledger.

    Import bank statements from Spanish banks, keep an inbox of invoices,
    contracts and statements, and validate treasury records.
    """
    ctx.ensure_object(dict)
    setup_logging(logging.INFO if verbose else logging.WARNING)

    # Open the database only when a command runs (not for --help)
    if ctx.invoked_subcommand is not None and "db" not in ctx.obj:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
profile.register_commands(cli)
import_cmd.register_commands(cli)
movements.register_commands(cli)
inbox.register_commands(cli)
validate.register_commands(cli)
loan.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
