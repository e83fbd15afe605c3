"""CLI helper for repeated KEY=VALUE options."""

import click


def parse_key_values(ctx: click.Context, pairs: tuple[str, ...], option: str) -> dict[str, str]:
    """Turn ("a=1", "b=2") into {"a": "1", "b": "2"}, or exit with a CLI error."""
    values = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            click.echo(f"Error: {option} expects KEY=VALUE, got '{pair}'", err=True)
            ctx.exit(1)
        values[key.strip()] = value.strip()
    return values
