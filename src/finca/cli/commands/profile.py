"""Bank profile commands."""

import click
from finca.cli.error_handling import handle_domain_error
from finca.domain.bank_profile import BankProfileService


@click.group()
def profile_group():
    """Manage saved bank statement layouts."""
    pass


@profile_group.command("list")
@click.pass_context
def list_profiles(ctx):
    """List bank profiles, most used first."""
    service = BankProfileService(ctx.obj["db"])

    profiles = service.list_profiles()
    if not profiles:
        click.echo("No bank profiles found.")
        return

    click.echo("\nBank profiles:")
    click.echo("-" * 80)
    for profile in profiles:
        last_used = profile.last_used_at.strftime("%Y-%m-%d") if profile.last_used_at else "never"
        click.echo(
            f"ID: {profile.id:3d} | {profile.name:25s} | Bank: {profile.bank_name or '-':15s} "
            f"| Used: {profile.usage_count} (last {last_used})"
        )


@profile_group.command("show")
@click.argument("profile_id", type=int)
@click.pass_context
def show_profile(ctx, profile_id: int):
    """Show the column mapping of a profile."""
    service = BankProfileService(ctx.obj["db"])

    profile = service.get_profile(profile_id)
    if profile is None:
        click.echo(f"Error: Bank profile {profile_id} not found", err=True)
        ctx.exit(1)

    click.echo(f"Profile: {profile.name} (ID: {profile.id})")
    click.echo(f"Signature: {profile.signature}")
    click.echo(f"Bank: {profile.bank_name or 'unknown'}")
    click.echo(f"Used {profile.usage_count} time(s)")
    click.echo("\nColumn mappings:")
    for mapping in profile.mappings:
        click.echo(f"  {mapping.field_name:12s} <- {mapping.column_name}")


@profile_group.command("delete")
@click.argument("profile_id", type=int)
@click.pass_context
def delete_profile(ctx, profile_id: int):
    """Delete a profile."""
    service = BankProfileService(ctx.obj["db"])

    try:
        service.delete_profile(profile_id)
        click.echo(f"Deleted bank profile {profile_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register profile commands with main CLI."""
    cli.add_command(profile_group, name="profile")
