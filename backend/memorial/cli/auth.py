"""Flask CLI commands for authentication housekeeping."""

from __future__ import annotations

import click

from memorial.services.authentication.service import AuthenticationService


@click.group("auth")
def auth_cli() -> None:
    """Authentication record commands."""


@auth_cli.command("purge")
def purge() -> None:
    """Delete authentications whose access and refresh tokens are both dead."""
    purged = AuthenticationService().purge_expired()
    click.echo(f"Purged {purged} authentication(s).")
