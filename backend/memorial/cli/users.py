"""Flask CLI commands for managing staff accounts."""

from __future__ import annotations

import click

from memorial.services._shared.errors import ConflictError
from memorial.services.users.dto import UserCreateIn
from memorial.services.users.service import UserService
from memorial.services.users.values import Role


@click.group("users")
def users_cli() -> None:
    """Staff account commands."""


@users_cli.command("create")
@click.option("--email", required=True, help="Login email.")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Raw password (prompted when omitted).",
)
@click.option("--first-name", required=True, help="Given name.")
@click.option("--last-name", required=True, help="Family name.")
@click.option(
    "--role",
    type=click.Choice([role.value for role in Role], case_sensitive=False),
    default=Role.USER.value,
    show_default=True,
)
def create_user(email: str, password: str, first_name: str, last_name: str, role: str) -> None:
    """Create a user able to log in to the API."""
    if not 8 <= len(password) <= 255:
        raise click.BadParameter("must be 8 to 255 characters long", param_hint="--password")
    dto = UserCreateIn(
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        role=Role(role.upper()),
    )
    try:
        user = UserService().create_user(dto)
    except (ConflictError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created user {user.identifier} <{user.email}> role={user.role.value}")
