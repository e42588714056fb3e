"""Flask CLI commands for operating the auth core."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from authcore.core.extensions import db, get_auth

LOGGER = logging.getLogger(__name__)


@click.group("auth")
def auth_cli() -> None:
    """Administrative commands for sessions, lockouts and the schema."""


@auth_cli.command("init-db")
@with_appcontext
def init_db() -> None:
    """Create the ``principals`` table when it does not exist."""
    db.create_all()
    click.echo("Database schema ready.")


@auth_cli.command("unlock")
@click.argument("username")
@with_appcontext
def unlock(username: str) -> None:
    """Clear failed-login counters and any lock for USERNAME."""
    attempts = get_auth().attempts
    was_locked = attempts.is_locked(username)
    attempts.reset_attempts(username)
    LOGGER.info("auth.cli.unlock", extra={"action": "unlock"})
    click.echo(f"{username}: {'unlocked' if was_locked else 'not locked; counters cleared'}")


@auth_cli.command("revoke-all")
@click.argument("user_id")
@with_appcontext
def revoke_all(user_id: str) -> None:
    """Revoke every live token of USER_ID (logout on every device)."""
    revoked = get_auth().service.logout_all_devices(user_id)
    click.echo(f"Revoked {revoked} token(s) for {user_id}.")


@auth_cli.command("unrevoke")
@click.argument("jti")
@with_appcontext
def unrevoke(jti: str) -> None:
    """Remove the revocation marker of JTI (administrative undo)."""
    get_auth().revocations.remove_from_blacklist(jti)
    LOGGER.warning("auth.cli.unrevoke", extra={"jti": jti, "action": "unrevoke"})
    click.echo(f"Revocation marker for {jti} removed.")


@auth_cli.command("sessions")
@click.argument("user_id")
@with_appcontext
def sessions(user_id: str) -> None:
    """List the live token ids of USER_ID."""
    jtis = get_auth().revocations.get_active_tokens(user_id)
    click.echo(f"{len(jtis)} active token(s) for {user_id}")
    for jti in jtis:
        click.echo(f"  {jti}")
