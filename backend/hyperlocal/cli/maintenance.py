"""Flask CLI commands for periodic store maintenance."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from hyperlocal.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from hyperlocal.services._shared.errors import NotFoundError
from hyperlocal.services.auth.service import AuthService
from hyperlocal.services.votes.service import VoteLedgerService

LOGGER = logging.getLogger(__name__)


@click.group("maintenance")
def maintenance_cli() -> None:
    """Housekeeping commands safe to run alongside live traffic."""


@maintenance_cli.command("sweep-tokens")
@with_appcontext
def sweep_tokens() -> None:
    """Delete refresh tokens past their expiry."""
    removed = AuthService(token_provider=JWTTokenProvider()).sweep_expired_refresh_tokens()
    click.echo(f"Removed {removed} expired refresh token(s).")


@maintenance_cli.command("reconcile-counters")
@click.option("--post-id", type=int, default=None, help="Only reconcile this post.")
@with_appcontext
def reconcile_counters(post_id: int | None) -> None:
    """Recompute vote counters from the ledger and clear integrity holds."""
    service = VoteLedgerService()
    if post_id is not None:
        try:
            results = [service.reconcile_counters(post_id)]
        except NotFoundError as exc:
            raise click.ClickException(str(exc)) from exc
    else:
        results = service.reconcile_all_counters()

    changed = [r for r in results if r.changed]
    for r in changed:
        click.echo(f"  post {r.post_id}: upvotes={r.upvotes} downvotes={r.downvotes}")
    click.echo(f"Reconciled {len(results)} post(s), {len(changed)} corrected.")
    LOGGER.info("Counter reconciliation finished", extra={"count": len(changed)})
