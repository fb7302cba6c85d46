"""CLI helpers for account resolution."""

from __future__ import annotations

import click

from bankrec.domain.account import AccountService
from bankrec.domain.entities import BankAccount
from bankrec.domain.errors import DomainError


def resolve_account_or_exit(ctx: click.Context, account: str | int) -> BankAccount:
    """Resolve an account ID or number owned by the CLI user, or exit.

    This keeps error messaging and exit behavior consistent across commands.
    """
    service = AccountService(ctx.obj["db"])
    try:
        return service.resolve_account(ctx.obj["user"], account)
    except DomainError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
