"""CLI helpers for account resolution and error handling."""

from __future__ import annotations

import click
from ledgerkeep.domain.account import AccountService
from ledgerkeep.domain.errors import DomainError
from ledgerkeep.utils.account_resolver import resolve_account


def resolve_account_or_exit(ctx: click.Context, account: str | int) -> int:
    """Resolve account name or ID within the CLI organization, or exit.

    This keeps error messaging and exit behavior consistent across commands.
    """
    account_service = AccountService(ctx.obj["db"])
    try:
        return resolve_account(account_service, ctx.obj["org"], account)
    except DomainError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
