"""Account management commands."""

import click
from ledgerkeep.cli.account_resolution import resolve_account_or_exit
from ledgerkeep.cli.error_handling import handle_domain_error
from ledgerkeep.domain.account import AccountService
from ledgerkeep.domain.errors import DomainError
from ledgerkeep.utils.amount_parser import parse_amount


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--balance", default="0", help="Opening balance (default: 0)")
@click.option("--fee", help="Flat transaction fee charged when a transaction opts in")
@click.pass_context
def create_account(ctx, name: str, balance: str, fee: str | None):
    """Create a new account.

    Examples:
        ledgerkeep account create "Checking" --balance 1000
        ledgerkeep account create "Card" --fee 2.50
    """
    service = AccountService(ctx.obj["db"])

    try:
        opening = parse_amount(balance)
        fee_amount = parse_amount(fee, allow_negative=False) if fee is not None else None
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        account_id = service.create_account(
            ctx.obj["org"], name=name, balance=opening, transaction_fee=fee_amount
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created account '{name}' (ID: {account_id})")


@account_group.command("list")
@click.option("--all", "include_inactive", is_flag=True, help="Include deactivated accounts")
@click.pass_context
def list_accounts(ctx, include_inactive: bool):
    """List accounts with their balances."""
    service = AccountService(ctx.obj["db"])

    accounts = service.list_accounts(ctx.obj["org"], include_inactive=include_inactive)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 60)
    for acc in accounts:
        fee = f" | Fee: {acc.transaction_fee:,.2f}" if acc.transaction_fee else ""
        inactive = " (inactive)" if not acc.is_active else ""
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | Balance: {acc.balance:>12,.2f}{fee}{inactive}")


@account_group.command("rename")
@click.argument("account", metavar="ACCOUNT")
@click.argument("new_name", metavar="NEW_NAME")
@click.pass_context
def rename_account(ctx, account: str, new_name: str) -> None:
    """Rename an account.

    ACCOUNT can be an account name or ID.
    """
    account_id = resolve_account_or_exit(ctx, account)
    try:
        AccountService(ctx.obj["db"]).rename_account(ctx.obj["org"], account_id, new_name)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Renamed account {account_id} to '{new_name}'")


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str) -> None:
    """Deactivate an account. Its transactions are kept."""
    account_id = resolve_account_or_exit(ctx, account)
    try:
        AccountService(ctx.obj["db"]).deactivate_account(ctx.obj["org"], account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deactivated account {account_id}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
