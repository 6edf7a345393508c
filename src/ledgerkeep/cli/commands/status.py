"""Transaction status commands."""

import click
from ledgerkeep.cli.account_resolution import resolve_account_or_exit
from ledgerkeep.cli.error_handling import handle_domain_error
from ledgerkeep.domain.entities import StatusTotals, TransactionStatus
from ledgerkeep.domain.errors import DomainError
from ledgerkeep.domain.status import StatusService
from ledgerkeep.utils.amount_parser import parse_amount
from ledgerkeep.utils.date_parser import parse_date

STATUS_CHOICE = click.Choice([s.value for s in TransactionStatus], case_sensitive=False)


@click.group()
def status_group():
    """Track transaction status: unconfirmed, confirmed, reconciled."""
    pass


@status_group.command("set")
@click.argument("account", metavar="ACCOUNT")
@click.argument("transaction_id", type=int)
@click.argument("new_status", type=STATUS_CHOICE)
@click.option("--notes", help="Note stored with the status change")
@click.pass_context
def set_status(ctx, account: str, transaction_id: int, new_status: str, notes: str | None):
    """Change the status of one transaction."""
    account_id = resolve_account_or_exit(ctx, account)
    try:
        txn = StatusService(ctx.obj["db"]).change_status(
            ctx.obj["org"],
            account_id,
            transaction_id,
            TransactionStatus(new_status.lower()),
            actor=ctx.obj["actor"],
            notes=notes,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Transaction {transaction_id} is now {txn.status.value}")


@status_group.command("bulk")
@click.argument("account", metavar="ACCOUNT")
@click.argument("new_status", type=STATUS_CHOICE)
@click.argument("transaction_ids", type=int, nargs=-1, required=True)
@click.option("--notes", help="Note stored with every status change")
@click.pass_context
def bulk_status(ctx, account: str, new_status: str, transaction_ids: tuple[int, ...], notes: str | None):
    """Change the status of several transactions at once.

    Each transaction succeeds or fails on its own; the command exits with 1
    only when none succeeded.
    """
    account_id = resolve_account_or_exit(ctx, account)
    try:
        result = StatusService(ctx.obj["db"]).bulk_change_status(
            ctx.obj["org"],
            account_id,
            list(transaction_ids),
            TransactionStatus(new_status.lower()),
            actor=ctx.obj["actor"],
            notes=notes,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated {len(result.successful)} transaction(s) to {result.status.value}")
    for failure in result.failed:
        click.echo(f"  Failed {failure.transaction_id}: {failure.error}", err=True)
    if result.none_succeeded:
        ctx.exit(1)


@status_group.command("history")
@click.argument("account", metavar="ACCOUNT")
@click.argument("transaction_id", type=int)
@click.pass_context
def status_history(ctx, account: str, transaction_id: int):
    """Show the status history of a transaction, newest first."""
    account_id = resolve_account_or_exit(ctx, account)
    try:
        entries = StatusService(ctx.obj["db"]).get_status_history(
            ctx.obj["org"], account_id, transaction_id
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    for entry in entries:
        from_status = entry.from_status.value if entry.from_status else "-"
        notes = f" | {entry.notes}" if entry.notes else ""
        click.echo(
            f"{entry.changed_at:%Y-%m-%d %H:%M:%S} | {from_status} -> {entry.to_status.value} "
            f"| {entry.changed_by}{notes}"
        )


def _totals_line(label: str, totals: StatusTotals) -> str:
    return f"  {label:12s} {totals.count:5d}  {totals.net:>12,.2f}"


@status_group.command("summary")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def status_summary(ctx, account: str):
    """Show counts and net amounts per status."""
    account_id = resolve_account_or_exit(ctx, account)
    try:
        summary = StatusService(ctx.obj["db"]).get_summary(ctx.obj["org"], account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\n{summary.account_name} (balance {summary.balance:,.2f})")
    click.echo("-" * 40)
    click.echo(_totals_line("Unconfirmed", summary.unconfirmed))
    click.echo(_totals_line("Confirmed", summary.confirmed))
    click.echo(_totals_line("Reconciled", summary.reconciled))
    click.echo("-" * 40)
    click.echo(_totals_line("Total", summary.overall))


@status_group.command("reconcile")
@click.argument("account", metavar="ACCOUNT")
@click.argument("transaction_ids", type=int, nargs=-1, required=True)
@click.option("--statement-balance", required=True, help="Ending balance on the statement")
@click.option("--statement-date", required=True, help="Statement date")
@click.option("--notes", help="Note stored with every status change")
@click.pass_context
def reconcile(
    ctx,
    account: str,
    transaction_ids: tuple[int, ...],
    statement_balance: str,
    statement_date: str,
    notes: str | None,
):
    """Reconcile confirmed transactions against a bank statement."""
    account_id = resolve_account_or_exit(ctx, account)
    try:
        balance = parse_amount(statement_balance)
        stmt_date = parse_date(statement_date)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        result = StatusService(ctx.obj["db"]).reconcile(
            ctx.obj["org"],
            account_id,
            balance,
            stmt_date,
            list(transaction_ids),
            actor=ctx.obj["actor"],
            notes=notes,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Reconciled {result.reconciled_count} transaction(s)")
    click.echo(f"  Cleared balance:   {result.cleared_balance:,.2f}")
    click.echo(f"  Statement balance: {result.statement_balance:,.2f}")
    click.echo(f"  Difference:        {result.difference:,.2f}")


def register_commands(cli):
    """Register status commands with main CLI."""
    cli.add_command(status_group, name="status")
