"""Transaction management commands."""

import click
from ledgerkeep.cli.account_resolution import resolve_account_or_exit
from ledgerkeep.cli.date_filters import resolve_cli_date_range
from ledgerkeep.cli.error_handling import handle_domain_error
from ledgerkeep.domain.audit import EditHistoryService
from ledgerkeep.domain.category import CategoryService
from ledgerkeep.domain.entities import SplitInput, Transaction, TransactionStatus, TransactionType
from ledgerkeep.domain.errors import DomainError
from ledgerkeep.domain.transaction import TransactionService
from ledgerkeep.utils.amount_parser import parse_amount
from ledgerkeep.utils.date_parser import parse_date

TYPE_CHOICE = click.Choice([t.value for t in TransactionType], case_sensitive=False)
STATUS_CHOICE = click.Choice([s.value for s in TransactionStatus], case_sensitive=False)


def _service(ctx) -> TransactionService:
    db = ctx.obj["db"]
    return TransactionService(db, CategoryService(db, ctx.obj["tree_cache"]))


def parse_split(value: str) -> SplitInput:
    """Parse ``CATEGORY=AMOUNT``; a numeric CATEGORY is a category ID.

    Raises:
        ValueError: If the value is malformed
    """
    category, sep, amount = value.rpartition("=")
    category = category.strip()
    if not sep or not category:
        raise ValueError(f"Split '{value}' must look like CATEGORY=AMOUNT")
    split_amount = parse_amount(amount, allow_negative=False)
    if category.isdigit():
        return SplitInput(amount=split_amount, category_id=int(category))
    return SplitInput(amount=split_amount, category_name=category)


def _parse_splits(ctx, splits: tuple[str, ...]) -> list[SplitInput]:
    try:
        return [parse_split(s) for s in splits]
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


def _echo_transaction(txn: Transaction) -> None:
    click.echo(f"\nTransaction ID: {txn.id} (version {txn.version})")
    click.echo(f"  Date: {txn.date}")
    click.echo(f"  Type: {txn.transaction_type.value}")
    click.echo(f"  Amount: {txn.amount:,.2f}")
    if txn.fee_amount:
        click.echo(f"  Fee: {txn.fee_amount:,.2f}")
    if txn.destination_account_id is not None:
        click.echo(f"  To account: {txn.destination_account_id}")
    click.echo(f"  Status: {txn.status.value}")
    if txn.memo:
        click.echo(f"  Memo: {txn.memo}")
    for split in txn.splits:
        click.echo(f"  Split: {split.category_name} {split.amount:,.2f}")


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("add")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount")
@click.option("--type", "transaction_type", type=TYPE_CHOICE, default="expense", show_default=True)
@click.option("--category", help="Single category (name or ID) receiving the full amount")
@click.option("--split", "splits", multiple=True, help="Split as CATEGORY=AMOUNT (repeatable)")
@click.option("--date", "txn_date", help="Transaction date (YYYY-MM-DD or relative like 'today')")
@click.option("--memo", help="Memo")
@click.option("--vendor", "vendor_id", type=int, help="Vendor ID")
@click.option("--to", "to_account", help="Destination account name or ID (transfers)")
@click.option("--fee", "apply_fee", is_flag=True, help="Charge the account's transaction fee")
@click.pass_context
def add_transaction(
    ctx,
    account: str,
    amount: str,
    transaction_type: str,
    category: str | None,
    splits: tuple[str, ...],
    txn_date: str | None,
    memo: str | None,
    vendor_id: int | None,
    to_account: str | None,
    apply_fee: bool,
):
    """Add a transaction.

    Examples:
        ledgerkeep transaction add Checking 45.20 --category Groceries
        ledgerkeep transaction add Checking 100 --split Food=60 --split Household=40
        ledgerkeep transaction add Checking 200 --type transfer --to Savings --category Savings
    """
    account_id = resolve_account_or_exit(ctx, account)
    destination_id = resolve_account_or_exit(ctx, to_account) if to_account else None

    try:
        txn_amount = parse_amount(amount, allow_negative=False)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    if category is not None and splits:
        click.echo("Error: Use either --category or --split, not both.", err=True)
        ctx.exit(1)
    if category is not None:
        split_inputs = _parse_splits(ctx, (f"{category}={txn_amount}",))
    else:
        split_inputs = _parse_splits(ctx, splits)

    parsed_date = None
    if txn_date is not None:
        try:
            parsed_date = parse_date(txn_date)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    try:
        txn = _service(ctx).create_transaction(
            ctx.obj["org"],
            account_id,
            actor=ctx.obj["actor"],
            amount=txn_amount,
            splits=split_inputs,
            transaction_type=TransactionType(transaction_type.lower()),
            date=parsed_date,
            memo=memo,
            vendor_id=vendor_id,
            destination_account_id=destination_id,
            apply_fee=apply_fee,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created transaction {txn.id}")


@transaction_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.argument("transaction_id", type=int)
@click.option("--amount", help="New amount")
@click.option("--type", "transaction_type", type=TYPE_CHOICE)
@click.option("--date", "txn_date", help="New date")
@click.option("--memo", help="New memo, or empty string to clear")
@click.option("--vendor", "vendor_id", type=int, help="New vendor ID")
@click.option("--clear-vendor", is_flag=True, help="Remove the vendor")
@click.option("--to", "to_account", help="New destination account (transfers)")
@click.option("--fee/--no-fee", "apply_fee", default=None, help="Charge or drop the account fee")
@click.option("--split", "splits", multiple=True, help="Replace splits, as CATEGORY=AMOUNT")
@click.option("--expected-version", type=int, help="Version you last saw; stale versions are rejected")
@click.option("--force", is_flag=True, help="Overwrite even if the transaction changed meanwhile")
@click.pass_context
def update_transaction(
    ctx,
    account: str,
    transaction_id: int,
    amount: str | None,
    transaction_type: str | None,
    txn_date: str | None,
    memo: str | None,
    vendor_id: int | None,
    clear_vendor: bool,
    to_account: str | None,
    apply_fee: bool | None,
    splits: tuple[str, ...],
    expected_version: int | None,
    force: bool,
) -> None:
    """Update a transaction.

    Updates only the fields that are provided. Use --memo "" to clear the memo.

    Examples:
        ledgerkeep transaction update Checking 1 --amount 75.00 --expected-version 1
        ledgerkeep transaction update Checking 1 --split Food=50 --split Fun=25
    """
    account_id = resolve_account_or_exit(ctx, account)
    destination_id = resolve_account_or_exit(ctx, to_account) if to_account else None

    txn_amount = None
    if amount is not None:
        try:
            txn_amount = parse_amount(amount, allow_negative=False)
        except ValueError as e:
            click.echo(f"Error: Invalid amount format: {e}", err=True)
            ctx.exit(1)

    parsed_date = None
    if txn_date is not None:
        try:
            parsed_date = parse_date(txn_date)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    try:
        txn = _service(ctx).update_transaction(
            ctx.obj["org"],
            account_id,
            transaction_id,
            actor=ctx.obj["actor"],
            expected_version=expected_version,
            force=force,
            amount=txn_amount,
            transaction_type=TransactionType(transaction_type.lower()) if transaction_type else None,
            date=parsed_date,
            memo=memo or None,
            clear_memo=memo == "",
            vendor_id=vendor_id,
            clear_vendor=clear_vendor,
            destination_account_id=destination_id,
            apply_fee=apply_fee,
            splits=_parse_splits(ctx, splits) if splits else None,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated transaction {transaction_id} (version {txn.version})")


@transaction_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.argument("transaction_id", type=int)
@click.pass_context
def delete_transaction(ctx, account: str, transaction_id: int):
    """Delete a transaction and reverse its balance impact."""
    account_id = resolve_account_or_exit(ctx, account)
    try:
        _service(ctx).delete_transaction(
            ctx.obj["org"], account_id, transaction_id, actor=ctx.obj["actor"]
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted transaction {transaction_id}")


@transaction_group.command("restore")
@click.argument("account", metavar="ACCOUNT")
@click.argument("transaction_id", type=int)
@click.pass_context
def restore_transaction(ctx, account: str, transaction_id: int):
    """Restore a deleted transaction."""
    account_id = resolve_account_or_exit(ctx, account)
    try:
        txn = _service(ctx).restore_transaction(
            ctx.obj["org"], account_id, transaction_id, actor=ctx.obj["actor"]
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Restored transaction {txn.id} (version {txn.version})")


@transaction_group.command("list")
@click.argument("account", metavar="ACCOUNT")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--period", help="this-month, this-year, this-week, last-month, last-year or last-week")
@click.option("--type", "transaction_type", type=TYPE_CHOICE)
@click.option("--status", "statuses", type=STATUS_CHOICE, multiple=True, help="Repeatable")
@click.option("--category", help="Category name contains this text")
@click.option("--vendor", "vendor_id", type=int, help="Vendor ID")
@click.option("--limit", default=50, show_default=True, help="Page size (1-100)")
@click.option("--offset", default=0, show_default=True, help="Rows to skip")
@click.option("--verbose", "-v", is_flag=True, help="Show every field and split")
@click.pass_context
def list_transactions(
    ctx,
    account: str,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    transaction_type: str | None,
    statuses: tuple[str, ...],
    category: str | None,
    vendor_id: int | None,
    limit: int,
    offset: int,
    verbose: bool,
):
    """View an account's transactions, newest first."""
    account_id = resolve_account_or_exit(ctx, account)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )

    try:
        transactions, total = _service(ctx).list_transactions(
            ctx.obj["org"],
            account_id,
            start_date=start,
            end_date=end,
            transaction_type=TransactionType(transaction_type.lower()) if transaction_type else None,
            vendor_id=vendor_id,
            category=category,
            statuses=[TransactionStatus(s.lower()) for s in statuses] or None,
            limit=limit,
            offset=offset,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"\nShowing {len(transactions)} of {total} transaction(s):")
    if verbose:
        for txn in transactions:
            _echo_transaction(txn)
        return

    click.echo("-" * 80)
    for txn in transactions:
        categories = ", ".join(s.category_name for s in txn.splits)
        click.echo(
            f"{txn.id:5d} | {txn.date} | {txn.transaction_type.value:8s} | "
            f"{txn.amount:>10,.2f} | {txn.status.value:11s} | {categories}"
        )


@transaction_group.command("history")
@click.argument("account", metavar="ACCOUNT")
@click.argument("transaction_id", type=int)
@click.option("--limit", default=50, show_default=True, help="Entries to show (1-100)")
@click.option("--offset", default=0, show_default=True, help="Entries to skip")
@click.pass_context
def transaction_history(ctx, account: str, transaction_id: int, limit: int, offset: int):
    """Show the edit history of a transaction, newest first."""
    account_id = resolve_account_or_exit(ctx, account)
    try:
        entries = EditHistoryService(ctx.obj["db"]).get_edit_history(
            ctx.obj["org"], account_id, transaction_id, limit=limit, offset=offset
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not entries:
        click.echo("No edit history found.")
        return
    for entry in entries:
        click.echo(f"{entry.edited_at:%Y-%m-%d %H:%M:%S} | {entry.edit_type.value:12s} | {entry.edited_by}")
        for change in entry.changes:
            click.echo(f"    {change.field}: {change.old_value!r} -> {change.new_value!r}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
