"""Tests for transaction commands."""

import re

import pytest

from ledgerkeep.cli.main import cli

from conftest import ORG


def run(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "--org", ORG, *args])


def balance_line(cli_runner, temp_db, name):
    listing = run(cli_runner, temp_db, "account", "list").output
    return next(line for line in listing.splitlines() if name in line)


@pytest.fixture
def add(cli_runner, temp_db, sample_account):
    def _add(*args):
        result = run(cli_runner, temp_db, "transaction", "add", "Checking", *args)
        assert result.exit_code == 0, result.output
        return re.search(r"Created transaction (\d+)", result.output).group(1)

    return _add


def test_add_expense_with_fee(cli_runner, temp_db, add):
    add("100.00", "--category", "Groceries", "--fee", "--date", "2024-01-15")

    assert "895.00" in balance_line(cli_runner, temp_db, "Checking")


def test_add_with_splits(cli_runner, temp_db, add):
    txn_id = add("100", "--split", "Food=60", "--split", "Household=40", "--memo", "weekly shop")

    result = run(cli_runner, temp_db, "transaction", "list", "Checking", "--verbose")
    assert result.exit_code == 0
    assert f"Transaction ID: {txn_id} (version 1)" in result.output
    assert "Split: Food 60.00" in result.output
    assert "Split: Household 40.00" in result.output
    assert "Memo: weekly shop" in result.output


def test_add_transfer(cli_runner, temp_db, add, second_account):
    add("50", "--type", "transfer", "--to", "Savings", "--category", "Savings")

    assert "950.00" in balance_line(cli_runner, temp_db, "Checking")
    assert "550.00" in balance_line(cli_runner, temp_db, "Savings")


def test_add_transfer_without_destination(cli_runner, temp_db, sample_account):
    result = run(
        cli_runner, temp_db, "transaction", "add", "Checking", "50", "--type", "transfer", "--category", "X"
    )

    assert result.exit_code == 1
    assert "destination" in result.output


def test_add_rejects_category_and_split(cli_runner, temp_db, sample_account):
    result = run(
        cli_runner, temp_db, "transaction", "add", "Checking", "10", "--category", "A", "--split", "B=10"
    )

    assert result.exit_code == 1
    assert "either --category or --split" in result.output


@pytest.mark.parametrize("amount", ["abc", "-5", "1.234"])
def test_add_invalid_amount(cli_runner, temp_db, sample_account, amount):
    result = run(cli_runner, temp_db, "transaction", "add", "Checking", "--category", "A", "--", amount)

    assert result.exit_code == 1
    assert "Invalid amount format" in result.output


def test_add_malformed_split(cli_runner, temp_db, sample_account):
    result = run(cli_runner, temp_db, "transaction", "add", "Checking", "10", "--split", "Food")

    assert result.exit_code == 1
    assert "CATEGORY=AMOUNT" in result.output


def test_update_changes_type_and_keeps_fee(cli_runner, temp_db, add):
    txn_id = add("100", "--category", "Groceries", "--fee")

    result = run(
        cli_runner, temp_db, "transaction", "update", "Checking", txn_id,
        "--type", "income", "--expected-version", "1",
    )
    assert result.exit_code == 0
    assert f"Updated transaction {txn_id} (version 2)" in result.output
    assert "1,095.00" in balance_line(cli_runner, temp_db, "Checking")

    cleared = run(cli_runner, temp_db, "transaction", "update", "Checking", txn_id, "--no-fee")
    assert cleared.exit_code == 0
    assert "1,100.00" in balance_line(cli_runner, temp_db, "Checking")


def test_update_stale_version(cli_runner, temp_db, add):
    txn_id = add("20", "--category", "Groceries")
    run(cli_runner, temp_db, "transaction", "update", "Checking", txn_id, "--memo", "first")

    stale = run(
        cli_runner, temp_db, "transaction", "update", "Checking", txn_id,
        "--memo", "second", "--expected-version", "1",
    )
    assert stale.exit_code == 1
    assert "Current version is 2" in stale.output

    forced = run(
        cli_runner, temp_db, "transaction", "update", "Checking", txn_id,
        "--memo", "second", "--expected-version", "1", "--force",
    )
    assert forced.exit_code == 0
    assert "(version 3)" in forced.output


def test_update_clears_memo(cli_runner, temp_db, add):
    txn_id = add("20", "--category", "Groceries", "--memo", "note")

    result = run(cli_runner, temp_db, "transaction", "update", "Checking", txn_id, "--memo", "")
    assert result.exit_code == 0

    listing = run(cli_runner, temp_db, "transaction", "list", "Checking", "-v").output
    assert "Memo:" not in listing


def test_delete_and_restore(cli_runner, temp_db, add):
    txn_id = add("30", "--category", "Groceries")

    deleted = run(cli_runner, temp_db, "transaction", "delete", "Checking", txn_id)
    assert deleted.exit_code == 0
    assert "1,000.00" in balance_line(cli_runner, temp_db, "Checking")
    assert "No transactions found" in run(cli_runner, temp_db, "transaction", "list", "Checking").output

    restored = run(cli_runner, temp_db, "transaction", "restore", "Checking", txn_id)
    assert restored.exit_code == 0
    assert f"Restored transaction {txn_id} (version 2)" in restored.output
    assert "970.00" in balance_line(cli_runner, temp_db, "Checking")


def test_list_filters(cli_runner, temp_db, add):
    add("10", "--category", "Groceries", "--date", "2024-01-05")
    add("20", "--category", "Travel", "--date", "2024-02-05", "--type", "income")

    by_type = run(cli_runner, temp_db, "transaction", "list", "Checking", "--type", "income").output
    assert "Showing 1 of 1" in by_type
    assert "Travel" in by_type

    by_date = run(
        cli_runner, temp_db, "transaction", "list", "Checking",
        "--start-date", "2024-01-01", "--end-date", "2024-01-31",
    ).output
    assert "Groceries" in by_date
    assert "Travel" not in by_date

    paged = run(cli_runner, temp_db, "transaction", "list", "Checking", "--limit", "1").output
    assert "Showing 1 of 2" in paged


def test_list_rejects_period_with_dates(cli_runner, temp_db, sample_account):
    result = run(
        cli_runner, temp_db, "transaction", "list", "Checking", "--period", "this-month", "--start-date", "today"
    )

    assert result.exit_code == 1
    assert "cannot be combined" in result.output


def test_history(cli_runner, temp_db, add):
    txn_id = add("10", "--category", "Groceries")
    run(cli_runner, temp_db, "--actor", "bob", "transaction", "update", "Checking", txn_id, "--amount", "12")

    result = run(cli_runner, temp_db, "transaction", "history", "Checking", txn_id)

    assert result.exit_code == 0
    lines = [line for line in result.output.splitlines() if "|" in line]
    assert "update" in lines[0]
    assert "bob" in lines[0]
    assert "create" in lines[1]
    assert "amount: '10.00' -> '12.00'" in result.output
