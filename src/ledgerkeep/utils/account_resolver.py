"""Utility for resolving account names to IDs."""

from ledgerkeep.domain.account import AccountService
from ledgerkeep.domain.errors import NotFoundError


def resolve_account(account_service: AccountService, organization_id: str, account: str | int) -> int:
    """Resolve account name or ID to account ID.

    Args:
        account_service: AccountService instance
        organization_id: Organization the account must belong to
        account: Account name (str) or ID (int or string representation of int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found
    """
    if isinstance(account, int):
        return account_service.get_account(organization_id, account).id

    if account.strip().isdigit():
        return account_service.get_account(organization_id, int(account)).id

    # Names match case-insensitively, inactive accounts included
    for acc in account_service.list_accounts(organization_id, include_inactive=True):
        if acc.name.lower() == account.strip().lower():
            return acc.id

    raise NotFoundError(f"Account '{account}' not found")
