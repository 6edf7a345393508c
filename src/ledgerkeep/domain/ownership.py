"""Organization-scoped lookups shared by the domain services.

Rows belonging to another organization are reported exactly like missing
rows, so callers cannot probe for ids outside their organization.
"""

from ledgerkeep.database.base import Database
from ledgerkeep.domain.entities import Account, Transaction, Vendor
from ledgerkeep.domain.errors import (
    NotFoundError,
    account_not_found,
    transaction_not_found,
    vendor_not_found,
)


def require_account(db: Database, organization_id: str, account_id: int) -> Account:
    """Load an account of the organization.

    Raises:
        NotFoundError: If the account is missing or belongs elsewhere
    """
    account = db.get_account(account_id)
    if account is None or account.organization_id != organization_id:
        raise NotFoundError(account_not_found(account_id))
    return account


def require_transaction(
    db: Database, organization_id: str, account_id: int, transaction_id: int
) -> Transaction:
    """Load a transaction owned by an account of the organization.

    Raises:
        NotFoundError: If the account or transaction is missing
    """
    require_account(db, organization_id, account_id)
    txn = db.get_transaction(transaction_id)
    if txn is None or txn.account_id != account_id:
        raise NotFoundError(transaction_not_found(transaction_id))
    return txn


def require_active_vendor(db: Database, organization_id: str, vendor_id: int) -> Vendor:
    """Load an active vendor of the organization.

    Raises:
        NotFoundError: If the vendor is missing, inactive or belongs elsewhere
    """
    vendor = db.get_vendor(vendor_id)
    if vendor is None or vendor.organization_id != organization_id or not vendor.is_active:
        raise NotFoundError(vendor_not_found(vendor_id))
    return vendor
