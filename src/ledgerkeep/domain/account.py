"""Account domain service."""

from decimal import Decimal
from typing import Optional

from ledgerkeep.database.base import Database
from ledgerkeep.domain.entities import Account as AccountEntity
from ledgerkeep.domain.errors import ConflictError, ValidationError
from ledgerkeep.domain.ownership import require_account
from ledgerkeep.logging_config import get_logger

logger = get_logger("account")


class AccountService:
    """Service for managing accounts.

    Balances are never written here after creation; only the transaction
    ledger moves them.
    """

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def _check_unique_name(
        self, organization_id: str, name: str, exclude_id: Optional[int] = None
    ) -> None:
        for acc in self.db.list_accounts(organization_id, include_inactive=True):
            if acc.id != exclude_id and acc.name.lower() == name.lower():
                raise ConflictError(f"Account with name '{name}' already exists")

    def create_account(
        self,
        organization_id: str,
        name: str,
        balance: Decimal = Decimal("0"),
        transaction_fee: Optional[Decimal] = None,
    ) -> int:
        """Create a new account.

        Args:
            organization_id: Owning organization
            name: Account name
            balance: Opening balance
            transaction_fee: Optional flat fee charged when a transaction opts in

        Returns:
            Account ID

        Raises:
            ValidationError: If the name is empty or the fee is negative
            ConflictError: If account name already exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Account name cannot be empty")
        if transaction_fee is not None and transaction_fee < 0:
            raise ValidationError("Transaction fee cannot be negative")
        self._check_unique_name(organization_id, name)

        account_id = self.db.create_account(
            organization_id=organization_id,
            name=name,
            balance=balance,
            transaction_fee=transaction_fee,
        )
        logger.info(
            "account_created",
            extra={
                "organization_id": organization_id,
                "account_id": account_id,
                "opening_balance": balance,
            },
        )
        return account_id

    def get_account(self, organization_id: str, account_id: int) -> AccountEntity:
        """Get account by ID.

        Raises:
            NotFoundError: If the account does not exist in the organization
        """
        return require_account(self.db, organization_id, account_id)

    def list_accounts(
        self, organization_id: str, include_inactive: bool = False
    ) -> list[AccountEntity]:
        """List accounts of an organization ordered by name."""
        return self.db.list_accounts(organization_id, include_inactive=include_inactive)

    def rename_account(self, organization_id: str, account_id: int, name: str) -> None:
        """Rename an account.

        Raises:
            NotFoundError: If account not found
            ConflictError: If the name is taken by another account
        """
        require_account(self.db, organization_id, account_id)
        name = name.strip()
        if not name:
            raise ValidationError("Account name cannot be empty")
        self._check_unique_name(organization_id, name, exclude_id=account_id)
        self.db.update_account(account_id, name=name)
        logger.info("account_renamed", extra={"account_id": account_id, "name": name})

    def set_transaction_fee(
        self, organization_id: str, account_id: int, transaction_fee: Optional[Decimal]
    ) -> None:
        """Set or clear (with None) the account's flat transaction fee."""
        require_account(self.db, organization_id, account_id)
        if transaction_fee is None:
            self.db.update_account(account_id, clear_fee=True)
        else:
            if transaction_fee < 0:
                raise ValidationError("Transaction fee cannot be negative")
            self.db.update_account(account_id, transaction_fee=transaction_fee)
        logger.info(
            "account_fee_changed",
            extra={"account_id": account_id, "transaction_fee": transaction_fee},
        )

    def deactivate_account(self, organization_id: str, account_id: int) -> None:
        """Hide an account from default listings. Its history is kept."""
        require_account(self.db, organization_id, account_id)
        self.db.update_account(account_id, is_active=False)
        logger.info("account_deactivated", extra={"account_id": account_id})
