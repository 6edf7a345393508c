"""Vendor domain service."""

from ledgerkeep.database.base import Database
from ledgerkeep.domain.entities import Vendor as VendorEntity
from ledgerkeep.domain.errors import ConflictError, NotFoundError, ValidationError, vendor_not_found
from ledgerkeep.logging_config import get_logger

logger = get_logger("vendor")


class VendorService:
    """Service for managing vendors (payees)."""

    def __init__(self, db: Database):
        self.db = db

    def create_vendor(self, organization_id: str, name: str) -> int:
        """Create a vendor.

        Args:
            organization_id: Owning organization
            name: Vendor name, unique per organization ignoring case

        Returns:
            Vendor ID
        """
        name = name.strip()
        if not name:
            raise ValidationError("Vendor name cannot be empty")
        for vendor in self.db.list_vendors(organization_id, include_inactive=True):
            if vendor.name.lower() == name.lower():
                raise ConflictError(f"Vendor with name '{name}' already exists")

        vendor_id = self.db.create_vendor(organization_id, name)
        logger.info(
            "vendor_created", extra={"organization_id": organization_id, "vendor_id": vendor_id}
        )
        return vendor_id

    def get_vendor(self, organization_id: str, vendor_id: int) -> VendorEntity:
        vendor = self.db.get_vendor(vendor_id)
        if vendor is None or vendor.organization_id != organization_id:
            raise NotFoundError(vendor_not_found(vendor_id))
        return vendor

    def list_vendors(self, organization_id: str, include_inactive: bool = False) -> list[VendorEntity]:
        return self.db.list_vendors(organization_id, include_inactive=include_inactive)

    def deactivate_vendor(self, organization_id: str, vendor_id: int) -> None:
        """Deactivate a vendor; new transactions can no longer reference it."""
        self.get_vendor(organization_id, vendor_id)
        self.db.set_vendor_active(vendor_id, False)
        logger.info("vendor_deactivated", extra={"vendor_id": vendor_id})
