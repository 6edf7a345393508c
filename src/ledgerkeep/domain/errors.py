"""Shared domain error messages and error types."""

from typing import Any, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. ``status_code`` is the
    HTTP-equivalent status a request layer should surface.
    """

    status_code = 400


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist in the organization."""

    status_code = 404


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or stale writes."""

    status_code = 409


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class DepthExceededError(ValidationError):
    """Category would be placed deeper than the hierarchy allows."""


class CycleError(ValidationError):
    """Category would become its own ancestor."""


class CategoryHasChildrenError(DependencyError):
    """Category deletion needs an instruction for its children."""


class BatchTooLargeError(ValidationError):
    """Bulk request exceeds the permitted batch size."""


class InvalidStatusTransitionError(ValidationError):
    """Requested status edge is not in the transition table."""


class StatusAlreadySetError(ConflictError):
    """Transaction is already in the requested status."""


class ReconciledTransactionError(ConflictError):
    """Reconciled transactions cannot be modified."""


class VersionConflictError(ConflictError):
    """Update presented a stale version.

    Carries the authoritative version and transaction so the caller can
    re-present the conflict instead of overwriting concurrent work.
    """

    def __init__(self, message: str, current_version: int, current_transaction: Any):
        super().__init__(message)
        self.current_version = current_version
        self.current_transaction = current_transaction


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def vendor_not_found(vendor_id: int) -> str:
    """Return message for missing or inactive vendor."""
    return f"Vendor {vendor_id} not found or inactive"


def depth_exceeded(max_depth: int) -> str:
    """Return message for a category placed too deep."""
    return f"Category depth cannot exceed {max_depth}"


def duplicate_sibling_name(name: str) -> str:
    """Return message for a sibling name collision."""
    return f"A category with this name already exists at this level: '{name}'"


def category_delete_blocked(category_id: int, split_count: int) -> str:
    """Return message when splits still reference a category."""
    return (
        f"Cannot delete category with transactions: category {category_id} is used "
        f"by {split_count} split{'s' if split_count != 1 else ''}"
    )


def category_has_children(category_id: int, child_count: int) -> str:
    """Return message when a category with children is deleted without instruction."""
    return (
        f"Category has children: category {category_id} has {child_count} "
        f"child categor{'ies' if child_count != 1 else 'y'}. "
        "Pass move_children_to or move_children_to_root."
    )


def already_in_status(status: str) -> str:
    """Return message for a no-op status transition."""
    return f"Transaction is already {status}"


def invalid_status_transition(current: str, requested: str) -> str:
    """Return message for an edge missing from the transition table."""
    return f"Invalid status transition from {current} to {requested}"


def reconciled_locked(transaction_id: Optional[int] = None) -> str:
    """Return message for edits to reconciled transactions."""
    if transaction_id is None:
        return "Cannot modify reconciled transactions"
    return f"Cannot modify reconciled transaction {transaction_id}"
