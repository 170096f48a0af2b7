"""Shared domain error messages and error types."""

from typing import Iterable, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class AuthorizationError(DomainError):
    """Missing user context or a record owned by another user."""


class MappingIncompleteError(DomainError):
    """Import blocked because discovered QuickBooks names are still unmapped."""

    def __init__(self, missing: Iterable[str]):
        self.missing = sorted(missing)
        super().__init__(mapping_incomplete(self.missing))


def require_user(user_id: Optional[str]) -> str:
    """Return the user id or raise when no user is resolvable."""
    if user_id is None or not str(user_id).strip():
        raise AuthorizationError("No current user: set --user or QBRECON_USER")
    return str(user_id).strip()


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def import_batch_not_found(batch_id: int) -> str:
    """Return message for missing import batch."""
    return f"Import batch {batch_id} not found"


def duplicate_account_name(name: str) -> str:
    """Return message for an account name already in use."""
    return f"Account with name '{name}' already exists"


def duplicate_category_name(name: str) -> str:
    """Return message for a category name already in use."""
    return f"Category with name '{name}' already exists"


def mapping_incomplete(missing: list[str]) -> str:
    """Return message listing QuickBooks names without a mapping decision."""
    count = len(missing)
    preview = ", ".join(f"'{name}'" for name in missing[:5])
    if count > 5:
        preview += f" and {count - 5} more"
    return (
        f"Cannot import: {count} QuickBooks account{'s' if count != 1 else ''} "
        f"still unmapped ({preview})"
    )
