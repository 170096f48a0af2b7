"""Resolve user-supplied account and category references to IDs."""

from qbrecon.domain.account import AccountService
from qbrecon.domain.category import CategoryService
from qbrecon.domain.errors import NotFoundError


def _as_id(reference: str | int):
    if isinstance(reference, int):
        return reference
    text = str(reference).strip()
    return int(text) if text.isdigit() else None


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve account name or ID to account ID.

    Args:
        account_service: AccountService instance
        account: Account name, or ID (int or string representation of int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If no account of the user matches
    """
    account_id = _as_id(account)
    if account_id is not None:
        account_service.require_account(account_id)
        return account_id

    found = account_service.find_account_by_name(str(account))
    if found is None:
        raise NotFoundError(f"Account '{account}' not found")
    return found.id


def resolve_category(category_service: CategoryService, category: str | int) -> int:
    """Resolve category name or ID to category ID.

    Raises:
        NotFoundError: If no category of the user matches
    """
    category_id = _as_id(category)
    if category_id is not None:
        category_service.require_category(category_id)
        return category_id

    found = category_service.find_category_by_name(str(category))
    if found is None:
        raise NotFoundError(f"Category '{category}' not found")
    return found.id
