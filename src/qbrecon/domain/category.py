"""Category domain service."""

from typing import Optional, Iterable

from qbrecon.database.base import Database
from qbrecon.domain.account import qb_key
from qbrecon.domain.entities import Category as CategoryEntity, TransactionType
from qbrecon.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    category_not_found,
    duplicate_category_name,
    require_user,
)


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: Database, user_id: Optional[str]):
        """Initialize category service.

        Args:
            db: Database instance
            user_id: Owning user
        """
        self.db = db
        self.user_id = require_user(user_id)

    def create_category(
        self,
        name: str,
        category_type: TransactionType | str,
        parent_id: Optional[int] = None,
        color: Optional[str] = None,
        qb_category_names: Iterable[str] = (),
    ) -> int:
        """Create a category.

        Args:
            name: Category name, unique per user
            category_type: income, expense or transfer
            parent_id: Optional parent category ID (one level only)
            color: Optional display color
            qb_category_names: Initial QuickBooks aliases

        Returns:
            Category ID

        Raises:
            ValidationError: If the type is invalid or the parent is itself a child
            NotFoundError: If the parent doesn't exist
            ConflictError: If the name is taken
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name cannot be empty")
        try:
            category_type = TransactionType(category_type)
        except ValueError:
            raise ValidationError(f"Invalid category type '{category_type}'") from None

        if parent_id is not None:
            parent = self.require_category(parent_id)
            if parent.parent_id is not None:
                raise ValidationError(
                    f"Category '{parent.name}' is a sub-category and cannot have children"
                )

        if self.find_category_by_name(name) is not None:
            raise ConflictError(duplicate_category_name(name))

        aliases: dict[str, str] = {}
        for alias in qb_category_names:
            if alias and alias.strip():
                aliases.setdefault(qb_key(alias), alias.strip())

        return self.db.create_category(
            user_id=self.user_id,
            name=name,
            category_type=category_type,
            parent_id=parent_id,
            color=color,
            qb_category_names=list(aliases.values()),
        )

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        """Get category by ID.

        Args:
            category_id: Category ID

        Returns:
            Category entity or None if not found
        """
        return self.db.get_category(self.user_id, category_id)

    def require_category(self, category_id: int) -> CategoryEntity:
        """Get category by ID or raise NotFoundError."""
        category = self.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        return category

    def list_categories(self, category_type: Optional[TransactionType] = None) -> list[CategoryEntity]:
        """List categories, optionally of one type."""
        categories = self.db.list_categories(self.user_id)
        if category_type is None:
            return categories
        return [cat for cat in categories if cat.category_type == category_type]

    def find_category_by_name(self, name: str) -> Optional[CategoryEntity]:
        """Find a category by name, ignoring case."""
        key = qb_key(name)
        for category in self.db.list_categories(self.user_id):
            if qb_key(category.name) == key:
                return category
        return None

    def add_qb_name(self, category_id: int, qb_name: str) -> bool:
        """Append a QuickBooks alias. Returns False when already present."""
        category = self.require_category(category_id)
        qb_name = (qb_name or "").strip()
        if not qb_name:
            raise ValidationError("QuickBooks account name cannot be empty")
        if any(qb_key(alias) == qb_key(qb_name) for alias in category.qb_category_names):
            return False
        self.db.set_category_qb_names(
            self.user_id, category_id, [*category.qb_category_names, qb_name]
        )
        return True

    def remove_qb_name(self, category_id: int, qb_name: str) -> bool:
        """Remove a QuickBooks alias. Returns True if removed."""
        category = self.require_category(category_id)
        remaining = [a for a in category.qb_category_names if qb_key(a) != qb_key(qb_name)]
        if len(remaining) == len(category.qb_category_names):
            return False
        self.db.set_category_qb_names(self.user_id, category_id, remaining)
        return True

    def format_category_path(self, category_id: int) -> str:
        """Get full path for a category.

        Args:
            category_id: Category ID

        Returns:
            Full category path (e.g., "Auto > Fuel")
        """
        cat = self.get_category(category_id)
        if cat is None:
            return ""
        if cat.parent_id is None:
            return cat.name
        parent = self.get_category(cat.parent_id)
        if parent is None:
            return cat.name
        return f"{parent.name} > {cat.name}"
