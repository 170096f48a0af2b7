"""Tests for category management."""

import pytest

from qbrecon.cli.main import cli
from qbrecon.domain.category import CategoryService
from qbrecon.domain.entities import TransactionType
from qbrecon.domain.errors import ConflictError, NotFoundError, ValidationError
from qbrecon.utils.account_resolver import resolve_category


def _invoke(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "--user", "alice", *args])


class TestCategoryService:
    """Tests for CategoryService."""

    def test_create_with_parent(self, category_service):
        parent_id = category_service.create_category("Auto", TransactionType.EXPENSE)
        child_id = category_service.create_category("Fuel", "expense", parent_id=parent_id)

        assert category_service.get_category(child_id).parent_id == parent_id
        assert category_service.format_category_path(child_id) == "Auto > Fuel"
        assert category_service.format_category_path(parent_id) == "Auto"
        assert category_service.format_category_path(999) == ""

    def test_one_level_of_nesting(self, category_service):
        """A sub-category cannot have children of its own."""
        parent_id = category_service.create_category("Auto", TransactionType.EXPENSE)
        child_id = category_service.create_category("Fuel", TransactionType.EXPENSE, parent_id=parent_id)

        with pytest.raises(ValidationError):
            category_service.create_category("Diesel", TransactionType.EXPENSE, parent_id=child_id)

    def test_missing_parent(self, category_service):
        with pytest.raises(NotFoundError):
            category_service.create_category("Fuel", TransactionType.EXPENSE, parent_id=42)

    def test_duplicate_name(self, category_service, sample_categories):
        with pytest.raises(ConflictError):
            category_service.create_category("groceries", TransactionType.EXPENSE)

    def test_invalid_type(self, category_service):
        with pytest.raises(ValidationError):
            category_service.create_category("Gifts", "asset")

    def test_list_by_type(self, category_service, sample_categories):
        income = category_service.list_categories(TransactionType.INCOME)
        assert [c.name for c in income] == ["Salary"]
        assert len(category_service.list_categories()) == 3

    def test_aliases(self, category_service, sample_categories):
        groceries = sample_categories["Groceries"]
        assert category_service.add_qb_name(groceries, "6110 Supermarket")
        assert not category_service.add_qb_name(groceries, "6100 GROCERIES")
        assert category_service.remove_qb_name(groceries, "6100 groceries")
        assert category_service.get_category(groceries).qb_category_names == ("6110 Supermarket",)

    def test_user_scoping(self, temp_db, sample_categories):
        other = CategoryService(temp_db, "bob")
        assert other.list_categories() == []
        assert other.get_category(sample_categories["Salary"]) is None


def test_resolve_category(category_service, sample_categories):
    assert resolve_category(category_service, "salary") == sample_categories["Salary"]
    assert resolve_category(category_service, str(sample_categories["Salary"])) == sample_categories["Salary"]
    with pytest.raises(NotFoundError, match="Category 'Travel' not found"):
        resolve_category(category_service, "Travel")


class TestCategoryCommands:
    """Tests for the category CLI group."""

    def test_create_and_list(self, cli_runner, temp_db):
        result = _invoke(cli_runner, temp_db, "category", "create", "Auto")
        assert result.exit_code == 0
        assert "Created category 'Auto' (ID: 1)" in result.output

        result = _invoke(
            cli_runner, temp_db, "category", "create", "Fuel", "--parent", "Auto", "--qb-name", "6400 Fuel"
        )
        assert result.exit_code == 0
        assert "Created category 'Fuel' under 'Auto' (ID: 2)" in result.output

        result = _invoke(cli_runner, temp_db, "category", "list")
        assert result.exit_code == 0
        assert "Auto (expense, ID: 1)" in result.output
        assert "  Fuel (expense, ID: 2) [6400 Fuel]" in result.output

    def test_list_empty(self, cli_runner, temp_db):
        result = _invoke(cli_runner, temp_db, "category", "list")
        assert result.exit_code == 0
        assert "No categories found" in result.output

    def test_unknown_parent(self, cli_runner, temp_db):
        result = _invoke(cli_runner, temp_db, "category", "create", "Fuel", "--parent", "Auto")
        assert result.exit_code == 1
        assert "Category 'Auto' not found" in result.output
