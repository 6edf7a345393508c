"""Tests for the category hierarchy service."""

from decimal import Decimal

import pytest

from ledgerkeep.domain.category import MAX_DEPTH, CategoryService
from ledgerkeep.domain.entities import SplitInput
from ledgerkeep.domain.errors import (
    CategoryHasChildrenError,
    ConflictError,
    CycleError,
    DependencyError,
    DepthExceededError,
    NotFoundError,
    ValidationError,
)
from ledgerkeep.domain.tree_cache import CategoryTreeCache

from conftest import ACTOR, ORG, OTHER_ORG


def make_chain(service, length, prefix="Level"):
    """Create a parent->child chain and return ids from the root down."""
    ids = []
    parent_id = None
    for i in range(length):
        parent_id = service.create_category(ORG, f"{prefix} {i}", parent_id=parent_id)
        ids.append(parent_id)
    return ids


def assert_depths_consistent(service):
    for cat in service.list_categories(ORG, limit=100):
        if cat.parent_id is None:
            assert cat.depth == 0
            assert cat.path == str(cat.id)
        else:
            parent = service.get_category(ORG, cat.parent_id)
            assert cat.depth == parent.depth + 1
            assert cat.path == f"{parent.path}/{cat.id}"


class TestCreateCategory:
    def test_root_category(self, category_service):
        category_id = category_service.create_category(ORG, "  Travel  ")
        category = category_service.get_category(ORG, category_id)

        assert category.name == "Travel"
        assert category.depth == 0
        assert category.parent_id is None
        assert category.path == str(category_id)

    def test_child_category_depth_and_path(self, category_service, sample_categories):
        groceries = category_service.get_category(ORG, sample_categories["Groceries"])
        assert groceries.depth == 1
        assert groceries.path == f"{sample_categories['Food']}/{groceries.id}"

    def test_max_depth_enforced(self, category_service):
        ids = make_chain(category_service, MAX_DEPTH + 1)
        assert category_service.get_category(ORG, ids[-1]).depth == MAX_DEPTH

        with pytest.raises(DepthExceededError, match="Category depth cannot exceed 3"):
            category_service.create_category(ORG, "Too deep", parent_id=ids[-1])

    def test_sibling_names_unique_ignoring_case(self, category_service, sample_categories):
        with pytest.raises(ConflictError, match="already exists at this level"):
            category_service.create_category(ORG, "GROCERIES", parent_id=sample_categories["Food"])

    def test_same_name_allowed_under_different_parents(self, category_service, sample_categories):
        category_service.create_category(ORG, "Groceries", parent_id=sample_categories["Travel"])

    def test_same_name_allowed_in_other_organization(self, category_service, sample_categories):
        category_service.create_category(OTHER_ORG, "Food")

    def test_parent_from_other_organization_not_found(self, category_service, sample_categories):
        with pytest.raises(NotFoundError):
            category_service.create_category(OTHER_ORG, "Snacks", parent_id=sample_categories["Food"])

    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    def test_invalid_names(self, category_service, name):
        with pytest.raises(ValidationError):
            category_service.create_category(ORG, name)


class TestMoveCategory:
    def test_scenario_move_and_cycle(self, category_service):
        travel = category_service.create_category(ORG, "Travel")
        flights = category_service.create_category(ORG, "Flights", parent_id=travel)
        other = category_service.create_category(ORG, "Other")

        moved = category_service.move_category(ORG, flights, other)
        assert moved.parent_id == other
        assert moved.depth == 1

        with pytest.raises(CycleError, match="Cannot create circular category reference"):
            category_service.move_category(ORG, other, flights)

        assert category_service.get_category(ORG, other).parent_id is None

    def test_cannot_move_under_itself(self, category_service):
        travel = category_service.create_category(ORG, "Travel")
        with pytest.raises(CycleError):
            category_service.move_category(ORG, travel, travel)

    def test_deep_cycle_detected(self, category_service):
        ids = make_chain(category_service, 4)
        with pytest.raises(CycleError):
            category_service.move_category(ORG, ids[0], ids[3])

    def test_move_rewrites_whole_subtree(self, category_service):
        a, b, c = make_chain(category_service, 3)
        other = category_service.create_category(ORG, "Other")

        category_service.move_category(ORG, b, other)
        grandchild = category_service.get_category(ORG, c)
        assert grandchild.depth == 2
        assert grandchild.path == f"{other}/{b}/{c}"

        category_service.move_category(ORG, b, None)
        assert category_service.get_category(ORG, b).depth == 0
        assert category_service.get_category(ORG, c).depth == 1
        assert_depths_consistent(category_service)

    def test_move_rejected_when_descendant_too_deep(self, category_service):
        chain = make_chain(category_service, 3)
        target = make_chain(category_service, 2, prefix="Target")

        with pytest.raises(DepthExceededError):
            category_service.move_category(ORG, chain[0], target[-1])

        # Tree left unchanged.
        assert category_service.get_category(ORG, chain[0]).parent_id is None
        assert category_service.get_category(ORG, chain[2]).depth == 2
        assert_depths_consistent(category_service)

    def test_move_into_conflicting_sibling_name(self, category_service, sample_categories):
        category_service.create_category(ORG, "Groceries", parent_id=sample_categories["Travel"])
        with pytest.raises(ConflictError):
            category_service.move_category(
                ORG, sample_categories["Groceries"], sample_categories["Travel"]
            )

    def test_rename(self, category_service, sample_categories):
        renamed = category_service.update_category(ORG, sample_categories["Travel"], name="Trips")
        assert renamed.name == "Trips"

    def test_rename_conflict(self, category_service, sample_categories):
        with pytest.raises(ConflictError):
            category_service.update_category(ORG, sample_categories["Travel"], name="food")

    def test_parent_and_root_are_exclusive(self, category_service, sample_categories):
        with pytest.raises(ValidationError):
            category_service.update_category(
                ORG, sample_categories["Groceries"], parent_id=sample_categories["Travel"], move_to_root=True
            )


class TestDeleteCategory:
    def test_delete_leaf(self, category_service, sample_categories):
        category_service.delete_category(ORG, sample_categories["Travel"])
        with pytest.raises(NotFoundError):
            category_service.get_category(ORG, sample_categories["Travel"])

    def test_delete_with_children_requires_instruction(self, category_service, sample_categories):
        with pytest.raises(CategoryHasChildrenError, match="move_children_to"):
            category_service.delete_category(ORG, sample_categories["Food"])

    def test_delete_moves_children_to_target(self, category_service, sample_categories):
        category_service.delete_category(
            ORG, sample_categories["Food"], move_children_to=sample_categories["Travel"]
        )
        groceries = category_service.get_category(ORG, sample_categories["Groceries"])
        assert groceries.parent_id == sample_categories["Travel"]
        assert groceries.depth == 1

    def test_delete_moves_children_to_root_transitively(self, category_service):
        a, b, c, d = make_chain(category_service, 4)
        category_service.delete_category(ORG, a, move_children_to_root=True)

        assert category_service.get_category(ORG, b).depth == 0
        assert category_service.get_category(ORG, c).depth == 1
        assert category_service.get_category(ORG, d).depth == 2
        assert category_service.get_category(ORG, d).path == f"{b}/{c}/{d}"
        assert_depths_consistent(category_service)

    def test_target_missing(self, category_service, sample_categories):
        with pytest.raises(NotFoundError, match="Target category not found"):
            category_service.delete_category(ORG, sample_categories["Food"], move_children_to=9999)

    def test_target_cannot_be_descendant(self, category_service, sample_categories):
        with pytest.raises(ValidationError, match="Cannot move children to a descendant category"):
            category_service.delete_category(
                ORG, sample_categories["Food"], move_children_to=sample_categories["Groceries"]
            )

    def test_delete_blocked_by_transactions(
        self, category_service, transaction_service, sample_account, sample_categories
    ):
        transaction_service.create_transaction(
            ORG,
            sample_account.id,
            actor=ACTOR,
            amount=Decimal("10.00"),
            splits=[SplitInput(Decimal("10.00"), category_id=sample_categories["Travel"])],
        )
        with pytest.raises(DependencyError, match="Cannot delete category with transactions"):
            category_service.delete_category(ORG, sample_categories["Travel"])


class TestQueries:
    def test_tree_structure(self, category_service, sample_categories):
        tree = category_service.get_category_tree(ORG)

        assert [node["name"] for node in tree] == ["Food", "Travel"]
        assert [child["name"] for child in tree[0]["children"]] == ["Groceries", "Restaurants"]
        assert tree[1]["children"] == []

    def test_list_ordered_by_depth_then_name(self, category_service, sample_categories):
        names = [c.name for c in category_service.list_categories(ORG)]
        assert names == ["Food", "Travel", "Groceries", "Restaurants"]

    def test_list_search(self, category_service, sample_categories):
        names = [c.name for c in category_service.list_categories(ORG, search="rest")]
        assert names == ["Restaurants"]

    def test_list_descendants(self, category_service):
        a, b, c = make_chain(category_service, 3)
        direct = category_service.list_categories(ORG, parent_id=a)
        subtree = category_service.list_categories(ORG, parent_id=a, include_descendants=True)

        assert [cat.id for cat in direct] == [b]
        assert [cat.id for cat in subtree] == [b, c]

    def test_list_limit_bounds(self, category_service):
        with pytest.raises(ValidationError):
            category_service.list_categories(ORG, limit=101)

    def test_format_category_path(self, category_service, sample_categories):
        assert category_service.format_category_path(sample_categories["Groceries"]) == "Food > Groceries"

    def test_details(self, category_service, sample_categories):
        details = category_service.get_category_details(ORG, sample_categories["Food"])
        assert details["child_count"] == 2
        assert details["transaction_count"] == 0
        assert details["full_path"] == "Food"

    def test_find_or_create_root_category(self, category_service, sample_categories):
        assert category_service.find_or_create_root_category(ORG, "food") == sample_categories["Food"]
        new_id = category_service.find_or_create_root_category(ORG, "Utilities")
        assert category_service.get_category(ORG, new_id).depth == 0

    def test_deactivate(self, category_service, sample_categories):
        category_service.set_category_active(ORG, sample_categories["Travel"], False)
        assert not category_service.get_category(ORG, sample_categories["Travel"]).is_active


class TestTreeCaching:
    @pytest.fixture
    def cached_service(self, temp_db):
        return CategoryService(temp_db, CategoryTreeCache())

    def test_tree_served_from_cache(self, cached_service, temp_db):
        cached_service.create_category(ORG, "Food")
        cached_service.get_category_tree(ORG)

        # A write that bypasses the service is invisible until invalidation.
        temp_db.create_category(ORG, "Hidden")
        assert [n["name"] for n in cached_service.get_category_tree(ORG)] == ["Food"]

    def test_mutations_invalidate(self, cached_service):
        food = cached_service.create_category(ORG, "Food")
        cached_service.get_category_tree(ORG)

        cached_service.create_category(ORG, "Snacks", parent_id=food)
        assert cached_service.get_category_tree(ORG)[0]["children"][0]["name"] == "Snacks"

        cached_service.update_category(ORG, food, name="Meals")
        assert cached_service.get_category_tree(ORG)[0]["name"] == "Meals"

    def test_implicit_category_creation_invalidates(self, temp_db, cached_service, sample_account):
        from ledgerkeep.domain.transaction import TransactionService

        cached_service.get_category_tree(ORG)
        TransactionService(temp_db, cached_service).create_transaction(
            ORG,
            sample_account.id,
            actor=ACTOR,
            amount=Decimal("3.00"),
            splits=[SplitInput(Decimal("3.00"), category_name="Coffee")],
        )
        assert [n["name"] for n in cached_service.get_category_tree(ORG)] == ["Coffee"]

    def test_cache_is_per_organization(self, cached_service):
        cached_service.create_category(ORG, "Food")
        cached_service.create_category(OTHER_ORG, "Rent")

        assert [n["name"] for n in cached_service.get_category_tree(ORG)] == ["Food"]
        assert [n["name"] for n in cached_service.get_category_tree(OTHER_ORG)] == ["Rent"]
