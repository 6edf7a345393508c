"""Category domain service.

Categories form a forest per organization. Every row stores its depth (root
is 0) and a materialized path of ids from the root, e.g. ``"1/4/9"``. Moves
rewrite the depth and path of the whole moved subtree in one unit of work.
"""

from collections import deque
from typing import Any, Optional

from ledgerkeep.database.base import Database
from ledgerkeep.domain.entities import Category as CategoryEntity
from ledgerkeep.domain.errors import (
    CategoryHasChildrenError,
    ConflictError,
    CycleError,
    DependencyError,
    DepthExceededError,
    NotFoundError,
    ValidationError,
    category_delete_blocked,
    category_has_children,
    category_not_found,
    depth_exceeded,
    duplicate_sibling_name,
)
from ledgerkeep.domain.tree_cache import CategoryTreeCache
from ledgerkeep.logging_config import get_logger

logger = get_logger("category")

MAX_DEPTH = 3
MAX_NAME_LENGTH = 100
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100


def _path_of(category: CategoryEntity) -> str:
    return category.path or str(category.id)


class CategoryService:
    """Service for managing the category hierarchy."""

    def __init__(self, db: Database, cache: Optional[CategoryTreeCache] = None):
        """Initialize category service.

        Args:
            db: Database instance
            cache: Tree cache shared by every service of the process. A
                private cache is created when omitted.
        """
        self.db = db
        self.cache = cache if cache is not None else CategoryTreeCache()

    # Validation helpers
    def _clean_name(self, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name cannot be empty")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Category name cannot exceed {MAX_NAME_LENGTH} characters")
        return name

    def _require(self, organization_id: str, category_id: int) -> CategoryEntity:
        category = self.db.get_category(category_id)
        if category is None or category.organization_id != organization_id:
            raise NotFoundError(category_not_found(category_id))
        return category

    def _check_sibling_name(
        self,
        organization_id: str,
        parent_id: Optional[int],
        name: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        existing = self.db.find_category_by_name(
            organization_id, parent_id, name, exclude_id=exclude_id
        )
        if existing is not None:
            raise ConflictError(duplicate_sibling_name(name))

    def _check_cycle(self, category_id: int, new_parent: CategoryEntity) -> None:
        """Reject a parent that is the category itself or one of its descendants."""
        current: Optional[CategoryEntity] = new_parent
        seen: set[int] = set()
        while current is not None and current.id not in seen:
            if current.id == category_id:
                raise CycleError("Cannot create circular category reference")
            seen.add(current.id)
            if current.parent_id is None:
                break
            current = self.db.get_category(current.parent_id)

    def _descendants(self, category_id: int) -> list[CategoryEntity]:
        """All descendants in breadth-first order, so parents precede children."""
        queue = deque([category_id])
        visited = {category_id}
        result = []
        while queue:
            current = queue.popleft()
            for child in self.db.list_child_categories(current):
                if child.id in visited:
                    continue
                visited.add(child.id)
                result.append(child)
                queue.append(child.id)
        return result

    def _relocate(self, category: CategoryEntity, new_parent: Optional[CategoryEntity]) -> None:
        """Reparent a category and rewrite depth and path of its subtree.

        Must run inside ``db.transaction()``.

        Raises:
            DepthExceededError: If any node of the subtree would end up too deep
        """
        depths = {category.id: 0 if new_parent is None else new_parent.depth + 1}
        paths = {
            category.id: (
                str(category.id)
                if new_parent is None
                else f"{_path_of(new_parent)}/{category.id}"
            )
        }
        descendants = self._descendants(category.id)
        for node in descendants:
            depths[node.id] = depths[node.parent_id] + 1
            paths[node.id] = f"{paths[node.parent_id]}/{node.id}"

        if max(depths.values()) > MAX_DEPTH:
            raise DepthExceededError(depth_exceeded(MAX_DEPTH))

        if new_parent is None:
            self.db.update_category(
                category.id, clear_parent=True, depth=depths[category.id], path=paths[category.id]
            )
        else:
            self.db.update_category(
                category.id,
                parent_id=new_parent.id,
                depth=depths[category.id],
                path=paths[category.id],
            )
        for node in descendants:
            self.db.update_category(node.id, depth=depths[node.id], path=paths[node.id])

    # Mutations
    def create_category(
        self, organization_id: str, name: str, parent_id: Optional[int] = None
    ) -> int:
        """Create a category.

        Args:
            organization_id: Owning organization
            name: Category name
            parent_id: Optional parent category ID

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is empty or too long
            NotFoundError: If parent category doesn't exist
            DepthExceededError: If the parent is already at the maximum depth
            ConflictError: If a sibling already uses the name
        """
        name = self._clean_name(name)
        depth = 0
        if parent_id is not None:
            parent = self._require(organization_id, parent_id)
            depth = parent.depth + 1
            if depth > MAX_DEPTH:
                raise DepthExceededError(depth_exceeded(MAX_DEPTH))
        self._check_sibling_name(organization_id, parent_id, name)

        category_id = self.db.create_category(
            organization_id=organization_id, name=name, parent_id=parent_id, depth=depth
        )
        self.cache.invalidate(organization_id)
        logger.info(
            "category_created",
            extra={
                "organization_id": organization_id,
                "category_id": category_id,
                "parent_id": parent_id,
                "depth": depth,
            },
        )
        return category_id

    def update_category(
        self,
        organization_id: str,
        category_id: int,
        name: Optional[str] = None,
        parent_id: Optional[int] = None,
        move_to_root: bool = False,
    ) -> CategoryEntity:
        """Rename and/or reparent a category.

        Args:
            organization_id: Owning organization
            category_id: Category to change
            name: New name, or None to keep it
            parent_id: New parent, or None to keep the current one
            move_to_root: Detach the category from its parent

        Returns:
            The updated category

        Raises:
            NotFoundError: If the category or new parent doesn't exist
            CycleError: If the new parent is the category or a descendant
            DepthExceededError: If the moved subtree would become too deep
            ConflictError: If the destination already has a sibling of that name
        """
        if move_to_root and parent_id is not None:
            raise ValidationError("Pass either parent_id or move_to_root, not both")

        category = self._require(organization_id, category_id)
        new_name = category.name if name is None else self._clean_name(name)
        target_parent_id = None if move_to_root else (
            parent_id if parent_id is not None else category.parent_id
        )
        parent_changes = target_parent_id != category.parent_id

        new_parent = None
        if parent_changes and target_parent_id is not None:
            new_parent = self._require(organization_id, target_parent_id)
            self._check_cycle(category.id, new_parent)
        if parent_changes or new_name != category.name:
            self._check_sibling_name(
                organization_id, target_parent_id, new_name, exclude_id=category.id
            )

        with self.db.transaction():
            if parent_changes:
                self._relocate(category, new_parent)
            if new_name != category.name:
                self.db.update_category(category.id, name=new_name)
        self.cache.invalidate(organization_id)

        if parent_changes:
            logger.info(
                "category_moved",
                extra={
                    "organization_id": organization_id,
                    "category_id": category.id,
                    "from_parent_id": category.parent_id,
                    "to_parent_id": target_parent_id,
                },
            )
        if new_name != category.name:
            logger.info(
                "category_renamed",
                extra={"organization_id": organization_id, "category_id": category.id},
            )
        return self._require(organization_id, category.id)

    def move_category(
        self, organization_id: str, category_id: int, new_parent_id: Optional[int]
    ) -> CategoryEntity:
        """Move a category under ``new_parent_id``, or to the root when None."""
        return self.update_category(
            organization_id,
            category_id,
            parent_id=new_parent_id,
            move_to_root=new_parent_id is None,
        )

    def delete_category(
        self,
        organization_id: str,
        category_id: int,
        move_children_to: Optional[int] = None,
        move_children_to_root: bool = False,
    ) -> None:
        """Delete a category.

        Children must be given a new home, either another category or the root.
        Moving them re-depths their whole subtrees.

        Raises:
            NotFoundError: If the category or target doesn't exist
            DependencyError: If transaction splits still reference the category
            CategoryHasChildrenError: If it has children and no instruction was given
            ValidationError: If the target is the category or one of its descendants
        """
        category = self._require(organization_id, category_id)

        split_count = self.db.count_category_splits(category_id)
        if split_count > 0:
            raise DependencyError(category_delete_blocked(category_id, split_count))

        children = self.db.list_child_categories(category_id)
        target = None
        if children:
            if move_children_to is None and not move_children_to_root:
                raise CategoryHasChildrenError(category_has_children(category_id, len(children)))
            if not move_children_to_root:
                target = self.db.get_category(move_children_to)
                if target is None or target.organization_id != organization_id:
                    raise NotFoundError("Target category not found")
                descendant_ids = {d.id for d in self._descendants(category_id)}
                if target.id == category_id or target.id in descendant_ids:
                    raise ValidationError("Cannot move children to a descendant category")
            target_id = target.id if target is not None else None
            for child in children:
                self._check_sibling_name(organization_id, target_id, child.name, exclude_id=child.id)

        with self.db.transaction():
            for child in children:
                self._relocate(child, target)
            self.db.delete_category(category_id)
        self.cache.invalidate(organization_id)

        logger.info(
            "category_deleted",
            extra={
                "organization_id": organization_id,
                "category_id": category.id,
                "moved_children": len(children),
                "children_target_id": target.id if target is not None else None,
            },
        )

    def set_category_active(self, organization_id: str, category_id: int, is_active: bool) -> None:
        """Activate or deactivate a category without touching the hierarchy."""
        self._require(organization_id, category_id)
        self.db.update_category(category_id, is_active=is_active)
        self.cache.invalidate(organization_id)
        logger.info(
            "category_activation_changed",
            extra={"category_id": category_id, "is_active": is_active},
        )

    def find_or_create_root_category(self, organization_id: str, name: str) -> int:
        """Return the id of the root category with this name, creating it if needed."""
        name = self._clean_name(name)
        existing = self.db.find_category_by_name(organization_id, None, name)
        if existing is not None:
            return existing.id
        return self.create_category(organization_id, name)

    # Queries
    def get_category(self, organization_id: str, category_id: int) -> CategoryEntity:
        """Get category by ID.

        Raises:
            NotFoundError: If the category is not in the organization
        """
        return self._require(organization_id, category_id)

    def get_category_details(self, organization_id: str, category_id: int) -> dict[str, Any]:
        """Category with its full path, child count and transaction count."""
        category = self._require(organization_id, category_id)
        return {
            "category": category,
            "full_path": self.format_category_path(category_id),
            "child_count": len(self.db.list_child_categories(category_id)),
            "transaction_count": self.db.count_category_splits(category_id),
        }

    def list_categories(
        self,
        organization_id: str,
        search: Optional[str] = None,
        parent_id: Optional[int] = None,
        include_descendants: bool = False,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[CategoryEntity]:
        """List categories ordered by depth, then name.

        Args:
            organization_id: Owning organization
            search: Case-insensitive substring of the name
            parent_id: Restrict to children of this category
            include_descendants: With ``parent_id``, include the whole subtree
            limit: Maximum rows, 1 to 100
        """
        if limit < 1 or limit > MAX_LIST_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}")

        if parent_id is not None:
            self._require(organization_id, parent_id)
            if include_descendants:
                ids = [d.id for d in self._descendants(parent_id)]
                return self.db.list_categories(
                    organization_id, search=search, category_ids=ids, limit=limit
                )
        return self.db.list_categories(
            organization_id, search=search, parent_id=parent_id, limit=limit
        )

    def get_category_tree(self, organization_id: str) -> list[dict[str, Any]]:
        """Get full category tree.

        Returns:
            Root category dicts, each with a nested ``children`` list. Siblings
            are ordered by name.
        """
        cached = self.cache.get(organization_id)
        if cached is not None:
            return cached

        categories = self.db.list_categories(organization_id)
        nodes: dict[int, dict[str, Any]] = {}
        roots: list[dict[str, Any]] = []
        for cat in categories:
            nodes[cat.id] = {
                "id": cat.id,
                "name": cat.name,
                "parent_id": cat.parent_id,
                "depth": cat.depth,
                "path": cat.path,
                "is_active": cat.is_active,
                "children": [],
            }
        # Rows arrive ordered by depth, so a parent node exists before its children.
        for cat in categories:
            node = nodes[cat.id]
            if cat.parent_id is None or cat.parent_id not in nodes:
                roots.append(node)
            else:
                nodes[cat.parent_id]["children"].append(node)

        self.cache.set(organization_id, roots)
        return roots

    def format_category_path(self, category_id: int) -> str:
        """Get full path for a category.

        Args:
            category_id: Category ID

        Returns:
            Full category path (e.g., "Food & Dining > Groceries")
        """
        cat = self.db.get_category(category_id)
        if cat is None:
            return ""

        path_parts = [cat.name]
        current_parent_id = cat.parent_id
        seen = {cat.id}

        while current_parent_id is not None and current_parent_id not in seen:
            parent = self.db.get_category(current_parent_id)
            if parent is None:
                break
            seen.add(parent.id)
            path_parts.append(parent.name)
            current_parent_id = parent.parent_id

        return " > ".join(reversed(path_parts))
