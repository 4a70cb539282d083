# app/services/category_service.py
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.data.models.category import CategoryModel
from app.domain.errors import CategoryNotFound, ValidationFailed
from app.domain.schemas import CategoryCreate, CategoryUpdate
from app.repos.category_repo import CategoryRepo
from app.utils.slugs import unique_slug
from app.utils.logging import get_logger

logger = get_logger(__name__)


def serialize_category(category: CategoryModel) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description or "",
        "parent_id": category.parent_id,
        "level": category.level,
        "image": category.image,
        "is_active": category.is_active,
        "show_in_menu": category.show_in_menu,
        "sort_order": category.sort_order,
        "children": [],
    }


def build_tree(categories: List[CategoryModel]) -> List[Dict[str, Any]]:
    """Nest children under parents. A child whose parent is missing/inactive becomes a root."""
    nodes = {c.id: serialize_category(c) for c in categories}
    roots = []

    for c in categories:
        parent = nodes.get(c.parent_id) if c.parent_id else None
        if parent is not None:
            parent["children"].append(nodes[c.id])
        else:
            roots.append(nodes[c.id])

    return roots


class CategoryService:
    def __init__(self, db: Session):
        self.repo = CategoryRepo(db)

    def list_tree(self) -> Dict[str, Any]:
        categories = self.repo.list_active()
        return {"count": len(categories), "categories": build_tree(categories)}

    def get_category(self, category_id: int) -> Dict[str, Any]:
        category = self.repo.get(category_id)
        if not category or not category.is_active:
            raise CategoryNotFound()
        return serialize_category(category)

    def _active_parent(self, parent_id: int) -> CategoryModel:
        parent = self.repo.get(parent_id)
        if not parent or not parent.is_active:
            raise ValidationFailed("Invalid or inactive parent category")
        return parent

    def create_category(self, payload: CategoryCreate) -> Dict[str, Any]:
        level = 0
        if payload.parent_id is not None:
            level = self._active_parent(payload.parent_id).level + 1

        category = CategoryModel(
            name=payload.name.strip(),
            slug=unique_slug(payload.name, self.repo.slug_exists),
            description=payload.description,
            parent_id=payload.parent_id,
            level=level,
            image=payload.image.model_dump() if payload.image else None,
            is_active=payload.is_active,
            show_in_menu=payload.show_in_menu,
            sort_order=payload.sort_order,
        )
        self.repo.add(category)
        self.repo.commit()

        logger.info(f"Category {category.id} ({category.slug}) created at level {level}")
        return serialize_category(category)

    def update_category(self, category_id: int, payload: CategoryUpdate) -> Dict[str, Any]:
        category = self.repo.get(category_id)
        if not category:
            raise CategoryNotFound()

        changes = payload.model_dump(exclude_unset=True)

        parent = None
        if changes.get("parent_id") is not None:
            if payload.parent_id == category.id:
                raise ValidationFailed("Category cannot be its own parent")
            parent = self._active_parent(payload.parent_id)
            if category.id in self._ancestor_ids(parent):
                raise ValidationFailed("Category cannot be moved under its own subcategory")

        if payload.name is not None and payload.name.strip() != category.name:
            category.name = payload.name.strip()
            category.slug = unique_slug(
                category.name, lambda s: self.repo.slug_exists(s, exclude_id=category.id)
            )

        for field in ("description", "sort_order", "is_active", "show_in_menu"):
            if changes.get(field) is not None:
                setattr(category, field, changes[field])

        if "image" in changes:
            category.image = payload.image.model_dump() if payload.image else None

        if "parent_id" in changes:
            if payload.parent_id is None:
                # explicit null moves the category to the root
                category.parent_id = None
                category.level = 0
            else:
                category.parent_id = parent.id
                category.level = parent.level + 1
            self._relevel_children(category)

        self.repo.commit()
        logger.info(f"Category {category_id} updated: {sorted(changes)}")
        return serialize_category(category)

    def _ancestor_ids(self, category: CategoryModel) -> set[int]:
        """Ids on the path from category up to its root, category included."""
        seen = set()
        node = category
        while node is not None and node.id not in seen:
            seen.add(node.id)
            node = self.repo.get(node.parent_id) if node.parent_id else None
        return seen

    def _relevel_children(self, category: CategoryModel) -> None:
        #levels below a moved category follow it
        for child in self.repo.list_children(category.id):
            child.level = category.level + 1
            self._relevel_children(child)

    def delete_category(self, category_id: int) -> Dict[str, Any]:
        """Soft delete, refused while anything still hangs off the category."""
        category = self.repo.get(category_id)
        if not category:
            raise CategoryNotFound()

        if not category.is_active:
            raise ValidationFailed("Category is already inactive")

        children = self.repo.count_active_children(category_id)
        if children:
            raise ValidationFailed(f"Cannot delete category. {children} active subcategory(s) exist.")

        products = self.repo.count_products(category_id)
        if products:
            raise ValidationFailed(f"Cannot delete category. {products} product(s) are using this category.")

        category.is_active = False
        category.show_in_menu = False
        self.repo.commit()

        logger.info(f"Category {category_id} archived")
        return serialize_category(category)
