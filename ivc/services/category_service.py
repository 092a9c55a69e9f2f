"""Category management: CRUD with unique slugs, hierarchy, bulk operations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, or_

from ivc.models.blog import Category, post_categories
from ivc.schemas.category import (
    CategoryCreate,
    CategoryNode,
    CategoryOut,
    CategoryStats,
    CategoryUpdate,
)
from ivc.services.slugs import unique_slug

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

CATEGORY_IN_USE_MESSAGE = (
    "Cannot delete category with posts. Please reassign posts first."
)


class CategoryError(Exception):
    """Invalid category operation (maps to HTTP 400)."""


class CategoryInUseError(CategoryError):
    """Raised when deleting categories that still have posts assigned."""

    def __init__(self, category_ids: list[int]):
        super().__init__(CATEGORY_IN_USE_MESSAGE)
        self.category_ids = category_ids


class CategoryNotFoundError(Exception):
    def __init__(self, missing_ids: list[int]):
        super().__init__(f"Category not found: {', '.join(map(str, missing_ids))}")
        self.missing_ids = missing_ids


def _post_count_subquery(db: Session):
    return (
        db.query(
            post_categories.c.category_id.label("category_id"),
            func.count(post_categories.c.post_id).label("post_count"),
        )
        .group_by(post_categories.c.category_id)
        .subquery()
    )


def to_out(category: Category, post_count: int) -> CategoryOut:
    out = CategoryOut.model_validate(category)
    out.post_count = post_count or 0
    return out


def list_categories(
    db: Session,
    *,
    search: str | None = None,
    featured: bool | None = None,
    visible: bool | None = None,
    parent_id: int | None = None,
    sort_by: str = "sort_order",
    sort_order: str = "asc",
) -> list[CategoryOut]:
    """Return categories with their post counts, filtered and sorted."""
    counts = _post_count_subquery(db)
    post_count = func.coalesce(counts.c.post_count, 0)
    query = db.query(Category, post_count.label("post_count")).outerjoin(
        counts, counts.c.category_id == Category.id
    )

    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Category.name.ilike(pattern), Category.description.ilike(pattern))
        )
    if featured is not None:
        query = query.filter(Category.is_featured == featured)
    if visible is not None:
        query = query.filter(Category.is_visible == visible)
    if parent_id is not None:
        query = query.filter(Category.parent_id == parent_id)

    columns = {
        "name": Category.name,
        "created_at": Category.created_at,
        "sort_order": Category.sort_order,
        "post_count": post_count,
    }
    column = columns.get(sort_by, Category.sort_order)
    ordering = column.desc() if sort_order == "desc" else column.asc()
    rows = query.order_by(ordering, Category.name.asc()).all()
    return [to_out(category, count) for category, count in rows]


def build_tree(categories: list[CategoryOut]) -> list[CategoryNode]:
    """Arrange a flat list into a hierarchy; unknown parents become roots."""
    ordered = sorted(categories, key=lambda c: (c.sort_order, c.name.lower()))
    nodes = {c.id: CategoryNode(**c.model_dump()) for c in ordered}
    roots: list[CategoryNode] = []
    for category in ordered:
        node = nodes[category.id]
        parent = nodes.get(category.parent_id) if category.parent_id else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


def category_stats(db: Session) -> CategoryStats:
    total = db.query(func.count(Category.id)).scalar() or 0
    featured = (
        db.query(func.count(Category.id)).filter(Category.is_featured.is_(True)).scalar()
    )
    visible = (
        db.query(func.count(Category.id)).filter(Category.is_visible.is_(True)).scalar()
    )
    with_posts = (
        db.query(func.count(func.distinct(post_categories.c.category_id))).scalar()
    )
    return CategoryStats(
        total=total,
        featured=featured or 0,
        visible=visible or 0,
        with_posts=with_posts or 0,
    )


def get_category(db: Session, category_id: int) -> Category | None:
    return db.get(Category, category_id)


def post_count_for(db: Session, category_id: int) -> int:
    return (
        db.query(func.count(post_categories.c.post_id))
        .filter(post_categories.c.category_id == category_id)
        .scalar()
        or 0
    )


def _check_parent(db: Session, category_id: int | None, parent_id: int | None) -> None:
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise CategoryError("A category cannot be its own parent")
    parent = db.get(Category, parent_id)
    if parent is None:
        raise CategoryError("Parent category not found")
    if category_id is None:
        return
    seen = {parent_id}
    while parent.parent_id is not None and parent.parent_id not in seen:
        if parent.parent_id == category_id:
            raise CategoryError("A category cannot be moved under its own descendant")
        seen.add(parent.parent_id)
        parent = db.get(Category, parent.parent_id)
        if parent is None:
            break


def create_category(db: Session, data: CategoryCreate) -> Category:
    _check_parent(db, None, data.parent_id)
    payload = data.model_dump(exclude={"slug"})
    category = Category(**payload)
    category.name = data.name.strip()
    category.slug = unique_slug(db, Category, data.slug or data.name)
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info(
        "Category created", extra={"category_id": category.id, "slug": category.slug}
    )
    return category


def update_category(db: Session, category: Category, data: CategoryUpdate) -> Category:
    """Partial update. Renaming keeps the slug unless a new slug is given."""
    changes = data.model_dump(exclude_unset=True)
    if "parent_id" in changes:
        _check_parent(db, category.id, changes["parent_id"])

    slug = changes.pop("slug", None)
    for field, value in changes.items():
        setattr(category, field, value)
    if slug:
        category.slug = unique_slug(db, Category, slug, exclude_id=category.id)

    db.commit()
    db.refresh(category)
    return category


def _delete_rows(db: Session, categories: list[Category]) -> None:
    doomed = {c.id for c in categories}
    # SQLite does not enforce ON DELETE SET NULL without the FK pragma
    orphans = (
        db.query(Category)
        .filter(Category.parent_id.in_(doomed), Category.id.notin_(doomed))
        .all()
    )
    for child in orphans:
        child.parent_id = None
    for category in categories:
        db.delete(category)
    db.commit()


def delete_category(db: Session, category: Category) -> None:
    if post_count_for(db, category.id) > 0:
        raise CategoryInUseError([category.id])
    _delete_rows(db, [category])
    logger.info("Category deleted", extra={"category_id": category.id})


def bulk_delete_categories(db: Session, ids: list[int]) -> int:
    """Delete all of ``ids`` or none of them.

    Raises:
        CategoryInUseError: when any category still has posts
    """
    ids = list(dict.fromkeys(ids))
    in_use = [
        row[0]
        for row in db.query(post_categories.c.category_id)
        .filter(post_categories.c.category_id.in_(ids))
        .distinct()
        .all()
    ]
    if in_use:
        raise CategoryInUseError(sorted(in_use))

    categories = db.query(Category).filter(Category.id.in_(ids)).all()
    _delete_rows(db, categories)
    logger.info("Categories bulk deleted", extra={"count": len(categories)})
    return len(categories)


def reorder_categories(db: Session, orders: dict[int, int]) -> int:
    """Apply ``{category_id: sort_order}``; unknown ids abort the whole update."""
    categories = db.query(Category).filter(Category.id.in_(orders.keys())).all()
    found = {c.id for c in categories}
    missing = sorted(set(orders) - found)
    if missing:
        raise CategoryNotFoundError(missing)
    for category in categories:
        category.sort_order = orders[category.id]
    db.commit()
    return len(categories)
