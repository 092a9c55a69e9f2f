"""Slug helpers shared by posts, categories and tags."""

from __future__ import annotations

from typing import TYPE_CHECKING

from slugify import slugify

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def slugify_name(value: str, max_length: int = 200) -> str:
    """Lowercase, collapse non-alphanumeric runs to '-', strip edge dashes."""
    return slugify(value or "", max_length=max_length)


def unique_slug(db: Session, model, base: str, exclude_id: int | None = None) -> str:
    """Return ``base`` or the first free ``base-N`` for ``model``.

    Probes linearly; two concurrent writers can still collide, in which case
    the unique index on the slug column rejects the second insert.
    """
    base = slugify_name(base) or "item"
    candidate = base
    suffix = 0
    while True:
        query = db.query(model.id).filter(model.slug == candidate)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if query.first() is None:
            return candidate
        suffix += 1
        candidate = f"{base}-{suffix}"
