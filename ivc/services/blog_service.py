"""Blog service layer for posts and tags."""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import markdown
from markdown.extensions.codehilite import CodeHiliteExtension
from markdown.extensions.fenced_code import FencedCodeExtension
from markdown.extensions.tables import TableExtension
from markdown.extensions.toc import TocExtension
from sqlalchemy import desc, func, or_

from ivc.models.blog import Category, Post, Tag, post_tags
from ivc.schemas.blog import (
    CategoryRef,
    Pagination,
    PostCreate,
    PostPublic,
    PostStats,
    PostStatus,
    PostUpdate,
    TagRef,
)
from ivc.services.slugs import slugify_name, unique_slug

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session

logger = logging.getLogger(__name__)

SORTABLE_POST_FIELDS = {
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "published_at": Post.published_at,
    "title": Post.title,
    "view_count": Post.view_count,
}


class BlogService:
    """Service for blog operations."""

    def __init__(self):
        """Initialize markdown processor."""
        self.md = markdown.Markdown(
            extensions=[
                FencedCodeExtension(),
                CodeHiliteExtension(css_class="highlight", linenums=False),
                TableExtension(),
                TocExtension(toc_depth="2-3"),
                "sane_lists",
            ]
        )

    def render_markdown(self, content: str) -> str:
        """Render markdown to HTML.

        Args:
            content: Markdown content

        Returns:
            Rendered HTML
        """
        self.md.reset()
        return self.md.convert(content or "")

    @staticmethod
    def calculate_reading_time(content: str) -> int:
        """Calculate estimated reading time in minutes.

        Args:
            content: Post content

        Returns:
            Reading time in minutes (minimum 1)
        """
        word_count = len((content or "").split())
        # Average reading speed: 200 words per minute
        return max(1, word_count // 200)

    def refresh_derived(self, post: Post) -> None:
        post.content_html = self.render_markdown(post.content)
        post.reading_time_minutes = self.calculate_reading_time(post.content)

    @staticmethod
    def set_status(post: Post, status: PostStatus) -> None:
        post.status = status.value
        if status == PostStatus.PUBLISHED and post.published_at is None:
            post.published_at = datetime.now(UTC)

    @staticmethod
    def _load_categories(db: Session, ids: list[int]) -> list[Category]:
        if not ids:
            return []
        return db.query(Category).filter(Category.id.in_(ids)).all()

    @staticmethod
    def _load_tags(db: Session, ids: list[int]) -> list[Tag]:
        if not ids:
            return []
        return db.query(Tag).filter(Tag.id.in_(ids)).all()

    def create_post(
        self, db: Session, data: PostCreate, source_url: str | None = None
    ) -> Post:
        """Create a post, deriving a unique slug from the title when needed."""
        post = Post(
            title=data.title,
            slug=unique_slug(db, Post, data.slug or data.title),
            content=data.content,
            excerpt=data.excerpt,
            featured_image=data.featured_image,
            seo_title=data.seo_title,
            seo_description=data.seo_description,
            seo_keywords=list(data.seo_keywords),
            source_url=source_url,
            view_count=0,
        )
        self.set_status(post, data.status)
        self.refresh_derived(post)
        post.categories = self._load_categories(db, data.category_ids)
        post.tags = self._load_tags(db, data.tag_ids)

        db.add(post)
        db.commit()
        db.refresh(post)
        logger.info("Post created", extra={"post_id": post.id, "slug": post.slug})
        return post

    def update_post(self, db: Session, post: Post, data: PostUpdate) -> Post:
        """Apply a partial update; category/tag id lists replace associations."""
        changes = data.model_dump(exclude_unset=True)

        category_ids = changes.pop("category_ids", None)
        tag_ids = changes.pop("tag_ids", None)
        status = changes.pop("status", None)
        slug = changes.pop("slug", None)

        for field, value in changes.items():
            setattr(post, field, value)

        if slug:
            post.slug = unique_slug(db, Post, slug, exclude_id=post.id)
        if status is not None:
            self.set_status(post, PostStatus(status))
        if category_ids is not None:
            post.categories = self._load_categories(db, category_ids)
        if tag_ids is not None:
            post.tags = self._load_tags(db, tag_ids)
        if "content" in changes:
            self.refresh_derived(post)

        db.commit()
        db.refresh(post)
        return post

    def publish_post(self, db: Session, post: Post) -> Post:
        self.set_status(post, PostStatus.PUBLISHED)
        db.commit()
        db.refresh(post)
        logger.info("Post published", extra={"post_id": post.id})
        return post

    def delete_post(self, db: Session, post: Post) -> None:
        db.delete(post)
        db.commit()

    @staticmethod
    def post_stats(db: Session) -> PostStats:
        rows = db.query(Post.status, func.count(Post.id)).group_by(Post.status).all()
        counts = {status: count for status, count in rows}
        return PostStats(
            total=sum(counts.values()),
            published=counts.get(PostStatus.PUBLISHED.value, 0),
            draft=counts.get(PostStatus.DRAFT.value, 0),
        )

    @staticmethod
    def filter_posts(
        query: Query,
        *,
        status: str | None = None,
        search: str | None = None,
        category: str | None = None,
        tag: str | None = None,
    ) -> Query:
        """Apply the common post filters; category and tag match by slug."""
        if status:
            query = query.filter(Post.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Post.title.ilike(pattern),
                    Post.excerpt.ilike(pattern),
                    Post.content.ilike(pattern),
                )
            )
        if category:
            query = query.filter(Post.categories.any(Category.slug == category))
        if tag:
            query = query.filter(Post.tags.any(Tag.slug == tag))
        return query

    @staticmethod
    def paginate(query: Query, page: int, limit: int, order_by) -> tuple[list, Pagination]:
        total = query.count()
        rows = query.order_by(order_by).offset((page - 1) * limit).limit(limit).all()
        pagination = Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
        )
        return rows, pagination

    @staticmethod
    def sort_column(sort_by: str, order: str):
        column = SORTABLE_POST_FIELDS.get(sort_by, Post.created_at)
        return column.asc() if order == "asc" else column.desc()

    def get_public_post(self, post: Post) -> PostPublic:
        """Convert a Post to the public schema with rendered HTML.

        Args:
            post: Post model

        Returns:
            Public post with rendered content
        """
        content_html = post.content_html or self.render_markdown(post.content)

        return PostPublic(
            id=post.id,
            title=post.title,
            slug=post.slug,
            excerpt=post.excerpt,
            content_html=content_html,
            featured_image=post.featured_image,
            seo_title=post.seo_title,
            seo_description=post.seo_description,
            categories=[CategoryRef.model_validate(c) for c in post.categories],
            tags=[TagRef.model_validate(t) for t in post.tags],
            published_at=post.published_at,
            reading_time_minutes=post.reading_time_minutes,
            view_count=post.view_count,
        )

    @staticmethod
    def get_published_by_slug(db: Session, slug: str) -> Post | None:
        return (
            db.query(Post)
            .filter(Post.slug == slug, Post.status == PostStatus.PUBLISHED.value)
            .first()
        )

    @staticmethod
    def increment_views(db: Session, post: Post) -> None:
        post.view_count = (post.view_count or 0) + 1
        db.commit()
        db.refresh(post)

    @staticmethod
    def related_posts(db: Session, post: Post, limit: int = 3) -> list[Post]:
        """Published posts sharing a category with ``post``, newest first."""
        category_ids = [c.id for c in post.categories]
        query = db.query(Post).filter(
            Post.status == PostStatus.PUBLISHED.value, Post.id != post.id
        )
        if category_ids:
            query = query.filter(Post.categories.any(Category.id.in_(category_ids)))
        return query.order_by(desc(Post.published_at)).limit(limit).all()

    # Tags

    @staticmethod
    def list_tags(db: Session) -> list[tuple[Tag, int]]:
        return (
            db.query(Tag, func.count(post_tags.c.post_id))
            .outerjoin(post_tags, post_tags.c.tag_id == Tag.id)
            .group_by(Tag.id)
            .order_by(Tag.name)
            .all()
        )

    @staticmethod
    def create_tag(db: Session, name: str, slug: str | None = None) -> Tag:
        tag = Tag(name=name.strip(), slug=unique_slug(db, Tag, slug or name))
        db.add(tag)
        db.commit()
        db.refresh(tag)
        return tag

    @staticmethod
    def ensure_tags(db: Session, names: list[str]) -> list[Tag]:
        """Look tags up by slug, creating the missing ones (not committed)."""
        tags: list[Tag] = []
        for name in names:
            slug = slugify_name(name)
            if not slug:
                continue
            tag = db.query(Tag).filter(Tag.slug == slug).first()
            if tag is None:
                tag = Tag(name=name.strip(), slug=slug)
                db.add(tag)
                db.flush()
            if tag not in tags:
                tags.append(tag)
        return tags


# Singleton instance
blog_service = BlogService()
