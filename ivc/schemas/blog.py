"""Pydantic schemas for posts and tags."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class PostStatus(str, Enum):
    """Blog post status."""

    DRAFT = "draft"
    PUBLISHED = "published"


class TagRef(BaseModel):
    id: int
    name: str
    slug: str

    class Config:
        from_attributes = True


class CategoryRef(BaseModel):
    id: int
    name: str
    slug: str

    class Config:
        from_attributes = True


class PostBase(BaseModel):
    """Fields shared by create and output schemas."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str = ""
    excerpt: str | None = Field(None, max_length=500)
    status: PostStatus = PostStatus.DRAFT
    featured_image: str | None = None
    seo_title: str | None = Field(None, max_length=255)
    seo_description: str | None = Field(None, max_length=500)
    seo_keywords: list[str] = Field(default_factory=list)


class PostCreate(PostBase):
    """Schema for creating a post. The slug is derived from the title if omitted."""

    slug: str | None = Field(None, max_length=255)
    category_ids: list[int] = Field(default_factory=list)
    tag_ids: list[int] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class PostUpdate(BaseModel):
    """Partial update; association lists replace the existing ones when given."""

    title: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = None
    excerpt: str | None = Field(None, max_length=500)
    status: PostStatus | None = None
    featured_image: str | None = None
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: list[str] | None = None
    category_ids: list[int] | None = None
    tag_ids: list[int] | None = None

    @field_validator("title", "slug", "content", "status", "seo_keywords")
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("must not be null")
        return value

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class PostOut(PostBase):
    """Admin view of a post."""

    id: int
    slug: str
    content_html: str = ""
    source_url: str | None = None
    reading_time_minutes: int = 1
    view_count: int = 0
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None
    categories: list[CategoryRef] = Field(default_factory=list)
    tags: list[TagRef] = Field(default_factory=list)

    class Config:
        from_attributes = True


class PostPublic(BaseModel):
    """Public view of a published post with rendered HTML."""

    id: int
    title: str
    slug: str
    excerpt: str | None
    content_html: str
    featured_image: str | None
    seo_title: str | None
    seo_description: str | None
    categories: list[CategoryRef]
    tags: list[TagRef]
    published_at: datetime | None
    reading_time_minutes: int
    view_count: int


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PostStats(BaseModel):
    total: int = 0
    published: int = 0
    draft: int = 0


class PostList(BaseModel):
    posts: list[PostOut]
    pagination: Pagination
    stats: PostStats


class PublicPostList(BaseModel):
    posts: list[PostPublic]
    pagination: Pagination


class PublicPostDetail(BaseModel):
    post: PostPublic
    related: list[PostPublic]


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120)


class TagOut(BaseModel):
    id: int
    name: str
    slug: str
    post_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True
