"""Pydantic schemas for categories."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class CategoryBase(BaseModel):
    description: str | None = None
    meta_description: str | None = Field(None, max_length=300)
    parent_id: int | None = None
    sort_order: int = Field(0, ge=0)
    is_visible: bool = True
    is_featured: bool = False
    color: str | None = Field(None, max_length=20)
    icon: str | None = Field(None, max_length=50)
    image_url: str | None = None


class CategoryCreate(CategoryBase):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120)


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    slug: str | None = Field(None, min_length=1, max_length=120)
    description: str | None = None
    meta_description: str | None = Field(None, max_length=300)
    parent_id: int | None = None
    sort_order: int | None = Field(None, ge=0)
    is_visible: bool | None = None
    is_featured: bool | None = None
    color: str | None = None
    icon: str | None = None
    image_url: str | None = None

    @field_validator("name", "slug", "sort_order", "is_visible", "is_featured")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class CategoryOut(CategoryBase):
    id: int
    name: str
    slug: str
    post_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CategoryNode(CategoryOut):
    children: list[CategoryNode] = Field(default_factory=list)


class CategoryStats(BaseModel):
    total: int
    featured: int
    visible: int
    with_posts: int


class CategoryBulkDelete(BaseModel):
    ids: list[int] = Field(..., min_length=1, max_length=100)


class CategoryOrder(BaseModel):
    id: int
    sort_order: int = Field(..., ge=0)


class CategoryReorder(BaseModel):
    items: list[CategoryOrder] = Field(..., min_length=1)


CategorySort = Literal["name", "created_at", "sort_order", "post_count"]
