"""Pydantic schemas for RSS feeds, items and imports."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, HttpUrl, field_validator

from ivc.schemas.blog import PostStatus


class ImportType(str, Enum):
    MANUAL = "manual"
    BULK = "bulk"
    AUTO = "auto"


class FeedCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    url: HttpUrl
    description: str | None = None
    category: str | None = None
    is_active: bool = True
    auto_import: bool = False
    fetch_interval: int = Field(3600, ge=300, le=86400)


class FeedUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=100)
    description: str | None = None
    category: str | None = None
    is_active: bool | None = None
    auto_import: bool | None = None
    fetch_interval: int | None = Field(None, ge=300, le=86400)

    @field_validator("name", "is_active", "auto_import", "fetch_interval")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class FeedOut(BaseModel):
    id: int
    name: str
    url: str
    description: str | None
    category: str | None
    is_active: bool
    auto_import: bool
    fetch_interval: int
    last_fetched_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class ItemOut(BaseModel):
    id: int
    feed_id: int
    guid: str
    title: str
    link: str
    description: str
    author: str | None
    category: str | None
    pub_date: datetime | None
    imported: bool
    imported_at: datetime | None
    imported_post_id: int | None
    created_at: datetime

    class Config:
        from_attributes = True


class ItemPage(BaseModel):
    items: list[ItemOut]
    limit: int
    offset: int
    total: int


class ValidateRequest(BaseModel):
    url: HttpUrl


class FeedInfo(BaseModel):
    title: str
    description: str
    item_count: int
    content_type: str


class FeedValidation(BaseModel):
    url: str
    is_valid: bool
    error: str | None = None
    feed_info: FeedInfo | None = None


class RefreshResult(BaseModel):
    feed_id: int
    items_found: int
    new_items_count: int
    new_items: list[ItemOut]


class RefreshError(BaseModel):
    feed_id: int
    feed_name: str
    error: str


class RefreshAllResult(BaseModel):
    total: int = 0
    refreshed: int = 0
    failed: int = 0
    errors: list[RefreshError] = Field(default_factory=list)


class ImportRequest(BaseModel):
    category_ids: list[int] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.DRAFT


class BulkImportRequest(ImportRequest):
    item_ids: list[int] = Field(..., min_length=1, max_length=100)


class ImportOutcome(BaseModel):
    item_id: int
    post_id: int | None = None
    error: str | None = None


class BulkImportResult(BaseModel):
    imported: list[ImportOutcome] = Field(default_factory=list)
    failed: list[ImportOutcome] = Field(default_factory=list)
    skipped: list[ImportOutcome] = Field(default_factory=list)


class AutoImportResult(BaseModel):
    feeds_processed: int = 0
    items_imported: int = 0
    feed_errors: int = 0
    item_errors: int = 0
