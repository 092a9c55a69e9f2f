"""Pydantic schemas for social scheduling, platforms and analytics."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

SUPPORTED_PLATFORMS = ("twitter", "linkedin", "facebook", "instagram", "youtube", "tiktok")


class SocialStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    FAILED = "failed"


class ScheduledPostCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    platforms: list[str] = Field(..., min_length=1)
    hashtags: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    scheduled_at: datetime | None = None
    post_id: int | None = None
    publish: bool = True

    @field_validator("platforms")
    @classmethod
    def known_platforms(cls, value: list[str]) -> list[str]:
        normalized = [p.strip().lower() for p in value]
        unknown = sorted(set(normalized) - set(SUPPORTED_PLATFORMS))
        if unknown:
            raise ValueError(f"Unsupported platform(s): {', '.join(unknown)}")
        return list(dict.fromkeys(normalized))

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class SocialPostOut(BaseModel):
    id: int
    platform: str
    content: str
    hashtags: list[str]
    scheduled_at: datetime | None
    external_id: str | None
    status: str
    engagement: int
    reach: int
    clicks: int
    analytics_updated_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class ScheduledPostOut(BaseModel):
    id: int
    content: str
    platforms: list[str]
    hashtags: list[str]
    images: list[str]
    scheduled_at: datetime | None
    status: str
    external_id: str | None
    external_post_ids: dict[str, str]
    error_message: str | None
    post_id: int | None
    created_at: datetime
    social_posts: list[SocialPostOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class PlatformOut(BaseModel):
    platform_id: str
    platform_name: str
    connected: bool
    profile_url: str | None
    profile_name: str | None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class PlatformUpdate(BaseModel):
    platform_id: str
    connected: bool
    profile_url: str | None = None
    profile_name: str | None = None


TimeRange = Literal["7d", "30d", "90d"]


class PlatformStats(BaseModel):
    posts: int
    engagement: int
    reach: int
    clicks: int
    engagement_rate: float


class SocialAnalytics(BaseModel):
    time_range: str
    total_posts: int
    total_engagement: int
    total_reach: int
    total_clicks: int
    avg_engagement_rate: float
    top_posts: list[SocialPostOut]
    platform_stats: dict[str, PlatformStats] = Field(
        default_factory=dict, serialization_alias="platformStats"
    )
