"""Social scheduling models backed by the Ayrshare aggregator."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ivc.database import Base


class ScheduledPost(Base):
    """A composed post targeting one or more platforms.

    Status values:
    - draft: Saved but not handed to the aggregator
    - scheduled: Accepted by the aggregator for a future time
    - published: Accepted by the aggregator for immediate posting
    - failed: The aggregator rejected it (see error_message)
    """

    __tablename__ = "scheduled_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    content: Mapped[str] = mapped_column(Text)
    platforms: Mapped[list[str]] = mapped_column(JSON, default=list)
    hashtags: Mapped[list[str]] = mapped_column(JSON, default=list)
    images: Mapped[list[str]] = mapped_column(JSON, default=list)
    scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default="scheduled", server_default="scheduled", index=True
    )
    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    external_post_ids: Mapped[dict[str, str]] = mapped_column(JSON, default=dict)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    post_id: Mapped[int | None] = mapped_column(
        ForeignKey("posts.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    social_posts: Mapped[list[SocialPost]] = relationship(
        back_populates="scheduled_post", cascade="all, delete-orphan"
    )


class SocialPost(Base):
    """Per-platform record with the aggregator's post id and analytics."""

    __tablename__ = "social_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    scheduled_post_id: Mapped[int | None] = mapped_column(
        ForeignKey("scheduled_posts.id", ondelete="CASCADE"), nullable=True
    )
    platform: Mapped[str] = mapped_column(String(30), index=True)
    content: Mapped[str] = mapped_column(Text)
    hashtags: Mapped[list[str]] = mapped_column(JSON, default=list)
    scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="scheduled", index=True)
    engagement: Mapped[int] = mapped_column(Integer, default=0)
    reach: Mapped[int] = mapped_column(Integer, default=0)
    clicks: Mapped[int] = mapped_column(Integer, default=0)
    analytics_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    extra: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    scheduled_post: Mapped[ScheduledPost | None] = relationship(
        back_populates="social_posts"
    )


class PlatformConnection(Base):
    __tablename__ = "social_platform_connections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    platform_id: Mapped[str] = mapped_column(String(30), unique=True)
    platform_name: Mapped[str] = mapped_column(String(50))
    connected: Mapped[bool] = mapped_column(Boolean, default=False)
    profile_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    profile_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
