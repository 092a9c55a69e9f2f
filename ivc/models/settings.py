"""Admin-managed settings: AI prompts/models and stored API keys."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ivc.database import Base


class AISettings(Base):
    """Single-row table (id=1) holding per-agent AI configuration."""

    __tablename__ = "ai_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    research_system_prompt: Mapped[str] = mapped_column(Text)
    research_temperature: Mapped[float] = mapped_column(Float, default=0.7)
    research_provider: Mapped[str | None] = mapped_column(String(30), nullable=True)
    research_model: Mapped[str | None] = mapped_column(String(100), nullable=True)

    writing_system_prompt: Mapped[str] = mapped_column(Text)
    writing_temperature: Mapped[float] = mapped_column(Float, default=0.8)
    writing_provider: Mapped[str | None] = mapped_column(String(30), nullable=True)
    writing_model: Mapped[str | None] = mapped_column(String(100), nullable=True)

    social_system_prompt: Mapped[str] = mapped_column(Text)
    social_temperature: Mapped[float] = mapped_column(Float, default=0.9)
    social_provider: Mapped[str | None] = mapped_column(String(30), nullable=True)
    social_model: Mapped[str | None] = mapped_column(String(100), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )


class APIKey(Base):
    __tablename__ = "api_keys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100))
    provider: Mapped[str] = mapped_column(String(50), index=True)
    key_value: Mapped[str] = mapped_column(String(500))
    permissions: Mapped[list[str]] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
