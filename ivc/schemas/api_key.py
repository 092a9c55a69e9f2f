from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class APIKeyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    provider: str = Field(..., min_length=1, max_length=50)
    key_value: str = Field(..., min_length=4, max_length=500)
    permissions: list[str] = Field(default_factory=list)
    is_active: bool = True


class APIKeyUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    permissions: list[str] | None = None
    is_active: bool | None = None


class APIKeyOut(BaseModel):
    """Stored key with the secret replaced by its masked form."""

    id: int
    name: str
    provider: str
    masked_key: str
    permissions: list[str]
    is_active: bool
    last_used_at: datetime | None
    created_at: datetime
