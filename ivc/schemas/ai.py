"""Pydantic schemas for AI generation and AI settings."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

AgentType = Literal["research", "writing", "social"]


class AIModelInfo(BaseModel):
    id: str
    name: str
    max_tokens: int
    cost_per_1k_tokens: float


class AIProviderInfo(BaseModel):
    id: str
    name: str
    base_url: str
    models: list[AIModelInfo]


class GenerateRequest(BaseModel):
    agent_type: AgentType = "writing"
    prompt: str = Field(..., min_length=1, max_length=20000)
    provider: str | None = None
    model: str | None = None
    temperature: float | None = Field(None, ge=0, le=2)
    max_tokens: int | None = Field(None, ge=1, le=32000)


class AIUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0


class AIResult(BaseModel):
    content: str
    usage: AIUsage
    provider: str
    model: str


class ConnectionTestRequest(BaseModel):
    provider: str
    model: str | None = None


class ConnectionTestResult(BaseModel):
    provider: str
    ok: bool


class AISettingsIn(BaseModel):
    research_system_prompt: str = Field(..., min_length=1)
    writing_system_prompt: str = Field(..., min_length=1)
    social_system_prompt: str = Field(..., min_length=1)
    research_temperature: float = Field(0.7, ge=0, le=1)
    writing_temperature: float = Field(0.8, ge=0, le=1)
    social_temperature: float = Field(0.9, ge=0, le=1)
    research_provider: str | None = None
    research_model: str | None = None
    writing_provider: str | None = None
    writing_model: str | None = None
    social_provider: str | None = None
    social_model: str | None = None


class AISettingsOut(AISettingsIn):
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
