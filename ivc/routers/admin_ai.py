"""Admin JSON API for AI generation and agent settings."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ivc.auth import current_admin_user
from ivc.database import get_db
from ivc.schemas.ai import (
    AIProviderInfo,
    AIResult,
    AISettingsIn,
    AISettingsOut,
    ConnectionTestRequest,
    ConnectionTestResult,
    GenerateRequest,
)
from ivc.security import limiter
from ivc.services.ai_service import AIProviderError, ai_service

router = APIRouter(
    prefix="/api/admin/ai",
    tags=["admin", "ai"],
    dependencies=[Depends(current_admin_user)],
)


@router.get("/providers", response_model=list[AIProviderInfo])
@limiter.limit("30/minute")
def list_providers(request: Request):
    """Providers that have an API key configured."""
    return ai_service.available_providers()


@router.post("/generate", response_model=AIResult)
@limiter.limit("10/minute")
async def generate(
    request: Request, payload: GenerateRequest, db: Session = Depends(get_db)
):
    try:
        return await ai_service.generate(
            payload.prompt,
            agent_type=payload.agent_type,
            db=db,
            provider=payload.provider,
            model=payload.model,
            temperature=payload.temperature,
            max_tokens=payload.max_tokens,
        )
    except AIProviderError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@router.post("/test", response_model=ConnectionTestResult)
@limiter.limit("5/minute")
async def test_connection(request: Request, payload: ConnectionTestRequest):
    ok = await ai_service.test_connection(payload.provider, payload.model)
    return ConnectionTestResult(provider=payload.provider, ok=ok)


@router.get("/settings", response_model=AISettingsOut)
@limiter.limit("30/minute")
def get_settings(request: Request, db: Session = Depends(get_db)):
    return ai_service.load_settings(db)


@router.put("/settings", response_model=AISettingsOut)
@limiter.limit("10/minute")
def update_settings(
    request: Request, payload: AISettingsIn, db: Session = Depends(get_db)
):
    return ai_service.save_settings(db, payload)
