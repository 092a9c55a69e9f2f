"""Admin JSON API for social scheduling through Ayrshare."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ivc.auth import current_admin_user
from ivc.database import get_db
from ivc.models.social import ScheduledPost
from ivc.schemas.social import (
    PlatformOut,
    PlatformUpdate,
    ScheduledPostCreate,
    ScheduledPostOut,
    SocialAnalytics,
    SocialStatus,
    TimeRange,
)
from ivc.security import limiter
from ivc.services.ayrshare import AyrshareError
from ivc.services.social_service import SocialNotConfiguredError, social_service

router = APIRouter(
    prefix="/api/admin/social",
    tags=["admin", "social"],
    dependencies=[Depends(current_admin_user)],
)


def _raise_for_ayrshare(exc: AyrshareError) -> NoReturn:
    if isinstance(exc, SocialNotConfiguredError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    raise HTTPException(status_code=502, detail=str(exc)) from exc


def _get_scheduled_or_404(db: Session, scheduled_id: int) -> ScheduledPost:
    scheduled = db.get(ScheduledPost, scheduled_id)
    if scheduled is None:
        raise HTTPException(status_code=404, detail="Scheduled post not found")
    return scheduled


@router.get("/scheduled", response_model=list[ScheduledPostOut])
@limiter.limit("60/minute")
def list_scheduled(
    request: Request,
    status: SocialStatus | None = Query(None),
    db: Session = Depends(get_db),
):
    query = db.query(ScheduledPost)
    if status is not None:
        query = query.filter(ScheduledPost.status == status.value)
    return query.order_by(ScheduledPost.scheduled_at.desc(), ScheduledPost.id.desc()).all()


@router.post("/scheduled", response_model=ScheduledPostOut, status_code=201)
@limiter.limit("20/minute")
async def create_scheduled(
    request: Request, payload: ScheduledPostCreate, db: Session = Depends(get_db)
):
    try:
        return await social_service.create_scheduled_post(db, payload)
    except AyrshareError as exc:
        _raise_for_ayrshare(exc)


@router.post("/scheduled/{scheduled_id}/publish", response_model=ScheduledPostOut)
@limiter.limit("20/minute")
async def publish_scheduled(
    request: Request, scheduled_id: int, db: Session = Depends(get_db)
):
    scheduled = _get_scheduled_or_404(db, scheduled_id)
    try:
        return await social_service.publish(db, scheduled)
    except AyrshareError as exc:
        _raise_for_ayrshare(exc)


@router.delete("/scheduled/{scheduled_id}")
@limiter.limit("20/minute")
async def delete_scheduled(
    request: Request, scheduled_id: int, db: Session = Depends(get_db)
):
    scheduled = _get_scheduled_or_404(db, scheduled_id)
    try:
        await social_service.delete_scheduled_post(db, scheduled)
    except AyrshareError as exc:
        _raise_for_ayrshare(exc)
    return {"success": True}


@router.get("/platforms", response_model=list[PlatformOut])
@limiter.limit("60/minute")
def list_platforms(request: Request, db: Session = Depends(get_db)):
    return social_service.list_platforms(db)


@router.put("/platforms", response_model=PlatformOut)
@limiter.limit("20/minute")
def update_platform(
    request: Request, payload: PlatformUpdate, db: Session = Depends(get_db)
):
    return social_service.upsert_platform(db, payload)


@router.post("/platforms/sync", response_model=list[PlatformOut])
@limiter.limit("5/minute")
async def sync_platforms(request: Request, db: Session = Depends(get_db)):
    if not social_service.client.configured:
        raise HTTPException(status_code=400, detail="Ayrshare API key not configured")
    try:
        return await social_service.sync_platforms(db)
    except AyrshareError as exc:
        _raise_for_ayrshare(exc)


@router.get("/analytics", response_model=SocialAnalytics)
@limiter.limit("30/minute")
def analytics(
    request: Request,
    time_range: TimeRange = Query("30d", alias="range"),
    platform: str = Query("all"),
    db: Session = Depends(get_db),
):
    return social_service.analytics(db, time_range, platform)


@router.post("/analytics/refresh")
@limiter.limit("5/minute")
async def refresh_analytics(request: Request, db: Session = Depends(get_db)):
    if not social_service.client.configured:
        raise HTTPException(status_code=400, detail="Ayrshare API key not configured")
    return await social_service.refresh_analytics(db)
