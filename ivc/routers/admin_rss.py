"""Admin JSON API for RSS feeds, items and imports."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from ivc.auth import current_admin_user
from ivc.database import get_db
from ivc.models.rss import RSSFeed, RSSItem
from ivc.schemas.blog import PostOut
from ivc.schemas.rss import (
    AutoImportResult,
    BulkImportRequest,
    BulkImportResult,
    FeedCreate,
    FeedOut,
    FeedUpdate,
    FeedValidation,
    ImportRequest,
    ItemOut,
    ItemPage,
    RefreshAllResult,
    RefreshResult,
    ValidateRequest,
)
from ivc.security import limiter
from ivc.services.rss_service import FeedError, RSSImportError, rss_service

router = APIRouter(
    prefix="/api/admin/rss",
    tags=["admin", "rss"],
    dependencies=[Depends(current_admin_user)],
)


def _get_feed_or_404(db: Session, feed_id: int) -> RSSFeed:
    feed = db.get(RSSFeed, feed_id)
    if feed is None:
        raise HTTPException(status_code=404, detail="RSS feed not found")
    return feed


# Feeds


@router.get("/feeds", response_model=list[FeedOut])
@limiter.limit("60/minute")
def list_feeds(request: Request, db: Session = Depends(get_db)):
    return db.query(RSSFeed).order_by(RSSFeed.name).all()


@router.post("/feeds", response_model=FeedOut, status_code=201)
@limiter.limit("10/minute")
async def create_feed(request: Request, payload: FeedCreate, db: Session = Depends(get_db)):
    """Validate the URL server-side, then store the feed."""
    try:
        return await rss_service.create_feed(db, payload)
    except FeedError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/validate", response_model=FeedValidation)
@limiter.limit("20/minute")
async def validate_feed(
    request: Request, payload: ValidateRequest, db: Session = Depends(get_db)
):
    return await rss_service.validate_feed(db, str(payload.url))


@router.post("/refresh-all", response_model=RefreshAllResult)
@limiter.limit("5/minute")
async def refresh_all(request: Request, db: Session = Depends(get_db)):
    return await rss_service.refresh_all(db)


@router.get("/feeds/{feed_id}", response_model=FeedOut)
@limiter.limit("60/minute")
def get_feed(request: Request, feed_id: int, db: Session = Depends(get_db)):
    return _get_feed_or_404(db, feed_id)


@router.put("/feeds/{feed_id}", response_model=FeedOut)
@limiter.limit("30/minute")
def update_feed(
    request: Request,
    feed_id: int,
    payload: FeedUpdate,
    db: Session = Depends(get_db),
):
    feed = _get_feed_or_404(db, feed_id)
    return rss_service.update_feed(db, feed, payload)


@router.delete("/feeds/{feed_id}")
@limiter.limit("30/minute")
def delete_feed(request: Request, feed_id: int, db: Session = Depends(get_db)):
    feed = _get_feed_or_404(db, feed_id)
    rss_service.delete_feed(db, feed)
    return {"success": True}


@router.post("/feeds/{feed_id}/refresh", response_model=RefreshResult)
@limiter.limit("10/minute")
async def refresh_feed(request: Request, feed_id: int, db: Session = Depends(get_db)):
    feed = _get_feed_or_404(db, feed_id)
    try:
        return await rss_service.refresh_feed(db, feed)
    except FeedError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# Items


@router.get("/items", response_model=ItemPage)
@limiter.limit("60/minute")
def list_items(
    request: Request,
    search: str | None = Query(None),
    feed_id: int | None = Query(None),
    category: str | None = Query(None),
    imported: bool | None = Query(None),
    sort_by: Literal["pub_date", "created_at", "title"] = Query("pub_date"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    items, total = rss_service.list_items(
        db,
        search=search,
        feed_id=feed_id,
        category=category,
        imported=imported,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return ItemPage(
        items=[ItemOut.model_validate(i) for i in items],
        limit=limit,
        offset=offset,
        total=total,
    )


@router.post("/items/bulk-import", response_model=BulkImportResult)
@limiter.limit("5/minute")
async def bulk_import(
    request: Request, payload: BulkImportRequest, db: Session = Depends(get_db)
):
    return await rss_service.bulk_import(db, payload)


@router.post("/items/{item_id}/import", response_model=PostOut, status_code=201)
@limiter.limit("30/minute")
def import_item(
    request: Request,
    item_id: int,
    payload: ImportRequest | None = None,
    db: Session = Depends(get_db),
):
    item = db.get(RSSItem, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="RSS item not found")
    try:
        return rss_service.import_item(db, item, payload)
    except RSSImportError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/auto-import", response_model=AutoImportResult)
@limiter.limit("5/minute")
async def auto_import(request: Request, db: Session = Depends(get_db)):
    return await rss_service.auto_import(db)


# Reporting


@router.get("/analytics")
@limiter.limit("30/minute")
def analytics(
    request: Request,
    time_range: Literal["7d", "30d", "90d"] = Query("30d", alias="range"),
    db: Session = Depends(get_db),
):
    return rss_service.analytics(db, time_range)


@router.get("/export")
@limiter.limit("10/minute")
def export(
    request: Request,
    format: Literal["json", "csv"] = Query("json"),
    include_items: bool = Query(False),
    db: Session = Depends(get_db),
):
    stamp = datetime.now(UTC).strftime("%Y-%m-%d")
    if format == "csv":
        return Response(
            content=rss_service.export_csv(db),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="rss-feeds-{stamp}.csv"'
            },
        )
    return JSONResponse(
        rss_service.export_json(db, include_items=include_items),
        headers={
            "Content-Disposition": f'attachment; filename="rss-feeds-{stamp}.json"'
        },
    )
