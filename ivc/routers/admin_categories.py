"""Admin JSON API for hierarchical blog categories."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ivc.auth import current_admin_user
from ivc.database import get_db
from ivc.schemas.category import (
    CategoryBulkDelete,
    CategoryCreate,
    CategoryNode,
    CategoryOut,
    CategoryReorder,
    CategorySort,
    CategoryStats,
    CategoryUpdate,
)
from ivc.security import limiter
from ivc.services import category_service
from ivc.services.category_service import (
    CategoryError,
    CategoryInUseError,
    CategoryNotFoundError,
)

router = APIRouter(
    prefix="/api/admin/categories",
    tags=["admin"],
    dependencies=[Depends(current_admin_user)],
)


def _get_or_404(db: Session, category_id: int):
    category = category_service.get_category(db, category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.get("", response_model=list[CategoryOut])
@limiter.limit("60/minute")
def list_categories(
    request: Request,
    search: str | None = Query(None),
    featured: bool | None = Query(None),
    visible: bool | None = Query(None),
    parent_id: int | None = Query(None),
    sort_by: CategorySort = Query("sort_order"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    db: Session = Depends(get_db),
):
    return category_service.list_categories(
        db,
        search=search,
        featured=featured,
        visible=visible,
        parent_id=parent_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/tree", response_model=list[CategoryNode])
@limiter.limit("60/minute")
def category_tree(request: Request, db: Session = Depends(get_db)):
    return category_service.build_tree(category_service.list_categories(db))


@router.get("/stats", response_model=CategoryStats)
@limiter.limit("60/minute")
def category_stats(request: Request, db: Session = Depends(get_db)):
    return category_service.category_stats(db)


@router.post("", response_model=CategoryOut, status_code=201)
@limiter.limit("30/minute")
def create_category(
    request: Request, payload: CategoryCreate, db: Session = Depends(get_db)
):
    try:
        category = category_service.create_category(db, payload)
    except CategoryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return category_service.to_out(category, 0)


@router.post("/bulk-delete")
@limiter.limit("10/minute")
def bulk_delete(
    request: Request, payload: CategoryBulkDelete, db: Session = Depends(get_db)
):
    """Delete several categories; refused entirely if any still has posts."""
    try:
        deleted = category_service.bulk_delete_categories(db, payload.ids)
    except CategoryInUseError as exc:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Cannot delete categories that have posts assigned",
                "categories_with_posts": exc.category_ids,
            },
        ) from exc
    return {"success": True, "deleted_count": deleted}


@router.post("/reorder")
@limiter.limit("30/minute")
def reorder(request: Request, payload: CategoryReorder, db: Session = Depends(get_db)):
    orders = {item.id: item.sort_order for item in payload.items}
    try:
        updated = category_service.reorder_categories(db, orders)
    except CategoryNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"success": True, "updated_count": updated}


@router.get("/{category_id}", response_model=CategoryOut)
@limiter.limit("60/minute")
def get_category(request: Request, category_id: int, db: Session = Depends(get_db)):
    category = _get_or_404(db, category_id)
    return category_service.to_out(
        category, category_service.post_count_for(db, category_id)
    )


@router.put("/{category_id}", response_model=CategoryOut)
@limiter.limit("30/minute")
def update_category(
    request: Request,
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
):
    category = _get_or_404(db, category_id)
    try:
        category = category_service.update_category(db, category, payload)
    except CategoryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return category_service.to_out(
        category, category_service.post_count_for(db, category_id)
    )


@router.delete("/{category_id}")
@limiter.limit("30/minute")
def delete_category(
    request: Request, category_id: int, db: Session = Depends(get_db)
):
    category = _get_or_404(db, category_id)
    try:
        category_service.delete_category(db, category)
    except CategoryInUseError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"success": True}
