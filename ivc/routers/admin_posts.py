"""Admin JSON API for blog posts and tags."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ivc.auth import current_admin_user
from ivc.database import get_db
from ivc.models.blog import Post, Tag
from ivc.schemas.blog import PostCreate, PostList, PostOut, PostUpdate, TagCreate, TagOut
from ivc.security import limiter
from ivc.services.blog_service import blog_service

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(current_admin_user)],
)


def _get_post_or_404(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("/posts", response_model=PostList)
@limiter.limit("60/minute")
def list_posts(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = Query(None),
    search: str | None = Query(None),
    category: str | None = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    db: Session = Depends(get_db),
):
    """Paginated post listing with status counts for the dashboard."""
    query = blog_service.filter_posts(
        db.query(Post), status=status, search=search, category=category
    )
    rows, pagination = blog_service.paginate(
        query, page, limit, blog_service.sort_column(sort_by, sort_order)
    )
    return PostList(
        posts=[PostOut.model_validate(p) for p in rows],
        pagination=pagination,
        stats=blog_service.post_stats(db),
    )


@router.post("/posts", response_model=PostOut, status_code=201)
@limiter.limit("30/minute")
def create_post(request: Request, payload: PostCreate, db: Session = Depends(get_db)):
    return blog_service.create_post(db, payload)


@router.get("/posts/{post_id}", response_model=PostOut)
@limiter.limit("60/minute")
def get_post(request: Request, post_id: int, db: Session = Depends(get_db)):
    return _get_post_or_404(db, post_id)


@router.put("/posts/{post_id}", response_model=PostOut)
@limiter.limit("30/minute")
def update_post(
    request: Request,
    post_id: int,
    payload: PostUpdate,
    db: Session = Depends(get_db),
):
    post = _get_post_or_404(db, post_id)
    return blog_service.update_post(db, post, payload)


@router.post("/posts/{post_id}/publish", response_model=PostOut)
@limiter.limit("30/minute")
def publish_post(request: Request, post_id: int, db: Session = Depends(get_db)):
    post = _get_post_or_404(db, post_id)
    return blog_service.publish_post(db, post)


@router.delete("/posts/{post_id}")
@limiter.limit("30/minute")
def delete_post(request: Request, post_id: int, db: Session = Depends(get_db)):
    post = _get_post_or_404(db, post_id)
    blog_service.delete_post(db, post)
    return {"success": True}


# Tags


@router.get("/tags", response_model=list[TagOut])
@limiter.limit("60/minute")
def list_tags(request: Request, db: Session = Depends(get_db)):
    return [
        TagOut(
            id=tag.id,
            name=tag.name,
            slug=tag.slug,
            post_count=count,
            created_at=tag.created_at,
        )
        for tag, count in blog_service.list_tags(db)
    ]


@router.post("/tags", response_model=TagOut, status_code=201)
@limiter.limit("30/minute")
def create_tag(request: Request, payload: TagCreate, db: Session = Depends(get_db)):
    if not payload.name.strip():
        raise HTTPException(status_code=400, detail="Tag name is required")
    return blog_service.create_tag(db, payload.name, payload.slug)


@router.delete("/tags/{tag_id}")
@limiter.limit("30/minute")
def delete_tag(request: Request, tag_id: int, db: Session = Depends(get_db)):
    tag = db.get(Tag, tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    db.delete(tag)
    db.commit()
    return {"success": True}
