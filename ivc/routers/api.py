"""Public read-only JSON API for the blog."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import desc
from sqlalchemy.orm import Session

from ivc.database import get_db
from ivc.models.blog import Post
from ivc.schemas.blog import PostStatus, PublicPostDetail, PublicPostList, TagOut
from ivc.schemas.category import CategoryOut
from ivc.security import limiter
from ivc.services import category_service
from ivc.services.blog_service import blog_service

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/posts", response_model=PublicPostList)
@limiter.limit("60/minute")
def list_posts(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    category: str | None = Query(None),
    tag: str | None = Query(None),
    search: str | None = Query(None),
    db: Session = Depends(get_db),
):
    query = blog_service.filter_posts(
        db.query(Post),
        status=PostStatus.PUBLISHED.value,
        search=search,
        category=category,
        tag=tag,
    )
    rows, pagination = blog_service.paginate(query, page, limit, desc(Post.published_at))
    return PublicPostList(
        posts=[blog_service.get_public_post(p) for p in rows],
        pagination=pagination,
    )


@router.get("/posts/{slug}", response_model=PublicPostDetail)
@limiter.limit("60/minute")
def get_post(request: Request, slug: str, db: Session = Depends(get_db)):
    post = blog_service.get_published_by_slug(db, slug)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    blog_service.increment_views(db, post)
    return PublicPostDetail(
        post=blog_service.get_public_post(post),
        related=[
            blog_service.get_public_post(p) for p in blog_service.related_posts(db, post)
        ],
    )


@router.get("/categories", response_model=list[CategoryOut])
@limiter.limit("60/minute")
def list_categories(request: Request, db: Session = Depends(get_db)):
    return category_service.list_categories(db, visible=True)


@router.get("/tags", response_model=list[TagOut])
@limiter.limit("60/minute")
def list_tags(request: Request, db: Session = Depends(get_db)):
    return [
        TagOut(id=t.id, name=t.name, slug=t.slug, post_count=n, created_at=t.created_at)
        for t, n in blog_service.list_tags(db)
    ]
