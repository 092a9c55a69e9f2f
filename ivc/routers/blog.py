"""Public blog pages."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from sqlalchemy import desc
from sqlalchemy.orm import Session

from ivc.database import get_db
from ivc.models.blog import Category, Post, Tag
from ivc.schemas.blog import PostStatus
from ivc.security import limiter
from ivc.services import category_service
from ivc.services.blog_service import blog_service
from ivc.staticfiles import templates

router = APIRouter(prefix="/blog", tags=["blog"])

POSTS_PER_PAGE = 9


def _render_index(
    request: Request,
    db: Session,
    page: int,
    *,
    search: str | None = None,
    category: Category | None = None,
    tag: Tag | None = None,
):
    query = blog_service.filter_posts(
        db.query(Post),
        status=PostStatus.PUBLISHED.value,
        search=search,
        category=category.slug if category else None,
        tag=tag.slug if tag else None,
    )
    rows, pagination = blog_service.paginate(
        query, page, POSTS_PER_PAGE, desc(Post.published_at)
    )
    return templates.TemplateResponse(
        request,
        "blog_index.html",
        {
            "posts": [blog_service.get_public_post(p) for p in rows],
            "pagination": pagination,
            "categories": category_service.list_categories(db, visible=True),
            "current_category": category,
            "current_tag": tag,
            "search": search or "",
        },
    )


@router.get("", response_class=HTMLResponse, name="blog_index")
@limiter.limit("60/minute")
def blog_index(
    request: Request,
    page: int = Query(1, ge=1),
    q: str | None = Query(None, max_length=200),
    db: Session = Depends(get_db),
):
    return _render_index(request, db, page, search=q)


@router.get("/category/{slug}", response_class=HTMLResponse, name="blog_category")
@limiter.limit("60/minute")
def blog_category(
    request: Request,
    slug: str,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    category = (
        db.query(Category)
        .filter(Category.slug == slug, Category.is_visible.is_(True))
        .first()
    )
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return _render_index(request, db, page, category=category)


@router.get("/tag/{slug}", response_class=HTMLResponse, name="blog_tag")
@limiter.limit("60/minute")
def blog_tag(
    request: Request,
    slug: str,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    tag = db.query(Tag).filter(Tag.slug == slug).first()
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    return _render_index(request, db, page, tag=tag)


@router.get("/{slug}", response_class=HTMLResponse, name="blog_post")
@limiter.limit("60/minute")
def blog_post(request: Request, slug: str, db: Session = Depends(get_db)):
    """Single published post; drafts are a 404."""
    post = blog_service.get_published_by_slug(db, slug)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    blog_service.increment_views(db, post)
    return templates.TemplateResponse(
        request,
        "blog_post.html",
        {
            "post": blog_service.get_public_post(post),
            "related": [
                blog_service.get_public_post(p)
                for p in blog_service.related_posts(db, post)
            ],
        },
    )
