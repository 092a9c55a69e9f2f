from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from sqlalchemy import desc
from sqlalchemy.orm import Session

from ivc.config import settings
from ivc.constants import LOCATIONS, PRICING_TIERS, SERVICE_GROUPS
from ivc.database import get_db
from ivc.models.blog import Post
from ivc.schemas.blog import PostStatus
from ivc.security import limiter
from ivc.services.blog_service import blog_service
from ivc.services.feed_builder import build_rss_feed, build_sitemap, published_posts
from ivc.staticfiles import templates

router = APIRouter()

XML_CACHE = "public, max-age=3600"


@router.get("/", response_class=HTMLResponse)
@limiter.limit("60/minute")
def home(request: Request, db: Session = Depends(get_db)):
    latest = (
        db.query(Post)
        .filter(Post.status == PostStatus.PUBLISHED.value)
        .order_by(desc(Post.published_at))
        .limit(3)
        .all()
    )
    return templates.TemplateResponse(
        request,
        "home.html",
        {
            "latest_posts": [blog_service.get_public_post(p) for p in latest],
            "service_groups": SERVICE_GROUPS,
            "locations": LOCATIONS,
        },
    )


@router.get("/about", response_class=HTMLResponse)
@limiter.limit("60/minute")
def about(request: Request):
    return templates.TemplateResponse(request, "about.html", {})


@router.get("/services", response_class=HTMLResponse)
@limiter.limit("60/minute")
def services(request: Request):
    return templates.TemplateResponse(
        request, "services.html", {"service_groups": SERVICE_GROUPS}
    )


@router.get("/pricing", response_class=HTMLResponse)
@limiter.limit("60/minute")
def pricing(request: Request):
    return templates.TemplateResponse(
        request, "pricing.html", {"tiers": PRICING_TIERS}
    )


@router.get("/locations/{slug}", response_class=HTMLResponse)
@limiter.limit("60/minute")
def location(request: Request, slug: str):
    """Town landing page; unknown towns are a 404."""
    page = LOCATIONS.get(slug)
    if page is None:
        raise HTTPException(status_code=404, detail="Location not found")
    return templates.TemplateResponse(
        request,
        "location.html",
        {
            "slug": slug,
            "location": page,
            "tiers": PRICING_TIERS,
            "locations": LOCATIONS,
        },
    )


@router.get("/feed.xml", include_in_schema=False)
@limiter.limit("30/minute")
def feed(request: Request, db: Session = Depends(get_db)):
    body = build_rss_feed(published_posts(db))
    return Response(
        content=body,
        media_type="application/rss+xml; charset=utf-8",
        headers={"Cache-Control": XML_CACHE},
    )


@router.get("/sitemap.xml", include_in_schema=False)
@limiter.limit("30/minute")
def sitemap(request: Request, db: Session = Depends(get_db)):
    return Response(
        content=build_sitemap(db),
        media_type="application/xml",
        headers={"Cache-Control": XML_CACHE},
    )


@router.get("/robots.txt", include_in_schema=False)
@limiter.limit("30/minute")
def robots(request: Request):
    base = settings.site_url.rstrip("/")
    lines = [
        "User-agent: *",
        "Allow: /",
        "Disallow: /api/admin/",
        "Disallow: /auth/",
        f"Sitemap: {base}/sitemap.xml",
    ]
    return PlainTextResponse("\n".join(lines) + "\n")
