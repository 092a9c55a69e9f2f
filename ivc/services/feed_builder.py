"""RSS 2.0 feed and XML sitemap generation for published posts."""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import format_datetime
from typing import TYPE_CHECKING
from xml.etree import ElementTree as ET  # noqa: S405 - building, not parsing

from ivc.config import settings
from ivc.constants import LOCATIONS, STATIC_PAGES
from ivc.models.blog import Category, Post
from ivc.schemas.blog import PostStatus

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

ATOM_NS = "http://www.w3.org/2005/Atom"
DC_NS = "http://purl.org/dc/elements/1.1/"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
FEED_LIMIT = 50

ET.register_namespace("atom", ATOM_NS)
ET.register_namespace("dc", DC_NS)
ET.register_namespace("content", CONTENT_NS)


def _base_url() -> str:
    return settings.site_url.rstrip("/")


def _as_utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _sub(parent: ET.Element, tag: str, text: str | None = None, **attrs) -> ET.Element:
    element = ET.SubElement(parent, tag, attrs)
    if text is not None:
        element.text = text
    return element


def published_posts(db: Session, limit: int | None = FEED_LIMIT) -> list[Post]:
    query = (
        db.query(Post)
        .filter(Post.status == PostStatus.PUBLISHED.value)
        .order_by(Post.published_at.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def build_rss_feed(posts: list[Post]) -> bytes:
    """Render published posts as an RSS 2.0 document."""
    base = _base_url()
    rss = ET.Element("rss", {"version": "2.0"})
    channel = _sub(rss, "channel")
    _sub(channel, "title", f"{settings.site_name} Blog")
    _sub(
        channel,
        f"{{{ATOM_NS}}}link",
        href=f"{base}/feed.xml",
        rel="self",
        type="application/rss+xml",
    )
    _sub(channel, "link", f"{base}/blog")
    _sub(channel, "description", settings.site_description)
    _sub(channel, "language", "en-GB")
    _sub(channel, "lastBuildDate", format_datetime(datetime.now(UTC)))

    for post in posts:
        url = f"{base}/blog/{post.slug}"
        item = _sub(channel, "item")
        _sub(item, "title", post.title)
        _sub(item, "link", url)
        _sub(item, "guid", url, isPermaLink="true")
        _sub(item, "pubDate", format_datetime(_as_utc(post.published_at)))
        _sub(item, f"{{{DC_NS}}}creator", f"{settings.site_name} Team")
        for category in post.categories:
            _sub(item, "category", category.name)
        _sub(item, "description", post.excerpt or post.seo_description or "")
        if post.content_html:
            _sub(item, f"{{{CONTENT_NS}}}encoded", post.content_html)

    return ET.tostring(rss, encoding="utf-8", xml_declaration=True)


def build_sitemap(db: Session) -> bytes:
    """Static pages, location pages, visible categories and published posts."""
    base = _base_url()
    today = datetime.now(UTC).date().isoformat()
    urlset = ET.Element("urlset", {"xmlns": SITEMAP_NS})

    def add(path: str, lastmod: str, changefreq: str, priority: float) -> None:
        url = _sub(urlset, "url")
        _sub(url, "loc", f"{base}{path}")
        _sub(url, "lastmod", lastmod)
        _sub(url, "changefreq", changefreq)
        _sub(url, "priority", f"{priority:.1f}")

    for path, (changefreq, priority) in STATIC_PAGES.items():
        add(path, today, changefreq, priority)
    for slug in LOCATIONS:
        add(f"/locations/{slug}", today, "monthly", 0.7)
    for category in (
        db.query(Category).filter(Category.is_visible.is_(True)).order_by(Category.slug)
    ):
        add(f"/blog/category/{category.slug}", today, "weekly", 0.5)
    for post in published_posts(db, limit=None):
        lastmod = _as_utc(post.updated_at or post.published_at).date().isoformat()
        add(f"/blog/{post.slug}", lastmod, "monthly", 0.6)

    return ET.tostring(urlset, encoding="utf-8", xml_declaration=True)
