"""RSS/Atom ingestion: fetch, parse, deduplicate and import as draft posts."""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from collections import Counter
from datetime import UTC, datetime, timedelta
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any

import httpx
from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET  # noqa: S410
from sqlalchemy import func, or_

from ivc.config import settings
from ivc.models.blog import Category, Post
from ivc.models.rss import RSSFeed, RSSImportHistory, RSSItem
from ivc.observability.metrics import RSS_IMPORTS
from ivc.schemas.rss import (
    AutoImportResult,
    BulkImportRequest,
    BulkImportResult,
    FeedCreate,
    FeedInfo,
    FeedOut,
    FeedUpdate,
    FeedValidation,
    ImportOutcome,
    ImportRequest,
    ImportType,
    ItemOut,
    RefreshAllResult,
    RefreshError,
    RefreshResult,
)
from ivc.services.blog_service import blog_service
from ivc.services.slugs import unique_slug

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

XML_CONTENT_MARKERS = ("xml", "rss", "atom")
FEED_ROOT_MARKERS = ("<rss", "<feed", "<rdf")
TIME_RANGES = {"7d": 7, "30d": 30, "90d": 90}
EXCERPT_LENGTH = 200
CSV_COLUMNS = ["id", "name", "url", "is_active", "last_fetched_at"]


class FeedError(Exception):
    """Feed could not be fetched, parsed or accepted."""


class RSSImportError(Exception):
    """An RSS item could not be turned into a post."""


def _local(tag: Any) -> str:
    """Strip the ``{namespace}`` prefix from an element tag."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _text(element) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def _first_child(element, *names: str):
    for child in element:
        if _local(child.tag) in names:
            return child
    return None


def _child_text(element, *names: str) -> str:
    """Text of the first child matching any of ``names``, in priority order."""
    for name in names:
        child = _first_child(element, name)
        if child is not None:
            value = _text(child)
            if value:
                return value
    return ""


def _entry_link(entry) -> str:
    links = [child for child in entry if _local(child.tag) == "link"]
    for link in links:
        href = link.get("href")
        if href and link.get("rel", "alternate") == "alternate":
            return href.strip()
    for link in links:
        if link.get("href"):
            return link.get("href").strip()
        if _text(link):
            return _text(link)
    return ""


def parse_date(value: str) -> datetime | None:
    """Parse RFC 822 (RSS) or ISO 8601 (Atom, Dublin Core) timestamps."""
    value = (value or "").strip()
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_feed(text: str) -> tuple[dict[str, str], list[dict[str, Any]]]:
    """Parse an RSS 2.0, RSS 1.0 (RDF) or Atom document.

    Args:
        text: Raw XML body

    Returns:
        Tuple of channel info (title, description) and entry dicts

    Raises:
        FeedError: If the document is not XML or not a known feed format
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise FeedError(f"Invalid XML: {exc}") from exc
    except DefusedXmlException as exc:
        raise FeedError("Feed XML uses forbidden constructs") from exc

    root_name = _local(root.tag).lower()
    if root_name not in {"rss", "feed", "rdf"}:
        raise FeedError("Content does not appear to be a valid RSS/Atom feed")

    channel = root if root_name == "feed" else _first_child(root, "channel")
    if channel is None:
        channel = root
    info = {
        "title": _child_text(channel, "title") or "Unknown",
        "description": _child_text(channel, "description", "subtitle"),
    }

    entries = [el for el in root.iter() if _local(el.tag) in {"item", "entry"}]
    items: list[dict[str, Any]] = []
    for entry in entries:
        title = _child_text(entry, "title")
        link = _entry_link(entry)
        guid = _child_text(entry, "guid", "id") or link or title
        if not guid:
            continue
        category_el = _first_child(entry, "category", "subject")
        category = ""
        if category_el is not None:
            category = category_el.get("term") or _text(category_el)
        author_el = _first_child(entry, "author", "creator")
        author = ""
        if author_el is not None:
            author = _child_text(author_el, "name") or _text(author_el)
        items.append(
            {
                "guid": guid[:1000],
                "title": title[:500] or "Untitled",
                "link": link[:1000],
                "description": _child_text(
                    entry, "description", "summary", "encoded", "content"
                ),
                "author": author[:255] or None,
                "category": category[:255] or None,
                "pub_date": parse_date(
                    _child_text(entry, "pubDate", "published", "updated", "date")
                ),
            }
        )
    return info, items


class RSSService:
    """Feed management and the fetch/refresh/import pipeline."""

    def __init__(
        self,
        user_agent: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent or settings.rss_user_agent
        self.timeout = timeout or settings.rss_fetch_timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
            transport=self.transport,
        )

    async def fetch_feed(self, url: str) -> httpx.Response:
        """GET a feed URL; transport failures surface as FeedError."""
        try:
            async with self._client() as client:
                return await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Feed fetch failed", extra={"url": url, "error": str(exc)})
            raise FeedError(f"Failed to fetch feed: {exc}") from exc

    async def fetch_items(self, url: str) -> list[dict[str, Any]]:
        response = await self.fetch_feed(url)
        if not response.is_success:
            raise FeedError(f"HTTP {response.status_code}: {response.reason_phrase}")
        _, items = parse_feed(response.text)
        return items

    async def validate_feed(self, db: Session, url: str) -> FeedValidation:
        """Check that ``url`` is new, reachable and serves a feed."""
        if db.query(RSSFeed.id).filter(RSSFeed.url == url).first():
            return FeedValidation(
                url=url, is_valid=False, error="RSS feed with this URL already exists"
            )

        try:
            response = await self.fetch_feed(url)
        except FeedError as exc:
            return FeedValidation(url=url, is_valid=False, error=str(exc))

        if not response.is_success:
            return FeedValidation(
                url=url,
                is_valid=False,
                error=f"HTTP {response.status_code}: {response.reason_phrase}",
            )

        content_type = response.headers.get("content-type")
        if not content_type:
            return FeedValidation(
                url=url, is_valid=False, error="No content type header found"
            )
        if not any(marker in content_type.lower() for marker in XML_CONTENT_MARKERS):
            return FeedValidation(
                url=url, is_valid=False, error="Content type is not XML/RSS/Atom"
            )

        body = response.text
        if not any(marker in body.lower() for marker in FEED_ROOT_MARKERS):
            return FeedValidation(
                url=url,
                is_valid=False,
                error="Content does not appear to be a valid RSS/Atom feed",
            )

        try:
            info, items = parse_feed(body)
        except FeedError as exc:
            return FeedValidation(url=url, is_valid=False, error=str(exc))

        return FeedValidation(
            url=url,
            is_valid=True,
            feed_info=FeedInfo(
                title=info["title"],
                description=info["description"],
                item_count=len(items),
                content_type=content_type,
            ),
        )

    # Feed CRUD

    async def create_feed(self, db: Session, data: FeedCreate) -> RSSFeed:
        url = str(data.url)
        validation = await self.validate_feed(db, url)
        if not validation.is_valid:
            raise FeedError(validation.error or "Invalid RSS feed")

        feed = RSSFeed(
            name=data.name,
            url=url,
            description=data.description,
            category=data.category,
            is_active=data.is_active,
            auto_import=data.auto_import,
            fetch_interval=data.fetch_interval,
        )
        db.add(feed)
        db.commit()
        db.refresh(feed)
        logger.info("RSS feed created", extra={"feed_id": feed.id, "url": url})
        return feed

    @staticmethod
    def update_feed(db: Session, feed: RSSFeed, data: FeedUpdate) -> RSSFeed:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(feed, field, value)
        db.commit()
        db.refresh(feed)
        return feed

    @staticmethod
    def delete_feed(db: Session, feed: RSSFeed) -> None:
        db.delete(feed)
        db.commit()
        logger.info("RSS feed deleted", extra={"feed_id": feed.id})

    # Refresh

    async def refresh_feed(self, db: Session, feed: RSSFeed) -> RefreshResult:
        """Fetch a feed and store entries not yet seen for it.

        Entries are keyed on (feed_id, guid); existing rows are never touched.

        Raises:
            FeedError: If the feed is inactive or cannot be fetched/parsed
        """
        if not feed.is_active:
            raise FeedError("Feed is inactive")

        parsed = await self.fetch_items(feed.url)

        existing = {
            guid
            for (guid,) in db.query(RSSItem.guid).filter(RSSItem.feed_id == feed.id)
        }
        new_items: list[RSSItem] = []
        for entry in parsed:
            if entry["guid"] in existing:
                continue
            existing.add(entry["guid"])
            item = RSSItem(feed_id=feed.id, imported=False, **entry)
            db.add(item)
            new_items.append(item)

        feed.last_fetched_at = datetime.now(UTC)
        db.commit()
        for item in new_items:
            db.refresh(item)

        logger.info(
            "RSS feed refreshed",
            extra={
                "feed_id": feed.id,
                "items_found": len(parsed),
                "new_items": len(new_items),
            },
        )
        return RefreshResult(
            feed_id=feed.id,
            items_found=len(parsed),
            new_items_count=len(new_items),
            new_items=[ItemOut.model_validate(item) for item in new_items],
        )

    async def refresh_all(self, db: Session) -> RefreshAllResult:
        """Refresh every active feed; one feed failing never stops the run."""
        feeds = (
            db.query(RSSFeed).filter(RSSFeed.is_active.is_(True)).order_by(RSSFeed.id).all()
        )
        result = RefreshAllResult(total=len(feeds))
        for feed in feeds:
            feed_id, feed_name = feed.id, feed.name
            try:
                await self.refresh_feed(db, feed)
                result.refreshed += 1
            except Exception as exc:
                db.rollback()
                logger.exception("RSS refresh failed", extra={"feed_id": feed_id})
                result.failed += 1
                result.errors.append(
                    RefreshError(feed_id=feed_id, feed_name=feed_name, error=str(exc))
                )
        return result

    # Import

    @staticmethod
    def format_content(item: RSSItem, feed: RSSFeed, imported_on: datetime | None = None) -> str:
        """Build the markdown body for an imported item."""
        imported_on = imported_on or datetime.now(UTC)
        parts = [f"# {item.title}\n\n"]
        if item.description:
            parts.append(f"{item.description}\n\n")
        parts.append("---\n\n")
        parts.append(
            f"*This article was imported from [{feed.name}]({item.link}) "
            f"on {imported_on.strftime('%d/%m/%Y')}.*\n\n"
        )
        if item.author:
            parts.append(f"*Author: {item.author}*\n\n")
        parts.append(f"[Read original article]({item.link})")
        return "".join(parts)

    @staticmethod
    def make_excerpt(description: str | None) -> str | None:
        if not description:
            return None
        return description[:EXCERPT_LENGTH] + "..."

    def import_item(
        self,
        db: Session,
        item: RSSItem,
        options: ImportRequest | None = None,
        import_type: ImportType = ImportType.MANUAL,
    ) -> Post:
        """Create a post from an RSS item and record the import.

        Raises:
            RSSImportError: If the item was already imported or the post
                could not be created (a failed history row is written first)
        """
        if item.imported:
            raise RSSImportError("Item already imported")

        options = options or ImportRequest()
        item_id, feed_id = item.id, item.feed_id
        try:
            post = Post(
                title=(item.title or "Untitled")[:255],
                slug=unique_slug(db, Post, item.title or item.guid),
                content=self.format_content(item, item.feed),
                excerpt=self.make_excerpt(item.description),
                source_url=item.link or None,
                seo_keywords=[],
                view_count=0,
            )
            blog_service.set_status(post, options.status)
            blog_service.refresh_derived(post)
            if options.category_ids:
                post.categories = (
                    db.query(Category).filter(Category.id.in_(options.category_ids)).all()
                )
            if options.tags:
                post.tags = blog_service.ensure_tags(db, options.tags)
            db.add(post)
            db.flush()

            item.imported = True
            item.imported_at = datetime.now(UTC)
            item.imported_post_id = post.id
            db.add(
                RSSImportHistory(
                    feed_id=feed_id,
                    item_id=item_id,
                    import_type=import_type.value,
                    status="success",
                )
            )
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.exception("RSS import failed", extra={"item_id": item_id})
            db.add(
                RSSImportHistory(
                    feed_id=feed_id,
                    item_id=item_id,
                    import_type=import_type.value,
                    status="failed",
                    error_message=str(exc),
                )
            )
            db.commit()
            RSS_IMPORTS.labels(import_type.value, "failed").inc()
            raise RSSImportError(str(exc)) from exc

        db.refresh(post)
        RSS_IMPORTS.labels(import_type.value, "success").inc()
        logger.info(
            "RSS item imported",
            extra={"item_id": item_id, "post_id": post.id, "import_type": import_type.value},
        )
        return post

    async def bulk_import(self, db: Session, request: BulkImportRequest) -> BulkImportResult:
        """Import items sequentially in fixed-size batches with a pause between."""
        result = BulkImportResult()
        options = ImportRequest(
            category_ids=request.category_ids, tags=request.tags, status=request.status
        )
        item_ids = list(dict.fromkeys(request.item_ids))
        batch_size = max(settings.rss_bulk_batch_size, 1)

        for start in range(0, len(item_ids), batch_size):
            if start:
                await asyncio.sleep(settings.rss_bulk_batch_delay)
            for item_id in item_ids[start : start + batch_size]:
                item = db.get(RSSItem, item_id)
                if item is None:
                    result.failed.append(
                        ImportOutcome(item_id=item_id, error="RSS item not found")
                    )
                    continue
                if item.imported:
                    result.skipped.append(
                        ImportOutcome(
                            item_id=item_id,
                            post_id=item.imported_post_id,
                            error="Item already imported",
                        )
                    )
                    continue
                try:
                    post = self.import_item(db, item, options, ImportType.BULK)
                except RSSImportError as exc:
                    result.failed.append(ImportOutcome(item_id=item_id, error=str(exc)))
                    continue
                result.imported.append(ImportOutcome(item_id=item_id, post_id=post.id))
        return result

    async def auto_import(self, db: Session) -> AutoImportResult:
        """Refresh auto-import feeds and import their newest unimported items."""
        result = AutoImportResult()
        feeds = (
            db.query(RSSFeed)
            .filter(RSSFeed.is_active.is_(True), RSSFeed.auto_import.is_(True))
            .order_by(RSSFeed.id)
            .all()
        )
        for feed in feeds:
            feed_id = feed.id
            try:
                await self.refresh_feed(db, feed)
            except FeedError as exc:
                db.rollback()
                logger.error(
                    "Auto-import refresh failed",
                    extra={"feed_id": feed_id, "error": str(exc)},
                )
                result.feed_errors += 1
                continue

            result.feeds_processed += 1
            pending = (
                db.query(RSSItem)
                .filter(RSSItem.feed_id == feed_id, RSSItem.imported.is_(False))
                .order_by(
                    RSSItem.pub_date.desc().nulls_last(),
                    RSSItem.created_at.desc(),
                    # Feeds list newest first, so earlier rows win ties
                    RSSItem.id.asc(),
                )
                .limit(settings.rss_auto_import_limit)
                .all()
            )
            for item in pending:
                try:
                    self.import_item(db, item, import_type=ImportType.AUTO)
                    result.items_imported += 1
                except RSSImportError:
                    result.item_errors += 1
        logger.info("Auto-import finished", extra=result.model_dump())
        return result

    # Queries

    @staticmethod
    def list_items(
        db: Session,
        *,
        search: str | None = None,
        feed_id: int | None = None,
        category: str | None = None,
        imported: bool | None = None,
        sort_by: str = "pub_date",
        sort_order: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[RSSItem], int]:
        query = db.query(RSSItem)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(RSSItem.title.ilike(pattern), RSSItem.description.ilike(pattern))
            )
        if feed_id is not None:
            query = query.filter(RSSItem.feed_id == feed_id)
        if category:
            query = query.filter(RSSItem.category == category)
        if imported is not None:
            query = query.filter(RSSItem.imported.is_(imported))

        total = query.count()
        columns = {
            "pub_date": RSSItem.pub_date,
            "created_at": RSSItem.created_at,
            "title": RSSItem.title,
        }
        column = columns.get(sort_by, RSSItem.pub_date)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        items = query.order_by(ordering, RSSItem.id.desc()).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def analytics(db: Session, time_range: str = "30d") -> dict[str, Any]:
        """Aggregate feed/item/import counts over the last 7, 30 or 90 days."""
        days = TIME_RANGES.get(time_range, 30)
        since = datetime.now(UTC) - timedelta(days=days)

        feeds = db.query(RSSFeed).order_by(RSSFeed.name).all()
        items = db.query(RSSItem).filter(RSSItem.created_at >= since).all()
        history = (
            db.query(RSSImportHistory.status, func.count(RSSImportHistory.id))
            .filter(RSSImportHistory.created_at >= since)
            .group_by(RSSImportHistory.status)
            .all()
        )
        history_counts = dict(history)

        imported = [item for item in items if item.imported]
        per_feed_total = Counter(item.feed_id for item in items)
        per_feed_imported = Counter(item.feed_id for item in imported)
        by_date = Counter(
            item.created_at.date().isoformat() for item in items if item.created_at
        )
        categories = Counter(feed.category for feed in feeds if feed.category)

        return {
            "time_range": time_range if time_range in TIME_RANGES else "30d",
            "total_feeds": len(feeds),
            "active_feeds": sum(1 for feed in feeds if feed.is_active),
            "total_items": len(items),
            "imported_items": len(imported),
            "import_rate": round(len(imported) / len(items) * 100, 2) if items else 0,
            "successful_imports": history_counts.get("success", 0),
            "failed_imports": history_counts.get("failed", 0),
            "items_by_feed": [
                {
                    "feed_id": feed.id,
                    "feed": feed.name,
                    "total": per_feed_total.get(feed.id, 0),
                    "imported": per_feed_imported.get(feed.id, 0),
                }
                for feed in feeds
            ],
            "items_by_date": dict(sorted(by_date.items())),
            "top_categories": dict(categories.most_common()),
        }

    @staticmethod
    def export_json(db: Session, include_items: bool = False) -> dict[str, Any]:
        feeds = db.query(RSSFeed).order_by(RSSFeed.id).all()
        payload: dict[str, Any] = {
            "exported_at": datetime.now(UTC).isoformat(),
            "feeds": [FeedOut.model_validate(f).model_dump(mode="json") for f in feeds],
        }
        summary = {
            "total_feeds": len(feeds),
            "active_feeds": sum(1 for f in feeds if f.is_active),
        }
        if include_items:
            items = db.query(RSSItem).order_by(RSSItem.id).all()
            payload["items"] = [
                ItemOut.model_validate(i).model_dump(mode="json") for i in items
            ]
            summary["total_items"] = len(items)
            summary["imported_items"] = sum(1 for i in items if i.imported)
        payload["summary"] = summary
        return payload

    @staticmethod
    def export_csv(db: Session) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_COLUMNS)
        for feed in db.query(RSSFeed).order_by(RSSFeed.id):
            writer.writerow(
                [
                    feed.id,
                    feed.name,
                    feed.url,
                    str(feed.is_active).lower(),
                    feed.last_fetched_at.isoformat() if feed.last_fetched_at else "",
                ]
            )
        return buffer.getvalue()


rss_service = RSSService()
