"""RSS parsing, validation, refresh and import pipeline."""

from __future__ import annotations

import math
from datetime import datetime
from unittest.mock import AsyncMock, call

import httpx
import pytest

from ivc.models.blog import Category, Post
from ivc.models.rss import RSSFeed, RSSImportHistory, RSSItem
from ivc.schemas.rss import BulkImportRequest, ImportRequest, ImportType
from ivc.services.rss_service import (
    FeedError,
    RSSImportError,
    RSSService,
    parse_date,
    parse_feed,
)

RSS_FEED = """<?xml version="1.0"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>HMRC News</title>
    <description>Updates from HMRC</description>
    <item>
      <title>VAT threshold changes</title>
      <link>https://example.com/vat</link>
      <guid>vat-2025</guid>
      <description>The VAT registration threshold rises.</description>
      <category>VAT</category>
      <dc:creator>Jane Clerk</dc:creator>
      <pubDate>Tue, 01 Apr 2025 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Payroll reminders</title>
      <link>https://example.com/payroll</link>
    </item>
  </channel>
</rss>"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Small Business Blog</title>
  <subtitle>Advice for owners</subtitle>
  <entry>
    <title>Cash flow basics</title>
    <link rel="alternate" href="https://example.org/cash-flow"/>
    <id>urn:uuid:1234</id>
    <summary>Keep an eye on receivables.</summary>
    <author><name>Sam Ledger</name></author>
    <category term="Finance"/>
    <updated>2025-03-10T12:30:00Z</updated>
  </entry>
</feed>"""

RDF_FEED = """<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/"
         xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Old School Feed</title>
    <description>RSS 1.0</description>
  </channel>
  <item>
    <title>Budget summary</title>
    <link>https://example.net/budget</link>
    <dc:date>2025-03-26T08:00:00+00:00</dc:date>
  </item>
</rdf:RDF>"""

FEED_URL = "https://feeds.example.com/hmrc.xml"


def _rss_with_items(count: int) -> str:
    items = "".join(
        f"<item><title>Story {i}</title><link>https://example.com/{i}</link>"
        f"<guid>story-{i}</guid></item>"
        for i in range(count)
    )
    return f'<rss version="2.0"><channel><title>Many</title>{items}</channel></rss>'


def _service(body: str = RSS_FEED, status_code: int = 200, content_type: str = "application/rss+xml"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code, text=body, headers={"content-type": content_type}
        )

    return RSSService(transport=httpx.MockTransport(handler))


def _feed(db, **fields) -> RSSFeed:
    fields.setdefault("name", "HMRC")
    fields.setdefault("url", FEED_URL)
    feed = RSSFeed(**fields)
    db.add(feed)
    db.commit()
    db.refresh(feed)
    return feed


def _item(db, feed: RSSFeed, **fields) -> RSSItem:
    fields.setdefault("guid", "guid-1")
    fields.setdefault("title", "Corporation tax update")
    fields.setdefault("link", "https://example.com/ct")
    fields.setdefault("description", "Rates are changing for large companies.")
    item = RSSItem(feed_id=feed.id, **fields)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


class TestParseFeed:
    def test_rss2(self):
        info, items = parse_feed(RSS_FEED)

        assert info == {"title": "HMRC News", "description": "Updates from HMRC"}
        assert len(items) == 2
        first = items[0]
        assert first["guid"] == "vat-2025"
        assert first["category"] == "VAT"
        assert first["author"] == "Jane Clerk"
        assert first["pub_date"].year == 2025
        # guid falls back to the link
        assert items[1]["guid"] == "https://example.com/payroll"
        assert items[1]["description"] == ""

    def test_atom(self):
        info, items = parse_feed(ATOM_FEED)

        assert info["title"] == "Small Business Blog"
        assert info["description"] == "Advice for owners"
        entry = items[0]
        assert entry["guid"] == "urn:uuid:1234"
        assert entry["link"] == "https://example.org/cash-flow"
        assert entry["author"] == "Sam Ledger"
        assert entry["category"] == "Finance"
        assert entry["pub_date"].month == 3

    def test_rdf(self):
        info, items = parse_feed(RDF_FEED)

        assert info["title"] == "Old School Feed"
        assert [i["title"] for i in items] == ["Budget summary"]
        assert items[0]["pub_date"] is not None

    def test_not_xml(self):
        with pytest.raises(FeedError, match="Invalid XML"):
            parse_feed("<html><body>oops")

    def test_unknown_root(self):
        with pytest.raises(FeedError):
            parse_feed("<html><body>hi</body></html>")

    def test_entity_expansion_is_refused(self):
        bomb = (
            '<?xml version="1.0"?><!DOCTYPE rss [<!ENTITY a "aaaa">]>'
            "<rss><channel><title>&a;</title></channel></rss>"
        )
        with pytest.raises(FeedError):
            parse_feed(bomb)


def test_parse_date_formats():
    assert parse_date("Tue, 01 Apr 2025 09:00:00 GMT").hour == 9
    assert parse_date("2025-03-10T12:30:00Z").tzinfo is not None
    assert parse_date("2025-03-10").tzinfo is not None
    assert parse_date("next tuesday") is None
    assert parse_date("") is None


class TestValidateFeed:
    @pytest.mark.asyncio
    async def test_valid_feed(self, db_session):
        result = await _service().validate_feed(db_session, FEED_URL)

        assert result.is_valid is True
        assert result.feed_info.title == "HMRC News"
        assert result.feed_info.item_count == 2

    @pytest.mark.asyncio
    async def test_duplicate_url(self, db_session):
        _feed(db_session)
        result = await _service().validate_feed(db_session, FEED_URL)
        assert result.error == "RSS feed with this URL already exists"

    @pytest.mark.asyncio
    async def test_http_error(self, db_session):
        result = await _service(status_code=404).validate_feed(db_session, FEED_URL)
        assert result.is_valid is False
        assert result.error == "HTTP 404: Not Found"

    @pytest.mark.asyncio
    async def test_wrong_content_type(self, db_session):
        result = await _service(content_type="text/html").validate_feed(
            db_session, FEED_URL
        )
        assert result.error == "Content type is not XML/RSS/Atom"

    @pytest.mark.asyncio
    async def test_xml_that_is_not_a_feed(self, db_session):
        result = await _service(
            body="<?xml version='1.0'?><sitemap/>", content_type="application/xml"
        ).validate_feed(db_session, FEED_URL)
        assert result.error == "Content does not appear to be a valid RSS/Atom feed"

    @pytest.mark.asyncio
    async def test_network_failure(self, db_session):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        service = RSSService(transport=httpx.MockTransport(handler))
        result = await service.validate_feed(db_session, FEED_URL)

        assert result.is_valid is False
        assert result.error.startswith("Failed to fetch feed")


class TestRefresh:
    @pytest.mark.asyncio
    async def test_new_items_are_stored_once(self, db_session):
        feed = _feed(db_session)
        service = _service()

        first = await service.refresh_feed(db_session, feed)
        second = await service.refresh_feed(db_session, feed)

        assert (first.items_found, first.new_items_count) == (2, 2)
        assert (second.items_found, second.new_items_count) == (2, 0)
        assert db_session.query(RSSItem).count() == 2
        assert feed.last_fetched_at is not None

    @pytest.mark.asyncio
    async def test_inactive_feed(self, db_session):
        feed = _feed(db_session, is_active=False)
        with pytest.raises(FeedError, match="inactive"):
            await _service().refresh_feed(db_session, feed)

    @pytest.mark.asyncio
    async def test_refresh_all_isolates_failures(self, db_session):
        _feed(db_session, name="Good", url="https://good.example.com/rss")
        _feed(db_session, name="Bad", url="https://bad.example.com/rss")
        _feed(db_session, name="Off", url="https://off.example.com/rss", is_active=False)

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "bad.example.com":
                return httpx.Response(500, text="boom")
            return httpx.Response(
                200, text=RSS_FEED, headers={"content-type": "application/rss+xml"}
            )

        service = RSSService(transport=httpx.MockTransport(handler))
        result = await service.refresh_all(db_session)

        assert (result.total, result.refreshed, result.failed) == (2, 1, 1)
        assert result.errors[0].feed_name == "Bad"


class TestImport:
    def test_import_creates_draft_with_attribution(self, db_session):
        feed = _feed(db_session)
        item = _item(db_session, feed, author="Jane Clerk")

        post = RSSService().import_item(db_session, item)

        assert post.status == "draft"
        assert post.published_at is None
        assert post.slug == "corporation-tax-update"
        assert post.source_url == "https://example.com/ct"
        assert post.excerpt == "Rates are changing for large companies...."
        assert post.content.startswith("# Corporation tax update\n\n")
        assert "[HMRC](https://example.com/ct)" in post.content
        assert "*Author: Jane Clerk*" in post.content
        assert post.content.endswith("[Read original article](https://example.com/ct)")

        db_session.refresh(item)
        assert item.imported is True
        assert item.imported_post_id == post.id
        history = db_session.query(RSSImportHistory).one()
        assert (history.import_type, history.status) == ("manual", "success")

    def test_import_options(self, db_session, make_category):
        category = make_category("News")
        feed = _feed(db_session)
        item = _item(db_session, feed)

        post = RSSService().import_item(
            db_session,
            item,
            ImportRequest(category_ids=[category.id], tags=["HMRC", "Tax"], status="published"),
        )

        assert post.status == "published"
        assert post.published_at is not None
        assert [c.slug for c in post.categories] == ["news"]
        assert sorted(t.slug for t in post.tags) == ["hmrc", "tax"]

    def test_reimport_refused(self, db_session):
        feed = _feed(db_session)
        item = _item(db_session, feed)
        service = RSSService()
        service.import_item(db_session, item)

        with pytest.raises(RSSImportError, match="already imported"):
            service.import_item(db_session, item)
        assert db_session.query(Post).count() == 1

    def test_format_content_without_description(self, db_session):
        feed = _feed(db_session)
        item = _item(db_session, feed, description="")

        content = RSSService.format_content(item, feed, datetime(2025, 4, 6))

        assert content.startswith("# Corporation tax update\n\n---\n\n")
        assert "on 06/04/2025." in content
        assert RSSService.make_excerpt("") is None

    @pytest.mark.asyncio
    async def test_bulk_import_reports_each_item(self, db_session, monkeypatch):
        from ivc.config import settings

        monkeypatch.setattr(settings, "rss_bulk_batch_size", 2)
        monkeypatch.setattr(settings, "rss_bulk_batch_delay", 1.5)
        pause = AsyncMock()
        monkeypatch.setattr("ivc.services.rss_service.asyncio.sleep", pause)
        feed = _feed(db_session)
        fresh = [_item(db_session, feed, guid=f"g{i}", title=f"Item {i}") for i in range(3)]
        done = _item(db_session, feed, guid="done", title="Done")
        service = RSSService()
        service.import_item(db_session, done)

        result = await service.bulk_import(
            db_session,
            BulkImportRequest(item_ids=[i.id for i in fresh] + [done.id, 9999]),
        )

        assert [o.item_id for o in result.imported] == [i.id for i in fresh]
        assert [o.item_id for o in result.skipped] == [done.id]
        assert result.failed[0].error == "RSS item not found"
        bulk = db_session.query(RSSImportHistory).filter_by(
            import_type=ImportType.BULK.value
        )
        assert bulk.count() == 3
        # Five ids in batches of two: a pause between batches, none before the first
        assert pause.await_count == math.ceil(5 / 2) - 1
        assert pause.await_args_list == [call(1.5), call(1.5)]

    @pytest.mark.asyncio
    async def test_auto_import_caps_per_feed(self, db_session):
        _feed(db_session, auto_import=True)
        _feed(db_session, name="Manual", url="https://manual.example.com/rss")
        service = _service(body=_rss_with_items(7))

        result = await service.auto_import(db_session)

        assert result.feeds_processed == 1
        assert result.items_imported == 5
        assert db_session.query(RSSItem).filter(RSSItem.imported.is_(False)).count() == 2
        assert db_session.query(Post).filter(Post.status == "draft").count() == 5

    @pytest.mark.asyncio
    async def test_auto_import_takes_newest_items(self, db_session):
        items = "".join(
            f"<item><title>Story {i}</title><link>https://example.com/{i}</link>"
            f"<guid>story-{i}</guid><pubDate>{10 - i:02d} Jun 2025 09:00:00 GMT</pubDate></item>"
            for i in range(7)
        )
        body = f'<rss version="2.0"><channel><title>Dated</title>{items}</channel></rss>'
        _feed(db_session, auto_import=True)

        await _service(body=body).auto_import(db_session)

        left = db_session.query(RSSItem).filter(RSSItem.imported.is_(False))
        assert sorted(item.title for item in left) == ["Story 5", "Story 6"]

    @pytest.mark.asyncio
    async def test_auto_import_keeps_document_order_without_dates(self, db_session):
        _feed(db_session, auto_import=True)

        await _service(body=_rss_with_items(7)).auto_import(db_session)

        left = db_session.query(RSSItem).filter(RSSItem.imported.is_(False))
        assert sorted(item.title for item in left) == ["Story 5", "Story 6"]


def test_analytics_and_exports(db_session):
    feed = _feed(db_session, category="Tax")
    item = _item(db_session, feed)
    _item(db_session, feed, guid="guid-2")
    service = RSSService()
    service.import_item(db_session, item)

    stats = service.analytics(db_session, "7d")
    assert stats["total_items"] == 2
    assert stats["imported_items"] == 1
    assert stats["import_rate"] == 50.0
    assert stats["successful_imports"] == 1
    assert stats["top_categories"] == {"Tax": 1}
    assert service.analytics(db_session, "bogus")["time_range"] == "30d"

    exported = service.export_json(db_session, include_items=True)
    assert exported["summary"] == {
        "total_feeds": 1,
        "active_feeds": 1,
        "total_items": 2,
        "imported_items": 1,
    }

    lines = service.export_csv(db_session).splitlines()
    assert lines[0] == "id,name,url,is_active,last_fetched_at"
    assert lines[1].startswith(f"{feed.id},HMRC,{FEED_URL},true,")


def test_unused_category_import_ids_are_ignored(db_session):
    feed = _feed(db_session)
    item = _item(db_session, feed)

    post = RSSService().import_item(db_session, item, ImportRequest(category_ids=[424242]))

    assert post.categories == []
    assert db_session.query(Category).count() == 0
