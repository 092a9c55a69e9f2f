"""Admin RSS API with the outbound HTTP transport mocked."""

from __future__ import annotations

import httpx
import pytest

from ivc.models.rss import RSSFeed, RSSItem
from ivc.services.rss_service import rss_service

FEED_XML = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Accounting Today</title>
<description>Daily news</description>
<item><title>Late filing penalties</title><link>https://news.example.com/late</link>
<guid>late-1</guid><description>Penalties are rising.</description></item>
</channel></rss>"""


@pytest.fixture
def feed_transport(monkeypatch):
    """Serve FEED_XML for every outbound request made by the RSS service."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, text=FEED_XML, headers={"content-type": "application/rss+xml"}
        )

    monkeypatch.setattr(rss_service, "transport", httpx.MockTransport(handler))


def _create_feed(client, url="https://news.example.com/feed.xml", **extra):
    payload = {"name": "Accounting Today", "url": url, **extra}
    return client.post("/api/admin/rss/feeds", json=payload)


def test_requires_admin(client):
    assert client.get("/api/admin/rss/feeds").status_code == 401


def test_create_and_list_feed(admin_client, feed_transport):
    response = _create_feed(admin_client, category="News")
    assert response.status_code == 201
    feed = response.json()
    assert feed["url"] == "https://news.example.com/feed.xml"
    assert feed["fetch_interval"] == 3600

    listing = admin_client.get("/api/admin/rss/feeds").json()
    assert [f["id"] for f in listing] == [feed["id"]]


def test_duplicate_feed_rejected(admin_client, feed_transport):
    assert _create_feed(admin_client).status_code == 201
    response = _create_feed(admin_client)
    assert response.status_code == 400
    assert response.json() == {"error": "RSS feed with this URL already exists"}


def test_short_name_is_validation_error(admin_client, feed_transport):
    response = admin_client.post(
        "/api/admin/rss/feeds", json={"name": "x", "url": "https://a.example.com/rss"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_validate_endpoint(admin_client, feed_transport):
    response = admin_client.post(
        "/api/admin/rss/validate", json={"url": "https://news.example.com/feed.xml"}
    )
    body = response.json()
    assert body["is_valid"] is True
    assert body["feed_info"]["title"] == "Accounting Today"
    assert body["feed_info"]["item_count"] == 1


def test_refresh_then_import(admin_client, feed_transport, db_session):
    feed = _create_feed(admin_client).json()

    refreshed = admin_client.post(f"/api/admin/rss/feeds/{feed['id']}/refresh").json()
    assert refreshed["new_items_count"] == 1
    item_id = refreshed["new_items"][0]["id"]

    items = admin_client.get("/api/admin/rss/items", params={"imported": "false"}).json()
    assert items["total"] == 1

    imported = admin_client.post(
        f"/api/admin/rss/items/{item_id}/import", json={"tags": ["Penalties"]}
    )
    assert imported.status_code == 201
    post = imported.json()
    assert post["status"] == "draft"
    assert post["source_url"] == "https://news.example.com/late"
    assert [t["slug"] for t in post["tags"]] == ["penalties"]

    again = admin_client.post(f"/api/admin/rss/items/{item_id}/import")
    assert again.status_code == 400
    assert again.json() == {"error": "Item already imported"}


def test_import_without_body(admin_client, db_session):
    feed = RSSFeed(name="Direct", url="https://direct.example.com/rss")
    db_session.add(feed)
    db_session.commit()
    item = RSSItem(feed_id=feed.id, guid="d1", title="Direct item", link="https://d/1")
    db_session.add(item)
    db_session.commit()

    response = admin_client.post(f"/api/admin/rss/items/{item.id}/import")

    assert response.status_code == 201
    assert response.json()["title"] == "Direct item"


def test_missing_item_404(admin_client):
    response = admin_client.post("/api/admin/rss/items/9999/import")
    assert response.status_code == 404
    assert response.json() == {"error": "RSS item not found"}


def test_refresh_inactive_feed_400(admin_client, feed_transport):
    feed = _create_feed(admin_client, is_active=False).json()
    response = admin_client.post(f"/api/admin/rss/feeds/{feed['id']}/refresh")
    assert response.status_code == 400
    assert response.json() == {"error": "Feed is inactive"}


def test_update_and_delete_feed(admin_client, feed_transport):
    feed = _create_feed(admin_client).json()

    updated = admin_client.put(
        f"/api/admin/rss/feeds/{feed['id']}", json={"auto_import": True}
    ).json()
    assert updated["auto_import"] is True

    assert admin_client.delete(f"/api/admin/rss/feeds/{feed['id']}").status_code == 200
    assert admin_client.get(f"/api/admin/rss/feeds/{feed['id']}").status_code == 404


def test_null_for_required_field_is_validation_error(admin_client, feed_transport):
    feed = _create_feed(admin_client).json()

    for field in ("name", "is_active", "fetch_interval"):
        response = admin_client.put(
            f"/api/admin/rss/feeds/{feed['id']}", json={field: None}
        )
        assert response.status_code == 400, field
        assert response.json()["error"] == "Validation failed"

    unchanged = admin_client.get(f"/api/admin/rss/feeds/{feed['id']}").json()
    assert unchanged["name"] == "Accounting Today"
    assert unchanged["is_active"] is True


def test_export_formats(admin_client, feed_transport):
    _create_feed(admin_client)

    as_json = admin_client.get("/api/admin/rss/export")
    assert as_json.headers["content-disposition"].startswith("attachment;")
    assert as_json.json()["summary"]["total_feeds"] == 1

    as_csv = admin_client.get("/api/admin/rss/export", params={"format": "csv"})
    assert as_csv.headers["content-type"].startswith("text/csv")
    assert as_csv.text.splitlines()[0] == "id,name,url,is_active,last_fetched_at"


def test_analytics_range(admin_client):
    response = admin_client.get("/api/admin/rss/analytics", params={"range": "90d"})
    assert response.status_code == 200
    assert response.json()["time_range"] == "90d"

    bad = admin_client.get("/api/admin/rss/analytics", params={"range": "1y"})
    assert bad.status_code == 400
