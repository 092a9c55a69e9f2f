"""Tests for ivc/schemas/: Pydantic validation models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError


class TestPostSchemas:
    def test_title_is_trimmed(self):
        from ivc.schemas.blog import PostCreate, PostStatus

        post = PostCreate(title="  Spring Statement  ")
        assert post.title == "Spring Statement"
        assert post.status == PostStatus.DRAFT
        assert post.category_ids == []

    def test_blank_title_rejected(self):
        from ivc.schemas.blog import PostCreate

        with pytest.raises(ValidationError):
            PostCreate(title="   ")

    def test_unknown_status_rejected(self):
        from ivc.schemas.blog import PostCreate

        with pytest.raises(ValidationError):
            PostCreate(title="x", status="archived")


class TestSocialSchemas:
    def test_platforms_normalised_and_deduplicated(self):
        from ivc.schemas.social import ScheduledPostCreate

        post = ScheduledPostCreate(content="Hi", platforms=[" LinkedIn", "linkedin", "Twitter"])
        assert post.platforms == ["linkedin", "twitter"]
        assert post.publish is True

    def test_unknown_platform_rejected(self):
        from ivc.schemas.social import ScheduledPostCreate

        with pytest.raises(ValidationError, match="Unsupported platform"):
            ScheduledPostCreate(content="Hi", platforms=["bebo"])

    def test_blank_content_rejected(self):
        from ivc.schemas.social import ScheduledPostCreate

        with pytest.raises(ValidationError, match="must not be blank"):
            ScheduledPostCreate(content=" " * 300, platforms=["twitter"])

    def test_platforms_required(self):
        from ivc.schemas.social import ScheduledPostCreate

        with pytest.raises(ValidationError):
            ScheduledPostCreate(content="Hi", platforms=[])


class TestFeedSchemas:
    def test_fetch_interval_bounds(self):
        from ivc.schemas.rss import FeedCreate

        assert FeedCreate(name="News", url="https://a.example.com/rss").fetch_interval == 3600
        with pytest.raises(ValidationError):
            FeedCreate(name="News", url="https://a.example.com/rss", fetch_interval=60)

    def test_url_must_be_http(self):
        from ivc.schemas.rss import FeedCreate

        with pytest.raises(ValidationError):
            FeedCreate(name="News", url="not a url")

    def test_bulk_import_needs_items(self):
        from ivc.schemas.rss import BulkImportRequest

        with pytest.raises(ValidationError):
            BulkImportRequest(item_ids=[])


class TestSettings:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("https://a.com, https://b.com", ["https://a.com", "https://b.com"]),
            ('["https://a.com"]', ["https://a.com"]),
            ("", []),
        ],
    )
    def test_allowed_origins_parsing(self, raw, expected):
        from ivc.config import Settings

        assert Settings.parse_allowed_origins(raw) == expected

    def test_async_url_derived_from_sqlite(self):
        from ivc.config import Settings

        configured = Settings(DATABASE_URL="sqlite:///./data/x.db", ASYNC_DATABASE_URL=None)
        assert configured.resolved_async_database_url == "sqlite+aiosqlite:///./data/x.db"
