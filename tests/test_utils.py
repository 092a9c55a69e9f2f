"""Tests for ivc/utils/assets.py."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch


class TestAssetUrl:
    """Asset URL cache-busting helper."""

    def test_asset_url_returns_static_path(self, tmp_path):
        """Existing file gets a ?v=<hash> suffix."""
        from ivc.utils.assets import asset_url

        css = tmp_path / "main.css"
        css.write_text("body { color: navy; }")

        with patch("ivc.utils.assets.STATIC_ROOT", tmp_path):
            asset_url.cache_clear()
            result = asset_url("main.css")
        asset_url.cache_clear()

        assert result.startswith("/static/main.css?v=")
        assert len(result.split("?v=")[1]) == 12

    def test_asset_url_missing_file(self):
        """Missing file returns path without hash."""
        from ivc.utils.assets import asset_url

        with patch("ivc.utils.assets.STATIC_ROOT", Path("/nonexistent")):
            asset_url.cache_clear()
            result = asset_url("missing.css")
        asset_url.cache_clear()

        assert result == "/static/missing.css"
