"""Tests for ivc/middleware/security.py: SecurityHeadersMiddleware."""

from __future__ import annotations

from uuid import uuid4

from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from ivc.middleware.security import SecurityHeadersMiddleware


def _app(**options) -> Starlette:
    def homepage(request):
        return PlainTextResponse(getattr(request.state, "csp_nonce", None) or "none")

    app = Starlette(routes=[Route("/", homepage)])
    app.add_middleware(SecurityHeadersMiddleware, **options)
    return app


class TestSecurityMiddleware:
    """Verify security headers are set on responses."""

    def test_csp_headers_present(self, client):
        resp = client.get("/healthz")
        csp = resp.headers.get("Content-Security-Policy", "")
        assert "default-src 'self'" in csp
        assert "https://www.googletagmanager.com" in csp

    def test_xframe_options_deny(self, client):
        resp = client.get("/healthz")
        assert resp.headers.get("X-Frame-Options") == "DENY"

    def test_content_type_nosniff(self, client):
        resp = client.get("/healthz")
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"

    def test_referrer_and_permissions_policy(self, client):
        resp = client.get("/healthz")
        assert resp.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert "camera=()" in resp.headers["Permissions-Policy"]

    def test_cross_origin_headers(self, client):
        resp = client.get("/healthz")
        assert resp.headers.get("Cross-Origin-Opener-Policy") == "same-origin"
        assert resp.headers.get("X-Permitted-Cross-Domain-Policies") == "none"

    def test_request_id_echoed(self, client):
        request_id = str(uuid4())
        resp = client.get("/healthz", headers={"X-Request-ID": request_id})
        assert resp.headers.get("X-Request-ID") == request_id


class TestSecurityMiddlewareNonce:
    """Verify CSP nonce injection into script-src."""

    def test_nonce_matches_request_state(self):
        resp = TestClient(_app()).get("/")
        csp = resp.headers["Content-Security-Policy"]
        assert f"'nonce-{resp.text}'" in csp
        assert "script-src 'self' https://www.googletagmanager.com 'nonce-" in csp

    def test_nonce_changes_per_request(self):
        client = TestClient(_app())
        assert client.get("/").text != client.get("/").text

    def test_nonce_disabled(self):
        resp = TestClient(_app(use_nonce=False)).get("/")
        assert "'nonce-" not in resp.headers["Content-Security-Policy"]
        assert resp.text == "none"

    def test_custom_directives(self):
        resp = TestClient(
            _app(csp_directives=["default-src 'none'", "script-src 'self'"])
        ).get("/")
        assert resp.headers["Content-Security-Policy"].startswith("default-src 'none'; ")


class TestHsts:
    def test_hsts_on_forwarded_https(self):
        client = TestClient(_app(), base_url="http://ivc.example.com")
        resp = client.get("/", headers={"X-Forwarded-Proto": "https"})
        assert resp.headers["Strict-Transport-Security"].startswith("max-age=")

    def test_no_hsts_over_plain_http(self):
        client = TestClient(_app(), base_url="http://ivc.example.com")
        assert "Strict-Transport-Security" not in client.get("/").headers

    def test_no_hsts_on_skip_host(self):
        resp = TestClient(_app()).get("/", headers={"X-Forwarded-Proto": "https"})
        assert "Strict-Transport-Security" not in resp.headers
