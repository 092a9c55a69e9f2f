from __future__ import annotations

import secrets
from collections.abc import Callable, Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Marketing pages load Google Tag Manager and Google Fonts
DEFAULT_CSP = [
    "default-src 'self'",
    "base-uri 'self'",
    "frame-ancestors 'none'",
    "img-src 'self' data: https:",
    "font-src 'self' https://fonts.gstatic.com",
    "style-src 'self' https://fonts.googleapis.com",
    "script-src 'self' https://www.googletagmanager.com",
    "connect-src 'self' https://www.google-analytics.com",
    "frame-src https://www.googletagmanager.com",
    "form-action 'self'",
    "upgrade-insecure-requests",
]


def _is_secure_request(request: Request) -> bool:
    xf_proto = request.headers.get("x-forwarded-proto")
    if xf_proto:
        return "https" in xf_proto
    return request.url.scheme == "https"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds CSP, HSTS and cross-origin headers to every response.

    With ``use_nonce`` a fresh nonce is stored on ``request.state.csp_nonce``
    and appended to script-src so templates can mark the GTM bootstrap inline
    script.
    """

    def __init__(
        self,
        app,
        *,
        csp_directives: Iterable[str] | None = None,
        use_nonce: bool = True,
        hsts: str = "max-age=63072000; includeSubDomains",
        referrer_policy: str = "strict-origin-when-cross-origin",
        permissions_policy: str = "geolocation=(), microphone=(), camera=()",
        frame_options: str = "DENY",
        skip_hsts_hosts: set[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.csp_directives = list(csp_directives or DEFAULT_CSP)
        self.use_nonce = use_nonce
        self.hsts = hsts
        self.skip_hsts_hosts = skip_hsts_hosts or {"localhost", "127.0.0.1", "testserver"}
        self.static_headers = {
            "Referrer-Policy": referrer_policy,
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": frame_options,
            "Cross-Origin-Opener-Policy": "same-origin",
            "Permissions-Policy": permissions_policy,
            "X-Permitted-Cross-Domain-Policies": "none",
        }

    def _csp(self, nonce: str | None) -> str:
        parts = []
        for directive in self.csp_directives:
            if nonce and directive.startswith("script-src"):
                directive = f"{directive} 'nonce-{nonce}'"
            parts.append(directive)
        return "; ".join(parts)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        nonce = secrets.token_urlsafe(16) if self.use_nonce else None
        request.state.csp_nonce = nonce

        response = await call_next(request)

        response.headers.setdefault("Content-Security-Policy", self._csp(nonce))
        if _is_secure_request(request) and request.url.hostname not in self.skip_hsts_hosts:
            response.headers.setdefault("Strict-Transport-Security", self.hsts)
        for name, value in self.static_headers.items():
            if value:
                response.headers.setdefault(name, value)
        return response
