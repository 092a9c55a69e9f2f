"""Ayrshare social aggregator API client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ivc.config import settings

logger = logging.getLogger(__name__)

# Internal platform name -> Ayrshare platform identifier
PLATFORM_MAP = {
    "linkedin": "linkedin",
    "twitter": "twitter",
    "facebook": "facebook",
    "instagram": "instagram",
    "youtube": "youtube",
    "tiktok": "tiktok",
}


class AyrshareError(Exception):
    """Ayrshare is not configured or rejected a request."""


class AyrshareClient:
    """Thin wrapper over the Ayrshare REST API (Bearer key auth)."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.ayrshare_api_key
        self.base_url = (base_url or settings.ayrshare_base_url).rstrip("/")
        self.timeout = timeout or settings.social_request_timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        if not self.api_key:
            raise AyrshareError("Ayrshare API key not configured")

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.api_key}"},
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            logger.error(
                "Ayrshare request failed", extra={"path": path, "error": str(exc)}
            )
            raise AyrshareError(f"Ayrshare request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}
        if not response.is_success:
            logger.error(
                "Ayrshare API error",
                extra={"path": path, "status": response.status_code},
            )
            message = data.get("message") if isinstance(data, dict) else None
            raise AyrshareError(f"Ayrshare API error: {message or data}")
        return data

    async def create_post(
        self,
        post: str | list[str],
        platforms: list[str],
        *,
        media_urls: list[str] | None = None,
        schedule_date: str | None = None,
        shorten_links: bool = True,
    ) -> dict[str, Any]:
        """Post (or schedule, with ``schedule_date`` in ISO 8601) to platforms.

        A list ``post`` is sent as a thread where the platform supports it.
        """
        body: dict[str, Any] = {
            "post": post,
            "platforms": [PLATFORM_MAP.get(p, p) for p in platforms],
            "shortenLinks": shorten_links,
        }
        if media_urls:
            body["mediaUrls"] = media_urls
        if schedule_date:
            body["scheduleDate"] = schedule_date
        return await self._request("POST", "/post", json=body)

    async def delete_post(self, post_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/post/{post_id}")

    async def get_analytics(
        self, post_id: str, platforms: list[str] | None = None
    ) -> dict[str, Any]:
        params = {"platforms": ",".join(platforms)} if platforms else None
        return await self._request("GET", f"/analytics/post/{post_id}", params=params)

    async def get_profiles(self) -> dict[str, Any]:
        return await self._request("GET", "/profiles")

    async def shorten_link(self, url: str) -> str:
        """Return a short link, or ``url`` unchanged if shortening fails."""
        try:
            data = await self._request("POST", "/shorten", json={"url": url})
        except AyrshareError:
            return url
        return data.get("shortUrl") or url


ayrshare_client = AyrshareClient()
