"""Social post formatting, scheduling through Ayrshare, and analytics."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from ivc.models.social import PlatformConnection, ScheduledPost, SocialPost
from ivc.observability.metrics import SOCIAL_PUBLISHES
from ivc.schemas.social import (
    SUPPORTED_PLATFORMS,
    PlatformStats,
    PlatformUpdate,
    ScheduledPostCreate,
    SocialAnalytics,
    SocialPostOut,
    SocialStatus,
)
from ivc.services.ayrshare import AyrshareClient, AyrshareError, ayrshare_client

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

TWEET_LIMIT = 280
THREAD_SUFFIX_RESERVE = len(" 99/99")
TIME_RANGES = {"7d": 7, "30d": 30, "90d": 90}
PLATFORM_NAMES = {
    "twitter": "Twitter / X",
    "linkedin": "LinkedIn",
    "facebook": "Facebook",
    "instagram": "Instagram",
    "youtube": "YouTube",
    "tiktok": "TikTok",
}
ENGAGEMENT_KEYS = (
    "likes",
    "likeCount",
    "comments",
    "commentCount",
    "shares",
    "shareCount",
    "retweets",
    "retweetCount",
    "reactions",
    "saves",
)
REACH_KEYS = ("reach", "impressions", "impressionCount", "views", "viewCount")
CLICK_KEYS = ("clicks", "clickCount", "linkClicks", "urlClicks")


class SocialNotConfiguredError(AyrshareError):
    """Publishing requested without an Ayrshare API key."""


def normalize_hashtag(tag: str) -> str:
    cleaned = "".join(tag.split()).lstrip("#")
    return f"#{cleaned}" if cleaned else ""


def append_hashtags(content: str, hashtags: list[str]) -> str:
    """Append ``#tags`` after a blank line, skipping any already in the text."""
    present = content.lower()
    tags = []
    for tag in hashtags:
        normalized = normalize_hashtag(tag)
        if normalized and normalized.lower() not in present and normalized not in tags:
            tags.append(normalized)
    if not tags:
        return content
    return f"{content.rstrip()}\n\n{' '.join(tags)}"


def split_thread(text: str, limit: int = TWEET_LIMIT) -> list[str]:
    """Split ``text`` into tweets on word boundaries, numbered ``i/n`` if >1."""
    if len(text) <= limit:
        return [text]
    if not text.split():
        return [text.strip()]

    budget = limit - THREAD_SUFFIX_RESERVE
    chunks: list[str] = []
    current = ""
    for word in text.split():
        while len(word) > budget:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(word[:budget])
            word = word[budget:]
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= budget:
            current = candidate
        else:
            chunks.append(current)
            current = word
    if current:
        chunks.append(current)

    total = len(chunks)
    return [f"{chunk} {index}/{total}" for index, chunk in enumerate(chunks, start=1)]


def format_for_platform(content: str, hashtags: list[str], platform: str) -> str | list[str]:
    """Platform-ready body; Twitter yields a list when the text needs a thread."""
    text = append_hashtags(content, hashtags)
    if platform == "twitter":
        tweets = split_thread(text)
        return tweets if len(tweets) > 1 else tweets[0]
    return text


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _sum_metrics(payload: Any, keys: tuple[str, ...]) -> int:
    """Sum integer values for ``keys`` anywhere in a nested analytics payload."""
    total = 0
    if isinstance(payload, dict):
        for key, value in payload.items():
            if key in keys and isinstance(value, int | float):
                total += int(value)
            elif isinstance(value, dict | list):
                total += _sum_metrics(value, keys)
    elif isinstance(payload, list):
        for value in payload:
            total += _sum_metrics(value, keys)
    return total


class SocialService:
    def __init__(self, client: AyrshareClient | None = None):
        self.client = client or ayrshare_client

    async def create_scheduled_post(
        self, db: Session, data: ScheduledPostCreate
    ) -> ScheduledPost:
        """Store a composed post and, when requested, hand it to Ayrshare.

        Without an Ayrshare key the post is only kept locally as ``scheduled``.

        Raises:
            AyrshareError: Ayrshare rejected the post (stored as ``failed``)
        """
        scheduled = ScheduledPost(
            content=data.content,
            platforms=list(data.platforms),
            hashtags=list(data.hashtags),
            images=list(data.images),
            scheduled_at=_as_utc(data.scheduled_at),
            status=(SocialStatus.SCHEDULED if data.publish else SocialStatus.DRAFT).value,
            external_post_ids={},
            post_id=data.post_id,
        )
        db.add(scheduled)
        db.commit()
        db.refresh(scheduled)

        if data.publish and self.client.configured:
            await self.publish(db, scheduled)
        return scheduled

    async def publish(self, db: Session, scheduled: ScheduledPost) -> ScheduledPost:
        """Send each platform's formatted body to Ayrshare.

        Creates one SocialPost per accepted platform. Status becomes
        ``scheduled`` for a future ``scheduled_at`` and ``published`` otherwise.
        """
        if not self.client.configured:
            scheduled.status = SocialStatus.SCHEDULED.value
            db.commit()
            raise SocialNotConfiguredError("Ayrshare API key not configured")

        when = _as_utc(scheduled.scheduled_at)
        is_future = when is not None and when > datetime.now(UTC)
        schedule_date = when.isoformat().replace("+00:00", "Z") if is_future else None
        target_status = SocialStatus.SCHEDULED if is_future else SocialStatus.PUBLISHED

        external_ids: dict[str, str] = dict(scheduled.external_post_ids or {})
        try:
            for platform in scheduled.platforms:
                body = format_for_platform(scheduled.content, scheduled.hashtags, platform)
                response = await self.client.create_post(
                    body,
                    [platform],
                    media_urls=scheduled.images or None,
                    schedule_date=schedule_date,
                )
                post_ids = response.get("postIds") or {}
                if isinstance(post_ids, list):
                    post_ids = {
                        entry.get("platform"): entry.get("id")
                        for entry in post_ids
                        if isinstance(entry, dict)
                    }
                remote_id = str(post_ids.get(platform) or response.get("id") or "")
                if response.get("id") and not scheduled.external_id:
                    scheduled.external_id = str(response["id"])
                external_ids[platform] = remote_id
                SOCIAL_PUBLISHES.labels(platform, target_status.value).inc()
                db.add(
                    SocialPost(
                        scheduled_post_id=scheduled.id,
                        platform=platform,
                        content=body if isinstance(body, str) else "\n\n".join(body),
                        hashtags=list(scheduled.hashtags),
                        scheduled_at=when,
                        external_id=remote_id or None,
                        status=target_status.value,
                        extra={"thread_length": len(body)} if isinstance(body, list) else {},
                    )
                )
        except AyrshareError as exc:
            scheduled.status = SocialStatus.FAILED.value
            SOCIAL_PUBLISHES.labels(platform, SocialStatus.FAILED.value).inc()
            scheduled.error_message = str(exc)
            scheduled.external_post_ids = external_ids
            db.commit()
            logger.error(
                "Social publish failed",
                extra={"scheduled_post_id": scheduled.id, "error": str(exc)},
            )
            raise

        scheduled.external_post_ids = external_ids
        scheduled.status = target_status.value
        scheduled.error_message = None
        db.commit()
        db.refresh(scheduled)
        logger.info(
            "Social post sent",
            extra={
                "scheduled_post_id": scheduled.id,
                "platforms": scheduled.platforms,
                "status": scheduled.status,
            },
        )
        return scheduled

    async def delete_scheduled_post(self, db: Session, scheduled: ScheduledPost) -> None:
        """Remove the remote post(s), then the local row."""
        remote_ids = {i for i in (scheduled.external_post_ids or {}).values() if i}
        if scheduled.external_id:
            remote_ids.add(scheduled.external_id)
        if remote_ids and self.client.configured:
            for remote_id in sorted(remote_ids):
                await self.client.delete_post(remote_id)
        db.delete(scheduled)
        db.commit()

    # Platforms

    @staticmethod
    def list_platforms(db: Session) -> list[PlatformConnection]:
        stored = {p.platform_id: p for p in db.query(PlatformConnection).all()}
        platforms = []
        for platform_id in SUPPORTED_PLATFORMS:
            platforms.append(
                stored.get(platform_id)
                or PlatformConnection(
                    platform_id=platform_id,
                    platform_name=PLATFORM_NAMES[platform_id],
                    connected=False,
                )
            )
        return platforms

    @staticmethod
    def upsert_platform(db: Session, data: PlatformUpdate) -> PlatformConnection:
        connection = (
            db.query(PlatformConnection)
            .filter(PlatformConnection.platform_id == data.platform_id)
            .first()
        )
        if connection is None:
            connection = PlatformConnection(
                platform_id=data.platform_id,
                platform_name=PLATFORM_NAMES.get(data.platform_id, data.platform_id),
            )
            db.add(connection)
        connection.connected = data.connected
        connection.profile_url = data.profile_url
        connection.profile_name = data.profile_name
        db.commit()
        db.refresh(connection)
        return connection

    async def sync_platforms(self, db: Session) -> list[PlatformConnection]:
        """Mark platforms connected according to the Ayrshare profile list."""
        data = await self.client.get_profiles()
        active: set[str] = set(data.get("activeSocialAccounts") or [])
        display: dict[str, dict[str, Any]] = {}
        for profile in data.get("profiles") or []:
            active.update(profile.get("activeSocialAccounts") or [])
            for entry in profile.get("displayNames") or []:
                display[entry.get("platform")] = entry
        for entry in data.get("displayNames") or []:
            display[entry.get("platform")] = entry

        for platform_id in SUPPORTED_PLATFORMS:
            details = display.get(platform_id, {})
            self.upsert_platform(
                db,
                PlatformUpdate(
                    platform_id=platform_id,
                    connected=platform_id in active,
                    profile_url=details.get("profileUrl"),
                    profile_name=details.get("displayName") or details.get("username"),
                ),
            )
        logger.info("Social platforms synced", extra={"connected": sorted(active)})
        return self.list_platforms(db)

    # Analytics

    @staticmethod
    def analytics(db: Session, time_range: str = "30d", platform: str = "all") -> SocialAnalytics:
        days = TIME_RANGES.get(time_range, 30)
        since = datetime.now(UTC) - timedelta(days=days)
        query = db.query(SocialPost).filter(SocialPost.created_at >= since)
        if platform and platform != "all":
            query = query.filter(SocialPost.platform == platform)
        posts = query.all()

        total_engagement = sum(p.engagement or 0 for p in posts)
        total_reach = sum(p.reach or 0 for p in posts)
        total_clicks = sum(p.clicks or 0 for p in posts)

        grouped: dict[str, list[SocialPost]] = defaultdict(list)
        for post in posts:
            grouped[post.platform].append(post)
        platform_stats = {}
        for name, items in grouped.items():
            engagement = sum(p.engagement or 0 for p in items)
            reach = sum(p.reach or 0 for p in items)
            platform_stats[name] = PlatformStats(
                posts=len(items),
                engagement=engagement,
                reach=reach,
                clicks=sum(p.clicks or 0 for p in items),
                engagement_rate=round(engagement / reach * 100, 2) if reach else 0.0,
            )

        top = sorted(posts, key=lambda p: (p.engagement or 0, p.id), reverse=True)[:5]
        return SocialAnalytics(
            time_range=time_range if time_range in TIME_RANGES else "30d",
            total_posts=len(posts),
            total_engagement=total_engagement,
            total_reach=total_reach,
            total_clicks=total_clicks,
            avg_engagement_rate=(
                round(total_engagement / total_reach * 100, 2) if total_reach else 0.0
            ),
            top_posts=[SocialPostOut.model_validate(p) for p in top],
            platform_stats=platform_stats,
        )

    async def refresh_analytics(self, db: Session) -> dict[str, int]:
        """Pull per-post metrics for published posts that have a remote id."""
        posts = (
            db.query(SocialPost)
            .filter(
                SocialPost.status == SocialStatus.PUBLISHED.value,
                SocialPost.external_id.isnot(None),
            )
            .all()
        )
        updated = failed = 0
        for post in posts:
            try:
                payload = await self.client.get_analytics(post.external_id, [post.platform])
            except AyrshareError as exc:
                logger.warning(
                    "Analytics refresh failed",
                    extra={"social_post_id": post.id, "error": str(exc)},
                )
                failed += 1
                continue
            metrics = payload.get(post.platform, payload)
            post.engagement = _sum_metrics(metrics, ENGAGEMENT_KEYS)
            post.reach = _sum_metrics(metrics, REACH_KEYS)
            post.clicks = _sum_metrics(metrics, CLICK_KEYS)
            post.analytics_updated_at = datetime.now(UTC)
            updated += 1
        db.commit()
        return {"checked": len(posts), "updated": updated, "failed": failed}


social_service = SocialService()
