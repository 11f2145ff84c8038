"""
Registry of observation feeds, one per browser session.

A feed is rebuilt whenever the session's patient or access token changes,
and dropped when a new launch takes over the browser session or its launch
session expires.
"""

from collections.abc import Awaitable, Callable

from smart_vitals.audit import truncate_session_id
from smart_vitals.config.logging import get_logger
from smart_vitals.config.settings import get_settings
from smart_vitals.feed.cache import ResponseCache
from smart_vitals.feed.observation_feed import ObservationFeed
from smart_vitals.models.auth import LaunchSession
from smart_vitals.services.fhir_client import FHIRClient

logger = get_logger(__name__)


class FeedManager:
    """Owns the ObservationFeed of each browser session."""

    def __init__(
        self,
        *,
        count: int = 10,
        page_size: int = 5,
        cache_ttl: float = 30.0,
        reconcile_delay: float = 2.0,
        request_timeout: float = 30.0,
    ):
        self.count = count
        self.page_size = page_size
        self.cache_ttl = cache_ttl
        self.reconcile_delay = reconcile_delay
        self.request_timeout = request_timeout
        self._feeds: dict[str, tuple[tuple[str, str], ObservationFeed]] = {}

    def get_feed(self, session_id: str, session: LaunchSession) -> ObservationFeed:
        """Return the session's feed, creating or replacing it as needed."""
        identity = (session.patient_id, session.access_token)
        current = self._feeds.get(session_id)
        if current is not None:
            current_identity, feed = current
            if current_identity == identity:
                return feed
            feed.close()

        feed = ObservationFeed(
            FHIRClient.for_session(session, timeout=self.request_timeout),
            session.patient_id,
            count=self.count,
            page_size=self.page_size,
            cache=ResponseCache(ttl_seconds=self.cache_ttl),
            reconcile_delay=self.reconcile_delay,
        )
        self._feeds[session_id] = (identity, feed)
        logger.debug(
            "Created observation feed",
            session_id=truncate_session_id(session_id),
            patient_id=session.patient_id,
        )
        return feed

    def discard(self, session_id: str) -> None:
        """Drop a session's feed, cancelling its pending reconciliation."""
        current = self._feeds.pop(session_id, None)
        if current is not None:
            current[1].close()

    async def prune(self, is_active: Callable[[str], Awaitable[bool]]) -> int:
        """
        Drop feeds whose browser session no longer has a launch session.

        Returns:
            Number of feeds dropped
        """
        stale = [session_id for session_id in list(self._feeds) if not await is_active(session_id)]
        for session_id in stale:
            self.discard(session_id)
        return len(stale)

    def close_all(self) -> int:
        """Drop every feed. Returns how many were closed."""
        count = len(self._feeds)
        for _, feed in self._feeds.values():
            feed.close()
        self._feeds.clear()
        return count

    def __len__(self) -> int:
        return len(self._feeds)


_feed_manager: FeedManager | None = None


def get_feed_manager() -> FeedManager:
    """Get the global feed manager, creating it from settings if needed."""
    global _feed_manager
    if _feed_manager is None:
        settings = get_settings()
        _feed_manager = FeedManager(
            count=settings.observation_count,
            page_size=settings.display_page_size,
            cache_ttl=settings.cache_ttl_seconds,
            reconcile_delay=settings.reconcile_delay_seconds,
            request_timeout=settings.request_timeout,
        )
    return _feed_manager


def reset_feed_manager() -> None:
    """Forget the global feed manager (for testing)."""
    global _feed_manager
    if _feed_manager is not None:
        _feed_manager.close_all()
    _feed_manager = None
