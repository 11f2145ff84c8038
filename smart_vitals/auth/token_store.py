"""
Persisted launch state.

A TokenStore exposes typed accessors for the launch session, issuer, token
endpoint and launch key of one browser session. Values are serialized as
whole JSON documents onto a pluggable storage backend: in-memory for
development/testing, Redis when state must outlive the process.
"""

import time
from abc import ABC, abstractmethod

from smart_vitals.audit import truncate_session_id
from smart_vitals.config.logging import get_logger
from smart_vitals.config.settings import get_settings
from smart_vitals.constants import (
    STORE_KEY_ISSUER,
    STORE_KEY_LAUNCH_KEY,
    STORE_KEY_PREFIX,
    STORE_KEY_SESSION,
    STORE_KEY_TOKEN_ENDPOINT,
)
from smart_vitals.models.auth import LaunchSession

logger = get_logger(__name__)


class StorageBackend(ABC):
    """Abstract base class for key/value storage backends."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Get value by key."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Set key-value pair with optional TTL."""
        ...

    @abstractmethod
    async def delete(self, *keys: str) -> None:
        """Delete keys."""
        ...

    async def cleanup_expired(self) -> int:
        """Remove expired entries. Returns count of removed entries."""
        # Backends with native expiry have nothing to purge
        return 0

    async def close(self) -> None:
        """Release backend resources."""
        return None


class InMemoryStorage(StorageBackend):
    """In-memory storage for development/testing."""

    def __init__(self):
        self._store: dict[str, tuple[str, float | None]] = {}  # key -> (value, expires_at)

    async def get(self, key: str) -> str | None:
        if key not in self._store:
            return None
        value, expires_at = self._store[key]
        if expires_at and time.time() > expires_at:
            del self._store[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = time.time() + ttl if ttl else None
        self._store[key] = (value, expires_at)

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._store.pop(key, None)

    async def cleanup_expired(self) -> int:
        now = time.time()
        expired = [key for key, (_, expires_at) in self._store.items() if expires_at and now > expires_at]
        for key in expired:
            del self._store[key]
        return len(expired)


class RedisStorage(StorageBackend):
    """Redis-backed storage."""

    def __init__(self, redis_url: str):
        self._redis_url = redis_url
        self._client = None

        if not redis_url.startswith("rediss://"):
            logger.warning("Redis connection not using TLS", redis_url=redis_url[:20] + "...")

    async def _get_client(self):
        """Lazily initialize the Redis client."""
        if self._client is None:
            import redis.asyncio as redis

            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> str | None:
        client = await self._get_client()
        return await client.get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        client = await self._get_client()
        if ttl:
            await client.setex(key, ttl, value)
        else:
            await client.set(key, value)

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        client = await self._get_client()
        await client.delete(*keys)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


class TokenStore:
    """
    Launch state of a single browser session.

    Every write replaces a whole value; fields of a stored session are never
    patched individually.
    """

    def __init__(self, backend: StorageBackend, session_id: str, ttl: int | None = None):
        self._backend = backend
        self.session_id = session_id
        self._ttl = ttl

    def _key(self, name: str) -> str:
        return f"{STORE_KEY_PREFIX}:{self.session_id}:{name}"

    async def _set(self, name: str, value: str) -> None:
        await self._backend.set(self._key(name), value, self._ttl)

    # Launch session

    async def get_session(self) -> LaunchSession | None:
        raw = await self._backend.get(self._key(STORE_KEY_SESSION))
        if raw is None:
            return None
        try:
            return LaunchSession.model_validate_json(raw)
        except ValueError as e:
            logger.warning(
                "Discarding unreadable launch session",
                session_id=truncate_session_id(self.session_id),
                error=str(e),
            )
            await self._backend.delete(self._key(STORE_KEY_SESSION))
            return None

    async def set_session(self, session: LaunchSession) -> None:
        await self._set(STORE_KEY_SESSION, session.model_dump_json())

    # Issuer and token endpoint

    async def get_issuer(self) -> str | None:
        return await self._backend.get(self._key(STORE_KEY_ISSUER))

    async def set_issuer(self, issuer: str) -> None:
        await self._set(STORE_KEY_ISSUER, issuer)

    async def get_token_endpoint(self) -> str | None:
        return await self._backend.get(self._key(STORE_KEY_TOKEN_ENDPOINT))

    async def set_token_endpoint(self, token_endpoint: str) -> None:
        await self._set(STORE_KEY_TOKEN_ENDPOINT, token_endpoint)

    # Launch key

    async def get_launch_key(self) -> str | None:
        return await self._backend.get(self._key(STORE_KEY_LAUNCH_KEY))

    async def set_launch_key(self, launch_key: str) -> None:
        await self._set(STORE_KEY_LAUNCH_KEY, launch_key)

    async def clear(self) -> None:
        """Discard the session and every field persisted alongside it."""
        await self._backend.delete(
            self._key(STORE_KEY_SESSION),
            self._key(STORE_KEY_ISSUER),
            self._key(STORE_KEY_TOKEN_ENDPOINT),
        )


_backend: StorageBackend | None = None


def get_storage_backend() -> StorageBackend:
    """Get the global storage backend, creating it from settings if needed."""
    global _backend
    if _backend is None:
        settings = get_settings()
        if settings.redis_url:
            _backend = RedisStorage(settings.redis_url)
            logger.info("Using Redis launch state storage")
        else:
            _backend = InMemoryStorage()
            logger.info("Using in-memory launch state storage")
    return _backend


async def close_storage_backend() -> None:
    """Close and forget the global storage backend."""
    global _backend
    if _backend is not None:
        await _backend.close()
        _backend = None


def reset_storage_backend() -> None:
    """Forget the global storage backend (for testing)."""
    global _backend
    _backend = None
