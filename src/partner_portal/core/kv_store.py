"""Key-value storage backends for the per-user preference overlay."""

from typing import Dict, Optional, Protocol

import redis
import structlog

logger = structlog.get_logger(__name__)


class KeyValueStore(Protocol):
    """Synchronous string key-value storage."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> bool:
        ...

    def delete(self, key: str) -> bool:
        ...


class InMemoryKeyValueStore:
    """Process-local store, used for tests and single-process development."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    def delete(self, key: str) -> bool:
        self._data.pop(key, None)
        return True

    def keys(self):
        return list(self._data.keys())


class RedisKeyValueStore:
    """Durable overlay storage backed by Redis."""

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None) -> None:
        """Initialize the Redis-backed store.

        Args:
            redis_url: Redis connection URL
            client: Pre-built client (optional, mainly for tests)
        """
        self.redis_url = redis_url
        self.client = client or redis.Redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )

    def get(self, key: str) -> Optional[str]:
        """Get a value.

        Args:
            key: Storage key

        Returns:
            Stored value or None if missing or unreachable
        """
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.error("Failed to read preference key", key=key, error=str(e))
            return None

    def set(self, key: str, value: str) -> bool:
        """Set a value.

        Args:
            key: Storage key
            value: Value to store

        Returns:
            True if successful, False otherwise
        """
        try:
            self.client.set(key, value)
            return True
        except redis.RedisError as e:
            logger.error("Failed to write preference key", key=key, error=str(e))
            return False

    def delete(self, key: str) -> bool:
        """Delete a value.

        Args:
            key: Storage key

        Returns:
            True if successful, False otherwise
        """
        try:
            self.client.delete(key)
            return True
        except redis.RedisError as e:
            logger.error("Failed to delete preference key", key=key, error=str(e))
            return False

    def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.error("Redis health check failed", error=str(e))
            return False

    def close(self) -> None:
        self.client.close()
