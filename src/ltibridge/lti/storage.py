"""
Redis-backed launch context storage.

Keeps the parameters of the latest LTI launch per browser session so tools
can read them back with ``GET /lti``.  Entries expire with the session.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)


class RedisLaunchContextStore:
    """Stores one launch context per session id in Redis with automatic expiry."""

    _PREFIX = "lti:session:"
    _DEFAULT_TTL = 4 * 60 * 60  # 4 hours

    def __init__(self, redis_client, ttl: int | None = None):
        self._redis = redis_client
        self._ttl = ttl or self._DEFAULT_TTL

    @classmethod
    def from_url(
        cls, redis_url: str = "redis://localhost:6379/0", ttl: int | None = None
    ) -> "RedisLaunchContextStore":
        """Create a store from a Redis URL using the sync client."""
        import redis as sync_redis

        client = sync_redis.Redis.from_url(redis_url, decode_responses=True)
        return cls(client, ttl=ttl)

    def _prepare_key(self, session_id: str) -> str:
        return f"{self._PREFIX}{session_id}"

    def store_launch_context(self, session_id: str, context: Mapping[str, str]) -> None:
        """Replace whatever launch context the session held before."""
        serialized = json.dumps(dict(context), sort_keys=True)
        self._redis.setex(self._prepare_key(session_id), self._ttl, serialized)
        logger.debug("Stored %d launch parameter(s) for session", len(context))

    def read_launch_context(self, session_id: str | None) -> dict[str, str]:
        """The session's launch context, or an empty dict if there is none."""
        if not session_id:
            return {}
        value = self._redis.get(self._prepare_key(session_id))
        if not value:
            return {}
        try:
            context = json.loads(value)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Discarding undecodable launch context for session")
            return {}
        return context if isinstance(context, dict) else {}

    def ping(self) -> bool:
        return bool(self._redis.ping())
