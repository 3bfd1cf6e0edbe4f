"""
Redis-backed cache of one-time login nonces.

Each user has at most one live nonce under ``nonce:<user_id>``; it expires
after ``ttl_seconds`` (10 minutes by default).
"""

from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from access_harness.config import DEFAULT_REDIS_URL, NONCE_TTL_SECONDS
from access_harness.errors import NonceCacheError
from access_harness.utils.logger import get_logger

logger = get_logger(__name__)

NONCE_KEY_PREFIX = "nonce:"


def nonce_key(user_id: str) -> str:
    return NONCE_KEY_PREFIX + user_id


class NonceCache:
    """Nonce store with an explicit connect/close lifecycle."""

    def __init__(
        self,
        redis_url: str = DEFAULT_REDIS_URL,
        ttl_seconds: int = NONCE_TTL_SECONDS,
        client: Optional[aioredis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._redis = client

    async def __aenter__(self) -> "NonceCache":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def connected(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        """Connect to Redis.

        Raises:
            NonceCacheError: If Redis does not answer a ping
        """
        if self._redis is None:
            self._redis = aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5.0,
                socket_connect_timeout=5.0,
            )
        try:
            await self._redis.ping()
        except RedisError as e:
            await self.close()
            raise NonceCacheError(f"Cannot connect to Redis at {self.redis_url}: {e}") from e
        logger.info("[NONCE] Connected to Redis")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("[NONCE] Redis connection closed")

    def _client(self) -> aioredis.Redis:
        if self._redis is None:
            raise NonceCacheError("Nonce cache is not connected")
        return self._redis

    async def set_nonce(self, user_id: str, nonce: str) -> None:
        """Store ``nonce`` for ``user_id``, replacing any previous one."""
        await self._client().set(nonce_key(user_id), nonce, ex=self.ttl_seconds)
        logger.debug(f"[NONCE] Stored nonce for {user_id} (ttl {self.ttl_seconds}s)")

    async def get_nonce(self, user_id: str) -> Optional[str]:
        """Stored nonce for ``user_id``, None if absent or expired."""
        return await self._client().get(nonce_key(user_id))
