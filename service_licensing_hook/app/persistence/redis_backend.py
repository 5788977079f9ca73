"""
Redis whitelist backend.

Each whitelisted authorization key is stored as ``<prefix><key> = "1"``.
Mutations rely on single Redis commands (SET NX, DEL) so that concurrent
writers across processes observe exactly one winner per key.
"""

from typing import Optional

import redis.asyncio as redis

from shared.logging import get_logger
from shared.errors import LicensingAccessException


class RedisWhitelistBackend:
    """Redis-backed whitelist storage."""

    def __init__(self, redis_url: str, key_prefix: str = "whitelist:"):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.logger = get_logger("licensing_hook.persistence.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Connect to Redis."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30
            )
            await self.redis.ping()
            self.logger.info("Redis whitelist backend started")

        except Exception as e:
            self.logger.error("Failed to start Redis whitelist backend", error=str(e))
            raise LicensingAccessException("REDIS_START_FAILED", str(e))

    async def stop(self):
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis whitelist backend stopped")

    def _redis_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise LicensingAccessException("REDIS_NOT_STARTED", "Whitelist backend not started")
        return self.redis

    async def contains(self, key: str) -> bool:
        return await self._client().exists(self._redis_key(key)) == 1

    async def set_if_absent(self, key: str) -> bool:
        """Whitelist ``key``; False if it was already present."""
        return bool(await self._client().set(self._redis_key(key), "1", nx=True))

    async def delete_if_present(self, key: str) -> bool:
        """Remove ``key``; False if it was not present."""
        return await self._client().delete(self._redis_key(key)) == 1

    async def count(self) -> int:
        total = 0
        async for _ in self._client().scan_iter(match=f"{self.key_prefix}*", count=500):
            total += 1
        return total

    async def health_check(self) -> bool:
        try:
            await self._client().ping()
            return True
        except Exception:
            return False
