from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import LockError

from salon_booking.core.config import settings
from salon_booking.core.exceptions import SlotLockUnavailableError

logger = structlog.get_logger(__name__)


class RedisClient:
    """Redis client holding the per-provider booking locks."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.redis_pool = None

    async def init_redis(self):
        """Initialize Redis connection pool."""
        try:
            self.redis_pool = redis.ConnectionPool.from_url(
                self.url,
                decode_responses=True,
                retry_on_timeout=True,
                socket_keepalive=True,
                socket_keepalive_options={},
            )

            # Test connection
            async with redis.Redis(connection_pool=self.redis_pool) as r:
                await r.ping()
                logger.info("Redis connection established")

        except Exception as e:
            logger.error("Failed to connect to Redis", exc_info=e)
            raise

    async def get_redis(self) -> redis.Redis:
        """Get Redis client instance."""
        if not self.redis_pool:
            await self.init_redis()
        return redis.Redis(connection_pool=self.redis_pool)

    async def close(self):
        if self.redis_pool:
            await self.redis_pool.disconnect()
            self.redis_pool = None

    @staticmethod
    def provider_lock_key(provider_id: int) -> str:
        return f"booking_lock:provider:{provider_id}"

    @asynccontextmanager
    async def provider_lock(
        self,
        provider_id: int,
        timeout: Optional[float] = None,
        blocking_timeout: Optional[float] = None,
    ) -> AsyncIterator[None]:
        """Hold the booking lock for a provider across validate-then-write."""
        client = await self.get_redis()
        lock = client.lock(
            self.provider_lock_key(provider_id),
            timeout=timeout or settings.BOOKING_LOCK_TIMEOUT_SECONDS,
            blocking_timeout=(
                settings.BOOKING_LOCK_WAIT_SECONDS
                if blocking_timeout is None
                else blocking_timeout
            ),
        )

        acquired = await lock.acquire()
        if not acquired:
            logger.warning("Booking lock busy", provider_id=provider_id)
            raise SlotLockUnavailableError(provider_id)

        logger.debug("Booking lock acquired", provider_id=provider_id)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Lock expired before release; the write has already happened
                logger.warning(
                    "Booking lock expired before release",
                    provider_id=provider_id,
                    exc_info=e,
                )


# Global Redis client instance
redis_client = RedisClient()
