"""Redis pub/sub fan-out for broadcast events.

Lets processes other than the one running a job (API replicas holding the
websocket, for instance) see its progress. Each owner gets its own channel.
"""

import asyncio
import json
from typing import Optional

import redis.asyncio as redis_async
import structlog
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.infrastructure.broadcasting.progress_broadcaster import BroadcastEvent
from src.infrastructure.config import settings

logger = structlog.get_logger(__name__)


def channel_for(owner_id: str, prefix: Optional[str] = None) -> str:
    return f"{prefix or settings.redis.events_channel_prefix}:{owner_id}"


class RedisEventPublisher:
    """Broadcaster subscriber publishing every event to Redis."""

    def __init__(
        self,
        url: Optional[str] = None,
        channel_prefix: Optional[str] = None,
        client: Optional[redis_async.Redis] = None,
    ):
        self.url = url or settings.redis.url
        self.channel_prefix = channel_prefix or settings.redis.events_channel_prefix
        self._pool: Optional[ConnectionPool] = None
        self._client = client
        self._lock = asyncio.Lock()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, max=5),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        reraise=True,
    )
    async def _open(self) -> None:
        self._pool = ConnectionPool.from_url(
            self.url,
            max_connections=settings.redis.max_connections,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            decode_responses=True,
        )
        client = redis_async.Redis(connection_pool=self._pool)
        await client.ping()
        self._client = client

    async def connect(self) -> None:
        """Initialize the Redis connection."""
        async with self._lock:
            if self._client is not None:
                return
            await self._open()
            logger.info("Connected to Redis for event fan-out", url=self.url)

    async def disconnect(self) -> None:
        """Close the Redis connection and its pool."""
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
            if self._pool is not None:
                await self._pool.disconnect()
                self._pool = None

    async def __call__(self, event: BroadcastEvent) -> None:
        if self._client is None:
            logger.debug("Redis publisher not connected, dropping event")
            return
        try:
            await self._client.publish(
                channel_for(event.owner_id, self.channel_prefix),
                json.dumps(event.to_dict()),
            )
        except RedisError as e:
            logger.warning(
                "Redis publish failed", owner_id=event.owner_id, error=str(e)
            )
