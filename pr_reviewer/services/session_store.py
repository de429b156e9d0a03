"""
Session storage for authenticated GitHub users.

Two implementations share one async interface:
- InMemorySessionStore: bounded map with TTL expiry (single process)
- RedisSessionStore: Redis keys with server-side expiry

Sessions expire after the configured TTL in both stores.
"""

import asyncio
import json
import logging
import secrets
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Callable, Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from pr_reviewer.models.session import Session

logger = logging.getLogger(__name__)


class SessionStoreError(Exception):
    """Raised when the session backend is unreachable."""
    pass


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    """Async key-value store of sessions keyed by an opaque id."""

    ttl_seconds: int

    async def initialize(self) -> None:
        """Prepare backend resources; called on application startup."""

    async def close(self) -> None:
        """Release backend resources; called on application shutdown."""

    async def create(self, token: str, user: dict) -> str:
        """Store a new session and return its id."""
        session_id = new_session_id()
        await self.save(session_id, Session(token=token, user=user))
        return session_id

    @abstractmethod
    async def save(self, session_id: str, session: Session) -> None:
        ...

    @abstractmethod
    async def get(self, session_id: str) -> Optional[Session]:
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """
    Bounded in-process session store.

    Entries expire ``ttl_seconds`` after creation. When ``max_sessions`` is
    reached the oldest session is evicted.
    """

    def __init__(
        self,
        ttl_seconds: int = 86400,
        max_sessions: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions: "OrderedDict[str, tuple[float, Session]]" = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._sessions.items() if expires_at <= now]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired sessions")

    async def save(self, session_id: str, session: Session) -> None:
        async with self._lock:
            now = self._clock()
            self._evict_expired(now)
            self._sessions.pop(session_id, None)
            while len(self._sessions) >= self.max_sessions:
                self._sessions.popitem(last=False)
                logger.info("Session store full, evicted oldest session")
            self._sessions[session_id] = (now + self.ttl_seconds, session)

    async def get(self, session_id: str) -> Optional[Session]:
        async with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            expires_at, session = entry
            if expires_at <= self._clock():
                del self._sessions[session_id]
                return None
            return session

    async def delete(self, session_id: str) -> None:
        async with self._lock:
            self._sessions.pop(session_id, None)


class RedisSessionStore(SessionStore):
    """
    Redis-backed session store with connection pooling and retry logic.

    Each session is a JSON string under ``session:{id}`` written with SETEX.
    """

    SESSION_KEY = "session:{session_id}"

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: int = 86400,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        connection_timeout: int = 5
    ):
        self._redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._connection_timeout = connection_timeout

    async def initialize(self) -> None:
        """
        Initialize Redis connection pool.

        Raises:
            SessionStoreError: If Redis is unreachable
        """
        try:
            self._pool = ConnectionPool.from_url(
                self._redis_url,
                max_connections=10,
                decode_responses=True,
                socket_timeout=self._connection_timeout,
                socket_connect_timeout=self._connection_timeout
            )
            self._client = redis.Redis(connection_pool=self._pool)
            await self._client.ping()
            logger.info("Redis session store initialized")
        except Exception as e:
            logger.error(f"Failed to initialize Redis session store: {e}")
            raise SessionStoreError(f"Failed to connect to Redis: {e}")

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()
        logger.info("Redis session store closed")

    @asynccontextmanager
    async def _get_client(self):
        if not self._client:
            raise RuntimeError("Redis session store not initialized. Call initialize() first.")
        yield self._client

    async def _retry_operation(self, operation):
        """
        Execute a Redis operation, retrying connection and timeout errors.

        Raises:
            SessionStoreError: If operation fails after all retries
        """
        last_error = None

        for attempt in range(self._max_retries):
            try:
                return await operation()
            except (ConnectionError, TimeoutError) as e:
                last_error = e
                if attempt < self._max_retries - 1:
                    delay = self._retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Redis operation failed (attempt {attempt + 1}/{self._max_retries}), "
                        f"retrying in {delay}s: {e}"
                    )
                    await asyncio.sleep(delay)
            except RedisError as e:
                logger.error(f"Redis operation failed with non-transient error: {e}")
                raise

        raise SessionStoreError(f"Redis operation failed after {self._max_retries} retries: {last_error}")

    def _key(self, session_id: str) -> str:
        return self.SESSION_KEY.format(session_id=session_id)

    async def save(self, session_id: str, session: Session) -> None:
        async def _save():
            async with self._get_client() as client:
                await client.setex(
                    self._key(session_id),
                    self.ttl_seconds,
                    json.dumps(session.model_dump(mode="json")),
                )

        await self._retry_operation(_save)

    async def get(self, session_id: str) -> Optional[Session]:
        async def _get():
            async with self._get_client() as client:
                raw = await client.get(self._key(session_id))
                if not raw:
                    return None
                return Session(**json.loads(raw))

        return await self._retry_operation(_get)

    async def delete(self, session_id: str) -> None:
        async def _delete():
            async with self._get_client() as client:
                await client.delete(self._key(session_id))

        await self._retry_operation(_delete)


def create_session_store(
    redis_url: Optional[str],
    ttl_seconds: int,
    max_sessions: int,
) -> SessionStore:
    """Pick the Redis store when a URL is configured, else the in-memory one."""
    if redis_url:
        return RedisSessionStore(redis_url, ttl_seconds=ttl_seconds)
    return InMemorySessionStore(ttl_seconds=ttl_seconds, max_sessions=max_sessions)
