import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import asyncpg

from query_server.errors import ConnectionPoolExhausted

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Scoped checkout over an ``asyncpg`` pool.

    Every checkout is returned through ``acquire``'s exit path. A connection
    still inside a transaction, or whose holder was cancelled, is terminated
    before it goes back, so the pool replaces it with a fresh one.
    """

    def __init__(
        self,
        dsn: str,
        min_connections: int = 1,
        max_connections: int = 10,
        max_inactive_connection_lifetime: float = 300.0,
        connect_timeout: float = 10.0
    ):
        if max_connections < 1:
            raise ValueError("max_connections must be at least 1")
        if min_connections > max_connections:
            raise ValueError("min_connections cannot exceed max_connections")
        self._dsn = dsn
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._max_inactive_connection_lifetime = max_inactive_connection_lifetime
        self._connect_timeout = connect_timeout
        self._pool: Optional[asyncpg.Pool] = None
        self._closed = False

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def initialize(self) -> None:
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            dsn=self._dsn,
            min_size=self._min_connections,
            max_size=self._max_connections,
            max_inactive_connection_lifetime=self._max_inactive_connection_lifetime,
            timeout=self._connect_timeout,
        )
        logger.debug("Connection pool initialized with %d connections", self._min_connections)

    @asynccontextmanager
    async def acquire(self, timeout: Optional[float] = 30.0) -> AsyncIterator[asyncpg.Connection]:
        if self._closed:
            raise ConnectionPoolExhausted("Pool is closed")
        if self._pool is None:
            raise ConnectionPoolExhausted("Pool is not initialized")

        try:
            conn = await self._pool.acquire(timeout=timeout)
        except asyncio.TimeoutError:
            raise ConnectionPoolExhausted("Timeout waiting for connection") from None

        discard = False
        try:
            yield conn
        except BaseException as e:
            # Cancelled mid-statement: protocol state of the connection is unknown.
            discard = not isinstance(e, Exception)
            raise
        finally:
            if discard or (not conn.is_closed() and conn.is_in_transaction()):
                logger.debug("Terminating connection before release")
                conn.terminate()
            await self._pool.release(conn)

    async def close(self) -> None:
        self._closed = True
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    @property
    def stats(self) -> Dict[str, Any]:
        if self._pool is None:
            return {'available': 0, 'in_use': 0, 'total': 0, 'max_connections': self._max_connections}
        total = self._pool.get_size()
        available = self._pool.get_idle_size()
        return {
            'available': available,
            'in_use': total - available,
            'total': total,
            'max_connections': self._max_connections
        }
