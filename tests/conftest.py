"""Shared fixtures: mocked asyncpg connections and an in-memory pool."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

LAST_UPDATED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_transaction():
    transaction = MagicMock()
    transaction.start = AsyncMock()
    transaction.commit = AsyncMock()
    transaction.rollback = AsyncMock()
    return transaction


def make_connection(transaction=None):
    """Build a mock asyncpg connection.

    ``fetch`` answers the metadata query with one row unless a test
    overrides ``side_effect``.
    """
    transaction = transaction or make_transaction()
    conn = MagicMock()
    conn.transaction = MagicMock(return_value=transaction)
    conn.execute = AsyncMock(return_value='SELECT 1')
    conn.fetch = AsyncMock(return_value=[(LAST_UPDATED,)])
    conn.close = AsyncMock()
    conn.terminate = MagicMock()
    conn.is_closed = MagicMock(return_value=False)
    conn.is_in_transaction = MagicMock(return_value=False)

    def set_in_transaction(value):
        conn.is_in_transaction.return_value = value

    transaction.start.side_effect = lambda: set_in_transaction(True)
    transaction.commit.side_effect = lambda: set_in_transaction(False)
    transaction.rollback.side_effect = lambda: set_in_transaction(False)
    return conn


def end_transaction_on_execute(conn):
    """Make ``conn.execute`` behave like a statement that ran its own COMMIT."""

    async def execute(sql):
        conn.is_in_transaction.return_value = False
        return 'COMMIT'

    conn.execute.side_effect = execute


class FakePool:
    """Hands out one connection per checkout and records what came back."""

    def __init__(self, *connections, acquire_error=None):
        self._connections = list(connections)
        self._acquire_error = acquire_error
        self.released = []
        self.raised = []
        self.timeouts = []

    @asynccontextmanager
    async def acquire(self, timeout=None):
        self.timeouts.append(timeout)
        if self._acquire_error is not None:
            raise self._acquire_error
        conn = self._connections.pop(0)
        try:
            yield conn
        except BaseException:
            self.raised.append(conn)
            raise
        else:
            self.released.append(conn)

    @property
    def stats(self):
        return {'available': len(self._connections), 'in_use': 0, 'total': len(self._connections), 'max_connections': 10}


def fetch_responses(*, metadata=None, columns=None, rows=None):
    """Return a ``fetch`` side effect answering the three queries a request makes, in order."""
    responses = [
        [(LAST_UPDATED,)] if metadata is None else metadata,
        [{'attname': name} for name in (columns or [])],
        rows or [],
    ]
    return responses


@pytest.fixture
def transaction():
    return make_transaction()


@pytest.fixture
def connection(transaction):
    return make_connection(transaction)
