"""Fixtures for tests against a real PostgreSQL server.

A single testcontainer is started per session. Each test gets a freshly
seeded schema and its own ``ConnectionPool``. The whole suite is skipped
when no Docker daemon is reachable.
"""

import re
import subprocess
from datetime import datetime, timezone

import asyncpg
import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from query_server.pool import ConnectionPool

LAST_UPDATED = datetime(2024, 1, 1, tzinfo=timezone.utc)

SCHEMA_SQL = '''
DROP TABLE IF EXISTS metadata;
DROP TABLE IF EXISTS items;
CREATE TABLE metadata (last_updated timestamptz);
CREATE TABLE items (id integer PRIMARY KEY, name text, price numeric);
INSERT INTO items VALUES (1, 'apple', 1.50), (2, NULL, 2.00), (3, 'cherry', NULL);
'''


def _check_docker_available() -> bool:
    try:
        result = subprocess.run(
            ["docker", "info"],
            capture_output=True,
            text=True,
            timeout=10,
            check=False,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return False


DOCKER_AVAILABLE = _check_docker_available()


@pytest.fixture(scope='session')
def postgres_container():
    if not DOCKER_AVAILABLE:
        pytest.skip("Docker daemon not available for testcontainers")

    container = PostgresContainer(
        image="postgres:16-alpine",
        username="test_user",
        password="test_password",
        dbname="query_server_test",
    )
    container.start()
    yield container
    container.stop()


@pytest.fixture(scope='session')
def database_url(postgres_container):
    # postgresql+psycopg2://... -> postgresql://...
    return re.sub(r'^postgresql\+\w+://', 'postgresql://', postgres_container.get_connection_url())


async def reset_database(dsn, last_updated=LAST_UPDATED):
    conn = await asyncpg.connect(dsn)
    try:
        await conn.execute(SCHEMA_SQL)
        if last_updated is not None:
            await conn.execute('INSERT INTO metadata VALUES ($1)', last_updated)
    finally:
        await conn.close()


async def open_pool(dsn, **kwargs):
    pool = ConnectionPool(dsn, **kwargs)
    await pool.initialize()
    return pool


@pytest_asyncio.fixture
async def pool(database_url):
    await reset_database(database_url)
    pool = await open_pool(database_url, min_connections=1, max_connections=5)
    yield pool
    await pool.close()
