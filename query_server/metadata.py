import logging
from datetime import datetime, timezone

import asyncpg

from query_server.errors import MetadataError, MetadataNotFound

logger = logging.getLogger(__name__)

LAST_UPDATED_SQL = 'SELECT last_updated FROM metadata'


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


async def read_last_updated(conn: asyncpg.Connection) -> str:
    """Return the dataset's last-updated timestamp as an RFC 3339 string.

    Raises ``MetadataNotFound`` when the metadata relation is empty and
    ``MetadataError`` when it cannot be read or holds no usable timestamp.
    """
    try:
        rows = await conn.fetch(LAST_UPDATED_SQL)
    except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        raise MetadataError(f"Failed to read metadata: {e}") from e

    if not rows:
        raise MetadataNotFound("Metadata relation has no rows")

    value = rows[0][0]
    if not isinstance(value, datetime):
        raise MetadataError(f"Expected a timestamp in metadata, got {value!r}")
    return format_timestamp(value)
