import logging
from typing import List, Optional, Sequence

import asyncpg

from query_server.errors import IntrospectionError, StatementError

logger = logging.getLogger(__name__)

COLUMNS_SQL = '''
SELECT attname
FROM pg_catalog.pg_attribute
WHERE attrelid = $1::text::regclass
  AND attnum > 0
  AND NOT attisdropped
ORDER BY attnum
'''


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def render_value(value: Optional[str]) -> str:
    return '' if value is None else value


class ResultIntrospector:
    """Reads the shape and contents of a staged relation.

    Every cell comes back as its PostgreSQL text representation.
    """

    async def columns(self, conn: asyncpg.Connection, relation: str) -> List[str]:
        try:
            records = await conn.fetch(COLUMNS_SQL, relation)
        except asyncpg.PostgresError as e:
            # e.g. the statement dropped the staged table itself
            logger.info("Failed to read staged columns: %s", e)
            raise StatementError(str(e)) from e
        except asyncpg.InterfaceError as e:
            raise IntrospectionError(f"Failed to read columns of {relation}: {e}") from e

        names = []
        for position, record in enumerate(records, start=1):
            name = record['attname']
            if name is None:
                raise IntrospectionError(f"Column {position} of {relation} has no name")
            names.append(name)
        return names

    def build_select(self, relation: str, columns: Sequence[str]) -> str:
        select_list = ', '.join(f'{quote_identifier(c)}::text' for c in columns)
        return f'SELECT {select_list} FROM {relation}'

    async def rows(
        self,
        conn: asyncpg.Connection,
        relation: str,
        columns: Sequence[str]
    ) -> List[List[str]]:
        try:
            records = await conn.fetch(self.build_select(relation, columns))
        except asyncpg.PostgresError as e:
            logger.info("Failed to read staged rows: %s", e)
            raise StatementError(str(e)) from e

        return [[render_value(value) for value in record.values()] for record in records]
