import logging

import asyncpg
from asyncpg.transaction import Transaction

from query_server.errors import CommitError, StatementError

logger = logging.getLogger(__name__)

STAGED_TABLE = 'query_result'

ENDED_TRANSACTION_MESSAGE = (
    'statement ended the transaction it runs in (COMMIT or ROLLBACK); '
    'its result could not be read'
)


class StagedRelation:
    """Handle on the temporary table holding one statement's result.

    The table is created with ``ON COMMIT DROP`` inside ``transaction``, so it
    disappears when the transaction ends either way.
    """

    def __init__(self, conn: asyncpg.Connection, transaction: Transaction, name: str):
        self._conn = conn
        self._transaction = transaction
        self._name = name
        self._finished = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def connection(self) -> asyncpg.Connection:
        return self._conn

    @property
    def is_finished(self) -> bool:
        return self._finished

    async def commit(self) -> None:
        if self._finished:
            return
        try:
            await self._transaction.commit()
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise CommitError(f"Failed to commit staged query: {e}") from e
        finally:
            self._finished = True

    async def rollback(self) -> None:
        if self._finished:
            return
        try:
            await self._transaction.rollback()
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise CommitError(f"Failed to roll back staged query: {e}") from e
        finally:
            self._finished = True

    async def __aenter__(self) -> 'StagedRelation':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self._finished:
            await self.rollback()


class StatementStager:
    def __init__(self, table_name: str = STAGED_TABLE):
        self._table_name = table_name

    @property
    def relation_name(self) -> str:
        return f'pg_temp.{self._table_name}'

    def build_statement(self, raw_query: str) -> str:
        return f'CREATE TEMPORARY TABLE {self._table_name} ON COMMIT DROP AS {raw_query}'

    async def stage(self, conn: asyncpg.Connection, raw_query: str) -> StagedRelation:
        transaction = conn.transaction()
        await transaction.start()

        try:
            # No arguments: asyncpg sends this over the simple query protocol verbatim.
            await conn.execute(self.build_statement(raw_query))
        except asyncpg.PostgresError as e:
            # The failed transaction has to be closed before the connection goes back.
            try:
                await transaction.rollback()
            except (asyncpg.PostgresError, asyncpg.InterfaceError) as rollback_error:
                raise CommitError(
                    f"Failed to roll back after staging error: {rollback_error}"
                ) from e
            logger.info("Statement failed during staging: %s", e)
            raise StatementError(str(e)) from e

        if not conn.is_in_transaction():
            # The statement issued its own COMMIT or ROLLBACK; the staged table went with it.
            try:
                await transaction.rollback()
            except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
                raise CommitError(f"Failed to close ended transaction: {e}") from e
            logger.info("Statement ended the staging transaction")
            raise StatementError(ENDED_TRANSACTION_MESSAGE)

        return StagedRelation(conn, transaction, self.relation_name)
