import asyncio
import logging
import time
from collections import defaultdict
from typing import Any, Dict, List, Optional

from query_server.errors import StatementError
from query_server.introspector import ResultIntrospector
from query_server.metadata import read_last_updated
from query_server.models import ErrorResponse, QueryRequest, QueryResponse, SuccessResponse
from query_server.pool import ConnectionPool
from query_server.stager import StatementStager

logger = logging.getLogger(__name__)


class QueryExecutor:
    """Runs one client statement end to end on a single pooled connection.

    The steps are strictly sequential on one connection: metadata read,
    staging, column discovery, row read, commit. Statement failures become an
    ``ErrorResponse``; every other failure propagates to the caller.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        stager: Optional[StatementStager] = None,
        introspector: Optional[ResultIntrospector] = None,
        acquire_timeout: Optional[float] = 30.0
    ):
        self._pool = pool
        self._stager = stager or StatementStager()
        self._introspector = introspector or ResultIntrospector()
        self._acquire_timeout = acquire_timeout
        self._query_metrics: Dict[str, List[float]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def execute(self, request: QueryRequest) -> QueryResponse:
        start_time = time.perf_counter()
        outcome = 'failed'
        try:
            async with self._pool.acquire(timeout=self._acquire_timeout) as conn:
                last_updated = await read_last_updated(conn)
                logger.debug("Request %s running query: %s", request.request_id, request.query)

                try:
                    staged = await self._stager.stage(conn, request.query)
                except StatementError as e:
                    outcome = 'error'
                    return ErrorResponse(message=e.message)

                async with staged:
                    try:
                        column_names = await self._introspector.columns(conn, staged.name)
                        rows = await self._introspector.rows(conn, staged.name, column_names)
                    except StatementError as e:
                        await staged.rollback()
                        outcome = 'error'
                        return ErrorResponse(message=e.message)
                    await staged.commit()

                outcome = 'success'
                return SuccessResponse(
                    last_updated=last_updated,
                    column_names=column_names,
                    rows=rows
                )
        finally:
            execution_time = time.perf_counter() - start_time
            async with self._lock:
                self._query_metrics[outcome].append(execution_time)

    def get_metrics(self) -> Dict[str, Any]:
        metrics = {}
        for outcome, times in self._query_metrics.items():
            if times:
                metrics[outcome] = {
                    'count': len(times),
                    'total_time': sum(times),
                    'avg_time': sum(times) / len(times),
                    'min_time': min(times),
                    'max_time': max(times)
                }
        return metrics
