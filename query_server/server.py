import logging
import time
from typing import Awaitable, Callable, Optional

import aiohttp_cors
from aiohttp import web

from query_server.config import ServerConfig
from query_server.errors import MetadataNotFound
from query_server.executor import QueryExecutor
from query_server.models import QueryRequest
from query_server.pool import ConnectionPool

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def compression_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    response = await handler(request)
    if isinstance(response, web.Response) and not response.prepared:
        response.enable_compression()
    return response


class QueryServer:
    def __init__(self, config: ServerConfig, pool: Optional[ConnectionPool] = None):
        self._config = config
        self._pool = pool
        self._owns_pool = pool is None
        self._executor: Optional[QueryExecutor] = None
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._request_count = 0
        self._start_time: Optional[float] = None

    @property
    def app(self) -> web.Application:
        if self._app is None:
            raise RuntimeError("Server is not initialized")
        return self._app

    @property
    def port(self) -> int:
        return self._config.port

    async def initialize(self) -> None:
        if self._pool is None:
            self._pool = ConnectionPool(
                self._config.database_url,
                min_connections=self._config.pool_min_size,
                max_connections=self._config.pool_max_size
            )
            await self._pool.initialize()
        self._executor = QueryExecutor(
            self._pool,
            acquire_timeout=self._config.pool_acquire_timeout
        )
        self._app = web.Application(middlewares=[compression_middleware])
        self._setup_routes()
        self._setup_cors()

    def _setup_routes(self) -> None:
        self._app.router.add_get('/', self._handle_query, allow_head=False)
        self._app.router.add_get('/health', self._handle_health, allow_head=False)

    def _setup_cors(self) -> None:
        cors = aiohttp_cors.setup(self._app, defaults={
            "*": aiohttp_cors.ResourceOptions(
                allow_credentials=True,
                expose_headers="*",
                allow_headers="*",
                allow_methods="*"
            )
        })
        for route in list(self._app.router.routes()):
            cors.add(route)

    async def _handle_query(self, request: web.Request) -> web.Response:
        self._request_count += 1
        query = request.query.get('query')
        if query is None:
            return web.json_response({'error': 'missing query parameter'}, status=400)

        query_request = QueryRequest(query=query)
        try:
            result = await self._executor.execute(query_request)
        except MetadataNotFound:
            logger.warning("Metadata relation is empty, request %s refused", query_request.request_id)
            return web.Response(status=503)
        except Exception:
            logger.exception("Request %s failed", query_request.request_id)
            raise web.HTTPInternalServerError()
        return web.json_response(result.to_dict())

    async def _handle_health(self, request: web.Request) -> web.Response:
        pool_stats = self._pool.stats if self._pool else {}
        uptime = time.monotonic() - self._start_time if self._start_time else 0
        return web.json_response({
            'status': 'healthy',
            'uptime': uptime,
            'request_count': self._request_count,
            'pool': pool_stats,
            'query_metrics': self._executor.get_metrics() if self._executor else {}
        })

    async def start(self) -> None:
        self._start_time = time.monotonic()
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()
        logger.info("Listening on port %d", self._config.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        if self._pool and self._owns_pool:
            await self._pool.close()


async def create_query_server(config: ServerConfig, **kwargs) -> QueryServer:
    server = QueryServer(config, **kwargs)
    await server.initialize()
    return server
