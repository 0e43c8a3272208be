import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from query_server.config import ServerConfig
from query_server.errors import ConfigurationError
from query_server.server import create_query_server

log = logging.getLogger('query_server')


async def serve(config: ServerConfig) -> None:
    server = await create_query_server(config)
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Run SQL statements over HTTP against PostgreSQL.')
    parser.add_argument('--env-file', default=None, help='path to a .env file (default: search upwards)')
    parser.add_argument('--log-level', default='INFO', help='logging level (default: INFO)')
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="[%(asctime)s] %(levelname)s: %(message)s")
    load_dotenv(args.env_file)

    try:
        config = ServerConfig.from_environment()
    except ConfigurationError as e:
        log.error("%s", e)
        return 1

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        log.info("Shutting down")
    return 0


if __name__ == '__main__':
    sys.exit(main())
