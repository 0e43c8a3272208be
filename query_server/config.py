import os
from dataclasses import dataclass
from typing import Mapping, Optional

from query_server.errors import ConfigurationError

DEFAULT_PORT = 11265


def _parse_port(value: Optional[str]) -> int:
    if value is None:
        return DEFAULT_PORT
    try:
        port = int(value.strip())
    except ValueError:
        return DEFAULT_PORT
    if not 0 <= port <= 65535:
        return DEFAULT_PORT
    return port


@dataclass
class ServerConfig:
    database_url: str
    host: str = '0.0.0.0'
    port: int = DEFAULT_PORT
    pool_min_size: int = 1
    pool_max_size: int = 10
    pool_acquire_timeout: float = 30.0

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> 'ServerConfig':
        """Build configuration from environment variables.

        ``DATABASE_URL`` is required. An absent or unparseable ``PORT`` falls
        back to the default port.
        """
        env = os.environ if environ is None else environ
        database_url = env.get('DATABASE_URL')
        if not database_url:
            raise ConfigurationError("Environment variable DATABASE_URL is not set")
        try:
            return cls(
                database_url=database_url,
                host=env.get('HOST', '0.0.0.0'),
                port=_parse_port(env.get('PORT')),
                pool_min_size=int(env.get('POOL_MIN_SIZE', '1')),
                pool_max_size=int(env.get('POOL_MAX_SIZE', '10')),
                pool_acquire_timeout=float(env.get('POOL_ACQUIRE_TIMEOUT', '30.0')),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid pool setting: {e}") from e
