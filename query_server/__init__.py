from query_server.config import ServerConfig
from query_server.errors import (
    CommitError,
    ConfigurationError,
    ConnectionPoolExhausted,
    IntrospectionError,
    MetadataError,
    MetadataNotFound,
    QueryServerError,
    ServiceUnavailable,
    StatementError,
)
from query_server.models import ErrorResponse, QueryRequest, SuccessResponse, response_from_dict

__all__ = [
    'CommitError',
    'ConfigurationError',
    'ConnectionPoolExhausted',
    'ErrorResponse',
    'IntrospectionError',
    'MetadataError',
    'MetadataNotFound',
    'QueryRequest',
    'QueryServerError',
    'ServerConfig',
    'ServiceUnavailable',
    'StatementError',
    'SuccessResponse',
    'response_from_dict',
]

__version__ = '0.1.0'
