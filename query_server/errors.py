class QueryServerError(Exception):
    pass


class ConfigurationError(QueryServerError):
    pass


class ConnectionPoolExhausted(QueryServerError):
    pass


class MetadataNotFound(QueryServerError):
    """The metadata relation has no row; the service has nothing to stamp responses with."""


class MetadataError(QueryServerError):
    pass


class StatementError(QueryServerError):
    """The client's statement failed inside the database.

    ``message`` is the database's own error text, passed through untouched.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IntrospectionError(QueryServerError):
    pass


class CommitError(QueryServerError):
    pass


class ServiceUnavailable(QueryServerError):
    pass
