class EngineError(Exception):
    """Base error of the search and workflow engine.

    ``status_code`` is the HTTP status an endpoint answers with when the error
    reaches the caller.
    """

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidQuery(EngineError):
    status_code = 400


class InvalidTransition(EngineError):
    status_code = 400


class InvalidTimestamp(EngineError):
    status_code = 400


class InvalidInput(EngineError):
    status_code = 400


class EmailNotFound(EngineError):
    status_code = 404


class ColumnNotFound(EngineError):
    status_code = 404


class ColumnNotDeletable(EngineError):
    status_code = 400


class ProviderUnavailable(EngineError):
    status_code = 503


class UpstreamError(EngineError):
    status_code = 502


class EmbeddingDimensionMismatch(EngineError):
    status_code = 500
