"""Service-level exceptions that routers translate into HTTP status codes."""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(ServiceError):
    """A required API key or setting is missing on the server."""

    status_code = 500


class UpstreamError(ServiceError):
    """A third-party API answered with a non-2xx status."""

    status_code = 502


class NotFoundError(ServiceError):
    """The upstream answered, but nothing usable came back."""

    status_code = 404


class ExtractionError(ServiceError):
    """The AI response could not be turned into a seed draft."""

    status_code = 502
