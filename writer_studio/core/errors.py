"""
Error taxonomy for the Writer Studio service.

Every error raised towards the HTTP layer derives from ``WriterStudioError`` and
carries the status code it should be rendered with. Source adapters raise the
``SourceError`` family instead; those never reach a client and are absorbed by
the fallback chains.
"""

from typing import Optional


class WriterStudioError(Exception):
    """Base class for errors rendered to API clients."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(WriterStudioError):
    """Missing or malformed input."""

    status_code = 400


class UnauthorizedError(WriterStudioError):
    """Bad credentials, or a missing, malformed, expired or tampered token."""

    status_code = 401

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class NotFoundError(WriterStudioError):
    status_code = 404


class MethodNotAllowedError(WriterStudioError):
    status_code = 405

    def __init__(self, message: str = "Method not allowed"):
        super().__init__(message)


class ServerError(WriterStudioError):
    """Unexpected failure; the client only ever sees a generic message."""

    status_code = 500

    def __init__(self, message: str = "Server error"):
        super().__init__(message)


class UpstreamUnavailableError(WriterStudioError):
    """Every backend for a request was unreachable at the transport level."""

    status_code = 503
    retryable = True

    def __init__(self, message: str = "Analytics backends are unreachable, please retry"):
        super().__init__(message)


class SourceError(Exception):
    """A single data backend failed to answer."""

    def __init__(self, backend: str, message: str):
        super().__init__(f"{backend}: {message}")
        self.backend = backend


class SourceUnavailableError(SourceError):
    """Connection refused, timeout, DNS failure and similar transport problems."""


class SourceDataError(SourceError):
    """The backend answered but the payload was not structurally valid."""
