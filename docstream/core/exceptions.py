"""Typed error signals raised by model resolution and document generation.

Every error carries a ``code`` of the form ``<type>:<surface>``. The core
never formats user-facing text; the HTTP layer decides what to show.
"""


class DocStreamError(Exception):
    """Base exception for docstream."""

    error_type: str = "internal"
    status_code: int = 500

    def __init__(self, surface: str = "api", detail: str = ""):
        self.surface = surface
        self.detail = detail
        super().__init__(detail or self.code)

    @property
    def code(self) -> str:
        return f"{self.error_type}:{self.surface}"


class BadRequestError(DocStreamError):
    """Malformed model identifier or generation request."""

    error_type = "bad_request"
    status_code = 400


class UnauthorizedError(DocStreamError):
    """No user identity on the session."""

    error_type = "unauthorized"
    status_code = 401


class ForbiddenError(DocStreamError):
    """Authenticated user has no active provider connection."""

    error_type = "forbidden"
    status_code = 403


class UpstreamFailureError(DocStreamError):
    """The provider router or the generation capability failed."""

    error_type = "upstream_failure"


class ConfigurationError(DocStreamError):
    """Deployment bug, e.g. the mock model registry was never initialized."""

    error_type = "configuration"


class ConnectionStoreError(DocStreamError):
    """The connection store could not be read or written."""

    error_type = "connection_store"
