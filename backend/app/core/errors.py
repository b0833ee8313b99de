"""Error taxonomy for the session engine.

Services raise these; the transport layer maps them to HTTP responses in
``backend.app.main``. Routers never catch them.
"""

from typing import Optional


class SessionEngineError(Exception):
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(SessionEngineError):
    """Malformed or missing required field."""

    status_code = 422


class NotFoundError(SessionEngineError):
    """Entity absent or not owned by the caller."""

    status_code = 404


class PreconditionError(SessionEngineError):
    """Valid request, invalid state transition."""

    status_code = 409


class DependencyError(SessionEngineError):
    """Storage or notification collaborator failure."""

    status_code = 503
