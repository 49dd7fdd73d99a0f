"""Domain error taxonomy.

Services raise these; the API layer renders them as ``{"error": message}``
with the carried HTTP status code.
"""


class ReadShareError(Exception):
    """Base class for every error the core surfaces to callers."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReadShareError):
    """Malformed or out-of-range filter, sort or payload field."""

    status_code = 400


class AuthError(ReadShareError):
    """Missing or invalid actor."""

    status_code = 401


class AuthorizationError(ReadShareError):
    """Actor is not the owner / addressee of the resource."""

    status_code = 403


class NotFoundError(ReadShareError):
    """Resource absent, or invisible to the viewer."""

    status_code = 404


class ConflictError(ReadShareError):
    """Constraint violation (duplicate pair, taken nickname, ...)."""

    status_code = 409


class InternalError(ReadShareError):
    """Unexpected store failure. The message is always generic."""

    status_code = 500
