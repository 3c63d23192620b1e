"""
Error taxonomy of the access-control and query core.

These exceptions carry no transport semantics; `api.exceptions.to_http_exception`
maps them onto HTTP responses.
"""


class AccessError(Exception):
    """Base class for all errors raised by the core."""

    def __init__(self, detail: str = None):
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail

    default_detail = "Access layer error"


class Unauthenticated(AccessError):
    """Missing, malformed, badly signed or expired claim."""
    default_detail = "Not authenticated"


class Unauthorized(AccessError):
    """Principal lacks the required role or permission."""
    default_detail = "Not authorized"


class ValidationError(AccessError):
    """Malformed filter input, unknown ids in a replace set, negative offsets."""
    default_detail = "Invalid input"


class ConflictError(AccessError):
    """Unique constraint violation outside of an insert-if-absent path."""
    default_detail = "Conflicting data"


class TransientStoreError(AccessError):
    """Connection or timeout problem of the backing store."""
    default_detail = "Data store unavailable"
