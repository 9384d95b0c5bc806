"""
Formaloo API adapter.

Errors are re-exported here; the client, catalog, resolver, assembler and
webhook modules are imported from their own modules.
"""
from formaloo_flow.formaloo.errors import (
    AmbiguousMatchError,
    ApiRequestError,
    AuthenticationError,
    FieldOptionNotFoundError,
    FormalooError,
    InvalidResponseError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "AmbiguousMatchError",
    "ApiRequestError",
    "AuthenticationError",
    "FieldOptionNotFoundError",
    "FormalooError",
    "InvalidResponseError",
    "NotFoundError",
    "ValidationError",
]
