"""
Error kinds surfaced by ontology operations.

Every kind carries the HTTP status it maps to at the API boundary; the API
layer renders all of them as ``{"error": message}``.
"""

from __future__ import annotations


class OntologyError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(OntologyError):
    """A required parameter is missing or a value is out of range."""

    status_code = 400


class NotFoundError(OntologyError):
    """A lookup by path or id matched no row."""

    status_code = 404


class UnauthorizedError(OntologyError):
    """The presented bearer token does not match the configured key."""

    status_code = 401


class UpstreamError(OntologyError):
    """The underlying store failed to answer a query."""

    status_code = 500


__all__ = [
    "NotFoundError",
    "OntologyError",
    "UnauthorizedError",
    "UpstreamError",
    "ValidationError",
]
