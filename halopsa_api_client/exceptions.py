"""
Custom exception types for the HaloPSA API client.

These exceptions allow callers to distinguish between failures
occurring during authentication, generic API requests, report
queries and reading the bundled API description document.
"""

from __future__ import annotations

from typing import Optional


class HaloPSAError(Exception):
    """Base exception for all HaloPSA client errors.

    ``status_code`` and ``body`` carry the HTTP status and response
    text when the failure came from a server response; both are
    ``None`` for transport or decoding failures.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthenticationError(HaloPSAError):
    """Raised when the client-credentials token exchange fails."""


class ApiCallError(HaloPSAError):
    """Raised when a generic REST call returns an error status or cannot be sent."""


class QueryError(HaloPSAError):
    """Raised when a report query fails."""


class SchemaFetchError(HaloPSAError):
    """Raised when the API description document cannot be loaded or parsed."""
