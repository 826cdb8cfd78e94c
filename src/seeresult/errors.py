"""
Exception hierarchy for the SEE result relay.

Every error that can reach a client carries the HTTP status it maps to.
Extraction problems are deliberately absent: they degrade to empty fields.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class SeeResultError(Exception):
    """Base exception for all relay errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_payload(self) -> Dict[str, Any]:
        """JSON body returned to the client."""
        return {"error": self.message}


class RequestValidationFailed(SeeResultError):
    """Inbound symbol/dob failed format checks."""

    status_code = 400

    def __init__(self, errors: List[Dict[str, Any]]) -> None:
        super().__init__("Request validation failed", {"errors": errors})
        self.errors = errors

    def to_payload(self) -> Dict[str, Any]:
        return {"errors": self.errors}


class PayloadTooLarge(SeeResultError):
    """Request body exceeds the configured limit."""

    status_code = 413

    def __init__(self, size: int, limit: int) -> None:
        super().__init__("Payload Too Large", {"size": size, "limit": limit})


class UpstreamError(SeeResultError):
    """The results site could not be reached or answered with an error."""

    status_code = 502

    def __init__(self, message: str = "Failed to fetch data from external server", **details: Any) -> None:
        super().__init__(message, details)


class UpstreamTimeout(UpstreamError):
    """The results site did not answer within the configured timeout."""

    status_code = 504

    def __init__(self, timeout: float, url: str) -> None:
        super().__init__("Request timeout", timeout=timeout, url=url)
