"""Error taxonomy shared by the filing services and the HTTP layer.

Each error carries a stable ``code`` (used as ``error.code`` in API payloads)
and the HTTP status the API layer should answer with.
"""

from __future__ import annotations

from typing import Any


class FilingsError(Exception):
    code = "error"
    http_status = 500

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidIdentifier(FilingsError):
    """Malformed CIK or empty query. Raised before any network call."""

    code = "invalid_identifier"
    http_status = 400


class NotFound(FilingsError):
    code = "not_found"
    http_status = 404


class UpstreamUnavailable(FilingsError):
    """SEC returned non-2xx or the transport failed."""

    code = "upstream_unavailable"
    http_status = 502


class FetchTimeout(FilingsError):
    code = "timeout"
    http_status = 504


class AmbiguousIdentifier(FilingsError):
    """Several candidates scored too close to pick one.

    `candidates` is the disambiguation list (already ordered best first).
    """

    code = "ambiguous_identifier"
    http_status = 300

    def __init__(self, message: str, *, candidates: list | None = None):
        self.candidates = list(candidates or [])
        super().__init__(
            message,
            details={"candidates": [c.as_dict() for c in self.candidates]},
        )
