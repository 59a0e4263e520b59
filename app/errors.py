"""Error types raised by the resolution workflows."""

from __future__ import annotations


class ResolutionError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(ResolutionError):
    """Missing or malformed input; raised before any upstream contact."""

    status_code = 400


class NotFoundError(ResolutionError):
    """The catalog entry or episode does not exist upstream."""

    status_code = 404


class UpstreamFailure(ResolutionError):
    """Navigation, readiness or extraction against the catalog site failed."""

    status_code = 500
