"""Error types raised by the REST client layer."""
from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str, status_code: int = 500) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(detail=detail, status_code=404)


class UpstreamError(AppError):
    """Upstream service answered with an error or an unreadable body."""

    def __init__(self, detail: str = "Upstream error", status_code: int = 502) -> None:
        super().__init__(detail=detail, status_code=status_code)


class TransportError(AppError):
    """Upstream service could not be reached (503)."""

    def __init__(self, detail: str = "Service unavailable") -> None:
        super().__init__(detail=detail, status_code=503)
