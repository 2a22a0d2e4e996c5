"""Domain errors surfaced to the dashboard as dismissable notifications.

Each error carries a stable ``code`` and an HTTP status; ``main`` renders them
as ``{"detail": ..., "code": ...}``. None of them is retried automatically.
"""

from __future__ import annotations

from typing import Any, Optional


class MeuBoletoError(Exception):
    code = "error"
    status_code = 400

    def __init__(self, message: str, *, extra: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "code": self.code}
        body.update(self.extra)
        return body


class ValidationError(MeuBoletoError):
    """A required field is missing before a mutation."""

    code = "validation_error"
    status_code = 400


class UnsupportedFormatError(MeuBoletoError):
    """Upload rejected by type or size before any network call."""

    code = "unsupported_format"
    status_code = 415

    def __init__(self, message: str, *, too_large: bool = False, extra: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message, extra=extra)
        self.too_large = too_large
        if too_large:
            self.status_code = 413


class AIParseError(MeuBoletoError):
    """The model reply holds no JSON object, or it does not parse."""

    code = "ai_parse_error"
    status_code = 422


class IncompleteExtractionError(MeuBoletoError):
    """The reply parsed but beneficiary, amount or dueDate is missing."""

    code = "incomplete_extraction"
    status_code = 422

    def __init__(self, message: str, *, missing: list[str], partial: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message, extra={"missing_fields": missing})
        self.missing = missing
        self.partial = partial or {}


class RemoteRequestError(MeuBoletoError):
    """Non-success response (or transport failure) from the backend or an AI API."""

    code = "remote_request_error"
    status_code = 502

    def __init__(self, message: str, *, service: str = "", upstream_status: Optional[int] = None) -> None:
        super().__init__(message, extra={"service": service, "upstream_status": upstream_status})
        self.service = service
        self.upstream_status = upstream_status


class MissingRangeError(MeuBoletoError):
    """Report requested without both date bounds."""

    code = "missing_range"
    status_code = 400
