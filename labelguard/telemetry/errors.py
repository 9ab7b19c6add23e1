"""Error taxonomy and structured error telemetry helpers."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Canonical error codes for operational telemetry."""

    DOMAIN_NOT_ALLOWED = "DOMAIN_NOT_ALLOWED"
    NO_FIXTURE = "NO_FIXTURE"
    EXTRACTION_INCOMPLETE = "EXTRACTION_INCOMPLETE"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    INVALID_INPUT = "INVALID_INPUT"
    AI_INITIALIZATION_FAILED = "AI_INITIALIZATION_FAILED"
    AI_CLEANUP_FAILED = "AI_CLEANUP_FAILED"
    VISION_INITIALIZATION_FAILED = "VISION_INITIALIZATION_FAILED"
    STRATEGY_FAILED = "STRATEGY_FAILED"
    BROWSER_CLEANUP_FAILED = "BROWSER_CLEANUP_FAILED"
    BARCODE_LOOKUP_FAILED = "BARCODE_LOOKUP_FAILED"
    UNHANDLED_EXCEPTION = "UNHANDLED_EXCEPTION"


class LabelGuardError(Exception):
    """Base class for every failure that is surfaced to API callers.

    Carries the HTTP status the API layer should answer with and the
    telemetry code used when the failure is logged.
    """

    status_code: int = 500
    code: ErrorCode = ErrorCode.UNHANDLED_EXCEPTION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DomainNotAllowed(LabelGuardError):
    """Host is outside the retail allowlist. Never retried."""

    status_code = 400
    code = ErrorCode.DOMAIN_NOT_ALLOWED


class InvalidInput(LabelGuardError):
    status_code = 400
    code = ErrorCode.INVALID_INPUT


class NoFixture(LabelGuardError):
    status_code = 404
    code = ErrorCode.NO_FIXTURE


class ExtractionIncomplete(LabelGuardError):
    """A single tier produced nothing usable."""

    status_code = 451
    code = ErrorCode.EXTRACTION_INCOMPLETE


class ExtractionFailed(LabelGuardError):
    """Every tier of an auto-mode extraction was exhausted."""

    status_code = 451
    code = ErrorCode.EXTRACTION_FAILED


class ProviderUnavailable(LabelGuardError):
    status_code = 503
    code = ErrorCode.PROVIDER_UNAVAILABLE


class TimeoutExceeded(LabelGuardError):
    status_code = 504
    code = ErrorCode.TIMEOUT


def emit_structured_error(
    logger: logging.Logger,
    *,
    code: ErrorCode,
    message: str,
    suppressed: bool,
    phase: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a structured telemetry event via logging."""
    logger.error(
        "labelguard_error",
        extra={
            "error_code": code,
            "error_message": message,
            "suppressed": suppressed,
            "phase": phase,
            "details": details or {},
        },
    )
