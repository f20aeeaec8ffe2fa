"""Error taxonomy and error mapping for tunesearch operations."""

import functools
from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Closed set of failure codes reported by tunesearch operations."""

    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission-denied"
    NOT_FOUND = "not-found"
    INVALID_ARGUMENT = "invalid-argument"
    FAILED_PRECONDITION = "failed-precondition"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"


class TuneSearchError(Exception):
    """Base exception class for tunesearch with classified error information."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL,
        context: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.details = details or {}
        self.timestamp = datetime.now()

    @property
    def code(self) -> str:
        return self.error_code.value

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary format."""
        return {
            "code": self.error_code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "details": self.details,
        }


class UnauthenticatedError(TuneSearchError):
    """Missing, malformed or rejected credentials."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.UNAUTHENTICATED)
        super().__init__(message, **kwargs)


class PermissionDeniedError(TuneSearchError):
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.PERMISSION_DENIED)
        super().__init__(message, **kwargs)


class NotFoundError(TuneSearchError):
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.NOT_FOUND)
        super().__init__(message, **kwargs)


class InvalidArgumentError(TuneSearchError):
    """Input validation errors."""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        context = kwargs.get("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["invalid_value"] = str(value)[:100]

        kwargs["context"] = context
        kwargs.setdefault("error_code", ErrorCode.INVALID_ARGUMENT)
        super().__init__(message, **kwargs)


class FailedPreconditionError(TuneSearchError):
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FAILED_PRECONDITION)
        super().__init__(message, **kwargs)


class UnavailableError(TuneSearchError):
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.UNAVAILABLE)
        super().__init__(message, **kwargs)


class InternalError(TuneSearchError):
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.INTERNAL)
        super().__init__(message, **kwargs)


ERROR_CLASSES: dict[ErrorCode, type[TuneSearchError]] = {
    ErrorCode.UNAUTHENTICATED: UnauthenticatedError,
    ErrorCode.PERMISSION_DENIED: PermissionDeniedError,
    ErrorCode.NOT_FOUND: NotFoundError,
    ErrorCode.INVALID_ARGUMENT: InvalidArgumentError,
    ErrorCode.FAILED_PRECONDITION: FailedPreconditionError,
    ErrorCode.UNAVAILABLE: UnavailableError,
    ErrorCode.INTERNAL: InternalError,
}

# Checked in order; first substring hit wins.
BACKEND_CODE_PATTERNS: list[tuple[tuple[str, ...], ErrorCode]] = [
    (("permission-denied", "unauthorized"), ErrorCode.PERMISSION_DENIED),
    (("not-found",), ErrorCode.NOT_FOUND),
    (("invalid-argument",), ErrorCode.INVALID_ARGUMENT),
    (("failed-precondition",), ErrorCode.FAILED_PRECONDITION),
    (("unavailable",), ErrorCode.UNAVAILABLE),
]


def classify_backend_code(code: Any) -> ErrorCode:
    """Classify an upstream error code by substring, defaulting to INTERNAL.

    Codes are compared case-insensitively with underscores treated as dashes,
    so ``PERMISSION_DENIED`` and ``firestore/permission-denied`` both match.
    """
    if not isinstance(code, str) or not code:
        return ErrorCode.INTERNAL

    normalized = code.lower().replace("_", "-")
    for patterns, error_code in BACKEND_CODE_PATTERNS:
        if any(pattern in normalized for pattern in patterns):
            return error_code
    return ErrorCode.INTERNAL


class ErrorMapper:
    """Translates arbitrary failures into the closed tunesearch taxonomy."""

    def __init__(self):
        self.error_stats = {"total_errors": 0, "errors_by_code": {}, "recent_errors": []}

    def map(
        self,
        error: Exception,
        operation: str = None,
        context: dict[str, Any] = None,
        allowed: frozenset[ErrorCode] | None = None,
    ) -> TuneSearchError:
        """Convert any exception to a TuneSearchError.

        Errors that are already classified pass through unchanged. When
        ``allowed`` is given, a classification outside that set is reported
        as INTERNAL instead.
        """
        if isinstance(error, TuneSearchError):
            mapped = error
        else:
            mapped = self._convert_exception(error, operation, context)

        if allowed is not None and mapped.error_code not in allowed:
            mapped = InternalError(
                mapped.message,
                context={**mapped.context, "original_code": mapped.error_code.value},
                details=mapped.details,
            )

        if not getattr(mapped, "_tracked", False):
            self._track_error(mapped)
            mapped._tracked = True
        return mapped

    def _convert_exception(
        self, error: Exception, operation: str = None, context: dict[str, Any] = None
    ) -> TuneSearchError:
        context = dict(context or {})
        if operation:
            context["operation"] = operation

        upstream_code = getattr(error, "code", None)
        error_code = classify_backend_code(upstream_code)
        details = {"exception_type": type(error).__name__}
        if upstream_code is not None:
            details["original_code"] = str(upstream_code)
        upstream_details = getattr(error, "details", None)
        if upstream_details is not None:
            details["details"] = str(upstream_details)

        message = str(error) or "An unexpected error occurred"
        return ERROR_CLASSES[error_code](message, context=context, details=details)

    def _track_error(self, error: TuneSearchError):
        self.error_stats["total_errors"] += 1

        code_name = error.error_code.name
        self.error_stats["errors_by_code"][code_name] = self.error_stats["errors_by_code"].get(code_name, 0) + 1

        # Keep recent errors (last 100)
        self.error_stats["recent_errors"].append(error.to_dict())
        if len(self.error_stats["recent_errors"]) > 100:
            self.error_stats["recent_errors"].pop(0)

    def get_error_stats(self) -> dict[str, Any]:
        """Get error statistics."""
        return self.error_stats.copy()


# Global error mapper instance
error_mapper = ErrorMapper()


def handle_async_errors(mapper: ErrorMapper = None, allowed: frozenset[ErrorCode] | None = None):
    """Decorator mapping errors escaping an async function into the taxonomy."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                operation = getattr(func, "__name__", "unknown_operation")
                handled_error = (mapper or error_mapper).map(e, operation, allowed=allowed)
                if handled_error is e:
                    raise
                raise handled_error from e

        return wrapper

    return decorator
