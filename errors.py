"""
Standardized error taxonomy for the counting service.

Every error carries a stable code, a category and a severity so that
callers (the HTTP façade, startup code, log pipelines) can decide how to
react without string matching:

- CONFIG_1xx: fatal misconfiguration detected at startup
- STORE_2xx: per-request storage failures (degraded, never fatal)
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    SYSTEM = "system"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CountingServiceError(Exception):
    """
    Base class for all counting-service errors.

    `message` is the human-readable reason; `data` holds structured context
    that is safe to log.
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        data: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.category = category
        self.severity = severity
        self.data = data or {}
        self.suggestion = suggestion

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "data": self.data,
        }
        if self.suggestion:
            out["suggestion"] = self.suggestion
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)


# =============================================================================
# Configuration errors (fatal at startup)
# =============================================================================


class ConfigurationError(CountingServiceError):
    """Base class for configuration problems that must stop the process."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "CONFIG_100",
        severity: ErrorSeverity = ErrorSeverity.CRITICAL,
        data: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(
            code,
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=severity,
            data=data,
            suggestion=suggestion,
        )


class MissingConfigurationError(ConfigurationError):
    """A variable required by the selected backend is not set."""

    def __init__(self, config_name: str, storage_mode: str) -> None:
        super().__init__(
            f"{config_name} must be set when STORAGE_MODE={storage_mode}",
            code="CONFIG_101",
            data={"config_name": config_name, "storage_mode": storage_mode},
            suggestion=f"Export {config_name} or choose a different STORAGE_MODE.",
        )


class InvalidConfigurationError(ConfigurationError):
    """A variable holds a value outside its allowed set."""

    def __init__(self, config_name: str, value: Any, valid_values: List[str]) -> None:
        super().__init__(
            f"Invalid value for {config_name}: {value!r}",
            code="CONFIG_102",
            severity=ErrorSeverity.HIGH,
            data={"config_name": config_name, "value": value, "valid_values": list(valid_values)},
            suggestion=f"Use one of: {', '.join(valid_values)}",
        )


class SettingsValidationError(ConfigurationError):
    """Raised by Settings when one or more values fail validation."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__(
            "Settings validation failed: " + "; ".join(errors),
            code="CONFIG_103",
            data={"errors": list(errors)},
        )
        self.errors = list(errors)


# =============================================================================
# Storage errors (per request, degraded)
# =============================================================================


class StoreUnavailableError(CountingServiceError):
    """The backend could not be reached or the increment query failed."""

    def __init__(self, backend: str, reason: str) -> None:
        super().__init__(
            "STORE_201",
            reason,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            data={"backend": backend},
            suggestion="Check that the storage backend is running and reachable.",
        )
        self.backend = backend


class InfoUnavailableError(CountingServiceError):
    """The backend descriptor could not be fetched. Never fatal."""

    def __init__(self, backend: str, reason: str) -> None:
        super().__init__(
            "STORE_202",
            reason,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.LOW,
            data={"backend": backend},
        )
        self.backend = backend


def classify_store_exception(exc: BaseException, backend: str) -> CountingServiceError:
    """
    Map a driver exception (redis-py, SQLAlchemy, socket) to the taxonomy.

    Errors that are already classified pass through unchanged.
    """
    if isinstance(exc, CountingServiceError):
        return exc
    reason = str(exc).strip() or exc.__class__.__name__
    # SQLAlchemy prefixes driver errors with a multi-line background link.
    reason = reason.split("\n", 1)[0]
    return StoreUnavailableError(backend=backend, reason=reason)
