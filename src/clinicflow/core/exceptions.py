"""
Exception handling for infrastructure concerns.

Business rule violations live in ``clinicflow.domain.errors``; this module
covers configuration and storage failures.
"""

from typing import Any, Dict, Optional


class ClinicFlowException(Exception):
    """Base exception class for ClinicFlow infrastructure errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ClinicFlowException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CONFIG_ERROR", details)


class DatabaseError(ClinicFlowException):
    """Raised when there's a database operation error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "DATABASE_ERROR", details)
