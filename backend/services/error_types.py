"""
Custom Error Types for the Energy Audit Service

Provides categorized exceptions to distinguish between critical errors
that must be surfaced to the caller and non-critical errors that are
logged but never abort an export.
"""

import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class AuditServiceError(Exception):
    """Base exception for all audit service errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class CriticalError(AuditServiceError):
    """
    Critical errors that stop the current operation.

    Examples:
    - Audit or photo not found
    - Upload rejected by validation
    - Completion precondition not met
    """
    pass


class NonCriticalError(AuditServiceError):
    """
    Non-critical errors that are logged but never abort an export.

    Examples:
    - A stored section that is not valid structured data
    - A photo that cannot be fetched or decoded
    """
    pass


class NotFoundError(CriticalError):
    """Requested audit or photo does not exist (or is not visible to the caller)."""
    pass


class ValidationError(CriticalError):
    """
    Input validation errors.

    Examples:
    - Upload is not an image
    - Unknown photo category
    - Unknown section name
    - Attempt to remove a fixed floor
    """
    pass


class PayloadTooLargeError(ValidationError):
    """Upload exceeds the configured byte ceiling."""
    pass


class PreconditionError(CriticalError):
    """
    A lifecycle transition was requested before its precondition holds.

    Example: completing an audit whose depressurization test was never saved.
    """
    pass


class MalformedSectionError(NonCriticalError):
    """A persisted section could not be parsed; it is treated as empty."""

    def __init__(self, section: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.section = section


class PhotoRetrievalError(NonCriticalError):
    """A photo could not be fetched or decoded; the report shows a placeholder."""

    def __init__(self, photo_id: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.photo_id = photo_id


def log_error_with_context(error: AuditServiceError, context: Dict[str, Any]):
    """
    Log error with additional context information.

    Args:
        error: Error to log
        context: Additional context (audit_id, section, photo_id, etc.)
    """
    log_data = {
        'error_type': type(error).__name__,
        'error_message': error.message,  # 'message' is reserved by LogRecord
        'details': error.details,
        'context': context
    }

    if isinstance(error, CriticalError):
        logger.error(f"CRITICAL ERROR: {error.message}", extra=log_data)
    else:
        logger.warning(f"Non-critical error: {error.message}", extra=log_data)
