"""
Error handling system for EarthLinguist.

This module provides the structured error definitions shared by the catalog,
session-state, archive and validation layers, plus a collector that logs
errors and renders a summary for the user.
"""

import logging
from enum import Enum
from typing import List, Optional, Dict, Any
from dataclasses import dataclass


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors that can occur while handling examples and sessions."""
    CATALOG = "catalog"
    SESSION_STATE = "session_state"
    ARCHIVE = "archive"
    VALIDATION = "validation"
    AUDIO = "audio"
    FILE_SYSTEM = "file_system"


@dataclass
class ProcessingError:
    """Represents an error with context and guidance."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    details: str
    suggested_actions: List[str]
    error_code: str
    context: Dict[str, Any] = None

    def __post_init__(self):
        if self.context is None:
            self.context = {}


class EarthLinguistError(Exception):
    """Base exception for EarthLinguist errors."""

    category = ErrorCategory.FILE_SYSTEM
    default_code = "EL_000"

    def __init__(self, processing_error: ProcessingError):
        self.processing_error = processing_error
        super().__init__(processing_error.message)

    @classmethod
    def create(
        cls,
        message: str,
        details: str = "",
        suggested_actions: Optional[List[str]] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> "EarthLinguistError":
        """Build the exception together with its ProcessingError."""
        return cls(ProcessingError(
            category=cls.category,
            severity=severity,
            message=message,
            details=details,
            suggested_actions=suggested_actions or [],
            error_code=error_code or cls.default_code,
            context=context,
        ))

    @property
    def error_code(self) -> str:
        return self.processing_error.error_code

    @property
    def context(self) -> Dict[str, Any]:
        return self.processing_error.context


class FormatError(EarthLinguistError):
    """Raised when checkmarks, table or state data is malformed."""
    category = ErrorCategory.SESSION_STATE
    default_code = "FORMAT_001"


class NotFoundError(EarthLinguistError):
    """Raised when a file, example or directory is missing."""
    category = ErrorCategory.FILE_SYSTEM
    default_code = "NOT_FOUND_001"


class StorageError(EarthLinguistError):
    """Raised when the filesystem refuses a create, delete, read or write."""
    category = ErrorCategory.FILE_SYSTEM
    default_code = "STORAGE_001"


class ValidationError(EarthLinguistError):
    """Base exception for session archive validation failures."""
    category = ErrorCategory.VALIDATION
    default_code = "ARCHIVE_VALIDATION_000"


class IntegrityError(ValidationError):
    """Raised for bad naming, out-of-range columns, path traversal or undecodable audio."""
    category = ErrorCategory.ARCHIVE
    default_code = "ARCHIVE_001"


class MissingStateError(NotFoundError, ValidationError):
    """Raised when a session directory has no state.json."""
    category = ErrorCategory.VALIDATION
    default_code = "ARCHIVE_VALIDATION_001"


class CorruptStateError(FormatError, ValidationError):
    """Raised when state.json exists but cannot be decoded into a session."""
    category = ErrorCategory.SESSION_STATE
    default_code = "STATE_001"


class CatalogLoadError(EarthLinguistError):
    """Base exception for failures while building the example catalog."""
    category = ErrorCategory.CATALOG
    default_code = "CATALOG_000"

    @property
    def example(self) -> Optional[str]:
        """Name of the example directory that failed, if known."""
        return self.context.get("example")


class CatalogFormatError(CatalogLoadError, FormatError):
    """Raised when an example directory or its checkmarks.txt is malformed."""
    category = ErrorCategory.CATALOG
    default_code = "CATALOG_001"


class CatalogNotFoundError(CatalogLoadError, NotFoundError):
    """Raised when an example directory, checkmarks.txt or row image is missing."""
    category = ErrorCategory.CATALOG
    default_code = "CATALOG_002"


class ErrorHandler:
    """
    Collects errors and warnings raised while running workspace operations.

    Operations that recover on their own (for example resetting a corrupted
    session directory at startup) record what happened here so the caller
    can still report it.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.errors: List[ProcessingError] = []
        self.warnings: List[ProcessingError] = []

    def add_error(self, error: ProcessingError) -> None:
        """Add an error to the collection."""
        if error.severity in [ErrorSeverity.ERROR, ErrorSeverity.CRITICAL]:
            self.errors.append(error)
        elif error.severity == ErrorSeverity.WARNING:
            self.warnings.append(error)

        log_level = {
            ErrorSeverity.INFO: logging.INFO,
            ErrorSeverity.WARNING: logging.WARNING,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL
        }[error.severity]

        self.logger.log(log_level, f"[{error.error_code}] {error.message}")
        if error.details:
            self.logger.log(log_level, f"Details: {error.details}")

    def record(self, exc: EarthLinguistError, severity: Optional[ErrorSeverity] = None) -> ProcessingError:
        """Record a raised error, optionally downgrading its severity."""
        error = exc.processing_error
        if severity is not None and severity != error.severity:
            error = ProcessingError(
                category=error.category,
                severity=severity,
                message=error.message,
                details=error.details,
                suggested_actions=list(error.suggested_actions),
                error_code=error.error_code,
                context=dict(error.context),
            )
        self.add_error(error)
        return error

    def has_errors(self) -> bool:
        """Check if any errors have been recorded."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if any warnings have been recorded."""
        return len(self.warnings) > 0

    def get_error_summary(self) -> Dict[str, Any]:
        """Get a summary of all errors and warnings."""
        return {
            'error_count': len(self.errors),
            'warning_count': len(self.warnings),
            'errors': [self._format_error_for_summary(e) for e in self.errors],
            'warnings': [self._format_error_for_summary(e) for e in self.warnings]
        }

    def _format_error_for_summary(self, error: ProcessingError) -> Dict[str, Any]:
        """Format error for summary display."""
        return {
            'code': error.error_code,
            'category': error.category.value,
            'severity': error.severity.value,
            'message': error.message,
            'suggested_actions': error.suggested_actions
        }

    def clear_errors(self) -> None:
        """Clear all recorded errors and warnings."""
        self.errors.clear()
        self.warnings.clear()


def format_error_line(exc: EarthLinguistError) -> str:
    """Render an error as a single diagnostic line."""
    return f"[{exc.error_code}] {exc}"
