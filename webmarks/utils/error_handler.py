"""
Error taxonomy and diagnostic channel for Webmarks.

All failures in the core are non-fatal. Validation problems are raised to the
caller before any state changes; failures of external store calls are only
reported through the diagnostic channel (logging plus the in-memory
``DiagnosticsLog``) while the local mutation proceeds.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# ============================================================================
# Unified Exception Hierarchy for Webmarks
# ============================================================================
# Data-source (capability) errors live in webmarks.core.data_sources.protocol
# ============================================================================


class WebmarksError(Exception):
    """Base exception for all Webmarks errors."""

    pass


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(WebmarksError):
    """General validation errors."""

    pass


class BookmarkValidationError(ValidationError):
    """A bookmark or list mutation was rejected before touching any state."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        self.field_name = field_name
        super().__init__(message)


class FolderNotEmptyError(ValidationError):
    """A folder removal was requested for a list that still has bookmarks."""

    def __init__(self, list_id: str, bookmark_count: int):
        self.list_id = list_id
        self.bookmark_count = bookmark_count
        super().__init__(
            f"List {list_id!r} still contains {bookmark_count} bookmark(s)"
        )


class ErrorSeverity(Enum):
    """Error severity levels for categorization."""

    LOW = "low"  # Fallback path taken, nothing lost
    MEDIUM = "medium"  # Local and external state may now differ
    HIGH = "high"  # Operation could not be applied at all


class ErrorCategory(Enum):
    """Categories matching the failure taxonomy of the sync layer."""

    CAPABILITY_UNAVAILABLE = "capability_unavailable"
    EXTERNAL_CALL_FAILED = "external_call_failed"
    VALIDATION_FAILED = "validation_failed"
    STORAGE = "storage"


@dataclass
class ErrorDetails:
    """Detailed error information for the diagnostic channel."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    operation: str = ""
    original_exception: Optional[Exception] = None
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[float] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = time.time()

    def __str__(self) -> str:
        prefix = f"[{self.category.value}]"
        if self.operation:
            prefix += f" {self.operation}:"
        return f"{prefix} {self.message}"


class DiagnosticsLog:
    """
    Collects non-fatal failures reported by the core.

    Every recorded entry is also written to the standard logger, so the log
    file remains the primary diagnostic channel; the in-memory list lets the
    CLI and tests inspect what diverged during a session.
    """

    def __init__(self, max_entries: int = 500):
        self.max_entries = max_entries
        self._entries: List[ErrorDetails] = []
        self.logger = logging.getLogger(__name__)

    def record(
        self,
        category: ErrorCategory,
        message: str,
        operation: str = "",
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        error: Optional[Exception] = None,
        **context: Any,
    ) -> ErrorDetails:
        details = ErrorDetails(
            category=category,
            severity=severity,
            message=message,
            operation=operation,
            original_exception=error,
            context=context,
        )
        self._entries.append(details)
        if len(self._entries) > self.max_entries:
            del self._entries[0]

        if severity is ErrorSeverity.LOW:
            self.logger.info(str(details))
        elif error is not None:
            self.logger.error(f"{details} ({type(error).__name__}: {error})")
        else:
            self.logger.error(str(details))
        return details

    def entries(self, category: Optional[ErrorCategory] = None) -> List[ErrorDetails]:
        if category is None:
            return list(self._entries)
        return [e for e in self._entries if e.category is category]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
