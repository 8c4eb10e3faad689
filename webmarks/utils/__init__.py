"""
Utility modules for Webmarks.

This package contains error handling, logging setup and input validation.
"""

from .error_handler import (
    BookmarkValidationError,
    DiagnosticsLog,
    ErrorCategory,
    ErrorSeverity,
    FolderNotEmptyError,
    WebmarksError,
)

__all__ = [
    "WebmarksError",
    "BookmarkValidationError",
    "FolderNotEmptyError",
    "DiagnosticsLog",
    "ErrorCategory",
    "ErrorSeverity",
]
