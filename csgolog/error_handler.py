"""
Per-line error accounting for csgolog batch parsing.

A bad line never aborts a batch. The handler records each failure with its
category, logs it at a level matching the category, and summarizes the run.
"""

import logging
from datetime import datetime
from typing import Dict, Any, List, Optional
from enum import Enum

from .coerce import CoercionError
from .parse import NoMatchError, TimestampError

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Error categories for per-line failures."""
    NO_MATCH = "no_match"
    TIMESTAMP = "timestamp"
    COERCION = "coercion"
    FILE_SYSTEM = "file_system"
    UNKNOWN = "unknown"


class ErrorInfo:
    """Information about an error."""

    def __init__(self, error: Exception, category: ErrorCategory,
                 line_number: Optional[int] = None, line: Optional[str] = None):
        self.error = error
        self.category = category
        self.line_number = line_number
        self.line = line
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            'error': str(self.error),
            'error_type': type(self.error).__name__,
            'category': self.category.value,
            'line': self.line_number,
            'raw': self.line,
        }


class ErrorHandler:
    """Collects per-line parse errors and reports statistics."""

    def __init__(self, max_history: int = 1000):
        """Initialize error handler.

        Args:
            max_history: Maximum number of errors kept for inspection
        """
        self.max_history = max_history
        self.error_history: List[ErrorInfo] = []
        self.error_counters: Dict[str, int] = {}
        self.total_errors = 0
        self.last_error_time: Optional[datetime] = None

    def handle_error(self, error: Exception, line_number: Optional[int] = None,
                     line: Optional[str] = None,
                     category: Optional[ErrorCategory] = None) -> ErrorInfo:
        """Record and log an error.

        Args:
            error: The exception that occurred
            line_number: Input line number, if the error belongs to a line
            line: Raw input line
            category: Error category (auto-detected if None)

        Returns:
            ErrorInfo describing the error
        """
        if category is None:
            category = self._detect_category(error)

        error_info = ErrorInfo(error, category, line_number, line)
        self.error_history.append(error_info)
        if len(self.error_history) > self.max_history:
            self.error_history.pop(0)

        self.total_errors += 1
        self.last_error_time = error_info.timestamp
        self.error_counters[category.value] = self.error_counters.get(category.value, 0) + 1

        self._log_error(error_info)
        return error_info

    def _detect_category(self, error: Exception) -> ErrorCategory:
        """Auto-detect error category based on error type."""
        if isinstance(error, NoMatchError):
            return ErrorCategory.NO_MATCH
        elif isinstance(error, TimestampError):
            return ErrorCategory.TIMESTAMP
        elif isinstance(error, CoercionError):
            return ErrorCategory.COERCION
        elif isinstance(error, OSError):
            return ErrorCategory.FILE_SYSTEM
        else:
            return ErrorCategory.UNKNOWN

    def _log_error(self, error_info: ErrorInfo):
        """Log error with appropriate level."""
        log_message = f"{error_info.category.name} error: {error_info.error}"
        if error_info.line_number is not None:
            log_message += f" (line {error_info.line_number})"

        if error_info.category == ErrorCategory.FILE_SYSTEM:
            logger.error(log_message)
        elif error_info.category == ErrorCategory.NO_MATCH:
            # Blank lines and non-log noise are common in server logs
            logger.debug(log_message)
        else:
            logger.warning(log_message)

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        return {
            'total_errors': self.total_errors,
            'category_counts': dict(self.error_counters),
            'last_error_time': self.last_error_time.isoformat() if self.last_error_time else None
        }

    def clear(self):
        """Forget all recorded errors."""
        self.error_history.clear()
        self.error_counters.clear()
        self.total_errors = 0
        self.last_error_time = None
