"""
Exception types for the analysis dashboard.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AnalysisDashboardError(Exception):
    """Base exception for analysis dashboard errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class MalformedTimestamp(AnalysisDashboardError, ValueError):
    """A time value could not be normalized to a comparable datetime."""

    def __init__(self, value: Any, reason: str = "unsupported timestamp"):
        super().__init__(
            f"Malformed timestamp {value!r}: {reason}",
            context={"value": repr(value), "reason": reason},
        )
        self.value = value
        self.reason = reason
