"""
Diagnostics Error Types
=======================
Exceptions raised inside the classification engine.

Most engine failure paths degrade instead of raising (a triangle without gas
data is skipped, an unknown transformer class is classified as poor). These
types exist for the few places where a caller must be told its input is
unusable.
"""

from datetime import datetime
from typing import Any, Dict, Optional


class DiagnosticsError(Exception):
    """Base exception for engine errors."""

    def __init__(self, message: str, component: str = "engine",
                 context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.component = component
        self.context = context or {}
        self.timestamp = datetime.now()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Structured form used by the HTTP layers."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "component": self.component,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class NoDataError(DiagnosticsError):
    """All three gases of a triangle are zero, so no position exists."""
    pass


class InvalidReadingError(DiagnosticsError, ValueError):
    """A measurement or operator selection cannot be used as given."""
    pass
