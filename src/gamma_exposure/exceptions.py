"""Gamma exposure exception hierarchy.

Only structurally invalid top-level input is fatal. Record-level noise
and numerical singularities are recovered locally and never raised.
"""

from typing import Any, Optional


class GammaExposureError(Exception):
    """Base exception for the gamma exposure analytics core."""


class InvalidInputError(GammaExposureError, ValueError):
    """Raised when a top-level argument cannot be analyzed at all."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        return {
            "error": "invalid_input",
            "message": self.message,
            "field": self.field,
        }
