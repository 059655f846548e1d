"""Exception taxonomy for the fill engine.

Load-time and serialization errors abort a single fill cycle; the session that
ran the cycle stays usable. FieldAssignmentWarning never escapes the filler.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from .config import ERROR_MESSAGES


class FormEngineError(Exception):
    """Base exception carrying a stable error code for callers and logs."""

    error_code = "internal_error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or ERROR_MESSAGES.get(self.error_code, self.error_code)
        super().__init__(self.message)


class EmptySource(FormEngineError):
    error_code = "empty_source"


class InvalidFormat(FormEngineError):
    error_code = "invalid_format"


class NoValidSource(FormEngineError):
    error_code = "no_valid_source"

    def __init__(self, attempts: List[Tuple[str, str]], message: Optional[str] = None):
        self.attempts = list(attempts)
        if message is None:
            tried = ", ".join(f"{name} ({reason})" for name, reason in self.attempts) or "none"
            message = f"{ERROR_MESSAGES[self.error_code]}; tried: {tried}"
        super().__init__(message)


class UnsupportedImageFormat(FormEngineError):
    error_code = "unsupported_image"


class SerializationError(FormEngineError):
    error_code = "serialization_failed"


class FieldAssignmentWarning(FormEngineError):
    """A single field could not take the supplied value."""

    error_code = "field_assignment"

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"{field_name}: {reason}")
