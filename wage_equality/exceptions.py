"""
Exceptions raised by the wage equality analysis.
"""

from typing import Iterable, List, Optional


class WageEqualityError(Exception):
    """Base class for all analysis errors."""


class EncodingError(WageEqualityError):
    """
    A single raw value cannot be mapped under the active encoding.

    Non-fatal: the preparation step records it in the error ledger and
    excludes the record.
    """

    def __init__(self, field: str, value, reason: str, message: Optional[str] = None):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(message or f"Cannot encode {field}={value!r} ({reason})")


class ConfigurationError(WageEqualityError):
    """
    Raised when the analysis parameters or the roster layout are unusable.

    Can carry several detail errors which are listed in the message.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.errors:
            parts.append("\nConfiguration Errors:")
            for i, error in enumerate(self.errors, 1):
                parts.append(f"  {i}. {error}")
        return "\n".join(parts)


class InsufficientDataError(WageEqualityError):
    """Raised when too few records remain to estimate the model."""


class RankDeficiencyError(WageEqualityError):
    """Raised when the design matrix is not of full column rank."""

    def __init__(self, message: str, columns: Iterable[str] = ()):
        self.columns = list(columns)
        if self.columns:
            message = f"{message} (collinear: {', '.join(self.columns)})"
        super().__init__(message)
