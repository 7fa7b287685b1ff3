from __future__ import annotations

from typing import List, Optional


class CulturalCompassError(Exception):
    """Base class for errors surfaced to callers."""


class ConsentRequired(CulturalCompassError):
    """Raised when text analysis needs consent that has not been given."""


class ConsentDenied(ConsentRequired):
    """Raised when the user has declined text analysis."""


class PromptCancelled(CulturalCompassError):
    """Raised by a consent prompt when the user leaves without answering."""


class ValidationError(CulturalCompassError):
    """Raised for missing or malformed required fields."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class AnalysisUnavailable(CulturalCompassError):
    """Provider or transport failure inside the analyzer."""

    def __init__(self, reason: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.cause = cause


class PersistenceError(CulturalCompassError):
    """Raised internally when a durable write fails."""


__all__ = [
    "CulturalCompassError",
    "ConsentRequired",
    "ConsentDenied",
    "PromptCancelled",
    "ValidationError",
    "AnalysisUnavailable",
    "PersistenceError",
]
