"""Core data structures shared across modules."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ConsentKind(str, Enum):
    TEXT_ANALYSIS = "text_analysis"
    AI_IMPROVEMENT = "ai_improvement"


class ConsentStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNSET = "unset"


class TextOrigin(str, Enum):
    """Who wrote the analyzed text."""

    MINE = "mine"
    THEIRS = "theirs"


class FindingKind(str, Enum):
    IDIOM = "idiom"
    FORMALITY = "formality"
    CONTEXT = "context"
    GENERAL = "general"


class FeedbackKind(str, Enum):
    BIAS = "bias"
    INACCURACY = "inaccuracy"
    OFFENSIVE = "offensive"
    OTHER = "other"


class RetentionTag(str, Enum):
    """Data-type labels used to pick a retention rule."""

    ANALYZED_TEXT = "analyzed_text"
    FEEDBACK_TEXT = "feedback_text"
    ACTIVITY_LOG = "activity_log"


@dataclass
class AnalysisRequest:
    """One text submitted for analysis. Never persisted."""

    text: str
    culture_id: str
    origin: TextOrigin = TextOrigin.MINE


@dataclass
class Finding:
    """A single observation about the analyzed text."""

    kind: FindingKind
    excerpt: str
    explanation: str
    suggestion: Optional[str] = None
    related_idiom_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@dataclass
class FindingReport:
    """Structured analysis result handed back to the caller."""

    summary: str
    issues: List[Finding] = field(default_factory=list)
    alternatives: Optional[List[str]] = None
    degraded: bool = False
    analysis_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis_id": self.analysis_id,
            "summary": self.summary,
            "issues": [issue.to_dict() for issue in self.issues],
            "alternatives": list(self.alternatives) if self.alternatives is not None else None,
        }


@dataclass(frozen=True)
class RetentionRule:
    """Persistence rule for one tag. ``max_age_ms == 0`` means metadata only."""

    max_age_ms: int
    must_anonymize: bool = True


@dataclass
class FeedbackSubmission:
    """User feedback about an analysis result."""

    kind: Any
    text: str
    analysis_id: Optional[str] = None
    culture_id: Optional[str] = None
    submitted_at: Any = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class ConsentDecision:
    """Answer returned by the consent prompt collaborator."""

    accepted: bool
    ai_improvement: bool = False

    @classmethod
    def declined(cls) -> "ConsentDecision":
        return cls(accepted=False, ai_improvement=False)


@dataclass(frozen=True)
class ConsentUpdate:
    """Outcome of a consent write, including implied side effects."""

    kind: ConsentKind
    status: ConsentStatus
    implied_text_analysis: bool = False


@dataclass
class RelayResult:
    success: bool
    message: Optional[str] = None


@dataclass
class IdiomTranslation:
    """Equivalent-idiom lookup between two cultures."""

    original_idiom: str
    translation: str
    explanation: str = ""
    literal_translation: Optional[str] = None
    cultural_notes: List[str] = field(default_factory=list)
    available: bool = True
