"""Consent-gated text analysis.

Each call to :meth:`AnalysisGate.run` walks the same path::

    check consent -> (prompt | proceed | blocked) -> analyze -> log -> return

Only the retention projection of a request ever reaches the log sink; the
submitted text itself is never written anywhere.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Callable, Dict, Optional

from .analysis import CulturalAnalyzer
from .cultures import CultureDirectory
from .errors import ConsentDenied, ConsentRequired, ValidationError
from .retention import RetentionPolicy
from .schemas import (
    AnalysisRequest,
    ConsentDecision,
    ConsentKind,
    ConsentStatus,
    FindingReport,
    RetentionTag,
    TextOrigin,
)
from .storage import SQLiteConsentStore

logger = logging.getLogger(__name__)

ConsentPrompt = Callable[[], ConsentDecision]
LogSink = Callable[[Dict[str, Any]], None]


def structured_log(event: Dict[str, Any]) -> None:
    try:
        logger.info(json.dumps(event, separators=(",", ":"), default=str))
    except Exception:
        # logging must never break the request path
        return


def _validate(request: AnalysisRequest) -> AnalysisRequest:
    errors = []
    if not isinstance(request.text, str) or not request.text.strip():
        errors.append("Text is required")
    if not isinstance(request.culture_id, str) or not request.culture_id.strip():
        errors.append("Culture ID is required")
    try:
        origin = TextOrigin(request.origin)
    except ValueError:
        errors.append("Origin must be 'mine' or 'theirs'")
        origin = TextOrigin.MINE
    if errors:
        raise ValidationError(errors)
    return AnalysisRequest(text=request.text, culture_id=request.culture_id.strip(), origin=origin)


class AnalysisGate:
    """Runs the analyzer only once text-analysis consent is on record."""

    def __init__(
        self,
        consent_store: SQLiteConsentStore,
        analyzer: CulturalAnalyzer,
        retention: RetentionPolicy,
        cultures: CultureDirectory,
        prompt: Optional[ConsentPrompt] = None,
        log_sink: LogSink = structured_log,
    ):
        self.consent_store = consent_store
        self.analyzer = analyzer
        self.retention = retention
        self.cultures = cultures
        self.prompt = prompt
        self.log_sink = log_sink

    def run(self, request: AnalysisRequest, prompt: Optional[ConsentPrompt] = None) -> FindingReport:
        request = _validate(request)
        culture_name = self.cultures.name_for(request.culture_id)

        self._check_consent(prompt or self.prompt)

        report = self.analyzer.analyze(request, culture_name)
        report.analysis_id = uuid.uuid4().hex
        self._log(request, report)
        return report

    def _check_consent(self, prompt: Optional[ConsentPrompt]) -> None:
        status = self.consent_store.get(ConsentKind.TEXT_ANALYSIS)
        if status is ConsentStatus.GRANTED:
            return
        if status is ConsentStatus.DENIED:
            raise ConsentDenied("Text analysis is turned off. Enable it in settings to continue.")

        if prompt is None:
            raise ConsentRequired("Text analysis needs your consent before it can run.")

        # PromptCancelled propagates from here with nothing written.
        decision = prompt()
        if not decision.accepted:
            self.consent_store.set(ConsentKind.TEXT_ANALYSIS, False)
            raise ConsentDenied("Text analysis was declined.")

        self.consent_store.set(ConsentKind.TEXT_ANALYSIS, True)
        self.consent_store.set(ConsentKind.AI_IMPROVEMENT, decision.ai_improvement)
        if self.consent_store.get(ConsentKind.TEXT_ANALYSIS) is not ConsentStatus.GRANTED:
            logger.warning("Consent was accepted but could not be saved; it will be asked again next time")

    def _log(self, request: AnalysisRequest, report: FindingReport) -> None:
        event = self.retention.prepare_for_log(RetentionTag.ANALYZED_TEXT, request)
        event.update(
            {
                "event": "analysis.completed",
                "analysis_id": report.analysis_id,
                "analyzer": self.analyzer.name,
                "issue_count": len(report.issues),
                "issue_kinds": [issue.kind.value for issue in report.issues],
                "degraded": report.degraded,
            }
        )
        try:
            self.log_sink(event)
        except Exception:
            logger.warning("Analysis log sink failed", exc_info=True)
