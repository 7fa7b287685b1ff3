"""Wires consent, analysis, retention and feedback into one entry point."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .analysis import build_analyzer
from .config import AppConfig
from .cultures import CultureDirectory
from .feedback import FeedbackRelay, HttpFeedbackSink, LogFeedbackSink
from .gate import AnalysisGate, ConsentPrompt, LogSink, structured_log
from .retention import RetentionPolicy
from .schemas import (
    AnalysisRequest,
    ConsentKind,
    ConsentStatus,
    FeedbackSubmission,
    FindingReport,
    IdiomTranslation,
    RelayResult,
    TextOrigin,
)
from .storage import SQLiteConsentStore


class CulturalCompassPipeline:
    """High-level facade composed of small local-first modules."""

    def __init__(
        self,
        config: AppConfig,
        prompt: Optional[ConsentPrompt] = None,
        log_sink: LogSink = structured_log,
        feedback_sink: Any = None,
        provider_client: Any = None,
    ):
        self.config = config
        self.consent_store = SQLiteConsentStore(config.paths.sqlite_path)
        self.retention = RetentionPolicy(config.retention.rules)
        self.cultures = CultureDirectory(config.cultures)
        self.analyzer = build_analyzer(
            config.analysis,
            google_api_key=config.google_api_key,
            client=provider_client,
        )
        self.gate = AnalysisGate(
            consent_store=self.consent_store,
            analyzer=self.analyzer,
            retention=self.retention,
            cultures=self.cultures,
            prompt=prompt,
            log_sink=log_sink,
        )
        if feedback_sink is None:
            if config.feedback.endpoint:
                feedback_sink = HttpFeedbackSink(config.feedback.endpoint, timeout=config.feedback.timeout_seconds)
            else:
                feedback_sink = LogFeedbackSink(self.retention)
        self.feedback = FeedbackRelay(feedback_sink)

    def analyze_text(self, text: str, culture_id: str, origin: Any = TextOrigin.MINE) -> FindingReport:
        """Run consent check -> analysis -> redacted logging."""
        return self.gate.run(AnalysisRequest(text=text, culture_id=culture_id, origin=origin))

    def translate_idiom(self, idiom: str, source_culture_id: str, target_culture_id: str) -> IdiomTranslation:
        source = self.cultures.name_for(source_culture_id)
        target = self.cultures.name_for(target_culture_id)
        return self.analyzer.translate_idiom(idiom, source, target)

    def submit_feedback(self, feedback: FeedbackSubmission, user_id: Optional[str] = None) -> RelayResult:
        return self.feedback.submit(feedback, user_id=user_id)

    def consent_status(self) -> Dict[str, str]:
        snapshot = self.consent_store.snapshot()
        return {kind.value: snapshot.get(kind, ConsentStatus.UNSET).value for kind in ConsentKind}

    def reset_consent(self) -> None:
        self.consent_store.reset()

    def close(self) -> None:
        self.consent_store.close()
