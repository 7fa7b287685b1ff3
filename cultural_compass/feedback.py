"""Relays anonymized user feedback about analysis results."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from dateutil import parser as dt_parser

from .errors import PersistenceError
from .gate import structured_log
from .retention import RetentionPolicy, anonymize
from .schemas import FeedbackKind, FeedbackSubmission, RelayResult, RetentionTag

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anonymous"


def _parse_submitted_at(value: object) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = dt_parser.parse(value)
        except (ValueError, OverflowError):
            logger.debug("Unparseable submitted_at %r; using current time", value)
        else:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


class LogFeedbackSink:
    """Writes feedback to the application log after retention projection."""

    def __init__(self, retention: Optional[RetentionPolicy] = None):
        self.retention = retention or RetentionPolicy()

    def send(self, payload: Dict[str, Any]) -> RelayResult:
        event = self.retention.prepare_for_log(RetentionTag.FEEDBACK_TEXT, payload)
        event["event"] = "feedback.received"
        structured_log(event)
        return RelayResult(success=True, message="Thank you for your feedback.")


class HttpFeedbackSink:
    """POSTs feedback JSON to a remote endpoint."""

    def __init__(self, endpoint: str, timeout: float = 10.0, auth_token: Optional[str] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.auth_token = auth_token

    def send(self, payload: Dict[str, Any]) -> RelayResult:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        try:
            resp = requests.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PersistenceError(f"feedback transport failed: {type(exc).__name__}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not resp.ok:
            return RelayResult(success=False, message=data.get("error") or "Failed to submit feedback")
        return RelayResult(success=True, message=data.get("message"))


class FeedbackRelay:
    """Validates, anonymizes and forwards feedback to a sink."""

    def __init__(self, sink: Any):
        self.sink = sink

    @staticmethod
    def categories() -> List[str]:
        return [kind.value for kind in FeedbackKind]

    def submit(self, feedback: FeedbackSubmission, user_id: Optional[str] = None) -> RelayResult:
        errors = []
        kind = None
        raw_kind = feedback.kind.value if isinstance(feedback.kind, FeedbackKind) else feedback.kind
        if not raw_kind or not str(raw_kind).strip():
            errors.append("Feedback type is required")
        else:
            try:
                kind = FeedbackKind(str(raw_kind).strip().lower())
            except ValueError:
                errors.append(f"Unknown feedback type: {raw_kind}")
        if not isinstance(feedback.text, str) or not feedback.text.strip():
            errors.append("Feedback text is required")
        if errors:
            return RelayResult(success=False, message="; ".join(errors))

        payload = {
            "analysis_id": feedback.analysis_id,
            "culture_id": feedback.culture_id,
            "kind": kind.value,
            "text": anonymize(feedback.text.strip()),
            "submitted_at": _parse_submitted_at(feedback.submitted_at).isoformat(),
            "user_id": (feedback.user_id or user_id or "").strip() or ANONYMOUS_USER,
        }

        try:
            return self.sink.send(payload)
        except Exception:
            logger.warning("Feedback relay failed", exc_info=True)
            return RelayResult(success=False, message="Could not send feedback. Please try again later.")
