"""Retention rules, log projection, and PII redaction."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from .schemas import RetentionRule, RetentionTag

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000

DEFAULT_RULES: Dict[RetentionTag, RetentionRule] = {
    RetentionTag.ANALYZED_TEXT: RetentionRule(max_age_ms=0, must_anonymize=True),
    RetentionTag.ACTIVITY_LOG: RetentionRule(max_age_ms=90 * DAY_MS, must_anonymize=True),
    RetentionTag.FEEDBACK_TEXT: RetentionRule(max_age_ms=365 * DAY_MS, must_anonymize=True),
}

# Free-text fields; everything else in a payload is treated as metadata.
CONTENT_FIELDS = ("text", "content", "excerpt", "feedback_text")

_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_RE = re.compile(
    r"(?<![\w+])(?:\+\d{1,3}[\s.-])?(?:\(\d{3}\)|\d{3})[\s.-]?\d{3}[\s.-]?\d{4}(?!\w)"
)
_NAME_RE = re.compile(r"\b(?:Mr|Mrs|Ms|Dr)\. [A-Z][a-z]+ [A-Z][a-z]+\b")

Tag = Union[RetentionTag, str]


def anonymize(text: str) -> str:
    """Replace emails, phone numbers and honorific+full-name patterns.

    Pure and deterministic. A lone surname after an honorific or a digit
    run that is not phone-shaped is left alone.
    """
    if not text:
        return text
    redacted = _EMAIL_RE.sub("[EMAIL]", text)
    redacted = _PHONE_RE.sub("[PHONE]", redacted)
    redacted = _NAME_RE.sub("[NAME]", redacted)
    return redacted


def _normalize_tag(tag: Tag) -> Tag:
    if isinstance(tag, RetentionTag):
        return tag
    try:
        return RetentionTag(str(tag).lower())
    except ValueError:
        return str(tag)


def _tag_name(tag: Tag) -> str:
    return tag.value if isinstance(tag, RetentionTag) else str(tag)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _payload_dict(payload: Any) -> Dict[str, Any]:
    if is_dataclass(payload) and not isinstance(payload, type):
        raw = asdict(payload)
    elif isinstance(payload, Mapping):
        raw = dict(payload)
    else:
        raw = {"text": str(payload)}
    return {str(key): _plain(value) for key, value in raw.items()}


class RetentionPolicy:
    """Decides what may be persisted or logged for each retention tag."""

    def __init__(self, overrides: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self.rules: Dict[Tag, RetentionRule] = dict(DEFAULT_RULES)
        for name, raw in (overrides or {}).items():
            tag = _normalize_tag(name)
            rule = RetentionRule(
                max_age_ms=int(raw.get("max_age_ms", 0)),
                must_anonymize=bool(raw.get("must_anonymize", True)),
            )
            if tag is RetentionTag.ANALYZED_TEXT and rule.max_age_ms != 0:
                logger.warning("Ignoring retention override for analyzed_text; it is never persisted")
                continue
            self.rules[tag] = rule

    def rule_for(self, tag: Tag) -> Optional[RetentionRule]:
        return self.rules.get(_normalize_tag(tag))

    def may_persist(self, tag: Tag) -> bool:
        tag = _normalize_tag(tag)
        if tag is RetentionTag.ANALYZED_TEXT:
            return False
        rule = self.rules.get(tag)
        return rule is None or rule.max_age_ms != 0

    def should_retain(self, tag: Tag, created_at: datetime, now: Optional[datetime] = None) -> bool:
        """Whether a record created at ``created_at`` is still inside its window."""
        if not self.may_persist(tag):
            return False
        rule = self.rule_for(tag)
        if rule is None:
            return True
        current = now or datetime.now(timezone.utc)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        age_ms = (current - created_at).total_seconds() * 1000
        return age_ms <= rule.max_age_ms

    def prepare_for_storage(self, tag: Tag, text: str) -> Optional[str]:
        """Text to store for ``tag``, or None when it must not be stored."""
        if not self.may_persist(tag):
            return None
        rule = self.rule_for(tag)
        if rule is not None and not rule.must_anonymize:
            return text
        return anonymize(text)

    def prepare_for_log(self, tag: Tag, payload: Any) -> Dict[str, Any]:
        """Project ``payload`` into something safe to write to durable logs."""
        tag = _normalize_tag(tag)
        data = _payload_dict(payload)

        if not self.may_persist(tag):
            contents = [str(data[key]) for key in CONTENT_FIELDS if data.get(key)]
            projection: Dict[str, Any] = {
                "data_type": _tag_name(tag),
                "content_length": sum(len(value) for value in contents),
            }
            for key, value in data.items():
                if key in CONTENT_FIELDS:
                    continue
                # Nested values are dropped; only scalars pass as metadata.
                if value is not None and not isinstance(value, (str, int, float, bool)):
                    continue
                if isinstance(value, str) and any(content in value for content in contents):
                    continue
                projection[key] = value
            return projection

        # Logs are always redacted, whatever the storage rule says.
        out: Dict[str, Any] = {"data_type": _tag_name(tag)}
        for key, value in data.items():
            if key in CONTENT_FIELDS and isinstance(value, str):
                value = anonymize(value)
            out[key] = value
        return out
