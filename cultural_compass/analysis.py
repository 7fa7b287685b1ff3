"""Cultural-appropriateness analysis with heuristic and LLM-backed strategies."""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

from google import genai
from google.genai import types as genai_types

from .config import AnalysisConfig
from .errors import AnalysisUnavailable
from .schemas import (
    AnalysisRequest,
    Finding,
    FindingKind,
    FindingReport,
    IdiomTranslation,
    TextOrigin,
)

logger = logging.getLogger(__name__)


# (phrase, idiom id, literal rewrite). Checked in this order.
IDIOM_MARKERS: List[Tuple[str, str, str]] = [
    ("break a leg", "idiom-break-a-leg", "I wish you success"),
    ("piece of cake", "idiom-piece-of-cake", "very straightforward"),
    ("under the weather", "idiom-under-the-weather", "feeling unwell"),
    ("call it a day", "idiom-call-it-a-day", "stop working for today"),
    ("beat around the bush", "idiom-beat-around-the-bush", "avoid the main point"),
    ("cost an arm and a leg", "idiom-arm-and-a-leg", "be very expensive"),
]

# (phrase, neutral rewrite). Checked after idioms.
INFORMALITY_MARKERS: List[Tuple[str, str]] = [
    ("hey", "Hello"),
    ("what's up", "How are you"),
    ("whats up", "How are you"),
    ("gonna", "going to"),
    ("wanna", "want to"),
]

CONTEXT_MIN_LENGTH = 20
ALTERNATIVES_MIN_LENGTH = 10

PROVIDER_KIND_MAP = {
    "idiom": FindingKind.IDIOM,
    "formality": FindingKind.FORMALITY,
    "context": FindingKind.CONTEXT,
    "directness": FindingKind.CONTEXT,
    "general": FindingKind.GENERAL,
}


def _marker_pattern(phrase: str) -> re.Pattern:
    return re.compile(r"(?<![\w'])" + re.escape(phrase) + r"(?![\w'])", re.IGNORECASE)


_IDIOM_PATTERNS = [(_marker_pattern(p), p, i, r) for p, i, r in IDIOM_MARKERS]
_INFORMAL_PATTERNS = [(_marker_pattern(p), p, r) for p, r in INFORMALITY_MARKERS]


def _extract_json_object(raw: str) -> Optional[dict]:
    raw = raw.strip()
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    match = re.search(r"\{[\s\S]*\}", raw)
    if not match:
        return None
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        return None


def failure_report(culture_name: str) -> FindingReport:
    """Valid-but-empty report returned whenever analysis cannot complete."""
    return FindingReport(
        summary=(
            f"Analysis failed: cultural analysis for {culture_name} is unavailable right now. "
            "Please try again later."
        ),
        issues=[],
        alternatives=None,
        degraded=True,
    )


def unavailable_translation(idiom: str) -> IdiomTranslation:
    return IdiomTranslation(
        original_idiom=idiom,
        translation="Translation unavailable.",
        explanation="Idiom translation needs a configured language model provider.",
        available=False,
    )


class CulturalAnalyzer:
    """Common interface: ``analyze`` never raises for well-formed input."""

    name = "base"

    def analyze(self, request: AnalysisRequest, culture_name: str) -> FindingReport:
        try:
            return self._analyze(request, culture_name)
        except AnalysisUnavailable as exc:
            logger.warning("%s analysis unavailable: %s", self.name, exc.reason)
        except Exception:
            logger.exception("%s analysis failed unexpectedly", self.name)
        return failure_report(culture_name)

    def _analyze(self, request: AnalysisRequest, culture_name: str) -> FindingReport:
        raise NotImplementedError

    def translate_idiom(self, idiom: str, source_culture: str, target_culture: str) -> IdiomTranslation:
        return unavailable_translation(idiom)


class HeuristicAnalyzer(CulturalAnalyzer):
    """Marker-phrase matcher that needs no network access."""

    name = "heuristic"

    def _analyze(self, request: AnalysisRequest, culture_name: str) -> FindingReport:
        text = request.text
        origin = TextOrigin(request.origin)
        issues: List[Finding] = []

        for pattern, phrase, idiom_id, literal in _IDIOM_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            issues.append(
                Finding(
                    kind=FindingKind.IDIOM,
                    excerpt=match.group(0),
                    explanation=(
                        f'The English idiom "{phrase}" may not translate well for a {culture_name} '
                        "audience and could be confusing."
                    ),
                    suggestion=f'Say it literally, for example "{literal}".',
                    related_idiom_id=idiom_id,
                )
            )

        for pattern, phrase, neutral in _INFORMAL_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            issues.append(
                Finding(
                    kind=FindingKind.FORMALITY,
                    excerpt=match.group(0),
                    explanation=(
                        "This is too casual for formal or first business interactions in many cultures, "
                        f"including {culture_name} settings."
                    ),
                    suggestion=f'Use a more neutral phrasing such as "{neutral}" or "Good morning".',
                )
            )

        if origin is TextOrigin.THEIRS and len(text) > CONTEXT_MIN_LENGTH:
            issues.append(
                Finding(
                    kind=FindingKind.CONTEXT,
                    excerpt="(General observation)",
                    explanation=(
                        f"Communication in {culture_name} culture may be more indirect than it reads. "
                        "Look for subtle cues rather than explicit statements."
                    ),
                )
            )

        if not issues:
            issues.append(
                Finding(
                    kind=FindingKind.GENERAL,
                    excerpt="(No specific issues detected)",
                    explanation=(
                        "No obvious cultural concerns detected. Still consider the context and your "
                        "relationship with the recipient."
                    ),
                )
            )

        alternatives = None
        if origin is TextOrigin.MINE and len(text) > ALTERNATIVES_MIN_LENGTH:
            alternatives = self._alternatives(text)

        return FindingReport(
            summary=f"Analysis of text in relation to {culture_name} culture.",
            issues=issues,
            alternatives=alternatives,
        )

    @staticmethod
    def _alternatives(text: str) -> List[str]:
        adapted = text
        for pattern, _, neutral in _INFORMAL_PATTERNS:
            adapted = pattern.sub(neutral, adapted)
        formal = adapted
        for pattern, _, _, literal in _IDIOM_PATTERNS:
            formal = pattern.sub(literal, formal)

        out = [f'A more culturally adapted version might be: "{adapted}"']
        if formal != adapted:
            out.append(f'For formal contexts: "{formal}"')
        return out


class ProviderAnalyzer(CulturalAnalyzer):
    """Gemini-backed analysis; uses the heuristic analyzer when no key is set."""

    name = "provider"

    def __init__(
        self,
        config: AnalysisConfig,
        google_api_key: Optional[str] = None,
        client: Any = None,
        fallback: Optional[CulturalAnalyzer] = None,
    ):
        self.config = config
        self.fallback = fallback or HeuristicAnalyzer()
        self.api_key = google_api_key or os.getenv("GEMINI_API_KEY")
        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = genai.Client(
                api_key=self.api_key,
                http_options=genai_types.HttpOptions(timeout=int(config.timeout_seconds * 1000)),
            )
        else:
            self.client = None

    def analyze(self, request: AnalysisRequest, culture_name: str) -> FindingReport:
        if self.client is None:
            logger.info("No provider credential configured; using heuristic analysis")
            return self.fallback.analyze(request, culture_name)
        return super().analyze(request, culture_name)

    def _build_prompt(self, request: AnalysisRequest, culture_name: str) -> str:
        origin = TextOrigin(request.origin)
        author = "something I wrote" if origin is TextOrigin.MINE else "written by someone from this culture"
        text = request.text[: self.config.max_text_chars]
        return f"""
You are a cultural intelligence expert who helps people communicate effectively across cultures.

Analyze the following text in the context of {culture_name} culture.
The text is {author}.

Text to analyze (JSON string): {json.dumps(text, ensure_ascii=False)}

Output STRICT JSON only, no markdown and no extra commentary:
{{
  "summary": "Brief summary of your analysis",
  "issues": [
    {{
      "type": "Idiom | Formality | Context | General",
      "text": "The specific text that raised this issue",
      "explanation": "Why this might be an issue in this cultural context",
      "suggestion": "Suggested alternative if appropriate"
    }}
  ],
  "alternatives": ["Alternative phrasings that would be more culturally appropriate"]
}}

If no issues are found, say so in the summary and return an empty issues array.
"""

    def _generate(self, prompt: str, temperature: float) -> str:
        try:
            resp = self.client.models.generate_content(
                model=self.config.model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    temperature=temperature,
                    response_mime_type="application/json",
                ),
            )
        except Exception as exc:
            raise AnalysisUnavailable(f"provider call failed: {type(exc).__name__}", exc) from exc
        raw = getattr(resp, "text", None)
        if not raw:
            raise AnalysisUnavailable("provider returned an empty response")
        return raw

    def _analyze(self, request: AnalysisRequest, culture_name: str) -> FindingReport:
        raw = self._generate(self._build_prompt(request, culture_name), self.config.temperature)
        parsed = _extract_json_object(raw)
        if parsed is None:
            raise AnalysisUnavailable("provider response was not JSON")
        return self._parse_report(parsed)

    @staticmethod
    def _parse_report(parsed: Dict[str, Any]) -> FindingReport:
        if not isinstance(parsed, dict):
            raise AnalysisUnavailable("provider response was not an object")
        summary = parsed.get("summary")
        issues_raw = parsed.get("issues", [])
        if not isinstance(summary, str) or not summary.strip():
            raise AnalysisUnavailable("provider response is missing a summary")
        if not isinstance(issues_raw, list):
            raise AnalysisUnavailable("provider issues must be a list")

        issues: List[Finding] = []
        for item in issues_raw:
            if not isinstance(item, dict):
                raise AnalysisUnavailable("provider issue must be an object")
            explanation = item.get("explanation")
            if not isinstance(explanation, str) or not explanation.strip():
                raise AnalysisUnavailable("provider issue is missing an explanation")
            kind = PROVIDER_KIND_MAP.get(str(item.get("type", "general")).strip().lower(), FindingKind.GENERAL)
            suggestion = item.get("suggestion")
            issues.append(
                Finding(
                    kind=kind,
                    excerpt=str(item.get("text", "")),
                    explanation=explanation,
                    suggestion=suggestion if isinstance(suggestion, str) and suggestion else None,
                )
            )

        alternatives_raw = parsed.get("alternatives")
        alternatives = None
        if alternatives_raw is not None:
            if not isinstance(alternatives_raw, list):
                raise AnalysisUnavailable("provider alternatives must be a list")
            alternatives = [str(alt) for alt in alternatives_raw if isinstance(alt, str) and alt.strip()]

        return FindingReport(summary=summary.strip(), issues=issues, alternatives=alternatives)

    def translate_idiom(self, idiom: str, source_culture: str, target_culture: str) -> IdiomTranslation:
        if self.client is None:
            return unavailable_translation(idiom)

        prompt = f"""
Translate the following idiom from {source_culture} culture to an equivalent in {target_culture} culture.

Idiom (JSON string): {json.dumps(idiom, ensure_ascii=False)}

Output STRICT JSON only:
{{
  "translation": "The closest equivalent idiom in {target_culture} culture",
  "literalTranslation": "The literal translation of the original idiom",
  "explanation": "What it means and how it relates to the original",
  "culturalNotes": ["Usage guidelines or warnings"]
}}

If there is no clear equivalent, suggest the closest concept and explain the differences.
"""
        try:
            parsed = _extract_json_object(self._generate(prompt, temperature=0.7))
        except AnalysisUnavailable as exc:
            logger.warning("Idiom translation unavailable: %s", exc.reason)
            return unavailable_translation(idiom)
        if not isinstance(parsed, dict) or not isinstance(parsed.get("translation"), str):
            logger.warning("Idiom translation response was malformed")
            return unavailable_translation(idiom)

        notes = parsed.get("culturalNotes") or []
        literal = parsed.get("literalTranslation")
        return IdiomTranslation(
            original_idiom=idiom,
            translation=parsed["translation"],
            explanation=str(parsed.get("explanation", "")),
            literal_translation=literal if isinstance(literal, str) else None,
            cultural_notes=[str(note) for note in notes] if isinstance(notes, list) else [],
        )


def build_analyzer(
    config: AnalysisConfig,
    google_api_key: Optional[str] = None,
    client: Any = None,
) -> CulturalAnalyzer:
    """Pick the analyzer strategy named in config."""
    strategy = config.strategy.strip().lower()
    if strategy == "heuristic":
        return HeuristicAnalyzer()
    if strategy == "provider":
        return ProviderAnalyzer(config, google_api_key=google_api_key, client=client)
    raise ValueError(f"Unknown analysis strategy: {config.strategy!r}")
