import pytest

from cultural_compass import analysis as analysis_module
from cultural_compass.analysis import (
    HeuristicAnalyzer,
    ProviderAnalyzer,
    build_analyzer,
)
from cultural_compass.config import AnalysisConfig
from cultural_compass.schemas import AnalysisRequest, FindingKind, TextOrigin

from .conftest import FakeClient


def _kinds(report):
    return [issue.kind for issue in report.issues]


def test_idiom_and_informality_both_reported():
    report = HeuristicAnalyzer().analyze(
        AnalysisRequest(text="hey, break a leg!", culture_id="jp", origin=TextOrigin.MINE), "Japanese"
    )
    kinds = _kinds(report)

    assert len(report.issues) >= 2
    assert FindingKind.IDIOM in kinds and FindingKind.FORMALITY in kinds
    assert kinds.index(FindingKind.IDIOM) < kinds.index(FindingKind.FORMALITY)
    assert report.alternatives
    assert "Japanese" in report.summary

    idiom = report.issues[kinds.index(FindingKind.IDIOM)]
    assert idiom.excerpt == "break a leg"
    assert idiom.related_idiom_id == "idiom-break-a-leg"
    assert idiom.suggestion


def test_alternatives_rewrite_markers():
    report = HeuristicAnalyzer().analyze(
        AnalysisRequest(text="hey, break a leg!", culture_id="jp", origin=TextOrigin.MINE), "Japanese"
    )
    assert report.alternatives == [
        'A more culturally adapted version might be: "Hello, break a leg!"',
        'For formal contexts: "Hello, I wish you success!"',
    ]


def test_plain_text_yields_single_general_finding():
    report = HeuristicAnalyzer().analyze(
        AnalysisRequest(text="The weather is nice today.", culture_id="de"), "German"
    )
    assert _kinds(report) == [FindingKind.GENERAL]


def test_markers_match_whole_words_only():
    report = HeuristicAnalyzer().analyze(
        AnalysisRequest(text="They said it was fine.", culture_id="de"), "German"
    )
    assert _kinds(report) == [FindingKind.GENERAL]


def test_every_matching_marker_produces_a_finding():
    text = "Hey, what's up? The exam was a piece of cake, so break a leg tomorrow."
    report = HeuristicAnalyzer().analyze(AnalysisRequest(text=text, culture_id="sa"), "Saudi Arabian")
    kinds = _kinds(report)

    assert kinds == [FindingKind.IDIOM, FindingKind.IDIOM, FindingKind.FORMALITY, FindingKind.FORMALITY]
    assert [issue.excerpt for issue in report.issues] == ["break a leg", "piece of cake", "Hey", "what's up"]


def test_their_long_text_gets_context_note_and_no_alternatives():
    text = "We will consider your proposal carefully."
    report = HeuristicAnalyzer().analyze(
        AnalysisRequest(text=text, culture_id="jp", origin=TextOrigin.THEIRS), "Japanese"
    )
    assert _kinds(report) == [FindingKind.CONTEXT]
    assert report.alternatives is None


def test_short_text_has_no_context_or_alternatives():
    theirs = HeuristicAnalyzer().analyze(AnalysisRequest(text="ok then", culture_id="jp", origin="theirs"), "Japanese")
    mine = HeuristicAnalyzer().analyze(AnalysisRequest(text="ok then", culture_id="jp", origin="mine"), "Japanese")

    assert _kinds(theirs) == [FindingKind.GENERAL]
    assert mine.alternatives is None


PROVIDER_RESPONSE = {
    "summary": "Mostly fine, one idiom.",
    "issues": [
        {
            "type": "Idiom",
            "text": "break a leg",
            "explanation": "Literal reading sounds hostile.",
            "suggestion": "Good luck",
        },
        {"type": "Directness", "text": "No.", "explanation": "A flat refusal reads as rude."},
        {"type": "Tone", "text": "", "explanation": "Consider warmth."},
    ],
    "alternatives": ["Good luck with the pitch!"],
}


def _provider(*responses):
    client = FakeClient(*responses)
    return ProviderAnalyzer(AnalysisConfig(), client=client), client


def test_provider_parses_structured_response():
    analyzer, client = _provider(PROVIDER_RESPONSE)
    report = analyzer.analyze(AnalysisRequest(text="break a leg. No.", culture_id="jp"), "Japanese")

    assert report.summary == "Mostly fine, one idiom."
    assert _kinds(report) == [FindingKind.IDIOM, FindingKind.CONTEXT, FindingKind.GENERAL]
    assert report.issues[0].suggestion == "Good luck"
    assert report.issues[1].suggestion is None
    assert report.alternatives == ["Good luck with the pitch!"]
    assert report.degraded is False
    assert len(client.models.calls) == 1


def test_provider_prompt_embeds_text_culture_and_origin():
    analyzer, client = _provider(PROVIDER_RESPONSE)
    analyzer.analyze(AnalysisRequest(text="see you soon", culture_id="br", origin="theirs"), "Brazilian")

    call = client.models.calls[0]
    assert call["model"] == "gemini-2.5-flash"
    assert '"see you soon"' in call["contents"]
    assert "Brazilian culture" in call["contents"]
    assert "written by someone from this culture" in call["contents"]


def test_provider_accepts_fenced_json():
    analyzer, _ = _provider('```json\n{"summary": "Looks fine.", "issues": []}\n```')
    report = analyzer.analyze(AnalysisRequest(text="hello", culture_id="jp"), "Japanese")
    assert report.summary == "Looks fine."
    assert report.issues == []
    assert report.alternatives is None


@pytest.mark.parametrize(
    "response",
    [
        RuntimeError("connection reset"),
        TimeoutError("timed out"),
        "not json at all",
        "",
        {"issues": []},
        {"summary": "x", "issues": "none"},
        {"summary": "x", "issues": [{"type": "Idiom", "text": "a"}]},
        {"summary": "x", "issues": ["just a string"]},
        {"summary": "x", "issues": [], "alternatives": "nope"},
    ],
)
def test_provider_failures_degrade_to_empty_report(response):
    analyzer, _ = _provider(response)
    report = analyzer.analyze(AnalysisRequest(text="hello there", culture_id="jp"), "Japanese")

    assert report.degraded is True
    assert report.summary.startswith("Analysis failed")
    assert report.issues == []


def test_provider_without_credential_uses_heuristic(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    analyzer = ProviderAnalyzer(AnalysisConfig())
    assert analyzer.client is None

    report = analyzer.analyze(AnalysisRequest(text="hey, break a leg!", culture_id="jp"), "Japanese")
    assert report.degraded is False
    assert FindingKind.IDIOM in _kinds(report)


def test_translate_idiom_with_provider():
    analyzer, _ = _provider(
        {
            "translation": "Ganbatte",
            "literalTranslation": "Do your best",
            "explanation": "Common encouragement.",
            "culturalNotes": ["Used widely before exams."],
        }
    )
    result = analyzer.translate_idiom("break a leg", "American", "Japanese")

    assert result.available is True
    assert result.translation == "Ganbatte"
    assert result.literal_translation == "Do your best"
    assert result.cultural_notes == ["Used widely before exams."]


def test_translate_idiom_failure_is_unavailable():
    analyzer, _ = _provider(RuntimeError("boom"))
    result = analyzer.translate_idiom("break a leg", "American", "Japanese")
    assert result.available is False
    assert result.original_idiom == "break a leg"


def test_heuristic_translate_idiom_is_unavailable():
    result = HeuristicAnalyzer().translate_idiom("piece of cake", "American", "German")
    assert result.available is False


def test_build_analyzer_by_strategy(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    assert isinstance(build_analyzer(AnalysisConfig(strategy="heuristic")), HeuristicAnalyzer)
    assert isinstance(build_analyzer(AnalysisConfig(strategy="provider")), ProviderAnalyzer)
    with pytest.raises(ValueError):
        build_analyzer(AnalysisConfig(strategy="oracle"))


def test_timeout_is_clamped():
    assert AnalysisConfig(timeout_seconds=60).timeout_seconds == 15.0
    assert AnalysisConfig(timeout_seconds=1).timeout_seconds == 10.0
    assert AnalysisConfig(timeout_seconds=12).timeout_seconds == 12.0


@pytest.mark.parametrize("response", ['["Ganbatte"]', '"Ganbatte"', "42", {"translation": ["Ganbatte"]}])
def test_translate_idiom_rejects_non_object_responses(response):
    analyzer, _ = _provider(response)
    result = analyzer.translate_idiom("break a leg", "American", "Japanese")
    assert result.available is False
    assert result.original_idiom == "break a leg"


def test_provider_client_gets_bounded_timeout(monkeypatch):
    built = {}

    def fake_client(**kwargs):
        built.update(kwargs)
        return FakeClient()

    monkeypatch.setattr(analysis_module.genai, "Client", fake_client)
    ProviderAnalyzer(AnalysisConfig(timeout_seconds=60), google_api_key="test-key")

    assert built["api_key"] == "test-key"
    assert built["http_options"].timeout == 15000
