"""End-to-end demo: consent prompt -> analyze -> redacted log -> feedback."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cultural_compass.config import AppConfig  # noqa: E402
from cultural_compass.errors import ConsentRequired  # noqa: E402
from cultural_compass.pipeline import CulturalCompassPipeline  # noqa: E402
from cultural_compass.schemas import ConsentDecision, FeedbackKind, FeedbackSubmission  # noqa: E402


def console_prompt() -> ConsentDecision:
    print("This app sends your text to an analysis service. It is never stored.")
    accepted = input("Allow text analysis? [y/N] ").strip().lower() == "y"
    if not accepted:
        return ConsentDecision.declined()
    improve = input("Also allow anonymized use to improve the AI? [y/N] ").strip().lower() == "y"
    return ConsentDecision(accepted=True, ai_improvement=improve)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = AppConfig.from_yaml(str(PROJECT_ROOT / "config.yaml"))
    pipeline = CulturalCompassPipeline(config, prompt=console_prompt)
    try:
        _run(pipeline)
    finally:
        pipeline.close()


def _run(pipeline: CulturalCompassPipeline) -> None:
    samples = [
        ("hey, break a leg at the presentation!", "jp", "mine"),
        ("We will consider your proposal carefully and get back to you.", "jp", "theirs"),
    ]
    report = None
    for text, culture_id, origin in samples:
        try:
            report = pipeline.analyze_text(text, culture_id, origin)
        except ConsentRequired as exc:
            print(f"Blocked: {exc}")
            return

        print(f"\n== {origin} text for {culture_id} ==")
        print(report.summary)
        for i, issue in enumerate(report.issues, start=1):
            print(f"{i}. [{issue.kind.value}] {issue.excerpt}: {issue.explanation}")
            if issue.suggestion:
                print(f"   suggestion: {issue.suggestion}")
        for alt in report.alternatives or []:
            print(f"   alt: {alt}")

    print("\n== Consent ==")
    print(pipeline.consent_status())

    result = pipeline.submit_feedback(
        FeedbackSubmission(
            kind=FeedbackKind.INACCURACY,
            text="Dr. Jane Smith (jane@example.com) says the idiom note is too strict.",
            analysis_id=report.analysis_id if report else None,
            culture_id="jp",
        )
    )
    print("\n== Feedback ==")
    print(result)


if __name__ == "__main__":
    main()
