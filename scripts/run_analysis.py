"""CLI entrypoint for analyzing one piece of text."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cultural_compass.config import AppConfig  # noqa: E402
from cultural_compass.errors import ConsentRequired, ValidationError  # noqa: E402
from cultural_compass.pipeline import CulturalCompassPipeline  # noqa: E402
from cultural_compass.schemas import ConsentDecision  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check text for cross-cultural communication issues.")
    parser.add_argument(
        "--config",
        type=str,
        default=str(PROJECT_ROOT / "config.yaml"),
        help="Path to YAML config.",
    )
    parser.add_argument("--culture", required=True, help="Target culture id, e.g. jp.")
    parser.add_argument(
        "--origin",
        choices=["mine", "theirs"],
        default="mine",
        help="Whether you wrote the text or received it.",
    )
    parser.add_argument("--accept-consent", action="store_true", help="Answer yes if consent is asked.")
    parser.add_argument("--reset-consent", action="store_true", help="Clear stored consent first.")
    parser.add_argument("text", help="Text to analyze.")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.WARNING)
    config = AppConfig.from_yaml(args.config)

    def prompt() -> ConsentDecision:
        return ConsentDecision(accepted=True) if args.accept_consent else ConsentDecision.declined()

    pipeline = CulturalCompassPipeline(config, prompt=prompt)
    if args.reset_consent:
        pipeline.reset_consent()
    try:
        report = pipeline.analyze_text(args.text, args.culture, args.origin)
    except (ConsentRequired, ValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        pipeline.close()

    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
