"""Configuration loading for Cultural Compass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CULTURES = {
    "jp": "Japanese",
    "de": "German",
    "sa": "Saudi Arabian",
    "us": "American",
    "br": "Brazilian",
}


def _resolve_path(raw_path: str, base_dir: Path) -> str:
    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


@dataclass
class PathsConfig:
    """Filesystem locations."""

    sqlite_path: str = "data/consent.db"


@dataclass
class AnalysisConfig:
    """Analyzer strategy and provider settings."""

    strategy: str = "provider"
    provider: str = "google"
    model: str = "gemini-2.5-flash"
    temperature: float = 0.2
    timeout_seconds: float = 15.0
    max_text_chars: int = 4000

    def __post_init__(self) -> None:
        # Provider calls are bounded to the 10-15s band.
        self.timeout_seconds = max(10.0, min(15.0, float(self.timeout_seconds)))


@dataclass
class RetentionConfig:
    """Per-tag overrides of the default retention rules."""

    rules: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass
class FeedbackConfig:
    """Where feedback submissions are relayed."""

    endpoint: Optional[str] = None
    timeout_seconds: float = 10.0


@dataclass
class AppConfig:
    """Top-level app configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)
    cultures: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CULTURES))
    google_api_key: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "AppConfig":
        """Build config from a dictionary."""
        base = Path.cwd() if base_dir is None else base_dir

        paths_data = data.get("paths", {})
        paths = PathsConfig(
            sqlite_path=_resolve_path(paths_data.get("sqlite_path", "data/consent.db"), base),
        )

        analysis = AnalysisConfig(**data.get("analysis", {}))
        retention = RetentionConfig(rules=dict(data.get("retention", {}).get("rules", {})))
        feedback = FeedbackConfig(**data.get("feedback", {}))

        cultures = dict(DEFAULT_CULTURES)
        cultures.update({str(k): str(v) for k, v in (data.get("cultures") or {}).items()})

        return cls(
            paths=paths,
            analysis=analysis,
            retention=retention,
            feedback=feedback,
            cultures=cultures,
            google_api_key=data.get("google_api_key"),
        )

    @classmethod
    def from_yaml(cls, path: str) -> "AppConfig":
        """Load config from YAML."""
        config_path = Path(path).resolve()
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        return cls.from_dict(data, base_dir=config_path.parent)
