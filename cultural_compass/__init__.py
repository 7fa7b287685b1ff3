"""Consent-gated cross-cultural text analysis."""

from .config import AppConfig
from .pipeline import CulturalCompassPipeline

__all__ = ["AppConfig", "CulturalCompassPipeline"]
