from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from cultural_compass.analysis import HeuristicAnalyzer
from cultural_compass.config import DEFAULT_CULTURES
from cultural_compass.cultures import CultureDirectory
from cultural_compass.retention import RetentionPolicy
from cultural_compass.schemas import RelayResult
from cultural_compass.storage import SQLiteConsentStore


class FakeModels:
    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        item = self.responses.pop(0) if self.responses else ""
        if isinstance(item, Exception):
            raise item
        if isinstance(item, dict):
            item = json.dumps(item)
        return SimpleNamespace(text=item)


class FakeClient:
    """Stands in for ``genai.Client``; only ``models.generate_content`` is used."""

    def __init__(self, *responses: Any):
        self.models = FakeModels(list(responses))


class SpyAnalyzer(HeuristicAnalyzer):
    def __init__(self):
        self.calls = 0

    def analyze(self, request, culture_name):
        self.calls += 1
        return super().analyze(request, culture_name)


class RecordingSink:
    def __init__(self, result: RelayResult = None, error: Exception = None):
        self.payloads: List[Dict[str, Any]] = []
        self.result = result or RelayResult(success=True, message="ok")
        self.error = error

    def send(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "consent.db")


@pytest.fixture
def consent_store(db_path):
    store = SQLiteConsentStore(db_path)
    yield store
    store.close()


@pytest.fixture
def retention():
    return RetentionPolicy()


@pytest.fixture
def cultures():
    return CultureDirectory(DEFAULT_CULTURES)


@pytest.fixture
def log_events():
    return []
