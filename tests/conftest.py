"""Shared fixtures: fake generation backends and a ready-to-run orchestrator."""

import json
import os
import sys
from pathlib import Path
from typing import List, Optional

import pytest


def ensure_src_on_path() -> None:
    root = Path(__file__).resolve().parent.parent
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


ensure_src_on_path()

os.environ.setdefault("LLM_PROVIDER", "gemini")

from config import ConfigurationError
from models.domain import LLMProvider
from services.base_llm import BaseLLMService, GenerationResult
from services.lead_search import LeadSearchOrchestrator, SearchResultCache, StaticProspectSnapshot


class FakeGenerationService(BaseLLMService):
    """Replays scripted answers; an Exception in the script is raised instead."""

    provider = LLMProvider.GEMINI
    default_model = "fake-model"
    api_base = "http://fake"

    def __init__(self, responses: Optional[list] = None, api_key: Optional[str] = "test-key"):
        super().__init__(api_key)
        self.responses = list(responses or [])
        self.prompts: List[str] = []
        self.temperatures: List[float] = []
        self.grounded: List[bool] = []
        self.call_count = 0

    def _get_api_key(self) -> str:
        if self._api_key:
            return self._api_key
        raise ConfigurationError("No gemini API key configured")

    async def generate(self, model_id, prompt, temperature=0.5, *, grounded=True) -> GenerationResult:
        self.call_count += 1
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        self.grounded.append(grounded)
        if not self.responses:
            return GenerationResult(text="[]")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return GenerationResult(text=response)


def business_json(*names: str, **extra) -> str:
    return json.dumps(
        [{"name": name, "address": f"Rua {name}, 100", **extra} for name in names],
        ensure_ascii=False,
    )


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_orchestrator(sleep_recorder):
    def _make(service: BaseLLMService, cache: Optional[SearchResultCache] = None, prospects=None):
        return LeadSearchOrchestrator(
            service,
            cache=cache if cache is not None else SearchResultCache(),
            prospects=prospects or StaticProspectSnapshot(),
            model_id="fake-model",
            sleep=sleep_recorder,
            round_delay=0.0,
        )

    return _make


@pytest.fixture
def make_service():
    def _make(responses: Optional[list] = None, api_key: Optional[str] = "test-key") -> FakeGenerationService:
        return FakeGenerationService(responses, api_key=api_key)

    return _make


@pytest.fixture
def businesses():
    return business_json


@pytest.fixture
def fake_service() -> FakeGenerationService:
    return FakeGenerationService()


@pytest.fixture
def client(fake_service, make_orchestrator):
    from fastapi.testclient import TestClient

    from api.app import app
    from api.routers.outreach import get_generation_service
    from api.routers.search import get_orchestrator

    orchestrator = make_orchestrator(fake_service)
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_generation_service] = lambda: fake_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
