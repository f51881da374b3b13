from __future__ import annotations

import asyncio
import importlib
import sys
from types import SimpleNamespace
from typing import Any, List

import pytest
from fastapi.testclient import TestClient

from mila_assistant.core.config import Config, GeminiConfig, reset_config
from mila_assistant.knowledge import build_default_knowledge_base
from mila_assistant.services.assistant_service import AssistantService
from mila_assistant.services.entity_extractor import EntityExtractor
from mila_assistant.services.memory_store import SqlMemoryStore
from mila_assistant.services.query_classifier import IntentClassifier
from mila_assistant.services.rate_limiter import SlidingWindowRateLimiter
from mila_assistant.services.strategy_chain import StrategyChainExecutor


class FakeClock:
    """Manual clock; ``sleep`` advances time instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeModels:
    def __init__(self, outcomes: List[Any]):
        self.outcomes = list(outcomes)
        self.calls: List[dict] = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        outcome = self.outcomes.pop(0) if self.outcomes else "OK"
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome()
        return SimpleNamespace(text=outcome)


class FakeGenaiClient:
    """Stands in for ``genai.Client``; only ``aio.models.generate_content`` is used."""

    def __init__(self, *outcomes: Any):
        self.models = FakeModels(list(outcomes))
        self.aio = SimpleNamespace(models=self.models)


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("MILA_ENVIRONMENT", "test")
    monkeypatch.setenv("MILA_MEMORY_BACKEND", "disabled")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(env) -> Config:
    return Config()


@pytest.fixture
def knowledge():
    return build_default_knowledge_base()


@pytest.fixture
def classifier(knowledge):
    return IntentClassifier(knowledge)


@pytest.fixture
def extractor(knowledge):
    return EntityExtractor(knowledge)


@pytest.fixture
def chain(knowledge, classifier, extractor, config):
    return StrategyChainExecutor(knowledge, classifier, extractor, config.routing)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(fake_clock):
    return SlidingWindowRateLimiter(max_requests=15, window_seconds=60.0, clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def sql_store():
    store = SqlMemoryStore("sqlite://")
    yield store
    asyncio.run(store.close())


@pytest.fixture
def make_service(config, knowledge, rate_limiter):
    """Build an AssistantService with an optional memory store and fake remote client."""

    def _make(memory_store=None, genai_client=None, api_key=None):
        if api_key is not None:
            config.gemini = GeminiConfig(api_key=api_key)
        return AssistantService(
            config=config,
            knowledge=knowledge,
            memory_store=memory_store,
            rate_limiter=rate_limiter,
            client_factory=lambda key: genai_client or FakeGenaiClient(),
        )

    return _make


@pytest.fixture
def app_module(env):
    if "mila_assistant.main" in sys.modules:
        return importlib.reload(sys.modules["mila_assistant.main"])
    return importlib.import_module("mila_assistant.main")


@pytest.fixture
def client(app_module, make_service, sql_store):
    app_module.app.state.assistant = make_service(memory_store=sql_store)
    with TestClient(app_module.app) as test_client:
        yield test_client
    app_module.app.state.assistant = None
