"""
Pytest configuration and shared fixtures.

Provides a scripted stand-in for the model, a fake web searcher, a fresh
Hospital store per test, and an orchestrator wired to the real hospital
catalogue.
"""

import threading
from typing import Any, Dict, List, Optional, Sequence

import pytest

from context.loader import load_hospital
from orchestrator.errors import ConfigurationError, ModelTransportError
from orchestrator.models import CapabilityCall, CapabilityDeclaration, ModelResponse, Turn
from orchestrator.router import Orchestrator
from orchestrator.state import Conversation
from tools.catalog import build_registry


def reply(text: str, citation_urls: Optional[List[str]] = None) -> ModelResponse:
    """A final model answer."""
    return ModelResponse(text=text, citation_urls=citation_urls or [])


def call(name: str, call_id: str, **arguments: Any) -> CapabilityCall:
    return CapabilityCall(name=name, arguments=arguments, call_id=call_id)


def calls(*requested: CapabilityCall, text: Optional[str] = None) -> ModelResponse:
    """A model reply that requests capability calls."""
    return ModelResponse(text=text, calls=list(requested))


class ScriptedModel:
    """
    Deterministic model: returns the scripted responses in order and records
    every request it receives.
    """

    def __init__(self, script: Sequence[ModelResponse], *, ready: bool = True, fail_on: Optional[int] = None):
        self.script = list(script)
        self.ready = ready
        self.fail_on = fail_on
        self.requests: List[Dict[str, Any]] = []

    def check_ready(self) -> None:
        if not self.ready:
            raise ConfigurationError("API key is missing. Set OPENAI_API_KEY in the environment and restart the app.")

    def complete(
        self,
        instruction: str,
        turns: Sequence[Turn],
        capabilities: Optional[Sequence[CapabilityDeclaration]] = None,
    ) -> ModelResponse:
        self.requests.append({"instruction": instruction, "turns": tuple(turns), "capabilities": capabilities})
        if self.fail_on is not None and len(self.requests) == self.fail_on:
            raise ModelTransportError("connection reset")
        if not self.script:
            raise AssertionError("ScriptedModel ran out of responses")
        return self.script.pop(0)


class BlockingModel(ScriptedModel):
    """Holds the first request until `release` is set, so a turn stays in flight."""

    def __init__(self, script: Sequence[ModelResponse]):
        super().__init__(script)
        self.entered = threading.Event()
        self.release = threading.Event()

    def complete(self, instruction, turns, capabilities=None):
        self.entered.set()
        self.release.wait(timeout=5)
        return super().complete(instruction, turns, capabilities)


class FakeSearcher:
    """Returns a chat-completion-shaped dict with url_citation annotations."""

    def __init__(self, answer: str = "Flu activity is elevated nationwide.", urls: Optional[List[str]] = None):
        self.answer = answer
        self.urls = ["https://www.cdc.gov/fluview/"] if urls is None else urls
        self.queries: List[str] = []

    def search(self, query: str) -> Dict[str, Any]:
        self.queries.append(query)
        return {
            "choices": [
                {
                    "message": {
                        "content": self.answer,
                        "annotations": [
                            {"type": "url_citation", "url_citation": {"url": url, "title": "source"}}
                            for url in self.urls
                        ],
                    }
                }
            ]
        }


@pytest.fixture
def hospital():
    """A fresh copy of the seed data for each test."""
    return load_hospital()


@pytest.fixture
def searcher():
    return FakeSearcher()


@pytest.fixture
def registry(hospital, searcher, tmp_path):
    return build_registry(hospital, searcher, export_dir=tmp_path)


@pytest.fixture
def conversation():
    return Conversation()


@pytest.fixture
def make_orchestrator(registry):
    """Factory: make_orchestrator(model, **kwargs) -> Orchestrator, closed after the test."""
    created: List[Orchestrator] = []

    def _make(model, **kwargs) -> Orchestrator:
        kwargs.setdefault("max_workers", 2)
        orchestrator = Orchestrator(registry, model, **kwargs)
        created.append(orchestrator)
        return orchestrator

    yield _make

    for orchestrator in created:
        orchestrator.close()
