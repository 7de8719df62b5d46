"""Shared fixtures: scripted planner, fake capabilities, isolated settings."""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from lumos.core.config import settings  # noqa: E402
from lumos.tools.registry import CapabilityName, CapabilityRegistry  # noqa: E402
from lumos.tools.rewrite import TONES  # noqa: E402


class ScriptedPlanner:
    """Returns canned planner replies in order and records what it was shown."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def __call__(self, conversation):
        self.calls.append(conversation)
        if not self.replies:
            raise AssertionError("planner called more times than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeCapabilities:
    """A real CapabilityRegistry whose functions are canned and recorded."""

    def __init__(self):
        self.calls = []
        self.outputs = {
            "summarize": "Short summary.",
            "rewrite": "Rewritten.",
            "prompt": "Answer.",
            "languageDetector": "en",
            "translate": "Hola",
        }
        self.failures = {}
        self.registry = CapabilityRegistry()
        self._register()

    def _make(self, name):
        async def fn(ctx, **kwargs):
            self.calls.append((name, kwargs))
            if name in self.failures:
                raise self.failures[name]
            return self.outputs[name]
        fn.__doc__ = f"fake {name}"
        return fn

    def _register(self):
        reg = self.registry.register
        reg(CapabilityName.SUMMARIZE, required=("text", "sharedContext"))(self._make("summarize"))
        reg(CapabilityName.REWRITE, required=("text", "tone", "context"), allowed={"tone": TONES})(self._make("rewrite"))
        reg(CapabilityName.PROMPT, required=("question",))(self._make("prompt"))
        reg(CapabilityName.LANGUAGE_DETECTOR, required=("text",))(self._make("languageDetector"))
        reg(CapabilityName.TRANSLATE, required=("text", "sourceLanguage", "targetLanguage"))(self._make("translate"))

    def fail(self, name, err):
        self.failures[name] = err

    def called(self, name):
        return [kw for n, kw in self.calls if n == name]


@pytest.fixture
def fake_caps():
    return FakeCapabilities()


@pytest.fixture
def mock_provider(monkeypatch):
    monkeypatch.setattr(settings, "LLM_PROVIDER", "mock")
    return settings


@pytest.fixture
def groq_settings(monkeypatch):
    monkeypatch.setattr(settings, "LLM_PROVIDER", "groq")
    monkeypatch.setattr(settings, "GROQ_API_KEY", "test-key")
    monkeypatch.setattr(settings, "GROQ_BASE_URL", "https://llm.test/openai/v1")
    monkeypatch.setattr(settings, "LLM_MAX_RETRIES", 3)
    monkeypatch.setattr("lumos.llm.router.BACKOFF_BASE_S", 0)
    return settings


@pytest.fixture
def scripted():
    return ScriptedPlanner
