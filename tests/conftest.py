"""Pytest config: PYTHONPATH, env for tests, and a scripted chat model."""
import os
import sys
from pathlib import Path

import pytest

root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(root))
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("OPENWEATHERMAP_API_KEY", None)

from app.config import get_settings  # noqa: E402
from tools.weather_api import get_weather_provider  # noqa: E402


class ScriptedChatModel:
    """Stands in for a chat model: returns queued AIMessages and records what it saw."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.bound_tools = []
        self.calls = []

    def bind_tools(self, tools):
        self.bound_tools.append(list(tools))
        return self

    def invoke(self, messages, config=None):
        self.calls.append(list(messages))
        return self.responses.pop(0)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """No credentials unless a test sets them; cached settings/provider rebuilt per test."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENWEATHERMAP_API_KEY", raising=False)
    get_settings.cache_clear()
    get_weather_provider.cache_clear()
    yield
    get_settings.cache_clear()
    get_weather_provider.cache_clear()


@pytest.fixture
def scripted_model():
    return ScriptedChatModel
