"""Pytest configuration and fixtures."""
import asyncio
import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import pytest

from mfds_monitor.backends import GenerationBackend
from mfds_monitor.config import Config, set_config

ISOLATED_ENV_VARS = [
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "OPENROUTER_API_KEY",
    "AI_API_KEY",
    "AI__API_KEY",
    "AI__PROVIDER",
    "AI__STRUCTURED_OUTPUT",
    "LOGGING__LEVEL",
    "PORT",
]


class FakeBackend(GenerationBackend):
    """In-memory backend that records calls and returns canned text."""

    provider = "fake"

    def __init__(self, text: Optional[str] = None, error: Optional[Exception] = None,
                 delay: float = 0, structured: bool = True, model: str = "fake-model"):
        super().__init__(model)
        self.text = text
        self.error = error
        self.delay = delay
        self.supports_structured_output = structured
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, prompt, *, search_grounding=True, response_schema=None):
        self.calls.append({
            "prompt": prompt,
            "search_grounding": search_grounding,
            "response_schema": response_schema,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text

    async def list_models(self):
        return ["models/fake-grounded"]


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep developer credentials and cached configuration out of tests."""
    for name in ISOLATED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    set_config(None)
    yield
    set_config(None)
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_mfds_monitor", False):
            root.removeHandler(handler)


@pytest.fixture
def make_config():
    def _make(**overrides) -> Config:
        overrides.setdefault("api", {"static_dir": None})
        return Config(_env_file=None, **overrides)
    return _make


@pytest.fixture
def fake_backend_cls():
    return FakeBackend


@pytest.fixture
def fixed_today():
    return date(2025, 9, 1)


@pytest.fixture
def records_json():
    def _dump(items) -> str:
        return json.dumps(items, ensure_ascii=False)
    return _dump
