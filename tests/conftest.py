# -*- coding: utf-8 -*-
"""Shared pytest fixtures."""

from __future__ import annotations

import base64
import json
import sys
import time
from pathlib import Path

import pytest


ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from verifier.analysis import AnalysisService  # noqa: E402
from verifier.config import Settings  # noqa: E402
from verifier.gemini import ModelReply  # noqa: E402


PNG_1X1_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/x8AAwMCAO7+fJ8AAAAASUVORK5CYII="
)

VALID_PAYLOAD = {
    "isAiGenerated": True,
    "confidenceScore": 87,
    "verdict": "AI",
    "reasoning": "r",
    "indicators": ["a", "b"],
}
VALID_JSON = json.dumps(VALID_PAYLOAD, separators=(",", ":"))


def make_payload(**overrides) -> str:
    data = dict(VALID_PAYLOAD)
    for key, value in overrides.items():
        if value is ...:
            data.pop(key, None)
        else:
            data[key] = value
    return json.dumps(data)


class FakeGeminiClient:
    """Stand-in for GeminiClient: canned reply or raised error, records calls."""

    def __init__(self, reply: ModelReply | None = None, error: Exception | None = None, delay: float = 0.0) -> None:
        self.reply = reply or ModelReply(text=VALID_JSON)
        self.error = error
        self.delay = delay
        self.configured = True
        self.calls: list[tuple[str, tuple]] = []

    def _answer(self, name: str, *args) -> ModelReply:
        self.calls.append((name, args))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply

    def analyze_url(self, url, page_title=None, page_description=None):
        return self._answer("url", url, page_title, page_description)

    def analyze_text(self, text):
        return self._answer("text", text)

    def analyze_image(self, data, mime_type):
        return self._answer("image", data, mime_type)

    def analyze_video(self, data, mime_type):
        return self._answer("video", data, mime_type)


@pytest.fixture
def settings() -> Settings:
    return Settings(gemini_api_key="test-key", fetch_page_context=False)


@pytest.fixture
def fake_client() -> FakeGeminiClient:
    return FakeGeminiClient()


@pytest.fixture
def service(fake_client: FakeGeminiClient, settings: Settings) -> AnalysisService:
    return AnalysisService(fake_client, settings)


@pytest.fixture
def api_client(settings: Settings, service: AnalysisService):
    from fastapi.testclient import TestClient

    from verifier.main import create_app

    with TestClient(create_app(settings, service)) as client:
        yield client
