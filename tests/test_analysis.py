# -*- coding: utf-8 -*-
from __future__ import annotations

import sys

import pytest

from conftest import PNG_1X1_BYTES, VALID_JSON, FakeGeminiClient, make_payload
from verifier.analysis import AnalysisService, resolve_mime
from verifier.config import Settings
from verifier.errors import InputError, UpstreamError
from verifier.gemini import ModelReply
from verifier.models.schema import (
    AnalysisKind,
    AnalysisOk,
    ExtractionFailed,
    Source,
    UpstreamFailed,
    Verdict,
)
from verifier import page_context
from verifier.page_context import PageContext

CHUNKS = [{"web": {"uri": "https://news.example/a", "title": "News"}}]


def test_text_analysis_ok(service: AnalysisService, fake_client: FakeGeminiClient) -> None:
    outcome = service.analyze_text("  some text  ")
    assert isinstance(outcome, AnalysisOk)
    assert outcome.kind == AnalysisKind.TEXT
    assert outcome.result.verdict == Verdict.AI
    assert fake_client.calls == [("text", ("some text",))]


def test_upstream_failure_is_not_a_verdict(settings: Settings) -> None:
    client = FakeGeminiClient(error=UpstreamError("Gemini API error 503: UNAVAILABLE"))
    outcome = AnalysisService(client, settings).analyze_text("hello")
    assert isinstance(outcome, UpstreamFailed)
    assert "503" in outcome.reason
    assert outcome.timed_out is False
    assert outcome.to_payload()["status"] == "upstream_failed"


def test_extraction_failure_is_tagged_and_keeps_raw_text(settings: Settings) -> None:
    raw = make_payload(verdict="Robot")
    client = FakeGeminiClient(reply=ModelReply(text=raw))
    outcome = AnalysisService(client, settings).analyze_text("hello")
    assert isinstance(outcome, ExtractionFailed)
    assert outcome.error_kind == "SchemaViolation"
    assert outcome.field == "verdict"
    assert outcome.raw_text == raw
    assert "raw_text" not in outcome.to_payload()


@pytest.mark.skipif(not hasattr(sys, "get_int_max_str_digits"), reason="nessun limite sulle cifre degli interi")
def test_unparseable_number_is_extraction_failure(settings: Settings) -> None:
    raw = '{"isAiGenerated":true,"confidenceScore":' + "9" * 5000 + ',"verdict":"AI","reasoning":"r"}'
    client = FakeGeminiClient(reply=ModelReply(text=raw))
    outcome = AnalysisService(client, settings).analyze_text("hello")
    assert isinstance(outcome, ExtractionFailed)
    assert outcome.error_kind == "MalformedPayload"


def test_genuine_mixed_verdict_is_ok(settings: Settings) -> None:
    raw = make_payload(verdict="Mixed/Uncertain", isAiGenerated=False, confidenceScore=50)
    client = FakeGeminiClient(reply=ModelReply(text=raw))
    outcome = AnalysisService(client, settings).analyze_text("hello")
    assert isinstance(outcome, AnalysisOk)
    assert outcome.result.verdict == Verdict.MIXED


def test_url_analysis_attaches_sources(settings: Settings) -> None:
    client = FakeGeminiClient(reply=ModelReply(text=f"Ecco:\n```json\n{VALID_JSON}\n```", grounding_chunks=CHUNKS))
    outcome = AnalysisService(client, settings).analyze_url("https://news.example/a")
    assert isinstance(outcome, AnalysisOk)
    assert outcome.result.sources == [Source(uri="https://news.example/a", title="News")]


def test_grounding_ignored_outside_url_analysis(settings: Settings) -> None:
    client = FakeGeminiClient(reply=ModelReply(text=VALID_JSON, grounding_chunks=CHUNKS))
    outcome = AnalysisService(client, settings).analyze_text("hello")
    assert outcome.result.sources is None


def test_page_context_is_forwarded_to_the_client() -> None:
    settings = Settings(gemini_api_key="test-key", fetch_page_context=True)
    client = FakeGeminiClient()
    seen = {}

    def fetcher(url, timeout, max_bytes):
        seen.update(url=url, timeout=timeout, max_bytes=max_bytes)
        return PageContext(title="Titolo", description="Descrizione")

    AnalysisService(client, settings, page_fetcher=fetcher).analyze_url("https://site.example/x")
    assert seen["url"] == "https://site.example/x"
    assert client.calls == [("url", ("https://site.example/x", "Titolo", "Descrizione"))]


def test_loopback_url_gets_no_page_context(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_get(url, **kwargs):
        raise AssertionError("internal address fetched")

    monkeypatch.setattr(page_context.requests, "get", fake_get)
    settings = Settings(gemini_api_key="test-key", fetch_page_context=True)
    client = FakeGeminiClient()
    outcome = AnalysisService(client, settings).analyze_url("http://127.0.0.1:8080/admin")
    assert isinstance(outcome, AnalysisOk)
    assert client.calls == [("url", ("http://127.0.0.1:8080/admin", None, None))]


def test_page_context_disabled_by_settings(settings: Settings) -> None:
    def fetcher(*args, **kwargs):
        raise AssertionError("should not fetch")

    client = FakeGeminiClient()
    AnalysisService(client, settings, page_fetcher=fetcher).analyze_url("https://site.example/x")
    assert client.calls == [("url", ("https://site.example/x", None, None))]


@pytest.mark.parametrize("url", ["", "   ", None, "ftp://host/file", "not a url", "https://"])
def test_invalid_urls_are_rejected(service: AnalysisService, fake_client: FakeGeminiClient, url) -> None:
    with pytest.raises(InputError) as exc:
        service.analyze_url(url)
    assert exc.value.status_code == 400
    assert fake_client.calls == []


def test_allowlist_blocks_other_domains() -> None:
    settings = Settings(gemini_api_key="k", fetch_page_context=False, resolver_allowlist=["example.com"])
    service = AnalysisService(FakeGeminiClient(), settings)
    assert isinstance(service.analyze_url("https://www.example.com/a"), AnalysisOk)
    with pytest.raises(InputError) as exc:
        service.analyze_url("https://evil.test/a")
    assert exc.value.status_code == 403


def test_text_validation(service: AnalysisService) -> None:
    with pytest.raises(InputError):
        service.analyze_text(" \n ")
    with pytest.raises(InputError) as exc:
        service.analyze_text("x" * (service.settings.max_text_chars + 1))
    assert exc.value.status_code == 413


def test_image_analysis_ok(service: AnalysisService, fake_client: FakeGeminiClient) -> None:
    outcome = service.analyze_image(PNG_1X1_BYTES, "image/png", "pixel.png")
    assert isinstance(outcome, AnalysisOk)
    assert fake_client.calls == [("image", (PNG_1X1_BYTES, "image/png"))]


def test_video_analysis_ok(service: AnalysisService, fake_client: FakeGeminiClient) -> None:
    outcome = service.analyze_video(b"\x00" * 32, "video/mp4; codecs=avc1", "clip.mp4")
    assert outcome.kind == AnalysisKind.VIDEO
    assert fake_client.calls == [("video", (b"\x00" * 32, "video/mp4"))]


def test_media_limits() -> None:
    settings = Settings(gemini_api_key="k", max_upload_bytes=16)
    service = AnalysisService(FakeGeminiClient(), settings)
    with pytest.raises(InputError) as exc:
        service.analyze_image(b"\x00" * 17, "image/png")
    assert exc.value.status_code == 413
    with pytest.raises(InputError) as exc:
        service.analyze_image(b"", "image/png")
    assert exc.value.status_code == 400


def test_resolve_mime() -> None:
    assert resolve_mime(AnalysisKind.IMAGE, "IMAGE/JPEG", None) == "image/jpeg"
    assert resolve_mime(AnalysisKind.IMAGE, "application/octet-stream", "photo.png") == "image/png"
    assert resolve_mime(AnalysisKind.VIDEO, None, "clip.mp4") == "video/mp4"
    with pytest.raises(InputError) as exc:
        resolve_mime(AnalysisKind.VIDEO, "image/png", "pixel.png")
    assert exc.value.status_code == 415
