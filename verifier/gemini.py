# verifier/gemini.py
# Wrapper sottile sull'SDK google-genai. Il client si costruisce esplicitamente
# dai Settings e si passa a chi lo usa (nei test si sostituisce con un fake).

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from verifier.config import Settings
from verifier.errors import UpstreamError
from verifier.prompts import (
    ANALYSIS_SCHEMA,
    IMAGE_PROMPT,
    SYSTEM_INSTRUCTION,
    VIDEO_PROMPT,
    text_prompt,
    url_prompt,
)

logger = logging.getLogger(__name__)


@dataclass
class ModelReply:
    text: str
    grounding_chunks: List[Any] = field(default_factory=list)


def _grounding_chunks(response: Any) -> List[Any]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    meta = getattr(candidates[0], "grounding_metadata", None)
    return list(getattr(meta, "grounding_chunks", None) or [])


class GeminiClient:
    def __init__(self, settings: Settings, sdk_client: Optional[genai.Client] = None):
        self.url_model = settings.url_model
        self.text_model = settings.text_model
        self.media_model = settings.media_model
        self._client = sdk_client
        if self._client is None and settings.has_api_key:
            timeout_ms = int(settings.request_timeout_s * 1000)
            self._client = genai.Client(
                api_key=settings.gemini_api_key,
                http_options=types.HttpOptions(timeout=timeout_ms),
            )
        if self._client is None:
            logger.warning("GEMINI_API_KEY non configurata: le analisi falliranno")

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _json_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            response_mime_type="application/json",
            response_schema=ANALYSIS_SCHEMA,
        )

    def _generate(self, model: str, contents: Any, config: types.GenerateContentConfig) -> ModelReply:
        if self._client is None:
            raise UpstreamError("API key Gemini mancante")
        try:
            response = self._client.models.generate_content(model=model, contents=contents, config=config)
        except genai_errors.APIError as e:
            raise UpstreamError(f"Gemini API error {e.code}: {e.message or e.status}") from e
        except Exception as e:
            # timeout/trasporto (httpx) e simili
            raise UpstreamError(f"Chiamata a Gemini fallita: {e}") from e

        text = response.text or ""
        if not text.strip():
            raise UpstreamError("Gemini ha restituito una risposta vuota")
        chunks = _grounding_chunks(response)
        logger.debug("Gemini %s: %d caratteri, %d grounding chunks", model, len(text), len(chunks))
        return ModelReply(text=text, grounding_chunks=chunks)

    def analyze_url(self, url: str, page_title: Optional[str] = None,
                    page_description: Optional[str] = None) -> ModelReply:
        # Google Search attivo: risposta libera, il JSON si estrae a valle
        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )
        return self._generate(self.url_model, url_prompt(url, page_title, page_description), config)

    def analyze_text(self, text: str) -> ModelReply:
        return self._generate(self.text_model, text_prompt(text), self._json_config())

    def _analyze_media(self, data: bytes, mime_type: str, prompt: str) -> ModelReply:
        contents = [
            types.Part.from_bytes(data=data, mime_type=mime_type),
            prompt,
        ]
        return self._generate(self.media_model, contents, self._json_config())

    def analyze_image(self, data: bytes, mime_type: str) -> ModelReply:
        return self._analyze_media(data, mime_type, IMAGE_PROMPT)

    def analyze_video(self, data: bytes, mime_type: str) -> ModelReply:
        return self._analyze_media(data, mime_type, VIDEO_PROMPT)
