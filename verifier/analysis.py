# verifier/analysis.py
# Validazione input -> chiamata al modello -> estrazione -> esito taggato.

from __future__ import annotations
import logging
import mimetypes
from typing import Callable, Optional
from urllib.parse import urlparse

from verifier.config import Settings
from verifier.errors import ExtractionError, InputError, UpstreamError
from verifier.extractor import extract_analysis
from verifier.gemini import ModelReply
from verifier.models.schema import (
    AnalysisKind,
    AnalysisOk,
    AnalysisOutcome,
    ExtractionFailed,
    UpstreamFailed,
)
from verifier.page_context import PageContext, fetch_page_context, is_domain_allowed

logger = logging.getLogger(__name__)

LOG_RAW_CHARS = 500


def resolve_mime(kind: AnalysisKind, mime_type: Optional[str], filename: Optional[str]) -> str:
    prefix = "image/" if kind == AnalysisKind.IMAGE else "video/"
    mime = (mime_type or "").split(";")[0].strip().lower()
    if mime.startswith(prefix):
        return mime
    # i browser a volte inviano application/octet-stream: proviamo dall'estensione
    guessed = mimetypes.guess_type(filename or "")[0]
    if guessed and guessed.startswith(prefix):
        return guessed
    label = "un'immagine" if kind == AnalysisKind.IMAGE else "un video"
    raise InputError(f"Tipo di file non supportato ({mime or 'sconosciuto'}): carica {label}.", status_code=415)


class AnalysisService:
    def __init__(self, client, settings: Settings,
                 page_fetcher: Optional[Callable[..., Optional[PageContext]]] = fetch_page_context):
        self.client = client
        self.settings = settings
        self.page_fetcher = page_fetcher if settings.fetch_page_context else None

    # -------- Validazione ----------------------------------------------------

    def validate_url(self, url: Optional[str]) -> str:
        url = (url or "").strip()
        if not url:
            raise InputError("Inserisci un link valido.")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise InputError("Il link deve iniziare con http:// o https://.")
        if not is_domain_allowed(url, self.settings.resolver_allowlist):
            raise InputError("Dominio non consentito su questo server.", status_code=403)
        return url

    def validate_text(self, text: Optional[str]) -> str:
        text = (text or "").strip()
        if not text:
            raise InputError("Inserisci del testo.")
        if len(text) > self.settings.max_text_chars:
            raise InputError(f"Testo troppo lungo (max {self.settings.max_text_chars} caratteri).", status_code=413)
        return text

    def validate_media(self, kind: AnalysisKind, data: Optional[bytes],
                       mime_type: Optional[str], filename: Optional[str] = None) -> str:
        if not data:
            label = "un'immagine" if kind == AnalysisKind.IMAGE else "un video"
            raise InputError(f"Seleziona {label}.")
        if len(data) > self.settings.max_upload_bytes:
            raise InputError(self.too_large_message(), status_code=413)
        return resolve_mime(kind, mime_type, filename)

    def too_large_message(self) -> str:
        max_mb = self.settings.max_upload_bytes / (1024 * 1024)
        return f"Il file è troppo grande (max {max_mb:g}MB)."

    # -------- Analisi --------------------------------------------------------

    def _run(self, kind: AnalysisKind, call: Callable[[], ModelReply]) -> AnalysisOutcome:
        try:
            reply = call()
        except UpstreamError as e:
            logger.error("[%s] errore upstream: %s", kind.value, e)
            return UpstreamFailed(kind=kind, reason=str(e), timed_out=e.timed_out)

        # le fonti hanno senso solo con la ricerca web (URL)
        chunks = reply.grounding_chunks if kind == AnalysisKind.URL else None
        try:
            result = extract_analysis(reply.text, chunks)
        except ExtractionError as e:
            logger.warning("[%s] estrazione fallita: %s | raw=%r", kind.value, e, e.raw_text[:LOG_RAW_CHARS])
            return ExtractionFailed(
                kind=kind,
                reason=str(e),
                error_kind=e.kind.value,
                field=e.field,
                raw_text=e.raw_text,
            )

        logger.info("[%s] verdetto=%s confidenza=%d indicatori=%d fonti=%d",
                    kind.value, result.verdict.value, result.confidence_score,
                    len(result.indicators), len(result.sources or []))
        return AnalysisOk(kind=kind, result=result)

    def _page_context(self, url: str) -> Optional[PageContext]:
        if self.page_fetcher is None:
            return None
        return self.page_fetcher(
            url,
            timeout=self.settings.page_fetch_timeout_s,
            max_bytes=self.settings.page_fetch_max_bytes,
        )

    def analyze_url(self, url: Optional[str]) -> AnalysisOutcome:
        url = self.validate_url(url)
        ctx = self._page_context(url)
        title = ctx.title if ctx else None
        description = ctx.description if ctx else None
        return self._run(AnalysisKind.URL, lambda: self.client.analyze_url(url, title, description))

    def analyze_text(self, text: Optional[str]) -> AnalysisOutcome:
        text = self.validate_text(text)
        return self._run(AnalysisKind.TEXT, lambda: self.client.analyze_text(text))

    def analyze_image(self, data: Optional[bytes], mime_type: Optional[str],
                      filename: Optional[str] = None) -> AnalysisOutcome:
        mime = self.validate_media(AnalysisKind.IMAGE, data, mime_type, filename)
        return self._run(AnalysisKind.IMAGE, lambda: self.client.analyze_image(data, mime))

    def analyze_video(self, data: Optional[bytes], mime_type: Optional[str],
                      filename: Optional[str] = None) -> AnalysisOutcome:
        mime = self.validate_media(AnalysisKind.VIDEO, data, mime_type, filename)
        return self._run(AnalysisKind.VIDEO, lambda: self.client.analyze_video(data, mime))
