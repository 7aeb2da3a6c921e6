# verifier/main.py
import asyncio
import logging
import os
from typing import Optional

import uvicorn
from fastapi import APIRouter, FastAPI, File, Form, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from verifier.analysis import AnalysisService
from verifier.config import Settings
from verifier.errors import InputError
from verifier.gemini import GeminiClient
from verifier.log import setup_logging
from verifier.models.schema import (
    AnalysisKind,
    AnalysisOk,
    TextPayload,
    UpstreamFailed,
    UrlPayload,
)
from verifier.render import render_page

logger = logging.getLogger(__name__)

CHUNK_BYTES = 1024 * 1024

router = APIRouter()


# -------- Helpers ------------------------------------------------------------

def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _service(request: Request) -> AnalysisService:
    return request.app.state.service


def status_code_for(outcome) -> int:
    if isinstance(outcome, AnalysisOk):
        return 200
    if isinstance(outcome, UpstreamFailed) and outcome.timed_out:
        return 504
    return 502


async def read_upload(upload: Optional[UploadFile], max_bytes: int, too_large: str) -> bytes:
    # lettura a blocchi: il limite scatta prima di tenere tutto in RAM
    if upload is None:
        return b""
    buf = bytearray()
    while True:
        chunk = await upload.read(CHUNK_BYTES)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise InputError(too_large, status_code=413)
    return bytes(buf)


async def run_analysis(request: Request, kind: AnalysisKind, fn, *args):
    timeout = _settings(request).request_timeout_s
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error("[%s] analisi oltre il limite di %ss", kind.value, timeout)
        return UpstreamFailed(kind=kind, reason=f"Analisi oltre il limite di tempo ({timeout:g}s)", timed_out=True)


async def _analyze_upload(request: Request, kind: AnalysisKind, file: Optional[UploadFile]):
    service = _service(request)
    data = await read_upload(file, _settings(request).max_upload_bytes, service.too_large_message())
    fn = service.analyze_image if kind == AnalysisKind.IMAGE else service.analyze_video
    filename = file.filename if file else None
    content_type = file.content_type if file else None
    return await run_analysis(request, kind, fn, data, content_type, filename)


def _json_outcome(outcome) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(outcome), content=outcome.to_payload())


# -------- Routes: pagina HTML ------------------------------------------------

@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    return HTMLResponse(render_page(_settings(request).max_upload_bytes))


@router.post("/verify", response_class=HTMLResponse)
async def verify(
    request: Request,
    kind: str = Form(...),
    url: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
) -> HTMLResponse:
    settings = _settings(request)
    service = _service(request)

    def page(status: int, **kw) -> HTMLResponse:
        return HTMLResponse(render_page(settings.max_upload_bytes, url=url or "", text=text or "", **kw),
                            status_code=status)

    try:
        analysis_kind = AnalysisKind((kind or "").upper())
    except ValueError:
        return page(400, error="Tipo di analisi non supportato.")

    try:
        if analysis_kind == AnalysisKind.URL:
            outcome = await run_analysis(request, analysis_kind, service.analyze_url, url)
        elif analysis_kind == AnalysisKind.TEXT:
            outcome = await run_analysis(request, analysis_kind, service.analyze_text, text)
        else:
            outcome = await _analyze_upload(request, analysis_kind, file)
    except InputError as e:
        return page(e.status_code, error=e.message)

    return page(status_code_for(outcome), outcome=outcome)


# -------- Routes: API JSON ---------------------------------------------------

@router.post("/api/analyze/url")
async def api_analyze_url(request: Request, payload: UrlPayload) -> JSONResponse:
    outcome = await run_analysis(request, AnalysisKind.URL, _service(request).analyze_url, payload.url)
    return _json_outcome(outcome)


@router.post("/api/analyze/text")
async def api_analyze_text(request: Request, payload: TextPayload) -> JSONResponse:
    outcome = await run_analysis(request, AnalysisKind.TEXT, _service(request).analyze_text, payload.text)
    return _json_outcome(outcome)


@router.post("/api/analyze/image")
async def api_analyze_image(request: Request, file: UploadFile = File(...)) -> JSONResponse:
    return _json_outcome(await _analyze_upload(request, AnalysisKind.IMAGE, file))


@router.post("/api/analyze/video")
async def api_analyze_video(request: Request, file: UploadFile = File(...)) -> JSONResponse:
    return _json_outcome(await _analyze_upload(request, AnalysisKind.VIDEO, file))


@router.get("/healthz")
async def healthz(request: Request) -> JSONResponse:
    return JSONResponse({"ok": True, "version": _settings(request).service_version})


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    configured = bool(getattr(_service(request).client, "configured", False))
    return JSONResponse({"ok": True, "gemini_configured": configured, "version": _settings(request).service_version})


# -------- App ----------------------------------------------------------------

async def input_error_handler(request: Request, exc: InputError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("errore non gestito su %s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error", "error": str(exc)})


def create_app(settings: Optional[Settings] = None, service: Optional[AnalysisService] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    if service is None:
        service = AnalysisService(GeminiClient(settings), settings)

    app = FastAPI(title="AI Content Verifier", version=settings.service_version)
    app.state.settings = settings
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_exception_handler(InputError, input_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
