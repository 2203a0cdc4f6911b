"""
main.py – FastAPI gateway for the energy-bill analyser.

Start:
    cd /path/to/project
    uvicorn bill_api.main:create_app --factory --reload --port 8000
    python -m bill_api.main        # same, port from $PORT (default 8000)

The Gemini model handle is built once in ``create_app`` from GEMINI_API_KEY;
the app refuses to start without it.  Analyze logic runs in-process via
``service.handle_analyze``.
"""
from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from service import AnalyzeError, ExtractionError, handle_analyze
from src.config import Config, get_config, has_gemini_api_key
from src.constants import ANALYZE_PATH, HEALTH_PATH, MSG_INTERNAL_ERROR
from src.gemini_client import build_model
from src.schemas import BILL_ANALYSIS_SCHEMA, BillData, check_schema_matches_model

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)-8s %(message)s",
)
log = logging.getLogger(__name__)


def get_model(request: Request) -> Any:
    """Dependency: the shared Gemini model stored on app.state."""
    return request.app.state.model


async def _read_json_body(request: Request) -> Any:
    """Decoded JSON body, or None when the body is missing or not JSON."""
    try:
        return await request.json()
    except ValueError:
        return None


def create_app(config: Config | None = None, model: Any | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    config:
        Runtime configuration; read from the environment when omitted.
    model:
        Pre-built Gemini model (tests inject a stub here).  When omitted the
        model is built from *config*.

    Raises
    ------
    EnvironmentError
        If no model is injected and GEMINI_API_KEY is not set.
    SchemaMismatchError
        If the response schema no longer matches ``BillData``.
    """
    check_schema_matches_model(BILL_ANALYSIS_SCHEMA, BillData)

    if model is None:
        config = config or get_config()
        model = build_model(config)
        log.info("Gemini model ready: %s", config.gemini_model)

    cors_origins = config.cors_origins if config else ["*"]

    app = FastAPI(
        title="BillAI – Analyze API",
        version="1.0.0",
        description="Structured extraction of Italian energy bills via Gemini.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    app.state.model = model

    @app.exception_handler(AnalyzeError)
    async def analyze_error_handler(_request: Request, exc: AnalyzeError):
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.post(ANALYZE_PATH, summary="Extract structured figures from a bill image")
    async def analyze(request: Request, gemini_model: Any = Depends(get_model)):
        """
        Body: ``{"image": "<data URI or base64>"}``.
        Returns the BillData JSON produced by Gemini.
        """
        body = await _read_json_body(request)
        try:
            return await asyncio.to_thread(handle_analyze, body, gemini_model, request.method)
        except AnalyzeError:
            raise
        except Exception as exc:
            log.error("[analyze] unexpected error: %s", exc, exc_info=True)
            raise ExtractionError(str(exc) or MSG_INTERNAL_ERROR) from exc

    @app.get(HEALTH_PATH, summary="Liveness and credential presence")
    def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "gemini_api_key": "set" if has_gemini_api_key() else "missing",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 8000))
    log.info("Starting BillAI gateway on http://localhost:%d", port)
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
