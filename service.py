"""
service.py – Callable analyze logic for the bill extraction gateway.

Used by the FastAPI backend (bill_api) for POST /api/analyze.  Every call
is independent: validate the body, split the data URI, make exactly one
Gemini request, parse and validate the JSON.  Failures are raised as
``AnalyzeError`` subclasses carrying the HTTP status the caller should use.
"""
from __future__ import annotations

import binascii
import json
import logging
from typing import Any

from pydantic import ValidationError

from src.constants import MSG_EMPTY_RESPONSE, MSG_INTERNAL_ERROR, MSG_MISSING_IMAGE
from src.extractors.bill_extractor import extract_bill
from src.gemini_client import parse_json_object
from src.io_utils import decode_payload, split_data_uri
from src.schemas import BillData

log = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class AnalyzeError(RuntimeError):
    """Base class for gateway failures; ``status_code`` is the HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingImageError(AnalyzeError):
    status_code = 400


class EmptyResponseError(AnalyzeError):
    """Gemini answered without any text – an upstream failure."""

    status_code = 502


class ExtractionError(AnalyzeError):
    """Gemini raised, or its output could not be parsed / validated."""

    status_code = 500


# ─────────────────────────────────────────────────────────────────────────────
# Diagnostics
# ─────────────────────────────────────────────────────────────────────────────

def _log_request_shape(method: str, body: Any) -> None:
    """Log method and body size; never raises."""
    try:
        size = len(json.dumps(body, default=str))
        log.info("[analyze] request method: %s", method)
        log.info("[analyze] body size: %d bytes", size)
    except Exception as exc:  # noqa: BLE001
        log.debug("[analyze] could not measure request body: %s", exc)


# ─────────────────────────────────────────────────────────────────────────────
# Analyze
# ─────────────────────────────────────────────────────────────────────────────

def get_image_field(body: Any) -> str:
    """Return the non-empty ``image`` string from *body* or raise MissingImageError."""
    image = body.get("image") if isinstance(body, dict) else None
    if not image or not isinstance(image, str):
        log.warning("[analyze] missing image in body")
        raise MissingImageError(MSG_MISSING_IMAGE)
    return image


def handle_analyze(body: Any, model: Any, method: str = "POST") -> dict[str, Any]:
    """
    Run one Gemini extraction for the image in *body*.

    Parameters
    ----------
    body:
        Decoded JSON request body; must contain ``image`` (a data URI or
        bare base64 string).
    model:
        The shared ``GenerativeModel`` built at start-up.
    method:
        HTTP method, for logging only.

    Returns
    -------
    dict
        The parsed model output, exactly as Gemini returned it, after it has
        been validated against ``BillData``.

    Raises
    ------
    MissingImageError
        No image in the body.  Gemini is not called.
    EmptyResponseError
        Gemini returned no text.
    ExtractionError
        Gemini raised, or the output is not valid JSON / not a valid BillData.
    """
    _log_request_shape(method, body)

    image = get_image_field(body)
    log.info("[analyze] image size: %d bytes", len(image))

    mime_type, payload = split_data_uri(image)
    log.info("[analyze] mime type: %s", mime_type)

    try:
        image_bytes = decode_payload(payload)
    except (binascii.Error, ValueError) as exc:
        log.error("[analyze] image is not valid base64: %s", exc)
        raise ExtractionError(str(exc) or MSG_INTERNAL_ERROR) from exc

    log.info("[analyze] calling Gemini API…")
    try:
        text = extract_bill(model, image_bytes, mime_type)
    except Exception as exc:
        log.error("[analyze] Gemini call failed: %s", exc, exc_info=True)
        raise ExtractionError(str(exc) or MSG_INTERNAL_ERROR) from exc

    log.info("[analyze] Gemini response received")
    if not text.strip():
        log.error("[analyze] empty response from Gemini")
        raise EmptyResponseError(MSG_EMPTY_RESPONSE)

    try:
        parsed = parse_json_object(text)
        BillData.model_validate(parsed)
    except (json.JSONDecodeError, ValueError, ValidationError) as exc:
        log.error("[analyze] could not parse Gemini response: %s", exc)
        raise ExtractionError(str(exc) or MSG_INTERNAL_ERROR) from exc

    log.info(
        "[analyze] response parsed successfully (%d history months)",
        len(parsed.get("storico_consumi", [])),
    )
    return parsed
