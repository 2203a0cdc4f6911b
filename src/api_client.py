"""
api_client.py – HTTP client for the analyze gateway.

One POST per analysis, no retries and no timeout: the gateway answers when
Gemini does.
"""
from __future__ import annotations

from typing import Any

import requests

from src.constants import ANALYZE_PATH, HEALTH_PATH
from src.schemas import BillData


class AnalyzeRequestError(RuntimeError):
    """The gateway answered with a non-2xx status."""

    def __init__(self, status_code: int, text: str) -> None:
        super().__init__(f"Server error: {status_code} {text}")
        self.status_code = status_code
        self.text = text


def analyze_bill(image: str, base_url: str, session: requests.Session | None = None) -> BillData:
    """
    Send an image data URI to ``POST /api/analyze`` and return the parsed bill.

    Raises
    ------
    AnalyzeRequestError
        On any non-2xx response.
    pydantic.ValidationError
        If the response body is not a valid BillData.
    """
    http = session or requests
    resp = http.post(f"{base_url}{ANALYZE_PATH}", json={"image": image}, timeout=None)
    if not resp.ok:
        raise AnalyzeRequestError(resp.status_code, resp.text)
    return BillData.model_validate(resp.json())


def check_health(base_url: str, timeout: float = 10.0) -> dict[str, Any]:
    """Return the ``GET /api/health`` payload."""
    resp = requests.get(f"{base_url}{HEALTH_PATH}", timeout=timeout)
    resp.raise_for_status()
    return resp.json()
