"""
gemini_client.py – Wrapper around the Google Generative AI (Gemini) SDK.

Responsibilities
----------------
* Configure the SDK with the API key from Config.
* Build one ``GenerativeModel`` bound to the bill response schema; the
  gateway reuses it for every request.
* Send a prompt plus an inline image and return the raw response text.
* Strip markdown code fences (```json ... ```) and parse the JSON object.

Nothing here retries: one request, one outcome.  Errors raised by the SDK
propagate to the caller.
"""
from __future__ import annotations

import json
import re
from typing import Any

import google.generativeai as genai

from src.config import Config
from src.constants import GEMINI_RESPONSE_MIME_TYPE, GEMINI_TEMPERATURE
from src.schemas import BILL_ANALYSIS_SCHEMA


def configure_gemini(config: Config) -> None:
    """
    Initialise the Gemini SDK with the API key from config.

    Call this once at startup before building a model.
    """
    genai.configure(api_key=config.gemini_api_key)


def build_model(config: Config, response_schema: dict[str, Any] | None = None) -> Any:
    """
    Configure the SDK and return a ``GenerativeModel`` for bill extraction.

    JSON output is constrained by *response_schema* (default:
    ``BILL_ANALYSIS_SCHEMA``) and sampling runs at a low, fixed temperature.

    Note: ``genai.configure`` stores the API key in process-global SDK state,
    so every model built in this process shares the last configured key.
    Callers still receive the model explicitly and pass it on; nothing here
    keeps a module-level model.
    """
    configure_gemini(config)
    return genai.GenerativeModel(
        model_name=config.gemini_model,
        generation_config=genai.types.GenerationConfig(
            temperature=GEMINI_TEMPERATURE,
            response_mime_type=GEMINI_RESPONSE_MIME_TYPE,
            response_schema=response_schema or BILL_ANALYSIS_SCHEMA,
        ),
    )


def response_text(response: Any) -> str:
    """
    Return the text of a Gemini response, or "" if it carries none.

    ``response.text`` raises ``ValueError`` when the candidate has no text
    parts (e.g. blocked by safety filters); that counts as an empty answer.
    """
    try:
        return response.text or ""
    except ValueError:
        return ""


def generate_with_image(model: Any, prompt: str, mime_type: str, image_bytes: bytes) -> str:
    """
    Send *prompt* and one inline image to *model* and return the response text.

    Returns "" when the model answered without any text.
    """
    response = model.generate_content(
        [prompt, {"mime_type": mime_type, "data": image_bytes}],
    )
    return response_text(response)


def strip_code_fences(raw: str) -> str:
    """
    Remove markdown code fences so the string can be parsed as JSON.

    Handles:
    * ```json ... ```
    * ``` ... ```
    * bare JSON (no fences)
    """
    # Match an optional ```[lang] at the start and ``` at the end.
    pattern = r"^```(?:json)?\s*\n?(.*?)\n?```\s*$"
    match = re.search(pattern, raw.strip(), re.DOTALL | re.IGNORECASE)
    if match:
        return match.group(1).strip()
    return raw.strip()


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Parse *text* as a JSON object.

    Raises
    ------
    json.JSONDecodeError
        If *text* is not valid JSON.
    ValueError
        If the JSON is valid but not an object.
    """
    data = json.loads(strip_code_fences(text))
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data
