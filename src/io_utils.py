"""
io_utils.py – Data-URI helpers, input discovery, and artefact writers.

Data URIs have the form ``data:<mime>;base64,<payload>``.  Strings without
that prefix are treated as a bare base64 payload.

Artefacts are written to *outdir* and parents are created automatically via
``Path.mkdir(parents=True)``.
"""
from __future__ import annotations

import base64
import json
import re
from pathlib import Path
from typing import Any

from src.constants import (
    ALLOWED_EXTENSIONS,
    DATA_URI_PATTERN,
    DEFAULT_IMAGE_MIME_TYPE,
    FALLBACK_MIME_TYPE,
    IMAGE_MIME_TYPES,
)

_DATA_URI_RE = re.compile(DATA_URI_PATTERN, re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")
_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


# ─────────────────────────────────────────────────────────────
# Data URIs
# ─────────────────────────────────────────────────────────────

def to_data_uri(raw: bytes, mime_type: str) -> str:
    """Encode *raw* bytes as ``data:<mime_type>;base64,<payload>``."""
    payload = base64.b64encode(raw).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def split_data_uri(value: str) -> tuple[str, str]:
    """
    Split a data URI into ``(mime_type, base64_payload)``.

    A string without the ``data:<mime>;base64,`` prefix is returned whole as
    the payload, with ``image/jpeg`` assumed as its MIME type.
    """
    match = _DATA_URI_RE.match(value)
    if match:
        return match.group(1), match.group(2)
    return DEFAULT_IMAGE_MIME_TYPE, value


def decode_payload(payload: str) -> bytes:
    """
    Decode a base64 payload.

    Line breaks and other whitespace are ignored, the URL-safe alphabet
    (``-``/``_``) is accepted alongside the standard one, and missing ``=``
    padding is restored.

    Raises
    ------
    binascii.Error
        If *payload* still is not valid base64 after that clean-up.
    """
    compact = _WHITESPACE_RE.sub("", payload).translate(_URLSAFE_TO_STANDARD)
    compact += "=" * (-len(compact) % 4)
    return base64.b64decode(compact, validate=True)


def guess_mime_type(path: Path) -> str:
    """MIME type for an image file, from its suffix."""
    return IMAGE_MIME_TYPES.get(path.suffix.lower(), FALLBACK_MIME_TYPE)


# ─────────────────────────────────────────────────────────────
# Input discovery
# ─────────────────────────────────────────────────────────────

def collect_files(input_dir: Path) -> list[Path]:
    """
    Collect all image files from a directory (non-recursive).

    Returns
    -------
    list[Path]
        Sorted list of file paths with allowed extensions.
    """
    files = [
        f
        for f in input_dir.iterdir()
        if f.is_file() and f.suffix.lower() in ALLOWED_EXTENSIONS
    ]
    return sorted(files)


# ─────────────────────────────────────────────────────────────
# Artefact writers
# ─────────────────────────────────────────────────────────────

def write_text(path: Path, text: str) -> Path:
    """Write *text* to *path*, creating parents as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    # utf-8-sig so spreadsheet apps pick up the € sign correctly.
    path.write_text(text, encoding="utf-8-sig")
    return path


def write_json(path: Path, data: Any, indent: int = 2) -> Path:
    """Serialise *data* to JSON at *path*, creating parents as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=indent, ensure_ascii=False, default=str)
    return path
