"""
config.py – Load and validate required environment variables.

All configuration is loaded from environment variables (or a .env file
at the project root).  Call `get_config()` once at startup to obtain a
validated Config object.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from src.constants import DEFAULT_API_URL, DEFAULT_GEMINI_MODEL

# Project root (the directory holding service.py and bill_api/).
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# override=False so values exported in the shell (or by a test) win over .env.
_env_file = _PROJECT_ROOT / ".env"
if _env_file.exists():
    load_dotenv(_env_file, override=False)


@dataclass
class Config:
    """Validated runtime configuration."""

    gemini_api_key: str
    gemini_model: str = DEFAULT_GEMINI_MODEL
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    def __repr__(self) -> str:
        # Never print the key itself.
        return (
            f"Config(gemini_model={self.gemini_model!r}, "
            f"cors_origins={self.cors_origins!r}, log_level={self.log_level!r})"
        )


_REQUIRED_VARS = [
    "GEMINI_API_KEY",
]


def has_gemini_api_key() -> bool:
    """Return True when the provider credential is present in the environment."""
    return bool(os.environ.get("GEMINI_API_KEY"))


def get_config(gemini_model: str | None = None) -> Config:
    """
    Read environment variables, validate presence, and return a Config.

    Parameters
    ----------
    gemini_model:
        Override the Gemini model name (e.g. from CLI flag).

    Raises
    ------
    EnvironmentError
        If any required variable is missing.
    """
    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise EnvironmentError(
            f"Missing required environment variable(s): {', '.join(missing)}\n"
            "Copy .env.example → .env and fill in the values."
        )

    cfg = Config(gemini_api_key=os.environ["GEMINI_API_KEY"])

    cfg.gemini_model = gemini_model or os.environ.get("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL

    origins = os.environ.get("CORS_ORIGINS", "*")
    cfg.cors_origins = [o.strip() for o in origins.split(",") if o.strip()] or ["*"]

    cfg.log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    return cfg


def get_api_url(override: str | None = None) -> str:
    """Base URL of the analysis gateway used by the CLI client."""
    url = override or os.environ.get("BILL_API_URL") or DEFAULT_API_URL
    return url.rstrip("/")
