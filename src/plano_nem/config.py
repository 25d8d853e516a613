"""
config.py — Central settings for the Plano Didáctico NEM generator
==================================================================
All configuration is loaded from environment variables / .env file.
Copy .env.example → .env and fill in your values.

Live mode activates automatically when GEMINI_API_KEY contains a real
(non-placeholder) value and FORCE_MOCK_MODE is not set.  The export core
never calls get_settings() on its own when a Settings object is passed in.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env into os.environ (no-op if already set, safe to call multiple times)
load_dotenv(override=False)

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_FOOTER_TEMPLATE = "Hoja {page} de {total} | Planeador Maestro NEM Pro+"


# ─── Helpers ────────────────────────────────────────────────────────────────

def _is_placeholder(value: str) -> bool:
    """Return True if the value looks like an unfilled template placeholder."""
    return (
        not value
        or "<" in value
        or value.startswith("your-")
        or value == "PLACEHOLDER"
        or value.lower() == "undefined"
    )


# ─── Gemini (OpenAI-compatible endpoint) ─────────────────────────────────────

@dataclass(frozen=True)
class GeminiConfig:
    api_key:     str
    model:       str
    base_url:    str
    temperature: float
    timeout_s:   float

    @property
    def is_configured(self) -> bool:
        """True when the key is a real value (keys shorter than 10 chars never are)."""
        return not _is_placeholder(self.api_key) and len(self.api_key) >= 10


# ─── Export ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ExportConfig:
    filename_prefix: str
    title_chars:     int
    theme:           str
    footer_template: str
    output_dir:      str


# ─── App-level settings ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class AppConfig:
    force_mock_mode:   bool
    log_level:         str
    max_sessions:      int
    max_attachment_mb: float


# ─── Master settings object ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    gemini: GeminiConfig
    export: ExportConfig
    app:    AppConfig

    @property
    def live_mode(self) -> bool:
        """True when the Gemini key is real and FORCE_MOCK_MODE is false."""
        return self.gemini.is_configured and not self.app.force_mock_mode

    def status_summary(self) -> dict[str, str]:
        """Return a dict of service → status badge for the CLI."""
        def badge(ok: bool) -> str:
            return "🟢 Live" if ok else "⚪ Not configured"

        return {
            "Gemini API":      badge(self.gemini.is_configured),
            "Generation mode": "🟢 Live" if self.live_mode else "🟡 Mock",
            "Export theme":    self.export.theme,
            "Output folder":   self.export.output_dir,
        }


def get_settings() -> Settings:
    """Load all configuration from environment variables."""
    _str   = lambda k, d="": os.getenv(k, d).strip()
    _int   = lambda k, d=0: int(os.getenv(k, str(d)) or d)
    _float = lambda k, d=0.0: float(os.getenv(k, str(d)) or d)
    _bool  = lambda k, d=False: os.getenv(k, str(d)).lower() in ("1", "true", "yes")

    return Settings(
        gemini=GeminiConfig(
            api_key     = _str("GEMINI_API_KEY") or _str("API_KEY"),
            model       = _str("GEMINI_MODEL", "gemini-3-flash-preview"),
            base_url    = _str("GEMINI_BASE_URL", GEMINI_OPENAI_BASE_URL),
            temperature = _float("GEMINI_TEMPERATURE", 0.1),
            timeout_s   = _float("GEMINI_TIMEOUT_S", 120.0),
        ),
        export=ExportConfig(
            filename_prefix = _str("EXPORT_FILENAME_PREFIX", "Planeacion_NEM"),
            title_chars     = _int("EXPORT_TITLE_CHARS", 15),
            theme           = _str("EXPORT_THEME", "nem"),
            footer_template = _str("EXPORT_FOOTER_TEMPLATE", DEFAULT_FOOTER_TEMPLATE),
            output_dir      = _str("EXPORT_OUTPUT_DIR", "."),
        ),
        app=AppConfig(
            force_mock_mode   = _bool("FORCE_MOCK_MODE", False),
            log_level         = _str("LOG_LEVEL", "INFO").upper(),
            max_sessions      = _int("MAX_SESSIONS", 30),
            max_attachment_mb = _float("MAX_ATTACHMENT_MB", 10.0),
        ),
    )
