"""Runtime settings, read from the environment."""

import os
from dataclasses import dataclass

DEFAULT_AI_MODEL = "gpt-4o-mini"
DEFAULT_AI_TEMPERATURE = 0.1  # low temperature for deterministic formatting
DEFAULT_APP_NAME = "qrcraft"
DEFAULT_FALLBACK_PAYLOAD = "https://example.com"
MATRIX_BACKENDS = ("qrcode", "segno")


@dataclass(frozen=True)
class Settings:
    api_key: str | None = None
    ai_model: str = DEFAULT_AI_MODEL
    ai_temperature: float = DEFAULT_AI_TEMPERATURE
    matrix_backend: str = "qrcode"
    app_name: str = DEFAULT_APP_NAME
    fallback_payload: str = DEFAULT_FALLBACK_PAYLOAD
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from ``QRCRAFT_*`` variables (``OPENAI_API_KEY`` as key fallback)."""
        env = os.environ if environ is None else environ

        backend = env.get("QRCRAFT_MATRIX_BACKEND", "qrcode").strip().lower()
        if backend not in MATRIX_BACKENDS:
            raise ValueError(f"QRCRAFT_MATRIX_BACKEND must be one of {MATRIX_BACKENDS}, got {backend!r}")

        temperature = env.get("QRCRAFT_AI_TEMPERATURE")
        return cls(
            api_key=env.get("QRCRAFT_API_KEY") or env.get("OPENAI_API_KEY") or None,
            ai_model=env.get("QRCRAFT_AI_MODEL", DEFAULT_AI_MODEL),
            ai_temperature=float(temperature) if temperature else DEFAULT_AI_TEMPERATURE,
            matrix_backend=backend,
            app_name=env.get("QRCRAFT_APP_NAME", DEFAULT_APP_NAME),
            fallback_payload=env.get("QRCRAFT_FALLBACK_PAYLOAD", DEFAULT_FALLBACK_PAYLOAD),
            log_level=env.get("QRCRAFT_LOG_LEVEL", "INFO"),
            log_file=env.get("QRCRAFT_LOG_FILE") or None,
        )
