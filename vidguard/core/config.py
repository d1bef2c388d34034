"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the upload UI.
    cors_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Intake ────────────────────────────────────────────────────
    # 100 MiB; a file of exactly this size is still accepted.
    max_upload_bytes: int = 100 * 1024 * 1024

    # ─── Analysis pipeline ─────────────────────────────────────────
    # Delay before each of the seven progress stages fires.
    stage_delay_seconds: float = 0.8

    # Probability that a simulated run returns a deepfake verdict.
    deepfake_probability: float = Field(0.4, ge=0.0, le=1.0)

    model_label: str = "DeepFake-CNN-v3.1"
    processing_time_seconds: float = 4.2

    # What happens when a session starts a run while another is active.
    reentry_policy: Literal["cancel_previous", "reject"] = "cancel_previous"

    # Set to get reproducible verdicts (demos, screenshots). None = OS entropy.
    synth_seed: int | None = None

    # ─── Sessions ──────────────────────────────────────────────────
    # In-memory session table cap; least recently used sessions are evicted.
    max_sessions: int = Field(1000, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
        protected_namespaces=(),  # model_label is ours, not pydantic's
    )


# Module-level singleton — import this everywhere instead of instantiating Settings()
settings = Settings()
