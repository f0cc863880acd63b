"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, PositiveFloat, PositiveInt, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from summarizer_gateway.domain.entities import EscalationPolicy, WindowPolicy


class RateWindowSettings(BaseModel):
    """``{window_seconds, max_requests}`` for one counter kind."""

    window_seconds: PositiveFloat
    max_requests: PositiveInt

    def to_policy(self) -> WindowPolicy:
        return WindowPolicy(window_seconds=self.window_seconds, max_requests=self.max_requests)


_SCANNER_USER_AGENTS = [
    "sqlmap",
    "nmap",
    "nikto",
    "dirbuster",
    "gobuster",
    "masscan",
    "zgrab",
    "acunetix",
    "nessus",
    "openvas",
    "qualysguard",
    "rapid7",
    "tenable",
]


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Summarization
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    max_readme_tokens: int = 12_000

    # Repository host
    github_token: SecretStr | None = None
    repository_host: str = "github.com"
    http_timeout_seconds: float = 15.0

    # Key store
    key_store_backend: Literal["memory", "supabase"] = "memory"
    seed_api_keys: dict[str, str] = {}
    supabase_url: str | None = None
    supabase_key: SecretStr | None = None
    supabase_table: str = "api_keys"
    key_store_tracks_last_used: bool = True
    demo_api_keys: list[str] = ["Demo_API_Key"]

    # Admission
    key_rate_limit: RateWindowSettings = RateWindowSettings(window_seconds=60, max_requests=10)
    address_rate_limit: RateWindowSettings = RateWindowSettings(
        window_seconds=900, max_requests=100
    )
    violation_threshold: PositiveInt = 3
    violation_lookback_seconds: PositiveFloat = 600
    block_seconds: PositiveFloat = 3600
    max_tracked_identities: PositiveInt = 10_000

    # Monitoring
    blocked_user_agents: list[str] = _SCANNER_USER_AGENTS
    slow_request_seconds: float = 5.0

    cors_allow_origins: list[str] = []

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    def escalation_policy(self) -> EscalationPolicy:
        return EscalationPolicy(
            violation_threshold=self.violation_threshold,
            lookback_seconds=self.violation_lookback_seconds,
            block_seconds=self.block_seconds,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
