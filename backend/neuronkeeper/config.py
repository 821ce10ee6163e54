"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache) — single instance per process
    - Canister ids are validated as textual principals at startup, not on first use

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Defaults target the public mainnet canisters and a local gateway: works out-of-the-box
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from neuronkeeper.core.domain_types import Principal


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Gateway
    gateway_url: str = "http://localhost:8080"
    gateway_timeout_seconds: float = 30.0
    gateway_max_retries: int = 3
    gateway_base_delay_ms: int = 500
    gateway_max_delay_ms: int = 10_000

    # Canisters
    governance_canister_id: str = "rrkah-fqaaa-aaaaa-aaaaq-cai"
    ledger_canister_id: str = "ryjl3-tyaaa-aaaaa-aaaba-cai"

    @field_validator("governance_canister_id", "ledger_canister_id")
    @classmethod
    def check_principal(cls, v: str) -> str:
        return Principal.from_text(v).to_text()

    # Workflows
    settlement_delay_seconds: float = 2.0
    nonce_scan_limit: int = 100
    list_neurons_limit: int = 100

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
