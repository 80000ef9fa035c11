"""
Application configuration.

Loads settings from environment variables with sensible defaults.
Misconfiguration is fatal: ``get_settings()`` raises ``ConfigurationError``
so the app refuses to start instead of failing translations one by one.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when settings are missing or inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from environment (prefix ``UITRANSLATE_``)."""

    model_config = SettingsConfigDict(
        env_prefix="UITRANSLATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    language_cookie: str = "preferred-language"

    # ==========================================================================
    # Languages
    # ==========================================================================

    default_language: str = "en"

    # ==========================================================================
    # Storage
    # ==========================================================================

    storage_type: str = "memory"  # memory, json
    json_file_path: str = ""
    json_auto_save: bool = True

    enable_memory_cache: bool = True
    memory_cache_duration_minutes: int = 60

    # ==========================================================================
    # AI / LLM
    # ==========================================================================

    ai_provider: str = "dspy"  # dspy, ollama

    # DSPy-backed LLM
    llm_provider: str = "gemini"
    llm_model: str = ""
    llm_api_key: str = ""

    # Ollama
    ollama_base_url: str = "http://localhost:11434/"
    ollama_model: str = "llama3.1"
    ollama_timeout_seconds: float = 60.0

    # Chunking decorator
    chunking_enabled: bool = False
    chunk_length: int = 800
    chunk_overlap: int = 0
    chunk_lookback: int = 40
    chunk_min_fragment: int = 10

    # ==========================================================================
    # Background jobs
    # ==========================================================================

    dedupe_jobs: bool = True

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Validation
    # ==========================================================================

    @field_validator("default_language")
    @classmethod
    def _normalize_language(cls, value: str) -> str:
        return value.strip().lower()

    @model_validator(mode="after")
    def _check_consistency(self) -> Settings:
        if self.storage_type not in ("memory", "json"):
            raise ConfigurationError(f"Unknown storage type: {self.storage_type}")
        if self.storage_type == "json" and not self.json_file_path.strip():
            raise ConfigurationError("json_file_path is required when storage_type is 'json'")
        if self.ai_provider not in ("dspy", "ollama"):
            raise ConfigurationError(f"Unknown AI provider: {self.ai_provider}")
        if self.ai_provider == "ollama" and not self.ollama_base_url.strip():
            raise ConfigurationError("ollama_base_url is required when ai_provider is 'ollama'")
        if not self.default_language.strip():
            raise ConfigurationError("default_language must not be empty")
        if self.memory_cache_duration_minutes < 0:
            raise ConfigurationError("memory_cache_duration_minutes must be >= 0")
        if self.chunking_enabled and self.chunk_length < 1:
            raise ConfigurationError("chunk_length must be >= 1 when chunking is enabled")
        return self

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cache_ttl_seconds(self) -> int:
        return self.memory_cache_duration_minutes * 60


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: if a value is missing, malformed or inconsistent.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()
