import os
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.llm.entity.provider_config import ProviderCandidate


DEFAULT_FALLBACK_CANDIDATES = "gemini:gemini-2.0-flash,gemini:gemini-2.5-flash,gemini:gemini-2.0-flash-exp"


class Settings(BaseSettings):
    """Global configuration for environment variables."""

    APP_NAME: str = "Business Mind"
    ENV: str = os.getenv("ENV", "development")

    # Server config
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", 8080))

    # API Keys. API_KEY is the legacy name for the Gemini key.
    GEMINI_API_KEY: str | None = Field(default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"))
    GEMINI_FREE_ENDPOINT: str | None = os.getenv("GEMINI_FREE_ENDPOINT")
    GEMINI_LEGACY_MODELS: str = os.getenv("GEMINI_LEGACY_MODELS", "gemini-pro,gemini-1.0-pro")
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")
    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")
    GROQ_API_KEY: str | None = os.getenv("GROQ_API_KEY")
    GROQ_BASE_URL: str = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
    DEEPSEEK_API_KEY: str | None = os.getenv("DEEPSEEK_API_KEY")
    DEEPSEEK_BASE_URL: str = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com")
    ANTHROPIC_API_KEY: str | None = os.getenv("ANTHROPIC_API_KEY")
    OLLAMA_ENABLED: bool = os.getenv("OLLAMA_ENABLED", "false").lower() in ("1", "true")
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

    # Fallback routing
    FALLBACK_CANDIDATES: str = os.getenv("FALLBACK_CANDIDATES", DEFAULT_FALLBACK_CANDIDATES)
    ABORT_ON_RATE_LIMIT: bool = os.getenv("ABORT_ON_RATE_LIMIT", "false").lower() in ("1", "true")
    CANDIDATE_TIMEOUT_MS: int = int(os.getenv("CANDIDATE_TIMEOUT_MS", "30000"))
    TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.7"))
    MAX_TOKENS: int = int(os.getenv("MAX_TOKENS", "2048"))
    DIAG_MODELS: str = os.getenv("DIAG_MODELS", "")

    # Client side: where the chat service reaches the proxy. Empty means in-process.
    PROXY_URL: str | None = os.getenv("PROXY_URL")
    PROXY_TIMEOUT_S: float = float(os.getenv("PROXY_TIMEOUT_S", "120"))

    # Local state store
    REDIS_HOST: str | None = os.getenv("REDIS_HOST")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_PASSWORD: str | None = os.getenv("REDIS_PASSWORD")
    UPSTASH_REDIS_REST_URL: str | None = os.getenv("UPSTASH_REDIS_REST_URL")
    UPSTASH_REDIS_REST_TOKEN: str | None = os.getenv("UPSTASH_REDIS_REST_TOKEN")
    STATE_NAMESPACE: str = os.getenv("STATE_NAMESPACE", "")

    # Remote sync (Supabase Postgres)
    SYNC_ENABLED: bool = os.getenv("SYNC_ENABLED", "true").lower() in ("1", "true")
    POSTGRES_HOST: str | None = os.getenv("POSTGRES_HOST")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    POSTGRES_USER: str | None = os.getenv("POSTGRES_USER")
    POSTGRES_PASSWORD: str | None = os.getenv("POSTGRES_PASSWORD")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "postgres")

    # Debug
    DEBUG: bool = os.getenv("DEBUG", "True").lower() in ("1", "true")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow", populate_by_name=True)

    def fallback_candidates(self) -> List[ProviderCandidate]:
        """Parse FALLBACK_CANDIDATES ("provider:model,...") into ranked candidates."""
        return parse_candidates(self.FALLBACK_CANDIDATES)

    def diag_candidates(self) -> List[ProviderCandidate]:
        if not self.DIAG_MODELS.strip():
            return self.fallback_candidates()
        return parse_candidates(self.DIAG_MODELS)

    def legacy_gemini_models(self) -> set[str]:
        return {m.strip() for m in self.GEMINI_LEGACY_MODELS.split(",") if m.strip()}

    def postgres_configured(self) -> bool:
        return bool(self.POSTGRES_HOST and self.POSTGRES_USER and self.POSTGRES_PASSWORD)


def parse_candidates(raw: str) -> List[ProviderCandidate]:
    candidates: List[ProviderCandidate] = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        provider_id, sep, model_id = entry.partition(":")
        if not sep or not provider_id.strip() or not model_id.strip():
            raise ValueError(f"Invalid fallback candidate '{entry}', expected 'provider:model'")
        candidates.append(ProviderCandidate(
            provider_id=provider_id.strip().lower(),
            model_id=model_id.strip(),
            priority=len(candidates),
        ))
    return candidates


settings = Settings()
