from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class Env(Enum):
    local = "local"
    dev = "dev"
    prod = "prod"


class LLMBackend(Enum):
    gemini = "gemini"
    openai = "openai"


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: Env = Env.local
    log_level: str = "INFO"
    db_url: str = "sqlite+aiosqlite:///plate.db"

    llm_backend: LLMBackend = LLMBackend.gemini
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    spoonacular_api_key: str | None = None

    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    max_requests_per_day: int = 20
    upstream_timeout: float = 15
    search_cache_ttl: float = 300
    llm_cache_ttl: float = 600
