from __future__ import annotations

import os
from functools import lru_cache
from dotenv import load_dotenv, find_dotenv

_env_path = find_dotenv(".env") or ".env"
load_dotenv(_env_path, override=False)


def _split_csv(raw: str) -> list[str]:
    return [o.strip().rstrip("/") for o in raw.split(",") if o.strip()]


class Settings:
    """Central configuration (env driven)."""

    def __init__(self) -> None:
        # Supabase
        raw_url = os.getenv("SUPABASE_URL", "")
        self.supabase_url: str = raw_url.rstrip("/")
        self.supabase_anon_key: str = os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY", "")
        self.supabase_key: str = self.supabase_anon_key  # alias
        self.supabase_service_role_key: str = (
            os.getenv("SUPABASE_SERVICE_ROLE_KEY")
            or os.getenv("SUPABASE_SERVICE_KEY")
            or ""
        )
        self.supabase_jwt_secret: str = os.getenv("SUPABASE_JWT_SECRET", "")
        # Database (migrations + health probe)
        self.database_url: str = os.getenv("DATABASE_URL", "")
        # LLM (OpenAI-compatible chat completions)
        self.openrouter_api_key: str = os.getenv("OPENROUTER_API_KEY", "")
        self.openrouter_base_url: str = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/")
        self.openrouter_model: str = os.getenv("OPENROUTER_MODEL", "@preset/viovietnamese")
        self.llm_timeout_seconds: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "15"))
        # App meta
        self.app_name: str = "Vietlearn Backend"
        self.app_version: str = os.getenv("APP_VERSION", "dev")
        self.debug: bool = os.getenv("DEBUG", "False").lower() == "true"
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.allow_origins: list[str] = _split_csv(
            os.getenv("ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
        )

    @property
    def auth_base(self) -> str | None:
        return f"{self.supabase_url}/auth" if self.supabase_url else None

    @property
    def jwks_url(self) -> str:
        return f"{self.supabase_url}/auth/v1/certs" if self.supabase_url else ""

    @property
    def llm_configured(self) -> bool:
        return bool(self.openrouter_api_key)

    def get_database_url(self) -> str:
        return self.database_url


@lru_cache()
def get_settings() -> Settings:
    return Settings()
