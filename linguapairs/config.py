"""
LinguaPairs Backend - Configuration and Settings
Centralized configuration management using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Supabase Configuration
    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str
    supabase_jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # OpenRouter Configuration (OpenAI-compatible API)
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    pair_model: str = "openai/gpt-5-mini"
    pair_fallback_model: Optional[str] = "openai/gpt-5"

    # Application Settings
    site_url: str = "http://localhost:4321"
    allowed_origins: str = "http://localhost:4321"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # Session cookies
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"
    code_verifier_cookie_name: str = "sb-code-verifier"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Dependency to get settings"""
    return settings
