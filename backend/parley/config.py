"""Configuration management for the Parley debate engine."""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")
    modelscope_api_key: Optional[str] = Field(default=None, alias="MODELSCOPE_API_KEY")
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")

    # Provider endpoints (OPENAI_BASE_URL may point at a local server)
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1", alias="OPENROUTER_BASE_URL")
    modelscope_base_url: str = Field(
        default="https://api-inference.modelscope.cn/v1",
        alias="MODELSCOPE_BASE_URL",
    )

    # Model call settings
    default_provider: str = Field(default="gemini", alias="DEFAULT_PROVIDER")
    model_temperature: float = Field(default=0.7, alias="MODEL_TEMPERATURE")
    model_max_tokens: int = Field(default=1024, alias="MODEL_MAX_TOKENS")
    model_timeout: float = Field(default=120.0, alias="MODEL_TIMEOUT")

    # Context budgets (estimated tokens)
    context_budget: int = Field(default=2500, alias="CONTEXT_BUDGET")
    recovery_context_budget: int = Field(default=1000, alias="RECOVERY_CONTEXT_BUDGET")

    # Auto-play driver
    autoplay: bool = Field(default=True, alias="AUTOPLAY")
    autoplay_interval: float = Field(default=2.0, alias="AUTOPLAY_INTERVAL")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/parley.db",
        alias="DATABASE_URL"
    )

    # Server settings
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    debug: bool = Field(default=False, alias="DEBUG")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings
