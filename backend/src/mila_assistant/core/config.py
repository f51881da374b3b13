"""
Configuration management for the M.I.L.A. billing assistant.

Each concern gets its own settings class with its own environment prefix so
deployments can override one area without touching the others.
"""

import logging
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ApplicationConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(env_prefix="MILA_", env_file=".env", extra="ignore")

    app_name: str = Field(default="M.I.L.A. Billing Assistant")
    app_version: str = Field(default="1.0.0")
    app_description: str = Field(default="Medical Intelligence & Learning Assistant for billing forms")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8050)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Data limits
    max_query_length: int = Field(default=2000)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        valid_envs = ["development", "staging", "production", "test"]
        if v not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v

    @field_validator("api_port")
    @classmethod
    def validate_api_port(cls, v):
        """Validate API port."""
        if not 1 <= v <= 65535:
            raise ValueError("API port must be between 1 and 65535")
        return v


class GeminiConfig(BaseSettings):
    """Remote reasoning service settings."""

    model_config = SettingsConfigDict(env_prefix="GEMINI_", env_file=".env", extra="ignore")

    api_key: Optional[str] = Field(default=None)
    model_name: str = Field(default="gemini-2.5-flash")
    max_output_tokens: int = Field(default=1000)
    temperature: float = Field(default=0.3)
    request_timeout_seconds: float = Field(default=20.0)

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v):
        if not 0.0 <= v <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return v


class RateLimitConfig(BaseSettings):
    """Sliding window applied to outbound remote calls."""

    model_config = SettingsConfigDict(env_prefix="MILA_RATE_LIMIT_", env_file=".env", extra="ignore")

    max_requests: int = Field(default=15)
    window_seconds: float = Field(default=60.0)

    @field_validator("max_requests")
    @classmethod
    def validate_max_requests(cls, v):
        if v < 1:
            raise ValueError("Rate limit must allow at least one request")
        return v


class MemoryStoreConfig(BaseSettings):
    """Memory store connection settings."""

    model_config = SettingsConfigDict(env_prefix="MILA_MEMORY_", env_file=".env", extra="ignore")

    backend: str = Field(default="sql")
    database_url: str = Field(default="sqlite:///./mila_memory.db")
    base_url: str = Field(default="http://localhost:3001")
    timeout_seconds: float = Field(default=5.0)
    # Per-session availability probe results
    availability_cache_size: int = Field(default=1024)
    availability_ttl_seconds: float = Field(default=300.0)

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v):
        valid_backends = ["sql", "http", "disabled"]
        if v not in valid_backends:
            raise ValueError(f"Memory backend must be one of: {valid_backends}")
        return v


class RoutingConfig(BaseSettings):
    """Tunable routing and personalization policy."""

    model_config = SettingsConfigDict(env_prefix="MILA_ROUTING_", env_file=".env", extra="ignore")

    medium_confidence_threshold: int = Field(default=1)
    high_confidence_threshold: int = Field(default=2)
    remote_word_threshold: int = Field(default=8)
    question_word_threshold: int = Field(default=4)
    interaction_log_capacity: int = Field(default=50)
    related_terms_limit: int = Field(default=3)
    learning_hint_limit: int = Field(default=5)

    @field_validator("high_confidence_threshold")
    @classmethod
    def validate_high_threshold(cls, v, info):
        medium = info.data.get("medium_confidence_threshold", 1)
        if v <= medium:
            raise ValueError("High confidence threshold must exceed the medium threshold")
        return v


class Config:
    """Main configuration class that combines all config sections."""

    def __init__(self):
        """Initialize configuration with validation."""
        try:
            self.application = ApplicationConfig()
            self.gemini = GeminiConfig()
            self.rate_limit = RateLimitConfig()
            self.memory = MemoryStoreConfig()
            self.routing = RoutingConfig()

            logger.info("Configuration loaded successfully")

        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.application.environment == "production"

    def is_development(self) -> bool:
        """Check if running in development."""
        return self.application.environment == "development"


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next call re-reads the environment."""
    global _config
    _config = None
