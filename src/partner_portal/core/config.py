"""Application configuration management."""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Canonical store
    database_url: str = Field(default="sqlite:///partner_portal.db", description="SQLAlchemy database URL")

    # Preference store
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL for the pin/interest overlay")
    preference_key_prefix: str = Field(default="talentflow", description="Namespace prefix for overlay keys")
    preference_backend: str = Field(default="redis", description="Overlay storage backend: redis or memory")

    # Applicant tracking system
    ats_base_url: str = Field(default="https://api.manatal.com/open/v3", description="ATS REST API base URL")
    ats_api_token: str = Field(default="", description="ATS API token")
    ats_timeout_seconds: float = Field(default=25.0, description="ATS request timeout")
    ats_search_result_limit: int = Field(default=10, description="Maximum ATS search results surfaced")

    # Contact enrichment provider
    enrichment_base_url: str = Field(
        default="https://api.rocketreach.co/api/v2/universal/person",
        description="Enrichment provider base URL"
    )
    enrichment_api_key: str = Field(default="", description="Enrichment provider API key")
    enrichment_timeout_seconds: float = Field(default=20.0, description="Enrichment request timeout")

    # Workflow tuning
    batch_throttle_seconds: float = Field(default=0.5, description="Pause before each batch enrichment lookup")
    min_search_chars: int = Field(default=3, description="Minimum query length for an external search")

    # Sessions
    admin_user_ids: List[str] = Field(default=[], description="User ids granted the admin role")

    # Application Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    environment: str = Field(default="development", description="Environment name")
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")


# Global settings instance
settings = Settings()
