"""
Application configuration using Pydantic Settings.

Loads process-level configuration from environment variables (prefix
CODESWEEP_) and a .env file. Per-project cleanup toggles live in the project
settings file, see codesweep.cleaning.infrastructure.settings_store.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="CODESWEEP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="codesweep", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="WARNING", description="Logging level")

    # Logging / Privacy
    log_redaction_enabled: bool = Field(default=True, description="Enable PII redaction in logs")

    # Cleanup run
    settings_file: str = Field(
        default=".codesweep.yaml",
        description="Project settings file, relative to the first project root",
    )
    yield_delay_seconds: float = Field(
        default=0.01,
        ge=0.0,
        description="Pause after each file so progress rendering keeps up",
    )

    # Language server
    lsp_server_path: str | None = Field(
        default=None,
        description="Explicit typescript-language-server binary (auto-detect if unset)",
    )
    lsp_request_timeout: float = Field(default=30.0, gt=0.0, description="LSP request timeout (s)")
    diagnostics_settle_seconds: float = Field(
        default=3.0,
        ge=0.0,
        description="How long to wait for publishDiagnostics after opening a file",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env.lower() == "production"


# Global settings instance
settings = Settings()
