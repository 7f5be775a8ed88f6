"""Configuration management using Pydantic Settings.

Loads configuration from environment variables with .env file support.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration."""

    # Database Configuration
    database_url: str = "sqlite+aiosqlite:///./produce_orders.db"
    database_isolation_level: Optional[str] = None
    database_echo: bool = False

    # Tenant Configuration (the single ordering company this deployment serves)
    orderer_company_id: str = "00000000-0000-0000-0000-000000000001"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    environment: str = "development"

    # LINE Push Configuration
    enable_line_push: bool = False
    line_channel_access_token: Optional[str] = None
    line_channel_secret: Optional[str] = None

    # GlitchTip Error Monitoring
    glitchtip_dsn: Optional[str] = None

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @property
    def line_push_enabled(self) -> bool:
        """Push is active only with the feature flag and both LINE credentials."""
        return bool(
            self.enable_line_push
            and self.line_channel_access_token
            and self.line_channel_secret
        )


# Create a global settings instance
settings = Settings()
