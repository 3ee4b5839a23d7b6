"""Configuration management for Informejo."""

from typing import Optional, Literal, List
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field, SecretStr


class AppConfig(BaseSettings):
    """Public application settings."""

    name: str = Field(
        default="Informejo",
        description="Product name used in outbound mail",
    )
    base_url: str = Field(
        default="http://localhost:3000",
        description="Externally visible base URL used to build links",
    )

    model_config = {"env_prefix": "APP_", "extra": "ignore"}


class MagicLinkConfig(BaseSettings):
    """Magic-link token configuration."""

    expiry_hours: int = Field(
        default=72,
        ge=1,
        description="Hours a magic-link token stays valid",
    )
    token_bytes: int = Field(
        default=32,
        ge=32,
        description="Random bytes per token (hex encoded, so 2x characters)",
    )
    short_id_min_length: int = Field(
        default=12,
        ge=1,
        description="Shortest input treated as a ticket-id prefix",
    )
    short_id_max_length: int = Field(
        default=63,
        ge=1,
        description="Longest input treated as a ticket-id prefix",
    )

    model_config = {"env_prefix": "MAGIC_LINK_", "extra": "ignore"}


class DatabaseConfig(BaseSettings):
    """Database configuration."""

    database_path: Path = Field(
        default=Path("data/informejo.db"),
        description="Path to SQLite database",
    )

    model_config = {"env_prefix": "", "extra": "ignore"}


class ServerConfig(BaseSettings):
    """HTTP server configuration."""

    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server",
    )
    port: int = Field(
        default=3003,
        ge=1,
        le=65535,
        description="Port for the server",
    )
    enable_cors: bool = Field(
        default=True,
        description="Enable CORS middleware",
    )
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins",
    )
    websocket_enabled: bool = Field(
        default=True,
        description="Expose the /ws real-time endpoint",
    )

    model_config = {"env_prefix": "SERVER_", "extra": "ignore"}


class RealtimeConfig(BaseSettings):
    """Event bus configuration."""

    outbox_size: int = Field(
        default=100,
        ge=1,
        description="Pending events buffered per connection before drops",
    )
    sse_keepalive_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Interval between SSE keep-alive comments",
    )

    model_config = {"env_prefix": "REALTIME_", "extra": "ignore"}


class SMTPConfig(BaseSettings):
    """Outbound mail configuration."""

    enabled: bool = Field(
        default=False,
        description="Send mail; when disabled messages are only logged",
    )
    host: Optional[str] = Field(
        default=None,
        description="SMTP host",
    )
    port: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP port (465 uses implicit TLS)",
    )
    user: Optional[str] = Field(
        default=None,
        description="SMTP username",
    )
    password: Optional[SecretStr] = Field(
        default=None,
        description="SMTP password",
    )
    from_address: str = Field(
        default="helpdesk@localhost",
        description="Envelope sender",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Socket timeout for the SMTP connection",
    )

    model_config = {"env_prefix": "SMTP_", "extra": "ignore"}


class AuthConfig(BaseSettings):
    """Staff bearer token configuration."""

    jwt_secret_key: SecretStr = Field(
        default=SecretStr("change-me-in-production"),
        description="HMAC secret used to sign staff access tokens",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    access_token_expire_minutes: int = Field(
        default=60,
        ge=1,
        description="Lifetime of staff access tokens",
    )

    model_config = {"env_prefix": "AUTH_", "extra": "ignore"}


class UploadConfig(BaseSettings):
    """Attachment storage configuration."""

    upload_dir: Path = Field(
        default=Path("uploads"),
        description="Directory where attachments are written",
    )
    max_file_size: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Maximum attachment size in bytes",
    )

    model_config = {"env_prefix": "UPLOAD_", "extra": "ignore"}


class Settings(BaseSettings):
    """Main settings combining all configurations."""

    # Sub-configurations
    app: AppConfig = Field(default_factory=AppConfig)
    magic_link: MagicLinkConfig = Field(default_factory=MagicLinkConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    smtp: SMTPConfig = Field(default_factory=SMTPConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)

    # General settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment and files."""
        from dotenv import load_dotenv
        load_dotenv()
        return cls()


# Global settings instance
settings = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global settings
    if settings is None:
        settings = Settings.load()
    return settings


def reload_settings():
    """Reload settings from environment."""
    global settings
    settings = Settings.load()
    return settings
