"""Application configuration using Pydantic Settings."""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Client settings loaded from environment variables (or a .env file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Arlo account
    ARLO_USER: Optional[str] = Field(default=None, description="Arlo account email")
    ARLO_PASSWORD: Optional[str] = Field(default=None, description="Arlo account password")

    # Mailbox that receives the MFA one-time codes
    EMAIL_USER: Optional[str] = Field(
        default=None,
        description="Email address registered as the Arlo MFA factor"
    )
    EMAIL_PASSWORD: Optional[str] = Field(default=None, description="Mailbox password")
    EMAIL_SERVER: Optional[str] = Field(
        default=None,
        description="IMAP server host, e.g. imap.gmail.com"
    )
    EMAIL_IMAP_PORT: int = Field(default=993, description="IMAP over TLS port")
    IMAP_TIMEOUT: int = Field(default=30, description="IMAP socket timeout in seconds")

    # Debug server configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Timeouts and intervals
    HTTP_TIMEOUT: int = Field(
        default=30,
        description="HTTP request timeout in seconds"
    )
    HEARTBEAT_INTERVAL: float = Field(
        default=30,
        description="Seconds between event stream keep-alive pings"
    )
    COMMAND_TIMEOUT: float = Field(
        default=30,
        description="Seconds to wait for the correlated reply of a hub command"
    )
    STREAM_OPEN_TIMEOUT: float = Field(
        default=30,
        description="Seconds to wait for the event stream 'connected' frame"
    )
    MFA_RETRY_ATTEMPTS: int = Field(
        default=4,
        description="Mailbox polls before giving up on the MFA email"
    )
    MFA_RETRY_DELAY: float = Field(
        default=5,
        description="Fixed delay in seconds between mailbox polls"
    )


# Global settings instance
settings = Settings()
