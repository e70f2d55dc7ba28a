from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Message Relay"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Queue settings
    queue_backend: str = "redis"  # Options: "redis", "memory"
    queue_connection_string: str = Field(
        default="redis://localhost:6379/0",  # Local development target
        validation_alias=AliasChoices("queue_connection_string", "AzureWebJobsStorage"),
    )
    queue_name: str = "practice-queue"
    queue_visibility_timeout: int = 30  # Seconds a claimed message stays hidden
    queue_socket_timeout: int = 2

    # Malformed envelopes pop as "" unless this is set
    strict_envelopes: bool = False

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


# Create settings instance
settings = Settings()
