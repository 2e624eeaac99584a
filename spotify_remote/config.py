import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent  # spotify-remote/


class Settings(BaseSettings):
    """Session settings with validation.

    Credentials are required and will raise validation errors if missing.
    They must be provided via environment variables or .env file and are
    treated as opaque strings.
    """

    # Spotify credentials - required
    spotify_client_id: str = Field(min_length=1, description="Spotify OAuth client ID")
    spotify_client_secret: str = Field(min_length=1, description="Spotify OAuth client secret")
    spotify_refresh_token: str = Field(min_length=1, description="Long-lived Spotify refresh token")

    # Endpoints
    spotify_token_url: str = Field(
        default="https://accounts.spotify.com/api/token",
        pattern=r"^https?://",
        description="Token endpoint for the refresh grant",
    )
    spotify_api_base_url: str = Field(
        default="https://api.spotify.com/v1",
        pattern=r"^https?://",
        description="Base URL of the player API",
    )

    # Timing (seconds)
    token_refresh_interval: float = Field(default=3500.0, gt=0, description="Delay between token refreshes")
    inactivity_timeout: float = Field(default=1.0, gt=0, description="Max wait for the next body chunk")
    connect_timeout: float = Field(default=5.0, gt=0, description="Connection establishment timeout")
    response_timeout: float = Field(default=10.0, gt=0, description="Max wait for the status line")

    # Response buffer capacity in chunks
    response_buffer_chunks: int = Field(default=64, ge=1, description="Bounded response buffer size")

    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=Path(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    @field_validator("spotify_api_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Store the API base URL without a trailing slash."""
        return v.rstrip("/")

    @field_validator("spotify_client_id", "spotify_client_secret", "spotify_refresh_token", mode="after")
    @classmethod
    def validate_credential(cls, v: str) -> str:
        """Ensure credentials are not whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("credential must not be empty")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log_level names a standard logging level."""
        v = v.strip().upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL (got {v!r})")
        return v

    @property
    def player_url(self) -> str:
        """Base URL of the /me/player endpoints."""
        return f"{self.spotify_api_base_url}/me/player"


# Singleton settings instance (cached for performance)
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get singleton Settings instance.

    Avoids re-reading the .env file every time a session is built.

    Returns:
        Cached Settings instance
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
