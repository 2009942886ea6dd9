"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Wedding RSVP"
    debug: bool = False

    # Server
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database (playlist outbox and stored OAuth token)
    database_url: str = "sqlite:///./wedding_rsvp.db"

    # Outbound HTTP
    http_timeout_seconds: float = 15.0

    # Airtable guest directory
    airtable_api_key: str = ""
    airtable_base_id: str = ""
    airtable_table_name: str = "Address Collector"
    airtable_api_url: str = "https://api.airtable.com/v0"

    # Spotify playlist
    spotify_client_id: str = ""
    spotify_client_secret: str = ""
    spotify_refresh_token: str = ""  # Obtained via scripts/get_token.py or /auth/spotify/login
    spotify_playlist_id: str = ""
    spotify_redirect_uri: str = "http://localhost:8000/auth/spotify/callback"
    spotify_accounts_url: str = "https://accounts.spotify.com"
    spotify_api_url: str = "https://api.spotify.com/v1"

    # Playlist outbox retries
    outbox_retry_interval_minutes: int = 5
    outbox_max_attempts: int = 5


settings = Settings()
