"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL (hosted). DATABASE_URL wins when set.
    database_url: str = ""
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "prepcoach_user"
    postgres_password: str = "password"
    postgres_db: str = "prepcoach_db"

    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "prepcoach_docs"

    # AI (OpenAI-compatible)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"

    # Hosted auth provider
    auth_url: str = ""
    auth_service_key: str = ""
    auth_jwt_secret: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # E-mail verification
    verification_token_ttl_minutes: int = 2
    email_webhook_url: str = ""
    email_from: str = "PrepCoach <noreply@prepcoach.app>"

    # ElevenLabs text-to-speech
    elevenlabs_api_key: str = ""
    elevenlabs_base_url: str = "https://api.elevenlabs.io/v1"
    elevenlabs_default_voice_id: str = "pNInz6obpgDQGXPRmrWg"
    elevenlabs_model_id: str = "eleven_multilingual_v2"
    elevenlabs_output_format: str = "mp3_22050_32"

    # Google Calendar
    google_client_id: str = ""
    google_client_secret: str = ""
    calendar_time_zone: str = "UTC"

    # Job search (RapidAPI JSearch)
    rapidapi_key: str = ""
    rapidapi_jobs_host: str = "jsearch.p.rapidapi.com"
    job_cache_ttl_hours: int = 24
    jobs_rate_limit_max: int = 10
    jobs_rate_limit_window_seconds: int = 60

    # Outbound HTTP
    http_timeout_seconds: float = 10.0

    # App
    app_url: str = "http://localhost:3000"
    log_level: str = "INFO"
    debug: bool = False

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sqlalchemy_url(self) -> str:
        return self.database_url or self.postgres_url

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
