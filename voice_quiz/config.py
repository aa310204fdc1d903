"""Configuration settings using pydantic-settings."""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram Bot
    BOT_TOKEN: str = Field(default="", description="Telegram Bot API token")

    # Lecture-to-quiz API
    API_BASE_URL: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the lecture-to-quiz API"
    )
    API_TIMEOUT: int = Field(
        default=300,
        description="Total HTTP timeout in seconds (transcription of long lectures is slow)"
    )
    TRANSCRIBE_LANGUAGE: str = Field(
        default="en",
        description="Language hint sent with every transcription request"
    )

    # Session storage
    DATABASE_PATH: str = Field(
        default="data/voice_quiz.db",
        description="Path to SQLite database file"
    )
    ENCRYPTION_KEY: str = Field(
        default="",
        description="Fernet encryption key for stored bearer tokens"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    LOG_FILE: str = Field(
        default="",
        description="Optional path to a log file (stdout only when empty)"
    )

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
