from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings sourced from environment variables."""

    DATABASE_URL: str = f"sqlite:///{Path('./data/qr_studio.db').resolve()}"
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    HOST: str = "0.0.0.0"
    PORT: int = 5001
    PORT_RETRIES: int = 10

    UPLOAD_DIR: Path = Path("uploads")
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    HISTORY_MAX_LIMIT: int = 50
    CSV_WORKERS: int = 4
    DB_CONNECT_ATTEMPTS: int = 10

    BREVO_API_KEY: Optional[str] = None
    BREVO_SENDER_EMAIL: str = "noreply@example.com"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("SECRET_KEY environment variable is required")
        return value

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"
