from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """Gateway configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PROJECT_NAME: str = "Bulk SMS Gateway"
    API_PREFIX: str = ""

    DATABASE_URL: str
    DB_AUTO_CREATE: bool = True

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE_PATH: Optional[str] = None

    SMS_ENABLED: bool = True
    SMS_PROVIDER_NAME: str = "mock"
    SMS_PROVIDER_TOKEN: str = ""
    SMS_PROVIDER_BASE_URL: str = "https://api.clickatell.com/"
    SMS_PROVIDER_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    SMS_SENDER_LABEL: str = "BULKSMS"
    SMS_MAX_BATCH_SIZE: int = Field(default=600, ge=0)
    SMS_MAX_MESSAGE_SEGMENTS: int = Field(default=1, ge=1)
    SMS_COUNTRIES: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["ZA"])
    MOCK_PROVIDER_SEED: Optional[int] = None
    MOCK_PROVIDER_STATUS_DELAY_SECONDS: float = Field(default=0.0, ge=0)

    DELIVERY_STATUS_ENABLED: bool = True
    DELIVERY_STATUS_INTERVAL_SECONDS: float = Field(default=60, gt=0)
    DELIVERY_STATUS_WINDOW_MINUTES: int = Field(default=30, ge=1)

    AUTH_ENABLED: bool = False
    AUTH_SERVICE_URL: Optional[str] = None
    AUTH_PERMISSION: str = "bulksms"

    @field_validator("SMS_COUNTRIES", mode="before")
    @classmethod
    def assemble_countries(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            v = [code for code in v.strip().strip('"\'').split(",")]
        # Order matters: the first region that accepts a number wins.
        return [code.strip().upper() for code in v if code and code.strip()]


load_dotenv(ENV_FILE)


@lru_cache
def get_settings() -> Settings:
    """Return cached gateway settings instance."""

    return Settings()
