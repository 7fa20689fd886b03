"""
Application Settings

Environment-driven configuration for the hamper delivery API.
Values come from the process environment or a local .env file.
"""

from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_TITLE: str = "Hamper Delivery API"
    APP_VERSION: str = "1.0.0"

    # MongoDB is used only when both are set; otherwise records live in memory
    DATABASE_URL: Optional[str] = None
    DATABASE_NAME: Optional[str] = None

    SEED_DEMO_DATA: bool = True
    STRICT_STATUS_TRANSITIONS: bool = False

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]
    PORT: int = 8000

    @property
    def use_mongo(self) -> bool:
        return bool(self.DATABASE_URL and self.DATABASE_NAME)


@lru_cache
def get_settings() -> Settings:
    return Settings()
