from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TranslationMode(str, Enum):
    """Which translator backs the Translate operation"""
    FULL = "full"    # Amazon Translate
    MOCK = "mock"    # Deterministic fake translations, no AWS calls


class TranslationFailurePolicy(str, Enum):
    """What a caller sees when the translator fails on a cache miss"""
    STRICT = "strict"      # Surface a translation service error
    LENIENT = "lenient"    # Soft success carrying the untranslated description


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # API Settings
    PROJECT_NAME: str = "Movie Catalog Service"
    ENVIRONMENT: str = "development"

    # AWS Settings
    AWS_REGION: str = "us-east-1"
    DYNAMODB_ENDPOINT: Optional[str] = None
    TRANSLATE_ENDPOINT: Optional[str] = None

    # DynamoDB Table (TABLE_NAME is what the stack injects into the function)
    MOVIES_TABLE: str = Field(
        default="movies-dev",
        validation_alias=AliasChoices("MOVIES_TABLE", "TABLE_NAME"),
    )
    LIST_PAGE_SIZE: int = 50

    # Translation
    TRANSLATION_MODE: TranslationMode = TranslationMode.FULL
    TRANSLATION_FAILURE_POLICY: TranslationFailurePolicy = TranslationFailurePolicy.STRICT
    TRANSLATE_MAX_ATTEMPTS: int = 3
    TRANSLATE_RETRY_WAIT_MAX: float = 10.0

    # API key gate for write operations (empty = gate disabled)
    VALID_API_KEYS: str = ""

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # Logging
    LOG_LEVEL: Optional[str] = None
    LOG_FORMAT: Optional[str] = None

    @property
    def api_keys(self) -> List[str]:
        return [key.strip() for key in self.VALID_API_KEYS.split(",") if key.strip()]

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings, read from the environment once"""
    return Settings()
