from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    # Application
    APP_NAME: str = "StayPrivateAPI"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DB_USER: str = "stayprivate"
    DB_PASSWORD: str = ""
    DB_NAME: str = "stayprivate"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DATABASE_URI: Optional[str] = None
    AUTO_CREATE_TABLES: bool = True

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URI:
            return self.DATABASE_URI
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # JWT
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # Session cookie
    AUTH_COOKIE_NAME: str = "auth_token"

    @property
    def AUTH_COOKIE_SECURE(self) -> bool:
        return self.ENVIRONMENT == "production"

    # CORS
    BACKEND_CORS_ORIGINS: Union[List[str], str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str) and v.startswith("["):
            return json.loads(v)
        return v

    # Messaging
    MESSAGE_MAX_LENGTH: int = 5000
    # Number of most recent messages scanned when building the conversation list
    CONVERSATION_SCAN_LIMIT: int = 100

    # Directory search
    USER_SEARCH_LIMIT: int = 20
    USER_SEARCH_MIN_LENGTH: int = 2


settings = Settings()
