"""Application configuration from environment variables."""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "TaskBoard"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"

    # Backend-as-a-service
    BACKEND_MODE: str = "stub"  # stub or live
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SCHEMA: str = "public"
    REQUEST_TIMEOUT: float = 30.0

    # Tables
    TASKS_TABLE: str = "tasks"
    COLUMNS_TABLE: str = "task_columns"
    PROFILES_TABLE: str = "profiles"

    # Object storage
    AVATAR_BUCKET: str = "avatars"
    AVATAR_MAX_BYTES: int = 5 * 1024 * 1024

    # Board
    DONE_COLUMN_TITLE: str = "Terminado"
    WORKLOAD_PREVIEW_SIZE: int = 3

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
