"""Application configuration loaded from environment variables."""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = ""

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:9002",
    ]

    API_V1_PREFIX: str = "/api/v1"

    # Calendar used when dates are shown to students
    DISPLAY_TIMEZONE: str = "Africa/Cairo"

    # Supabase project used to verify end-user bearer tokens
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
