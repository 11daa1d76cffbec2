# gasbora/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices


class Settings(BaseSettings):
    # read .env, ignore unknown keys
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Data backend: "local" (SQLAlchemy + media dir) or "supabase"
    BACKEND: str = "local"
    DATABASE_URL: str = "sqlite:///./gasbora.db"
    MEDIA_DIR: str = "media"
    PUBLIC_BASE_URL: str = "http://127.0.0.1:8000"

    # Hosted backend
    SUPABASE_URL: str | None = None
    SUPABASE_ANON_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "SUPABASE_PUBLISHABLE_KEY"),
    )
    STORAGE_BUCKET: str = "listing-images"
    HTTP_TIMEOUT: float = 10.0

    # Listing limits
    MAX_IMAGES: int = 5
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024
    PRICE_CEILING_FALLBACK: int = 10000
    PRICE_STEP: int = 1000

    # Security and cookies
    SECRET_KEY: str = "dev-secret"
    COOKIE_NAME: str = "access_token"
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"

    # JWT (local backend sessions)
    JWT_TTL_SEC: int = 60 * 60 * 24 * 7
    JWT_ALG: str = "HS256"

    # CORS
    ALLOWED_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"


settings = Settings()
