from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    # Supabase settings
    SUPABASE_URL: str = 'http://localhost:54321'
    SUPABASE_ANON_KEY: str = ''

    # HTTP settings
    REQUEST_TIMEOUT: float = 30.0

    # Auth: renovar el access token este margen antes de que expire (segundos)
    TOKEN_REFRESH_MARGIN: int = 30

    # Catalog
    CATALOG_PAGE_SIZE: int = 10

    # Storage settings
    STORAGE_BUCKET: str = 'product-images'
    STORAGE_FOLDER: str = 'productos'
    STORAGE_CACHE_CONTROL: str = '3600'

    # Client-side deadlines (seconds)
    AUTH_CHECK_TIMEOUT: float = 10.0
    UPLOAD_TIMEOUT: float = 60.0
    DEBUG_UPLOAD_TIMEOUT: float = 30.0
    CONNECTION_TEST_TIMEOUT: float = 5.0

    # Image processing
    IMAGE_MAX_WIDTH: int = 1920
    IMAGE_MAX_HEIGHT: int = 1080
    IMAGE_QUALITY: int = 80

    # Bolivia (UTC-4, no DST)
    TIMEZONE_OFFSET_HOURS: int = -4

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
