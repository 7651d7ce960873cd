from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application configuration settings"""

    # Upstream weather provider
    openmeteo_base_url: str = "https://api.open-meteo.com/v1/forecast"
    request_timeout: float = 10.0

    # Cache and refresh
    cache_ttl: int = 60
    refresh_interval: int = 60
    cache_backend: str = "file"  # memory, file or postgres
    cache_dir: str = ".weatherdash"

    # Database (only used by the postgres cache backend)
    database_url: Optional[str] = None

    # API
    api_port: int = 8000
    environment: str = "development"
    log_level: str = "INFO"

    # CORS
    allowed_origins: str = "*"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
