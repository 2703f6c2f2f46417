from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Warehouse Management System"
    API_V1_STR: str = "/api/v1"
    # Must be overridden through .env or the environment in production
    SECRET_KEY: str = Field(
        default="dev-only-secret-key-please-change-in-production",
        description="JWT signing key"
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day

    # CORS
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Server, used by main.py
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 8000

    # Database
    SQLITE_DATABASE_URI: str = "sqlite:///./warehouse.db"

    # First admin account, created when the user table is empty
    FIRST_ADMIN_USERNAME: str = "admin"
    FIRST_ADMIN_PASSWORD: str = "admin123"

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"
    LOG_RETENTION_DAYS: int = 14

    # Pricing
    TAX_RATE: float = 0.15
    CUTTING_FEE_PER_UNIT: float = 10

    # Low-stock sweep
    LOW_STOCK_THRESHOLD: int = 10
    LOW_STOCK_SCAN_ENABLED: bool = True
    LOW_STOCK_SCAN_INTERVAL_MINUTES: int = 60

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"Settings loaded: API_V1_STR={settings.API_V1_STR}, CORS={settings.BACKEND_CORS_ORIGINS}")
