from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:3000"
    TIMEZONE: str = "Asia/Bangkok"

    # Database – SQLite for local development
    DATABASE_URL: str = "sqlite+aiosqlite:///./dcpayroll.db"

    # Redis / Celery (background calculation and nightly detection)
    REDIS_URL: str = "redis://localhost:6379/0"
    USE_CELERY: bool = False

    # Security
    SECRET_KEY: str = "dev_secret_key_change_in_production_min_32_chars!!"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Scan data import
    IMPORT_MAX_ROWS: int = 100_000
    IMPORT_MAX_BYTES: int = 100 * 1024 * 1024
    IMPORT_WORKERS: int = 4
    IMPORT_CHUNK_SIZE: int = 2_000

    # Wage calculation
    CALCULATION_LOCK_TIMEOUT_SECONDS: int = 300
    FOLLOWER_ACCOMMODATION_RATE: Decimal = Decimal("300")

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
