"""
Order Timing - Configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from app.core.timing_config import EstimateMode, TimingConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "order-timing"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8006

    # ── Timing Store ──────────────────────────────────────────
    TIMING_STORE_BACKEND: str = "redis"   # memory | redis | postgres
    STORE_TIMEOUT_SECONDS: float = 5.0
    REDIS_TIMING_KEY: str = "order_timing:records"

    # ── PostgreSQL (Timing DB) ────────────────────────────────
    POSTGRES_HOST: str = "timing-db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "timing_db"
    POSTGRES_USER: str = "timing_user"
    POSTGRES_PASSWORD: str = "timing_pass"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # ── Redis / Celery Broker ──────────────────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def celery_broker_url(self) -> str:
        return self.redis_url

    @property
    def celery_result_backend(self) -> str:
        return self.redis_url

    # ── Preparation Timing Model ──────────────────────────────
    TIMING_PER_ITEM_MINUTES: int = 2
    TIMING_PER_POSITION_MINUTES: int = 5
    TIMING_FLOOR_MINUTES: int = 5
    TIMING_RETENTION_WINDOW_MINUTES: int = 1440
    TIMING_ESTIMATE_MODE: EstimateMode = EstimateMode.CUMULATIVE

    @property
    def timing_config(self) -> TimingConfig:
        return TimingConfig(
            per_item_minutes=self.TIMING_PER_ITEM_MINUTES,
            per_position_minutes=self.TIMING_PER_POSITION_MINUTES,
            floor_minutes=self.TIMING_FLOOR_MINUTES,
            retention_window_minutes=self.TIMING_RETENTION_WINDOW_MINUTES,
            estimate_mode=self.TIMING_ESTIMATE_MODE,
        )

    # ── Retention Purge (Celery beat) ──────────────────────────
    ORDER_TIMING_URL: str = "http://order-timing:8006"
    RETENTION_PURGE_INTERVAL_SECONDS: int = 900
    HTTP_TIMEOUT_SECONDS: float = 5.0

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
