from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "NeoWatch"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    NASA_API_KEY: str = "DEMO_KEY"
    NEOWS_BASE_URL: str = "https://api.nasa.gov/neo/rest/v1"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # "redis" or "memory"
    CACHE_BACKEND: str = "redis"
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    CACHE_KEY_PREFIX: str = "neowatch:"

    FEED_TTL_MS: int = 10 * 60 * 1000
    DETAILS_TTL_MS: int = 24 * 60 * 60 * 1000

    REQUEST_CEILING: int = 1000
    # None keeps the counter for the life of the durable store
    REQUEST_CEILING_WINDOW_MS: Optional[int] = None
    HOURLY_REQUEST_CEILING: int = 800

    BATCH_CONCURRENCY: int = 4
    RANK_SIZE: int = 12
    BOARD_RANK_SIZE: int = 9
    BOARD_WINDOW_DAYS: int = 1
    PROJECTION_MAX_ITERATIONS: int = 1000

    IMPACT_DENSITY: float = 3000.0
    RADIUS_K: float = 0.012

    RATE_LIMIT_STORAGE_URI: str = "memory://"
    API_RATE_LIMIT: str = "100/minute"

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    class Config:
        case_sensitive = True
        env_file = ".env"

settings = Settings()
