from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    APP_NAME: str = "livefeed"
    DEBUG: bool = False
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/livefeed.db"

    # Event store backend: sql | rest
    EVENT_STORE: str = "sql"
    REST_BASE_URL: str = "http://localhost:54321/rest/v1"
    REST_API_KEY: str = ""
    REST_TIMEOUT_SECONDS: float = 10.0

    ENABLED: bool = True
    POLL_INTERVAL_MS: int = 45_000
    REFRESH_INTERVAL_MS: int = 30_000
    TICKER_ROTATION_INTERVAL_MS: int = 4_000
    BANNER_ROTATION_INTERVAL_MS: int = 1_500
    MAX_NOTIFICATIONS: int = 10
    TOP_K: int = 30
    INITIAL_LOOKBACK_MINUTES: int = 60

    # 0 means "derive from MAX_NOTIFICATIONS and the number of sources"
    SEEN_INDEX_CAPACITY: int = 0
    SEEN_INDEX_TTL_SECONDS: int = 7_200

    SOURCES_CONFIG_PATH: str = "./data/sources.yaml"
    OPS_LOG_CAPACITY: int = 200


settings = Settings()
