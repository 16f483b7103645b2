from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Daily Budget API"
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    # Seconds a request waits for a free pooled connection before the store counts as unavailable.
    db_pool_timeout_seconds: float = 10.0
    # Comma-separated origins for CORS.
    cors_allow_origins: str = "*"
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    # Used when the user row has no time_zone stored.
    default_time_zone: str = "UTC"
    # Summary caching is opt-in; 0 reads live data on every request.
    summary_cache_ttl_seconds: int = 0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
