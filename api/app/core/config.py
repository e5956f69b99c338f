from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "localvibe-api"
    app_version: str = "1.0.0"
    environment: str = "development"
    api_prefix: str = "/api"
    cors_origin: str = "http://localhost:5173"
    log_level: str = "INFO"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    default_page_size: int = 20
    max_page_size: int = 100
    jwt_access_secret: str = "default_access_secret"
    jwt_refresh_secret: str = "default_refresh_secret"
    jwt_access_expiry_minutes: int = 15
    jwt_refresh_expiry_days: int = 7
    jwt_issuer: str = "localvibe"
    jwt_audience: str = "localvibe-client"
    bcrypt_rounds: int = 12
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    rate_limit_window_minutes: int = 15
    rate_limit_max_requests: int = 100
    auth_rate_limit_window_minutes: int = 15
    auth_rate_limit_max_requests: int = 10
    otel_enabled: bool = True
    otel_service_name: str = "localvibe-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="LV_", env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origin.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
