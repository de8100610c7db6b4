from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "content-admin-api"
    environment: str = "dev"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    canonical_base_url: str = "https://allstay.com"
    canonical_path_template: str = "alltrip/post/{slug}"
    slug_decode_max_rounds: int = 10
    otel_enabled: bool = True
    otel_service_name: str = "content-admin-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="CA_", extra="ignore")

    @field_validator("canonical_path_template")
    @classmethod
    def _require_single_slug_placeholder(cls, value: str) -> str:
        if value.count("{slug}") != 1:
            raise ValueError("canonical_path_template must contain exactly one {slug} placeholder")
        return value

    @field_validator("slug_decode_max_rounds")
    @classmethod
    def _require_positive_rounds(cls, value: int) -> int:
        if value < 1:
            raise ValueError("slug_decode_max_rounds must be at least 1")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
