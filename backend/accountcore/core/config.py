from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "AccountCore API"
    api_prefix: str = "/api/v1"
    debug: bool = False
    auto_create_schema: bool = True

    database_url: str = "sqlite+pysqlite:///./accountcore.db"
    cors_origins: str = "http://localhost:4200,http://localhost:3000"

    bulk_import_max_rows: int = 1000
    balance_tolerance: Decimal = Decimal("0.01")
    prediction_min_months: int = 3
    prediction_default_lookback_months: int = 12
    prediction_max_lookback_months: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
