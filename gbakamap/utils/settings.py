from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    api_base_url: str = Field(default="https://gbaka-maps.vercel.app", alias="API_BASE_URL")
    api_timeout_seconds: float = Field(default=30.0, gt=0, alias="API_TIMEOUT_SECONDS")
    dev_token: str | None = Field(default="gbakamap-dev-token-2024", alias="DEV_TOKEN")

    firebase_api_key: str | None = Field(default=None, alias="FIREBASE_API_KEY")
    firebase_auth_url: str = Field(
        default="https://identitytoolkit.googleapis.com/v1",
        alias="FIREBASE_AUTH_URL",
    )
    firebase_token_url: str = Field(
        default="https://securetoken.googleapis.com/v1/token",
        alias="FIREBASE_TOKEN_URL",
    )

    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    session_file: str = Field(default="~/.config/gbakamap/session.json", alias="SESSION_FILE")

    default_lat: float = Field(default=5.3364, ge=-90, le=90, alias="DEFAULT_LAT")
    default_lon: float = Field(default=-4.0267, ge=-180, le=180, alias="DEFAULT_LON")

    search_radius_min: int = Field(default=100, ge=1, alias="SEARCH_RADIUS_MIN")
    search_radius_default: int = Field(default=2000, ge=1, alias="SEARCH_RADIUS_DEFAULT")
    search_radius_max: int = Field(default=10000, ge=1, alias="SEARCH_RADIUS_MAX")
    stops_per_request: int = Field(default=100, ge=1, alias="STOPS_PER_REQUEST")

    cache_ttl_stops_seconds: int = Field(default=12 * 3600, ge=0, alias="CACHE_TTL_STOPS_SECONDS")
    cache_ttl_lines_seconds: int = Field(default=24 * 3600, ge=0, alias="CACHE_TTL_LINES_SECONDS")
    cache_ttl_weather_seconds: int = Field(default=10 * 60, ge=0, alias="CACHE_TTL_WEATHER_SECONDS")

    @field_validator("firebase_api_key", "dev_token", mode="before")
    @classmethod
    def _normalize_optional_secret(cls, value: object) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None

    @field_validator("api_base_url", "firebase_auth_url", "firebase_token_url", mode="before")
    @classmethod
    def _normalize_url(cls, value: object) -> str:
        return str(value or "").strip().rstrip("/")

    @property
    def is_dev_mode(self) -> bool:
        return str(self.app_env or "").strip().lower() in {"dev", "development", "local"}

    @property
    def is_production_mode(self) -> bool:
        return str(self.app_env or "").strip().lower() in {"prod", "production"}

    @model_validator(mode="after")
    def _validate_settings(self) -> "Settings":
        if self.search_radius_min > self.search_radius_max:
            raise ValueError("SEARCH_RADIUS_MIN must be <= SEARCH_RADIUS_MAX.")

        if self.is_production_mode and not self.firebase_api_key:
            raise ValueError("Missing required production settings: FIREBASE_API_KEY")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
