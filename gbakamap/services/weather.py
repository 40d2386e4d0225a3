from __future__ import annotations

from gbakamap.schemas.api import CurrentWeather, Forecast
from gbakamap.services.api_client import ApiClient, get_api_client, query_params
from gbakamap.services.cache import CacheBackend, cache_key, get_cache
from gbakamap.utils.errors import AppError
from gbakamap.utils.settings import get_settings


class WeatherService:
    def __init__(self, client: ApiClient | None = None, cache: CacheBackend | None = None) -> None:
        self.settings = get_settings()
        self.client = client or get_api_client()
        self.cache = cache or get_cache()

    @staticmethod
    def _location_params(q: str | None, lat: float | None, lon: float | None) -> dict[str, str]:
        if q and q.strip():
            return query_params(q=q.strip())
        if lat is not None and lon is not None:
            return query_params(lat=lat, lon=lon)
        raise AppError(
            message="Ville ou coordonnées requises",
            error_code="WEATHER_LOCATION_REQUIRED",
            stage="VALIDATION",
        )

    def get_current(
        self,
        *,
        q: str | None = None,
        lat: float | None = None,
        lon: float | None = None,
        refresh: bool = False,
    ) -> CurrentWeather:
        params = self._location_params(q, lat, lon)
        params["type"] = "current"

        key = cache_key("weather", params)
        cached = None if refresh else self.cache.get(key)
        if cached is None:
            payload = self.client.get("/api/weather", params=params)
            cached = ApiClient.unwrap(payload, "Erreur météo")
            self.cache.set(key, cached, ttl_seconds=self.settings.cache_ttl_weather_seconds)
        return CurrentWeather.model_validate(cached)

    def get_forecast(
        self,
        *,
        q: str | None = None,
        lat: float | None = None,
        lon: float | None = None,
        hours: int | None = None,
        transport: bool = False,
    ) -> Forecast:
        params = self._location_params(q, lat, lon)
        params.update(query_params(hours=hours or None, transport=True if transport else None))

        payload = self.client.get("/api/weather/forecast", params=params)
        return Forecast.model_validate(ApiClient.unwrap(payload, "Erreur prévisions météo"))


_service: WeatherService | None = None


def get_weather_service() -> WeatherService:
    global _service
    if _service is None:
        _service = WeatherService()
    return _service
