from __future__ import annotations

from typing import Any

from gbakamap.schemas.api import Stop, StopsPage, TransportType, UpdateStopRequest
from gbakamap.services.api_client import ApiClient, get_api_client, query_params
from gbakamap.services.cache import CacheBackend, cache_key, get_cache
from gbakamap.utils.settings import get_settings


class StopsService:
    def __init__(self, client: ApiClient | None = None, cache: CacheBackend | None = None) -> None:
        self.settings = get_settings()
        self.client = client or get_api_client()
        self.cache = cache or get_cache()

    def clamp_radius(self, radius: float | None) -> int:
        if not radius:
            return self.settings.search_radius_default
        return int(min(self.settings.search_radius_max, max(self.settings.search_radius_min, radius)))

    def get_stops(
        self,
        lat: float,
        lon: float,
        *,
        radius: float | None = None,
        type: TransportType | str | None = None,
        limit: int | None = None,
        refresh: bool = False,
    ) -> StopsPage:
        params = query_params(
            lat=lat,
            lon=lon,
            radius=self.clamp_radius(radius),
            limit=limit or self.settings.stops_per_request,
            type=_lower_type(type),
            refresh=True if refresh else None,
        )
        key = cache_key("stops", {k: v for k, v in params.items() if k != "refresh"})
        if not refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return StopsPage.model_validate(cached)

        payload = self.client.get("/api/stops", params=params)
        data = ApiClient.unwrap(payload, "Erreur lors de la récupération des arrêts")
        self.cache.set(key, data, ttl_seconds=self.settings.cache_ttl_stops_seconds)
        return StopsPage.model_validate(data)

    def get_stop(self, stop_id: str) -> Stop:
        payload = self.client.get(f"/api/stops/{stop_id}")
        return Stop.model_validate(ApiClient.unwrap(payload, "Arrêt non trouvé"))

    def update_stop(self, stop_id: str, changes: UpdateStopRequest) -> Stop:
        payload = self.client.patch(f"/api/stops/{stop_id}", changes.to_payload())
        return Stop.model_validate(ApiClient.unwrap(payload, "Erreur lors de la mise à jour"))

    def search_nearby(
        self,
        lat: float,
        lon: float,
        *,
        q: str | None = None,
        radius: float | None = None,
        cluster: bool = False,
        zoom: int | None = None,
        type: str | None = None,
    ) -> dict[str, Any]:
        params = query_params(
            lat=lat,
            lon=lon,
            q=q or None,
            radius=int(radius) if radius else None,
            cluster=True if cluster else None,
            zoom=zoom or None,
            type=type or None,
        )
        payload = self.client.get("/api/search/nearby", params=params)
        return ApiClient.unwrap(payload, "Erreur de recherche")

    def search_stops(self, lat: float, lon: float, query: str, *, radius: float = 5000) -> list[Stop]:
        if not query.strip():
            return []
        data = self.search_nearby(lat, lon, q=query.strip(), radius=radius, cluster=False)
        stops: list[Stop] = []
        for group in data.get("results") or []:
            for item in group.get("items") or []:
                stops.append(Stop.model_validate(item))
        return stops


def _lower_type(value: TransportType | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, TransportType):
        return value.value.lower()
    return str(value).lower()


_service: StopsService | None = None


def get_stops_service() -> StopsService:
    global _service
    if _service is None:
        _service = StopsService()
    return _service
