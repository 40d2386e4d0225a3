from __future__ import annotations

from typing import Any, Literal, Sequence

from gbakamap.schemas.api import BoundingBox, CreateLineRequest, TransportLine, TransportType
from gbakamap.services.api_client import ApiClient, get_api_client, query_params
from gbakamap.services.cache import CacheBackend, cache_key, get_cache
from gbakamap.utils.settings import get_settings


class LinesService:
    def __init__(self, client: ApiClient | None = None, cache: CacheBackend | None = None) -> None:
        self.settings = get_settings()
        self.client = client or get_api_client()
        self.cache = cache or get_cache()

    def get_lines(
        self,
        *,
        type: TransportType | None = None,
        active: bool | None = None,
        include_stops: bool = False,
        refresh: bool = False,
    ) -> list[TransportLine]:
        params = query_params(
            type=type.value.lower() if type else None,
            active=active,
            includeStops=True if include_stops else None,
        )
        key = cache_key("lines", params)
        cached = None if refresh else self.cache.get(key)
        if cached is None:
            payload = self.client.get("/api/lines", params=params)
            data = ApiClient.unwrap(payload, "Erreur lors de la récupération des lignes")
            cached = data.get("lines") or []
            self.cache.set(key, cached, ttl_seconds=self.settings.cache_ttl_lines_seconds)
        return [TransportLine.model_validate(item) for item in cached]

    def create_line(self, request: CreateLineRequest) -> TransportLine:
        payload = self.client.post("/api/lines", request.to_payload())
        return TransportLine.model_validate(ApiClient.unwrap(payload, "Erreur lors de la création de la ligne"))

    def get_transport_lines(
        self,
        bbox: BoundingBox,
        *,
        types: Sequence[str] | None = None,
        format: Literal["map", "api", "geojson"] | None = None,
        refresh: bool = False,
    ) -> Any:
        params = query_params(
            north=bbox.north,
            south=bbox.south,
            east=bbox.east,
            west=bbox.west,
            types=",".join(types) if types else None,
            format=format,
            refresh=True if refresh else None,
        )
        payload = self.client.get("/api/transport-lines", params=params)
        return ApiClient.unwrap(payload, "Erreur lors de la récupération")


_service: LinesService | None = None


def get_lines_service() -> LinesService:
    global _service
    if _service is None:
        _service = LinesService()
    return _service
