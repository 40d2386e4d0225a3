from __future__ import annotations

from typing import Any, Literal, Sequence

from gbakamap.schemas.api import Coordinates, RouteResponse
from gbakamap.services.api_client import ApiClient, get_api_client, query_params
from gbakamap.services.suggestions import coerce_suggestions


class RoutesService:
    def __init__(self, client: ApiClient | None = None) -> None:
        self.client = client or get_api_client()

    def get_route(
        self,
        origin: Coordinates,
        destination: Coordinates,
        *,
        mode: Literal["driving", "walking"] | None = None,
        alternatives: bool = False,
        suggestions: bool = True,
        weather: bool = True,
    ) -> RouteResponse:
        params = query_params(
            **{"from": origin.as_query(), "to": destination.as_query()},
            mode=mode,
            alternatives=True if alternatives else None,
            suggestions=True if suggestions else None,
            weather=True if weather else None,
        )
        payload = self.client.get("/api/route", params=params)
        data = ApiClient.unwrap(payload, "Aucun itinéraire trouvé")
        raw_suggestions = data.get("suggestions")
        response = RouteResponse.model_validate({**data, "suggestions": None})
        if raw_suggestions is not None:
            response.suggestions = coerce_suggestions(raw_suggestions)
        return response

    def compare_routes(
        self,
        routes: Sequence[tuple[str, Coordinates, Coordinates]],
        *,
        prioritize_speed: bool | None = None,
        consider_weather: bool | None = None,
        prioritize_cost: bool | None = None,
    ) -> Any:
        body: dict[str, Any] = {
            "routes": [
                {"from": origin.to_payload(), "to": destination.to_payload(), "name": name}
                for name, origin, destination in routes
            ]
        }
        preferences = {
            "prioritizeSpeed": prioritize_speed,
            "considerWeather": consider_weather,
            "prioritizeCost": prioritize_cost,
        }
        preferences = {k: v for k, v in preferences.items() if v is not None}
        if preferences:
            body["preferences"] = preferences

        payload = self.client.post("/api/route/compare", body)
        return ApiClient.unwrap(payload, "Erreur de comparaison")

    def optimize_route(
        self,
        waypoints: Sequence[Coordinates],
        *,
        names: Sequence[str | None] | None = None,
        avoid_traffic: bool | None = None,
        consider_weather: bool | None = None,
    ) -> Any:
        labels = list(names or [])
        points: list[dict[str, Any]] = []
        for idx, point in enumerate(waypoints):
            item = point.to_payload()
            if idx < len(labels) and labels[idx]:
                item["name"] = labels[idx]
            points.append(item)

        body: dict[str, Any] = {"waypoints": points}
        preferences = {"avoidTraffic": avoid_traffic, "considerWeather": consider_weather}
        preferences = {k: v for k, v in preferences.items() if v is not None}
        if preferences:
            body["preferences"] = preferences

        payload = self.client.post("/api/route/optimize", body)
        return ApiClient.unwrap(payload, "Erreur d'optimisation")

    def get_saved_route(self, route_id: str, *, weather: bool = True, alternatives: bool = False) -> Any:
        params = query_params(
            weather=True if weather else None,
            alternatives=True if alternatives else None,
        )
        payload = self.client.get(f"/api/route/{route_id}", params=params)
        return ApiClient.unwrap(payload, "Itinéraire non trouvé")


_service: RoutesService | None = None


def get_routes_service() -> RoutesService:
    global _service
    if _service is None:
        _service = RoutesService()
    return _service
