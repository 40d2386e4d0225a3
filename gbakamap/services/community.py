from __future__ import annotations

import logging

from gbakamap.schemas.api import (
    CreateReportRequest,
    Favorite,
    HistoryEntryRequest,
    ReportStatus,
    Report,
    ReportsPage,
    SearchHistory,
)
from gbakamap.services.api_client import ApiClient, get_api_client, query_params
from gbakamap.utils.errors import AppError


LOGGER = logging.getLogger(__name__)


class CommunityService:
    def __init__(self, client: ApiClient | None = None) -> None:
        self.client = client or get_api_client()

    def create_report(self, request: CreateReportRequest) -> Report:
        payload = self.client.post("/api/reports", request.to_payload())
        return Report.model_validate(ApiClient.unwrap(payload, "Erreur lors de la création du signalement"))

    def get_reports(
        self,
        *,
        status: ReportStatus | None = None,
        stop_id: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> ReportsPage:
        params = query_params(
            status=status.value if status else None,
            stopId=stop_id or None,
            page=page or None,
            limit=limit or None,
        )
        payload = self.client.get("/api/reports", params=params)
        return ReportsPage.model_validate(ApiClient.unwrap(payload, "Erreur lors de la récupération"))

    def add_favorite(self, stop_id: str) -> Favorite:
        payload = self.client.post("/api/favorites", {"stopId": stop_id})
        return Favorite.model_validate(ApiClient.unwrap(payload, "Erreur lors de l'ajout"))

    def get_favorites(self) -> list[Favorite]:
        payload = self.client.get("/api/favorites")
        data = ApiClient.unwrap(payload, "Erreur lors de la récupération")
        return [Favorite.model_validate(item) for item in data]

    def remove_favorite(self, stop_id: str) -> None:
        payload = self.client.delete(f"/api/favorites/{stop_id}")
        ApiClient.unwrap(payload, "Erreur lors de la suppression", require_data=False)

    def is_favorite(self, stop_id: str) -> bool:
        try:
            favorites = self.get_favorites()
        except AppError as exc:
            LOGGER.warning("Favorite lookup failed for stop %s: %s", stop_id, exc)
            return False
        return any(fav.stop_id == stop_id for fav in favorites)

    def toggle_favorite(self, stop_id: str) -> bool:
        if self.is_favorite(stop_id):
            self.remove_favorite(stop_id)
            return False
        self.add_favorite(stop_id)
        return True

    def add_to_history(self, entry: HistoryEntryRequest) -> SearchHistory:
        payload = self.client.post("/api/history", entry.to_payload())
        return SearchHistory.model_validate(ApiClient.unwrap(payload, "Erreur lors de l'enregistrement"))


_service: CommunityService | None = None


def get_community_service() -> CommunityService:
    global _service
    if _service is None:
        _service = CommunityService()
    return _service
