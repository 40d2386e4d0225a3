from __future__ import annotations

import math
from urllib.parse import quote

from gbakamap.schemas.api import Coordinates, Stop
from gbakamap.utils.errors import AppError
from gbakamap.utils.settings import get_settings


def default_location() -> Coordinates:
    settings = get_settings()
    return Coordinates(lat=settings.default_lat, lon=settings.default_lon)


def resolve_location(lat: float | None = None, lon: float | None = None) -> Coordinates:
    """Current position when known, otherwise the configured default (Abidjan)."""
    if lat is None or lon is None:
        return default_location()
    return Coordinates(lat=lat, lon=lon)


def parse_coordinates(value: str) -> Coordinates:
    parts = [part.strip() for part in str(value or "").split(",")]
    if len(parts) != 2:
        raise AppError(
            message=f"Coordonnées invalides: {value!r} (format attendu: lat,lon)",
            error_code="INVALID_COORDINATES",
            stage="VALIDATION",
        )
    try:
        return Coordinates(lat=float(parts[0]), lon=float(parts[1]))
    except ValueError as exc:
        raise AppError(
            message=f"Coordonnées invalides: {value!r}",
            error_code="INVALID_COORDINATES",
            stage="VALIDATION",
        ) from exc


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    radius = 6371000.0
    p = math.pi / 180
    dlat = (lat2 - lat1) * p
    dlon = (lon2 - lon1) * p
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1 * p) * math.cos(lat2 * p) * math.sin(dlon / 2) ** 2
    )
    return 2 * radius * math.asin(math.sqrt(a))


def distance_to(stop: Stop, origin: Coordinates) -> float:
    if stop.distance is not None:
        return float(stop.distance)
    return haversine_m(origin.lat, origin.lon, stop.lat, stop.lon)


def distance_text(stop: Stop) -> str:
    if not stop.distance:
        return "Distance inconnue"
    return f"À {round(stop.distance)}m"


def maps_url(stop: Stop) -> str:
    return f"geo:{stop.lat},{stop.lon}?q={stop.lat},{stop.lon}({quote(stop.name)})"
