from __future__ import annotations

from dataclasses import dataclass

from gbakamap.schemas.api import Availability, ReportType, TransportType


@dataclass(frozen=True)
class TransportTypeInfo:
    label: str
    icon: str
    color: str
    price_range: str


@dataclass(frozen=True)
class ReportTypeInfo:
    label: str
    icon: str
    color: str


TRANSPORT_TYPES: dict[TransportType, TransportTypeInfo] = {
    TransportType.BUS: TransportTypeInfo("Bus", "bus", "#FF6B35", "200-500 FCFA"),
    TransportType.GBAKA: TransportTypeInfo("Gbaka", "car", "#0A9396", "100-250 FCFA"),
    TransportType.WORO_WORO: TransportTypeInfo("Wôrô-wôrô", "car-side", "#F72585", "50-150 FCFA"),
    TransportType.TAXI: TransportTypeInfo("Taxi", "taxi", "#FFB703", "500+ FCFA"),
    TransportType.MOTO_TAXI: TransportTypeInfo("Moto-taxi", "motorcycle", "#8338EC", "100-400 FCFA"),
}

REPORT_TYPES: dict[ReportType, ReportTypeInfo] = {
    ReportType.MISSING_STOP: ReportTypeInfo("Arrêt manquant", "map-marker-plus", "#3498DB"),
    ReportType.INCORRECT_INFO: ReportTypeInfo("Information incorrecte", "alert-circle", "#F39C12"),
    ReportType.DAMAGE: ReportTypeInfo("Dégradation", "alert", "#E74C3C"),
    ReportType.SAFETY_ISSUE: ReportTypeInfo("Problème de sécurité", "shield-alert", "#E74C3C"),
    ReportType.NEW_LINE: ReportTypeInfo("Nouvelle ligne", "route", "#2ECC71"),
    ReportType.SCHEDULE_CHANGE: ReportTypeInfo("Changement d'horaire", "clock", "#F39C12"),
    ReportType.DUPLICATE_STOP: ReportTypeInfo("Doublon", "content-copy", "#F39C12"),
    ReportType.OTHER: ReportTypeInfo("Autre", "dots-horizontal", "#757575"),
}

MODE_ICONS: dict[str, str] = {
    "bus": "bus",
    "gbaka": "car",
    "woro_woro": "car-sport",
    "taxi": "taxi",
    "moto_taxi": "bicycle",
    "walking": "walk",
}
UNKNOWN_MODE_ICON = "help-circle"
WALKING_COLOR = "#2ECC71"
FALLBACK_COLOR = "#757575"

AVAILABILITY_LABELS: dict[Availability, str] = {
    Availability.HIGH: "élevée",
    Availability.MEDIUM: "moyenne",
    Availability.LOW: "faible",
}


def normalize_mode(mode: str) -> str:
    return str(mode or "").strip().lower().replace("-", "_").replace(" ", "_")


def transport_type_for_mode(mode: str) -> TransportType | None:
    try:
        return TransportType(normalize_mode(mode).upper())
    except ValueError:
        return None


def mode_icon(mode: str) -> str:
    return MODE_ICONS.get(normalize_mode(mode), UNKNOWN_MODE_ICON)


def mode_label(mode: str) -> str:
    transport_type = transport_type_for_mode(mode)
    if transport_type is not None:
        return TRANSPORT_TYPES[transport_type].label
    if normalize_mode(mode) == "walking":
        return "Marche"
    return str(mode or "").strip() or "Inconnu"


def mode_color(mode: str) -> str:
    transport_type = transport_type_for_mode(mode)
    if transport_type is not None:
        return TRANSPORT_TYPES[transport_type].color
    if normalize_mode(mode) == "walking":
        return WALKING_COLOR
    return FALLBACK_COLOR
