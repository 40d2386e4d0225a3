from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class TransportType(str, Enum):
    BUS = "BUS"
    GBAKA = "GBAKA"
    WORO_WORO = "WORO_WORO"
    TAXI = "TAXI"
    MOTO_TAXI = "MOTO_TAXI"


class StopType(str, Enum):
    STATION = "STATION"
    BUS_STOP = "BUS_STOP"
    GBAKA_STOP = "GBAKA_STOP"
    TAXI_STAND = "TAXI_STAND"


class ReportType(str, Enum):
    MISSING_STOP = "MISSING_STOP"
    INCORRECT_INFO = "INCORRECT_INFO"
    DAMAGE = "DAMAGE"
    SAFETY_ISSUE = "SAFETY_ISSUE"
    NEW_LINE = "NEW_LINE"
    SCHEDULE_CHANGE = "SCHEDULE_CHANGE"
    DUPLICATE_STOP = "DUPLICATE_STOP"
    OTHER = "OTHER"


class ReportStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    RESOLVED = "RESOLVED"


class Availability(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ApiModel(BaseModel):
    """Base for backend payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Coordinates(ApiModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)

    def as_query(self) -> str:
        return f"{self.lat},{self.lon}"


class BoundingBox(ApiModel):
    north: float = Field(ge=-90, le=90)
    south: float = Field(ge=-90, le=90)
    east: float = Field(ge=-180, le=180)
    west: float = Field(ge=-180, le=180)

    @model_validator(mode="after")
    def ensure_ordered(self) -> "BoundingBox":
        if self.south > self.north:
            raise ValueError("south must be <= north")
        return self


class Stop(ApiModel):
    id: str
    osm_id: str | None = None
    name: str
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    stop_type: StopType = StopType.BUS_STOP
    distance: float | None = None
    shelter: bool | None = None
    bench: bool | None = None
    wheelchair: bool | None = None
    rating: float | None = None
    rating_count: int | None = None
    gbaka: bool | None = None
    woroworo: bool | None = None
    taxi: bool | None = None
    mototaxi: bool | None = None
    verified: bool | None = None
    last_updated: str | None = None
    lines: list["TransportLine"] | None = None

    @field_validator("id", "osm_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def served_modes(self) -> list[str]:
        flags = {
            "gbaka": self.gbaka,
            "woro_woro": self.woroworo,
            "taxi": self.taxi,
            "moto_taxi": self.mototaxi,
        }
        return [mode for mode, enabled in flags.items() if enabled]


class TransportLine(ApiModel):
    id: str
    name: str
    short_name: str | None = None
    color: str = "#0A9396"
    transport_type: TransportType
    operator: str | None = None
    fare: float | None = None
    active: bool | None = None
    stops_count: int | None = None
    stops: list[Stop] | None = None

    @field_validator("transport_type", mode="before")
    @classmethod
    def _upper_type(cls, value: object) -> object:
        if isinstance(value, str):
            return value.upper()
        return value

    @property
    def display_name(self) -> str:
        return self.short_name or self.name


class RouteStep(ApiModel):
    distance: float
    duration: float
    name: str = ""
    instruction: str = ""


class RouteLeg(ApiModel):
    distance: float
    duration: float
    summary: str = ""
    steps: list[RouteStep] = Field(default_factory=list)


class LineStringGeometry(ApiModel):
    type: Literal["LineString"] = "LineString"
    coordinates: list[list[float]] = Field(default_factory=list)


class Route(ApiModel):
    distance: float = Field(ge=0)
    duration: float = Field(ge=0)
    geometry: LineStringGeometry | None = None
    legs: list[RouteLeg] | None = None
    summary: str | None = None


class PriceRange(ApiModel):
    min: float = Field(ge=0)
    max: float = Field(ge=0)

    @model_validator(mode="after")
    def ensure_ordered(self) -> "PriceRange":
        if self.min > self.max:
            raise ValueError("priceRange.min must be <= priceRange.max")
        return self


class NearbyStops(ApiModel):
    start: list[Stop] = Field(default_factory=list)
    end: list[Stop] = Field(default_factory=list)


class TransportSuggestion(ApiModel):
    mode: str
    reason: str = ""
    price_range: PriceRange
    duration: float = Field(default=0, ge=0)
    distance: float = Field(default=0, ge=0)
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    availability: Availability = Availability.MEDIUM
    weather_score: float = Field(default=0, ge=0, le=100)
    overall_score: float = Field(default=0, ge=0, le=100)
    advice: list[str] | None = None
    time_factors: list[str] | None = None
    rank: int | None = None
    nearby_stops: NearbyStops | None = None

    @field_validator("availability", mode="before")
    @classmethod
    def _lower_availability(cls, value: object) -> object:
        if isinstance(value, str):
            return value.lower()
        return value


class Weather(ApiModel):
    temp: float
    feels_like: float | None = Field(default=None, alias="feels_like")
    humidity: float | None = None
    description: str = ""
    main: str = ""
    icon: str | None = None
    is_raining: bool = False
    wind_speed: float | None = None
    visibility: float | None = None
    cloud_cover: float | None = None


class WeatherImpact(ApiModel):
    walking_score: float = Field(ge=0, le=100)
    mototaxi_score: float = Field(ge=0, le=100)
    public_transport_score: float = Field(ge=0, le=100)
    open_transport_score: float = Field(ge=0, le=100)
    recommendations: list[str] = Field(default_factory=list)


class RouteWeather(ApiModel):
    conditions: str = ""
    details: Weather | None = None
    impact: WeatherImpact | None = None
    advice: list[str] = Field(default_factory=list)


class RouteResponse(ApiModel):
    routes: list[Route] = Field(default_factory=list)
    suggestions: list[TransportSuggestion] | None = None
    weather: RouteWeather | None = None
    nearby_transport: Any = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class StopsPage(ApiModel):
    stops: list[Stop] = Field(default_factory=list)
    count: int = 0
    total: int = 0
    from_cache: bool = False
    radius: float = 0


class Pagination(ApiModel):
    page: int = 1
    limit: int = 20
    total: int = 0
    total_pages: int = 0


class ReportAuthor(ApiModel):
    display_name: str
    email: str | None = None


class Report(ApiModel):
    id: str
    user_id: str
    stop_id: str | None = None
    report_type: ReportType
    title: str
    description: str | None = None
    image_url: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lon: float | None = Field(default=None, ge=-180, le=180)
    status: ReportStatus = ReportStatus.PENDING
    created_at: str
    updated_at: str
    user: ReportAuthor | None = None
    stop: Stop | None = None


class ReportsPage(ApiModel):
    reports: list[Report] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class Favorite(ApiModel):
    id: str
    user_id: str
    stop_id: str
    created_at: str
    stop: Stop | None = None


class SearchHistory(ApiModel):
    id: str
    user_id: str
    query: str
    from_lat: float
    from_lon: float
    to_lat: float
    to_lon: float
    created_at: str


class WeatherLocation(ApiModel):
    name: str = ""
    country: str = ""
    coord: Coordinates | None = None


class Wind(ApiModel):
    speed: float = 0
    direction: float = 0


class Sun(ApiModel):
    sunrise: int | None = None
    sunset: int | None = None


class CurrentWeather(ApiModel):
    location: WeatherLocation = Field(default_factory=WeatherLocation)
    current: Weather
    wind: Wind | None = None
    clouds: float | None = None
    sun: Sun | None = None
    timestamp: int | None = None
    transport_advice: list[str] = Field(default_factory=list)


class ModeSuitability(ApiModel):
    score: float = Field(ge=0, le=100)
    advice: list[str] = Field(default_factory=list)


class TransportSuitability(ApiModel):
    walking: ModeSuitability | None = None
    moto_taxi: ModeSuitability | None = Field(default=None, alias="moto_taxi")
    open_transport: ModeSuitability | None = Field(default=None, alias="open_transport")
    covered_transport: ModeSuitability | None = Field(default=None, alias="covered_transport")


class ForecastHour(ApiModel):
    datetime: str
    timestamp: int
    hour: int
    temp: float
    feels_like: float | None = Field(default=None, alias="feels_like")
    temp_range: dict[str, float] | None = Field(default=None, alias="temp_range")
    weather: dict[str, str] = Field(default_factory=dict)
    conditions: dict[str, Any] = Field(default_factory=dict)
    transport_suitability: TransportSuitability | None = None

    @property
    def rain_probability(self) -> float:
        return float(self.conditions.get("rain_probability") or 0)


class Forecast(ApiModel):
    location: Any = None
    forecasts: list[ForecastHour] = Field(default_factory=list)
    transport_impact: Any = None
    recommendations: list[str] = Field(default_factory=list)
    summary: str = ""
    hours_requested: int | None = None
    generated_at: str | None = None


class CreateReportRequest(ApiModel):
    stop_id: str | None = None
    report_type: ReportType
    title: str = Field(min_length=1)
    description: str | None = None
    image_url: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lon: float | None = Field(default=None, ge=-180, le=180)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be blank")
        return cleaned


class UpdateStopRequest(ApiModel):
    name: str | None = None
    shelter: bool | None = None
    bench: bool | None = None
    wheelchair: bool | None = None

    @model_validator(mode="after")
    def ensure_payload(self) -> "UpdateStopRequest":
        if not self.model_fields_set:
            raise ValueError("Provide at least one field to update")
        return self


class CreateLineRequest(ApiModel):
    name: str = Field(min_length=1)
    short_name: str | None = None
    color: str | None = None
    transport_type: TransportType
    operator: str | None = None
    fare: float | None = Field(default=None, ge=0)
    route_ref: str | None = None
    stop_ids: list[str] | None = None


class HistoryEntryRequest(ApiModel):
    query: str
    from_lat: float = Field(ge=-90, le=90)
    from_lon: float = Field(ge=-180, le=180)
    to_lat: float = Field(ge=-90, le=90)
    to_lon: float = Field(ge=-180, le=180)


Stop.model_rebuild()
