"""Ranking and presentation of transport-mode suggestions.

The backend scores every mode for a route (overall score, weather score,
price range, availability) and usually returns a rank. The client only
orders those records, optionally re-weighted by the user's preference,
and turns each one into a display card.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from pydantic import ValidationError

from gbakamap.schemas.api import Availability, RouteResponse, TransportSuggestion
from gbakamap.services.catalog import AVAILABILITY_LABELS, mode_color, mode_icon, mode_label


LOGGER = logging.getLogger(__name__)

AVAILABILITY_ORDER: dict[Availability, int] = {
    Availability.LOW: 1,
    Availability.MEDIUM: 2,
    Availability.HIGH: 3,
}

PREFERENCE_CHOICES = ("speed", "cost", "weather")


@dataclass(frozen=True)
class RankingPreferences:
    prioritize_speed: bool = False
    prioritize_cost: bool = False
    consider_weather: bool = False

    @classmethod
    def from_choices(cls, choices: Iterable[str] | None) -> "RankingPreferences":
        selected = {str(choice).strip().lower() for choice in choices or []}
        unknown = selected - set(PREFERENCE_CHOICES)
        if unknown:
            raise ValueError(f"Unknown ranking preference(s): {', '.join(sorted(unknown))}")
        return cls(
            prioritize_speed="speed" in selected,
            prioritize_cost="cost" in selected,
            consider_weather="weather" in selected,
        )

    @property
    def active(self) -> bool:
        return self.prioritize_speed or self.prioritize_cost or self.consider_weather


@dataclass
class SuggestionCard:
    rank: int
    mode: str
    label: str
    icon: str
    color: str
    reason: str
    score_text: str
    duration_text: str
    distance_text: str
    price_text: str
    availability: str
    availability_label: str
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)
    advice: list[str] = field(default_factory=list)
    time_factors: list[str] = field(default_factory=list)


@dataclass
class RoutePresentation:
    weather_conditions: str | None
    weather_advice: list[str]
    distance_text: str | None
    duration_text: str | None
    cards: list[SuggestionCard]

    @property
    def best(self) -> SuggestionCard | None:
        return self.cards[0] if self.cards else None


def coerce_suggestions(raw: Iterable[Any] | None) -> list[TransportSuggestion]:
    """Validate raw suggestion records, dropping the ones that do not parse."""
    suggestions: list[TransportSuggestion] = []
    for idx, item in enumerate(raw or []):
        if isinstance(item, TransportSuggestion):
            suggestions.append(item)
            continue
        try:
            suggestions.append(TransportSuggestion.model_validate(item))
        except ValidationError as exc:
            LOGGER.warning("Skipping malformed suggestion at index %s: %s", idx, exc.errors()[:1])
    return suggestions


def _has_rank(suggestion: TransportSuggestion) -> bool:
    return suggestion.rank is not None and suggestion.rank > 0


def _default_key(suggestion: TransportSuggestion) -> tuple:
    ranked = _has_rank(suggestion)
    return (
        0 if ranked else 1,
        suggestion.rank if ranked else 0,
        -suggestion.overall_score,
        -suggestion.weather_score,
        suggestion.price_range.min,
        suggestion.duration,
    )


def _preference_key(suggestion: TransportSuggestion, preferences: RankingPreferences) -> tuple:
    key: list[float] = []
    if preferences.prioritize_speed:
        key.append(suggestion.duration)
    if preferences.prioritize_cost:
        key.extend((suggestion.price_range.min, suggestion.price_range.max))
    if preferences.consider_weather:
        key.append(-suggestion.weather_score)
    return tuple(key)


def rank_suggestions(
    suggestions: Sequence[TransportSuggestion] | None,
    preferences: RankingPreferences | None = None,
) -> list[TransportSuggestion]:
    """Order suggestions and renumber their rank from 1.

    Without preferences the server rank wins; unranked records follow,
    best overall score first. Preferences put duration, price or weather
    score ahead of that order. Equal records keep their input order.
    """
    prefs = preferences or RankingPreferences()
    indexed = list(enumerate(suggestions or []))
    indexed.sort(key=lambda pair: (_preference_key(pair[1], prefs), _default_key(pair[1]), pair[0]))
    return [item.model_copy(update={"rank": position}) for position, (_, item) in enumerate(indexed, start=1)]


def filter_by_availability(
    suggestions: Sequence[TransportSuggestion] | None,
    minimum: Availability | str = Availability.LOW,
) -> list[TransportSuggestion]:
    threshold = AVAILABILITY_ORDER[Availability(str(getattr(minimum, "value", minimum)).lower())]
    return [item for item in suggestions or [] if AVAILABILITY_ORDER[item.availability] >= threshold]


def best_suggestion(
    suggestions: Sequence[TransportSuggestion] | None,
    preferences: RankingPreferences | None = None,
) -> TransportSuggestion | None:
    ranked = rank_suggestions(suggestions, preferences)
    return ranked[0] if ranked else None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}".rstrip("0").rstrip(".")


def duration_text(seconds: float) -> str:
    return f"~{_round_half_up(seconds / 60)} min"


def distance_text(meters: float) -> str:
    return f"{meters / 1000:.1f} km"


def price_text(minimum: float, maximum: float) -> str:
    return f"{_number(minimum)}-{_number(maximum)} FCFA"


def present_suggestion(suggestion: TransportSuggestion) -> SuggestionCard:
    return SuggestionCard(
        rank=suggestion.rank or 0,
        mode=suggestion.mode,
        label=mode_label(suggestion.mode),
        icon=mode_icon(suggestion.mode),
        color=mode_color(suggestion.mode),
        reason=suggestion.reason,
        score_text=f"{_number(suggestion.overall_score)}/100",
        duration_text=duration_text(suggestion.duration),
        distance_text=distance_text(suggestion.distance),
        price_text=price_text(suggestion.price_range.min, suggestion.price_range.max),
        availability=suggestion.availability.value,
        availability_label=AVAILABILITY_LABELS[suggestion.availability],
        pros=list(suggestion.pros),
        cons=list(suggestion.cons),
        advice=list(suggestion.advice or []),
        time_factors=list(suggestion.time_factors or []),
    )


def present_route(
    response: RouteResponse,
    preferences: RankingPreferences | None = None,
    *,
    minimum_availability: Availability | str = Availability.LOW,
) -> RoutePresentation:
    candidates = filter_by_availability(response.suggestions, minimum_availability)
    cards = [present_suggestion(item) for item in rank_suggestions(candidates, preferences)]

    primary = response.routes[0] if response.routes else None
    weather = response.weather
    return RoutePresentation(
        weather_conditions=weather.conditions if weather else None,
        weather_advice=list(weather.advice) if weather else [],
        distance_text=distance_text(primary.distance) if primary else None,
        duration_text=duration_text(primary.duration) if primary else None,
        cards=cards,
    )


def render_card(card: SuggestionCard) -> str:
    lines = [
        f"#{card.rank} {card.label} [{card.score_text}] {card.reason}".rstrip(),
        f"   {card.duration_text} | {card.price_text} | Disponibilité: {card.availability_label}",
    ]
    lines.extend(f"   + {pro}" for pro in card.pros)
    lines.extend(f"   - {con}" for con in card.cons)
    lines.extend(f"   * {tip}" for tip in card.advice)
    return "\n".join(lines)


def render_route(presentation: RoutePresentation) -> str:
    lines: list[str] = []
    if presentation.weather_conditions:
        lines.append(f"Météo: {presentation.weather_conditions}")
        lines.extend(f"  {advice}" for advice in presentation.weather_advice)
    if presentation.distance_text:
        lines.append(f"Itinéraire trouvé: {presentation.distance_text}, {presentation.duration_text}")
    if not presentation.cards:
        lines.append("Aucune suggestion de transport disponible")
    for card in presentation.cards:
        lines.append(render_card(card))
    return "\n".join(lines)
