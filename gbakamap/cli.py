from __future__ import annotations

import argparse
import getpass
import logging
import sys
from enum import Enum

from pydantic import ValidationError

from gbakamap.providers import get_auth_provider
from gbakamap.schemas.api import (
    Availability,
    CreateReportRequest,
    HistoryEntryRequest,
    ReportStatus,
    ReportType,
    Stop,
    TransportType,
)
from gbakamap.services.catalog import REPORT_TYPES, TRANSPORT_TYPES
from gbakamap.services.community import get_community_service
from gbakamap.services.lines import get_lines_service
from gbakamap.services.location import distance_text, maps_url, parse_coordinates, resolve_location
from gbakamap.services.routes import get_routes_service
from gbakamap.services.stops import get_stops_service
from gbakamap.services.suggestions import PREFERENCE_CHOICES, RankingPreferences, present_route, render_route
from gbakamap.services.validation import validate_reset, validate_sign_in, validate_sign_up
from gbakamap.services.weather import get_weather_service
from gbakamap.utils.errors import AppError, log_error, user_message
from gbakamap.utils.settings import get_settings


LOGGER = logging.getLogger("gbakamap.cli")


def _print_form_errors(errors: dict[str, str]) -> int:
    for field_name, message in errors.items():
        print(f"{field_name}: {message}", file=sys.stderr)
    return 1


def _password(value: str | None, prompt: str = "Mot de passe: ") -> str:
    return value if value is not None else getpass.getpass(prompt)


def _format_stop(stop: Stop) -> str:
    lines = ", ".join(line.display_name for line in (stop.lines or [])[:3])
    suffix = f" [{lines}]" if lines else ""
    return f"{stop.id}  {stop.name}  ({distance_text(stop)}){suffix}"


def run_signup(args: argparse.Namespace) -> int:
    password = _password(args.password)
    confirm = _password(args.confirm_password, "Confirmation: ")
    errors = validate_sign_up(args.name, args.email, password, confirm, args.accept_terms)
    if errors:
        return _print_form_errors(errors)

    user = get_auth_provider().sign_up(args.email.strip(), password, args.name.strip())
    print(f"Compte créé: {user.display_name} <{user.email}>")
    return 0


def run_login(args: argparse.Namespace) -> int:
    password = _password(args.password)
    errors = validate_sign_in(args.email, password)
    if errors:
        return _print_form_errors(errors)

    user = get_auth_provider().sign_in(args.email.strip(), password)
    print(f"Connecté: {user.display_name or 'Utilisateur'} <{user.email}>")
    return 0


def run_logout(args: argparse.Namespace) -> int:  # noqa: ARG001
    get_auth_provider().sign_out()
    print("Déconnecté")
    return 0


def run_reset_password(args: argparse.Namespace) -> int:
    errors = validate_reset(args.email)
    if errors:
        return _print_form_errors(errors)

    get_auth_provider().reset_password(args.email.strip())
    print(f"Email de réinitialisation envoyé à {args.email.strip()}")
    return 0


def run_whoami(args: argparse.Namespace) -> int:  # noqa: ARG001
    user = get_auth_provider().current_user()
    if user is None:
        print("Non connecté")
        return 1
    print(f"{user.display_name or 'Utilisateur'} <{user.email or ''}> ({user.uid})")
    return 0


def run_stops(args: argparse.Namespace) -> int:
    origin = resolve_location(args.lat, args.lon)
    page = get_stops_service().get_stops(
        origin.lat,
        origin.lon,
        radius=args.radius,
        type=args.type,
        limit=args.limit,
        refresh=args.refresh,
    )
    print(f"{page.count} arrêt(s) sur {page.total} dans un rayon de {int(page.radius)} m")
    for stop in page.stops:
        print(_format_stop(stop))
    return 0


def run_stop(args: argparse.Namespace) -> int:
    stop = get_stops_service().get_stop(args.stop_id)
    print(stop.name)
    print(f"  Position: {stop.lat}, {stop.lon}  ({maps_url(stop)})")
    amenities = [name for name, flag in (("abri", stop.shelter), ("banc", stop.bench), ("accessible", stop.wheelchair)) if flag]
    if amenities:
        print(f"  Équipements: {', '.join(amenities)}")
    if stop.served_modes:
        print(f"  Modes: {', '.join(stop.served_modes)}")
    for line in stop.lines or []:
        print(f"  Ligne {line.display_name} ({TRANSPORT_TYPES[line.transport_type].label})")
    if get_auth_provider().is_authenticated():
        favorite = get_community_service().is_favorite(stop.id)
        print(f"  Favori: {'oui' if favorite else 'non'}")
    return 0


def run_search(args: argparse.Namespace) -> int:
    origin = resolve_location(args.lat, args.lon)
    stops = get_stops_service().search_stops(origin.lat, origin.lon, args.query, radius=args.radius)
    if not stops:
        print("Aucun arrêt trouvé")
        return 0
    for stop in stops:
        print(_format_stop(stop))
    return 0


def run_route(args: argparse.Namespace) -> int:
    origin = parse_coordinates(args.origin) if args.origin else resolve_location()
    destination = parse_coordinates(args.destination)
    preferences = RankingPreferences.from_choices(args.prefer)

    response = get_routes_service().get_route(
        origin,
        destination,
        mode=args.mode,
        alternatives=args.alternatives,
        suggestions=True,
        weather=not args.no_weather,
    )
    presentation = present_route(response, preferences, minimum_availability=args.min_availability)
    print(render_route(presentation))

    if get_auth_provider().is_authenticated():
        entry = HistoryEntryRequest(
            query=args.query or f"{origin.as_query()} -> {destination.as_query()}",
            from_lat=origin.lat,
            from_lon=origin.lon,
            to_lat=destination.lat,
            to_lon=destination.lon,
        )
        try:
            get_community_service().add_to_history(entry)
        except AppError as exc:
            LOGGER.warning("Search history not recorded: %s", exc)
    return 0


def _weather_location(args: argparse.Namespace) -> dict:
    if args.city:
        return {"q": args.city}
    origin = resolve_location(args.lat, args.lon)
    return {"lat": origin.lat, "lon": origin.lon}


def run_weather(args: argparse.Namespace) -> int:
    weather = get_weather_service().get_current(**_weather_location(args), refresh=args.refresh)
    current = weather.current
    name = weather.location.name or "Position actuelle"
    print(f"{name}: {current.temp}°C, {current.description}")
    if current.is_raining:
        print("  Pluie en cours")
    for advice in weather.transport_advice:
        print(f"  {advice}")
    return 0


def run_forecast(args: argparse.Namespace) -> int:
    forecast = get_weather_service().get_forecast(
        **_weather_location(args),
        hours=args.hours,
        transport=args.transport,
    )
    if forecast.summary:
        print(forecast.summary)
    for hour in forecast.forecasts:
        description = hour.weather.get("description", "")
        print(f"{hour.hour:02d}h  {hour.temp}°C  {description}  pluie {round(hour.rain_probability)}%")
    for recommendation in forecast.recommendations:
        print(f"  {recommendation}")
    return 0


def run_lines(args: argparse.Namespace) -> int:
    lines = get_lines_service().get_lines(
        type=args.type,
        active=args.active,
        include_stops=args.include_stops,
        refresh=args.refresh,
    )
    for line in lines:
        info = TRANSPORT_TYPES[line.transport_type]
        fare = f"{int(line.fare)} FCFA" if line.fare is not None else info.price_range
        print(f"{line.id}  {line.display_name}  {info.label}  {fare}")
    return 0


def run_favorites(args: argparse.Namespace) -> int:
    service = get_community_service()
    if args.action == "list":
        favorites = service.get_favorites()
        if not favorites:
            print("Aucun favori")
        for favorite in favorites:
            name = favorite.stop.name if favorite.stop else ""
            print(f"{favorite.stop_id}  {name}".rstrip())
        return 0

    if not args.stop_id:
        print("stop_id requis", file=sys.stderr)
        return 1
    if args.action == "add":
        service.add_favorite(args.stop_id)
        print(f"Ajouté aux favoris: {args.stop_id}")
    elif args.action == "remove":
        service.remove_favorite(args.stop_id)
        print(f"Retiré des favoris: {args.stop_id}")
    else:
        added = service.toggle_favorite(args.stop_id)
        print(f"{'Ajouté aux' if added else 'Retiré des'} favoris: {args.stop_id}")
    return 0


def run_report(args: argparse.Namespace) -> int:
    service = get_community_service()
    if args.action == "create":
        if not (args.title or "").strip():
            return _print_form_errors({"title": "Titre requis"})
        request = CreateReportRequest(
            stop_id=args.stop_id,
            report_type=args.type,
            title=args.title or "",
            description=args.description,
            lat=args.lat,
            lon=args.lon,
        )
        report = service.create_report(request)
        print(f"Signalement créé: {report.id} ({REPORT_TYPES[report.report_type].label})")
        return 0

    page = service.get_reports(status=args.status, stop_id=args.stop_id, page=args.page, limit=args.limit)
    for report in page.reports:
        print(f"{report.id}  [{report.status.value}]  {REPORT_TYPES[report.report_type].label}: {report.title}")
    print(f"Page {page.pagination.page}/{page.pagination.total_pages} ({page.pagination.total} au total)")
    return 0


def _enum_arg(enum_cls: type[Enum]):
    members = {str(member.value).lower(): member for member in enum_cls}

    def parse(value: str) -> Enum:
        member = members.get(str(value).strip().lower().replace("-", "_"))
        if member is None:
            raise argparse.ArgumentTypeError(f"choix invalide: {value!r} (choisir parmi {', '.join(members)})")
        return member

    parse.__name__ = enum_cls.__name__
    return parse


def _enum_metavar(enum_cls: type[Enum]) -> str:
    return "{" + ",".join(str(member.value).lower() for member in enum_cls) + "}"


def _add_position(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--lat", type=float, default=None)
    parser.add_argument("--lon", type=float, default=None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gbakamap",
        description="Stops, routes, weather-aware transport suggestions and community reports.",
    )
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    subparsers = parser.add_subparsers(dest="command", required=True)

    signup_cmd = subparsers.add_parser("signup", help="Create an account.")
    signup_cmd.add_argument("--name", required=True)
    signup_cmd.add_argument("--email", required=True)
    signup_cmd.add_argument("--password", default=None)
    signup_cmd.add_argument("--confirm-password", default=None)
    signup_cmd.add_argument("--accept-terms", action="store_true")
    signup_cmd.set_defaults(func=run_signup)

    login_cmd = subparsers.add_parser("login", help="Sign in with email and password.")
    login_cmd.add_argument("--email", required=True)
    login_cmd.add_argument("--password", default=None)
    login_cmd.set_defaults(func=run_login)

    logout_cmd = subparsers.add_parser("logout", help="Sign out and forget the stored token.")
    logout_cmd.set_defaults(func=run_logout)

    reset_cmd = subparsers.add_parser("reset-password", help="Send a password reset email.")
    reset_cmd.add_argument("--email", required=True)
    reset_cmd.set_defaults(func=run_reset_password)

    whoami_cmd = subparsers.add_parser("whoami", help="Show the signed-in user.")
    whoami_cmd.set_defaults(func=run_whoami)

    stops_cmd = subparsers.add_parser("stops", help="List stops around a position.")
    _add_position(stops_cmd)
    stops_cmd.add_argument("--radius", type=float, default=None)
    stops_cmd.add_argument("--type", type=_enum_arg(TransportType), metavar=_enum_metavar(TransportType), default=None)
    stops_cmd.add_argument("--limit", type=int, default=None)
    stops_cmd.add_argument("--refresh", action="store_true")
    stops_cmd.set_defaults(func=run_stops)

    stop_cmd = subparsers.add_parser("stop", help="Show one stop.")
    stop_cmd.add_argument("stop_id")
    stop_cmd.set_defaults(func=run_stop)

    search_cmd = subparsers.add_parser("search", help="Search stops by name near a position.")
    search_cmd.add_argument("query")
    _add_position(search_cmd)
    search_cmd.add_argument("--radius", type=float, default=5000)
    search_cmd.set_defaults(func=run_search)

    route_cmd = subparsers.add_parser("route", help="Compute a route and rank transport suggestions.")
    route_cmd.add_argument("--from", dest="origin", default=None, help="lat,lon (default: current/default position)")
    route_cmd.add_argument("--to", dest="destination", required=True, help="lat,lon")
    route_cmd.add_argument("--query", default=None, help="Label stored in search history.")
    route_cmd.add_argument("--mode", choices=["driving", "walking"], default=None)
    route_cmd.add_argument("--alternatives", action="store_true")
    route_cmd.add_argument("--no-weather", action="store_true")
    route_cmd.add_argument("--prefer", action="append", choices=list(PREFERENCE_CHOICES), default=[])
    route_cmd.add_argument(
        "--min-availability",
        type=_enum_arg(Availability),
        metavar=_enum_metavar(Availability),
        default=Availability.LOW,
    )
    route_cmd.set_defaults(func=run_route)

    weather_cmd = subparsers.add_parser("weather", help="Current weather and transport advice.")
    weather_cmd.add_argument("--city", default=None)
    _add_position(weather_cmd)
    weather_cmd.add_argument("--refresh", action="store_true")
    weather_cmd.set_defaults(func=run_weather)

    forecast_cmd = subparsers.add_parser("forecast", help="Hourly forecast.")
    forecast_cmd.add_argument("--city", default=None)
    _add_position(forecast_cmd)
    forecast_cmd.add_argument("--hours", type=int, default=None)
    forecast_cmd.add_argument("--transport", action="store_true")
    forecast_cmd.set_defaults(func=run_forecast)

    lines_cmd = subparsers.add_parser("lines", help="List transport lines.")
    lines_cmd.add_argument("--type", type=_enum_arg(TransportType), metavar=_enum_metavar(TransportType), default=None)
    lines_cmd.add_argument("--active", action=argparse.BooleanOptionalAction, default=None)
    lines_cmd.add_argument("--include-stops", action="store_true")
    lines_cmd.add_argument("--refresh", action="store_true")
    lines_cmd.set_defaults(func=run_lines)

    favorites_cmd = subparsers.add_parser("favorites", help="Manage favorite stops.")
    favorites_cmd.add_argument("action", choices=["list", "add", "remove", "toggle"])
    favorites_cmd.add_argument("stop_id", nargs="?", default=None)
    favorites_cmd.set_defaults(func=run_favorites)

    report_cmd = subparsers.add_parser("report", help="Create or list community reports.")
    report_cmd.add_argument("action", choices=["create", "list"])
    report_cmd.add_argument("--type", type=_enum_arg(ReportType), metavar=_enum_metavar(ReportType), default=ReportType.OTHER)
    report_cmd.add_argument("--title", default=None)
    report_cmd.add_argument("--description", default=None)
    report_cmd.add_argument("--stop-id", default=None)
    _add_position(report_cmd)
    report_cmd.add_argument("--status", type=_enum_arg(ReportStatus), metavar=_enum_metavar(ReportStatus), default=None)
    report_cmd.add_argument("--page", type=int, default=None)
    report_cmd.add_argument("--limit", type=int, default=None)
    report_cmd.set_defaults(func=run_report)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = args.log_level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )
    try:
        # Registers the token refresher before any command talks to the API.
        get_auth_provider()
        return int(args.func(args) or 0)
    except AppError as exc:
        log_error(stage=exc.stage, message=exc.message, details=exc.details)
        print(f"Erreur: {user_message(exc)}", file=sys.stderr)
        return 1
    except ValidationError as exc:
        LOGGER.debug("Invalid input", exc_info=True)
        print(f"Erreur: {user_message(exc)}", file=sys.stderr)
        return 1
    except ValueError as exc:
        LOGGER.debug("Invalid input", exc_info=True)
        print(f"Erreur: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
