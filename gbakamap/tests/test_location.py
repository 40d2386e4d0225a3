import pytest

from gbakamap.schemas.api import Coordinates, Stop
from gbakamap.services.catalog import mode_color, mode_icon, mode_label, transport_type_for_mode
from gbakamap.services.location import (
    default_location,
    distance_text,
    distance_to,
    haversine_m,
    maps_url,
    parse_coordinates,
    resolve_location,
)
from gbakamap.schemas.api import TransportType
from gbakamap.utils.errors import AppError


def _stop(**overrides):
    payload = {"id": "s1", "name": "Gare Sud", "lat": 5.3, "lon": -4.0, "type": "BUS_STOP"}
    payload.update(overrides)
    return Stop.model_validate(payload)


def test_default_location_is_abidjan():
    loc = default_location()
    assert (loc.lat, loc.lon) == (5.3364, -4.0267)


def test_default_location_follows_settings(monkeypatch):
    from gbakamap.utils.settings import get_settings

    monkeypatch.setenv("DEFAULT_LAT", "7.69")
    monkeypatch.setenv("DEFAULT_LON", "-5.03")
    get_settings.cache_clear()
    assert resolve_location().lat == 7.69


def test_resolve_location_uses_known_position():
    assert resolve_location(5.0, -3.9) == Coordinates(lat=5.0, lon=-3.9)
    assert resolve_location(5.0, None) == default_location()


def test_parse_coordinates():
    assert parse_coordinates(" 5.31, -4.01 ") == Coordinates(lat=5.31, lon=-4.01)
    assert parse_coordinates("0,0") == Coordinates(lat=0, lon=0)


@pytest.mark.parametrize("value", ["5.31", "a,b", "1,2,3", ""])
def test_parse_coordinates_rejects_bad_input(value):
    with pytest.raises(AppError) as err:
        parse_coordinates(value)
    assert err.value.error_code == "INVALID_COORDINATES"


def test_haversine_distance():
    assert haversine_m(5.0, -4.0, 5.0, -4.0) == 0
    assert haversine_m(0.0, 0.0, 0.0, 1.0) == pytest.approx(111_195, rel=1e-3)


def test_distance_to_prefers_server_distance():
    origin = Coordinates(lat=5.3, lon=-4.0)
    assert distance_to(_stop(distance=420), origin) == 420.0
    assert distance_to(_stop(lat=5.31), origin) == pytest.approx(1112, rel=1e-2)


def test_distance_text():
    assert distance_text(_stop()) == "Distance inconnue"
    assert distance_text(_stop(distance=0)) == "Distance inconnue"
    assert distance_text(_stop(distance=249.6)) == "À 250m"


def test_maps_url_escapes_name():
    assert maps_url(_stop()) == "geo:5.3,-4.0?q=5.3,-4.0(Gare%20Sud)"


def test_mode_catalog_lookups():
    assert transport_type_for_mode("woro-woro") is TransportType.WORO_WORO
    assert mode_label("gbaka") == "Gbaka"
    assert mode_label("walking") == "Marche"
    assert mode_label("trottinette") == "trottinette"
    assert mode_icon("moto_taxi") == "bicycle"
    assert mode_icon("hovercraft") == "help-circle"
    assert mode_color("taxi") == "#FFB703"
    assert mode_color("walking") == "#2ECC71"
    assert mode_color("boat") == "#757575"
