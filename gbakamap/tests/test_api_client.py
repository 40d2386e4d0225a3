from __future__ import annotations

import httpx
import pytest

from conftest import envelope
from gbakamap.services.api_client import NETWORK_ERROR_MESSAGE, ApiClient, query_params
from gbakamap.services.session_store import AuthSession
from gbakamap.utils.errors import AppError
from gbakamap.utils.settings import get_settings


def test_query_params_drop_none_and_render_booleans():
    assert query_params(a=1, b=None, c=True, d=False, e="x") == {"a": "1", "c": "true", "d": "false", "e": "x"}


def test_requests_use_base_url_and_stored_token(make_client, session_store):
    session_store.save(AuthSession(id_token="stored-token"))
    client, recorder = make_client(lambda request: httpx.Response(200, json=envelope({"ok": True})))

    payload = client.get("/api/favorites")

    assert payload["data"] == {"ok": True}
    assert str(recorder.last.url) == "https://api.test/api/favorites"
    assert recorder.last.headers["Authorization"] == "Bearer stored-token"


def test_no_authorization_header_outside_dev_without_token(make_client):
    client, recorder = make_client(lambda request: httpx.Response(200, json=envelope({})))
    client.get("/api/stops")
    assert "Authorization" not in recorder.last.headers


def test_dev_mode_falls_back_to_dev_token(monkeypatch, make_client):
    monkeypatch.setenv("APP_ENV", "dev")
    get_settings.cache_clear()
    client, recorder = make_client(lambda request: httpx.Response(200, json=envelope({})))

    client.get("/api/stops")

    assert recorder.last.headers["Authorization"] == "Bearer gbakamap-dev-token-2024"


def test_set_auth_token_persists_to_session_store(make_client, session_store):
    client, _ = make_client(lambda request: httpx.Response(200, json=envelope({})))
    client.set_auth_token("new-token")
    assert session_store.token() == "new-token"

    client.clear_auth()
    assert session_store.load() is None


def test_unauthorized_response_clears_session(make_client, session_store):
    session_store.save(AuthSession(id_token="expired"))
    client, _ = make_client(lambda request: httpx.Response(401, json={"success": False, "error": "Token invalide"}))

    with pytest.raises(AppError) as err:
        client.get("/api/favorites")

    assert err.value.status_code == 401
    assert err.value.message == "Token invalide"
    assert session_store.load() is None


def test_unauthorized_response_refreshes_once_and_replays(make_client, session_store):
    session_store.save(AuthSession(id_token="expired-token"))
    seen_tokens: list[str] = []

    def responder(request: httpx.Request) -> httpx.Response:
        seen_tokens.append(request.headers.get("Authorization", ""))
        if request.headers.get("Authorization") == "Bearer expired-token":
            return httpx.Response(401, json={"success": False, "error": "expired"})
        return httpx.Response(200, json=envelope([]))

    client, recorder = make_client(responder)
    calls = {"refresh": 0}

    def refresher():
        calls["refresh"] += 1
        return "fresh-token"

    client.set_token_refresher(refresher)
    payload = client.get("/api/favorites")

    assert payload["success"] is True
    assert calls["refresh"] == 1
    assert len(recorder.requests) == 2
    assert seen_tokens == ["Bearer expired-token", "Bearer fresh-token"]


def test_expired_session_is_refreshed_before_sending(make_client, session_store):
    session_store.save(AuthSession(id_token="old", refresh_token="rt", expires_at=0))
    client, recorder = make_client(lambda request: httpx.Response(200, json=envelope([])))
    client.set_token_refresher(lambda: "fresh")

    client.get("/api/favorites")

    assert len(recorder.requests) == 1
    assert recorder.last.headers["Authorization"] == "Bearer fresh"


def test_expired_session_never_falls_back_to_dev_token(monkeypatch, make_client, session_store):
    monkeypatch.setenv("APP_ENV", "dev")
    get_settings.cache_clear()
    session_store.save(AuthSession(id_token="old", refresh_token="rt", expires_at=0))
    client, recorder = make_client(lambda request: httpx.Response(200, json=envelope([])))
    client.set_token_refresher(lambda: None)

    client.get("/api/favorites")

    assert "Authorization" not in recorder.last.headers


def test_non_json_success_body_is_reported_generically(make_client):
    client, _ = make_client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))

    with pytest.raises(AppError) as err:
        client.get("/api/stops")

    assert err.value.message == "Une erreur est survenue"
    assert err.value.error_code == "INVALID_RESPONSE"


def test_server_error_message_is_surfaced(make_client):
    client, _ = make_client(lambda request: httpx.Response(404, json={"success": False, "error": "Arrêt introuvable", "code": "NOT_FOUND"}))

    with pytest.raises(AppError) as err:
        client.get("/api/stops/missing")

    assert err.value.message == "Arrêt introuvable"
    assert err.value.error_code == "NOT_FOUND"
    assert err.value.status_code == 404


def test_non_json_error_body_uses_generic_message(make_client):
    client, _ = make_client(lambda request: httpx.Response(502, text="Bad gateway"))

    with pytest.raises(AppError) as err:
        client.get("/api/stops")

    assert err.value.message == "Une erreur est survenue"
    assert err.value.status_code == 502


def test_network_failure_maps_to_unreachable_message(make_client):
    def responder(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = make_client(responder)

    with pytest.raises(AppError) as err:
        client.get("/api/stops")

    assert err.value.message == NETWORK_ERROR_MESSAGE
    assert err.value.error_code == "NETWORK_ERROR"
    assert err.value.details["error_type"] == "ConnectError"


def test_unwrap_rejects_unsuccessful_envelope():
    with pytest.raises(AppError) as err:
        ApiClient.unwrap({"success": False}, "Erreur de recherche")
    assert err.value.message == "Erreur de recherche"

    with pytest.raises(AppError) as err:
        ApiClient.unwrap({"success": False, "error": "Rayon trop grand"}, "Erreur de recherche")
    assert err.value.message == "Rayon trop grand"


def test_unwrap_requires_data_unless_told_otherwise():
    with pytest.raises(AppError):
        ApiClient.unwrap({"success": True}, "Erreur")
    assert ApiClient.unwrap({"success": True}, "Erreur", require_data=False) is None
