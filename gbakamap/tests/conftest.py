import os

import httpx
import pytest

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("API_BASE_URL", "https://api.test")
os.environ.setdefault("FIREBASE_API_KEY", "test-firebase-key")
os.environ.setdefault("REDIS_URL", "redis://localhost:6399/0")

from gbakamap.providers import reset_auth_provider
from gbakamap.services import cache as cache_module
from gbakamap.services import community, lines, routes, stops, weather
from gbakamap.services.api_client import ApiClient, reset_api_client
from gbakamap.services.cache import InMemoryCache
from gbakamap.services.session_store import SessionStore
from gbakamap.utils.settings import get_settings


@pytest.fixture(autouse=True)
def _isolate_state(monkeypatch, tmp_path):
    monkeypatch.setenv("SESSION_FILE", str(tmp_path / "session.json"))
    for module in (community, lines, routes, stops, weather):
        monkeypatch.setattr(module, "_service", None)
    get_settings.cache_clear()
    cache_module.reset_cache(InMemoryCache())
    reset_api_client(None)
    reset_auth_provider(None)
    yield
    get_settings.cache_clear()
    cache_module.reset_cache(None)
    reset_api_client(None)
    reset_auth_provider(None)


class Recorder:
    def __init__(self, responder):
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture()
def memory_cache():
    return InMemoryCache()


@pytest.fixture()
def session_store(memory_cache):
    return SessionStore(memory_cache)


@pytest.fixture()
def make_client(session_store):
    def _make(responder):
        recorder = Recorder(responder)
        client = ApiClient(session_store=session_store, transport=httpx.MockTransport(recorder))
        return client, recorder

    return _make


def envelope(data=None, *, success=True, error=None):
    payload = {"success": success}
    if data is not None:
        payload["data"] = data
    if error is not None:
        payload["error"] = error
    return payload
