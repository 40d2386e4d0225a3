import redis

from gbakamap.services import cache as cache_module
from gbakamap.services.cache import FileCache, InMemoryCache, cache_key, get_cache, get_session_cache, reset_cache
from gbakamap.services.session_store import AuthSession, SessionStore
from gbakamap.utils.settings import get_settings


def test_in_memory_cache_expires_entries(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(cache_module.time, "time", lambda: now[0])
    cache = InMemoryCache()

    cache.set("stops", [1, 2], ttl_seconds=60)
    cache.set("forever", "x")
    assert cache.get("stops") == [1, 2]

    now[0] += 61
    assert cache.get("stops") is None
    assert cache.get("forever") == "x"

    cache.delete("forever")
    assert cache.get("forever") is None


def test_get_cache_falls_back_when_redis_is_down(monkeypatch):
    def unavailable(url):
        raise redis.ConnectionError("connection refused")

    monkeypatch.setattr(cache_module, "RedisCache", unavailable)
    reset_cache(None)

    backend = get_cache()

    assert isinstance(backend, InMemoryCache)
    assert get_cache() is backend


def test_cache_key_is_order_independent():
    assert cache_key("stops", {"lon": 1, "lat": 2, "type": None}) == "stops:lat=2&lon=1"
    assert cache_key("stops", {"lat": 2, "lon": 1}) == cache_key("stops", {"lon": 1, "lat": 2})


def test_session_store_round_trip(session_store):
    assert session_store.load() is None
    session_store.save(AuthSession(id_token="tok", refresh_token="r", email="awa@example.ci"))

    loaded = session_store.load()
    assert loaded.email == "awa@example.ci"
    assert session_store.token() == "tok"

    session_store.clear()
    assert session_store.token() is None


def test_expired_session_has_no_token(session_store):
    session_store.save(AuthSession(id_token="tok", expires_at=10))
    assert session_store.load() is not None
    assert session_store.token() is None


def test_file_cache_persists_across_instances(tmp_path, monkeypatch):
    path = tmp_path / "nested" / "session.json"
    now = [1000.0]
    monkeypatch.setattr(cache_module.time, "time", lambda: now[0])

    FileCache(path).set("session", {"id_token": "tok"})
    FileCache(path).set("weather", 29.5, ttl_seconds=60)

    reopened = FileCache(path)
    assert reopened.get("session") == {"id_token": "tok"}
    assert reopened.get("weather") == 29.5
    assert oct(path.stat().st_mode & 0o777) == "0o600"

    now[0] += 61
    assert reopened.get("weather") is None

    reopened.delete("session")
    assert FileCache(path).get("session") is None


def test_file_cache_ignores_corrupt_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    cache = FileCache(path)
    assert cache.get("session") is None
    cache.set("session", {"id_token": "tok"})
    assert cache.get("session") == {"id_token": "tok"}


def test_session_cache_uses_file_without_redis(tmp_path, monkeypatch):
    monkeypatch.setenv("SESSION_FILE", str(tmp_path / "s.json"))
    get_settings.cache_clear()

    backend = get_session_cache()

    assert isinstance(backend, FileCache)
    assert backend.path == tmp_path / "s.json"


def test_session_store_defaults_to_persistent_backend(tmp_path, monkeypatch):
    monkeypatch.setenv("SESSION_FILE", str(tmp_path / "s.json"))
    get_settings.cache_clear()

    SessionStore().save(AuthSession(id_token="tok", email="awa@example.ci"))

    assert SessionStore().load().email == "awa@example.ci"
