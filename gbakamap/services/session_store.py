from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any

from gbakamap.services.cache import CacheBackend, get_session_cache


SESSION_CACHE_KEY = "gbakamap:session"
EXPIRY_MARGIN_SECONDS = 30


@dataclass
class AuthSession:
    id_token: str
    refresh_token: str | None = None
    user_id: str | None = None
    email: str | None = None
    display_name: str | None = None
    expires_at: int | None = None

    @property
    def expired(self) -> bool:
        if self.expires_at is None:
            return False
        return int(self.expires_at) <= int(time.time()) + EXPIRY_MARGIN_SECONDS

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AuthSession":
        return cls(
            id_token=str(payload["id_token"]),
            refresh_token=payload.get("refresh_token"),
            user_id=payload.get("user_id"),
            email=payload.get("email"),
            display_name=payload.get("display_name"),
            expires_at=payload.get("expires_at"),
        )


class SessionStore:
    """Keeps the signed-in user's tokens in Redis, or in the session file without it."""

    def __init__(self, cache: CacheBackend | None = None) -> None:
        self.cache = cache or get_session_cache()

    def save(self, session: AuthSession) -> None:
        self.cache.set(SESSION_CACHE_KEY, asdict(session))

    def load(self) -> AuthSession | None:
        payload = self.cache.get(SESSION_CACHE_KEY)
        if not payload or not payload.get("id_token"):
            return None
        return AuthSession.from_dict(payload)

    def clear(self) -> None:
        self.cache.delete(SESSION_CACHE_KEY)

    def token(self) -> str | None:
        session = self.load()
        if session is None or session.expired:
            return None
        return session.id_token
