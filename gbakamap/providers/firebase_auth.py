from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from gbakamap.services.api_client import ApiClient, get_api_client
from gbakamap.services.session_store import AuthSession, SessionStore
from gbakamap.utils.errors import GENERIC_ERROR_MESSAGE, AuthError
from gbakamap.utils.settings import get_settings


LOGGER = logging.getLogger(__name__)

AUTH_ERROR_MESSAGES: dict[str, str] = {
    "auth/email-already-in-use": "Cet email est déjà utilisé",
    "auth/invalid-email": "Email invalide",
    "auth/operation-not-allowed": "Opération non autorisée",
    "auth/weak-password": "Mot de passe trop faible (minimum 6 caractères)",
    "auth/user-disabled": "Ce compte a été désactivé",
    "auth/user-not-found": "Aucun compte trouvé avec cet email",
    "auth/wrong-password": "Mot de passe incorrect",
    "auth/invalid-credential": "Identifiants invalides",
    "auth/too-many-requests": "Trop de tentatives. Réessayez plus tard",
    "auth/network-request-failed": "Erreur réseau. Vérifiez votre connexion",
    "auth/requires-recent-login": "Cette action nécessite une reconnexion",
    "auth/no-current-user": "Aucun utilisateur connecté",
    "auth/not-configured": "Authentification non configurée",
}

# Identity Toolkit REST error identifiers -> client SDK codes.
REST_ERROR_CODES: dict[str, str] = {
    "EMAIL_EXISTS": "auth/email-already-in-use",
    "INVALID_EMAIL": "auth/invalid-email",
    "MISSING_EMAIL": "auth/invalid-email",
    "OPERATION_NOT_ALLOWED": "auth/operation-not-allowed",
    "PASSWORD_LOGIN_DISABLED": "auth/operation-not-allowed",
    "WEAK_PASSWORD": "auth/weak-password",
    "USER_DISABLED": "auth/user-disabled",
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "USER_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "MISSING_PASSWORD": "auth/wrong-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": "auth/requires-recent-login",
    "TOKEN_EXPIRED": "auth/user-token-expired",
    "INVALID_ID_TOKEN": "auth/invalid-user-token",
    "INVALID_REFRESH_TOKEN": "auth/invalid-user-token",
}


@dataclass
class AuthUser:
    uid: str | None
    email: str | None
    display_name: str | None


def auth_error(code: str, fallback: str | None = None, details: Any = None) -> AuthError:
    message = AUTH_ERROR_MESSAGES.get(code) or fallback or GENERIC_ERROR_MESSAGE
    return AuthError(message=message, error_code=code, details=details)


def parse_provider_error(resp: httpx.Response) -> AuthError:
    try:
        payload = resp.json()
    except ValueError:
        payload = None

    raw = ""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            raw = str(error.get("message") or "")
        elif isinstance(error, str):
            raw = error
    identifier = raw.split(" : ", 1)[0].strip().upper()
    code = REST_ERROR_CODES.get(identifier, f"auth/{identifier.lower().replace('_', '-')}" if identifier else "auth/unknown")
    return auth_error(code, fallback=raw or None, details={"status_code": resp.status_code})


class FirebaseAuthProvider:
    def __init__(
        self,
        *,
        api_client: ApiClient | None = None,
        session_store: SessionStore | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = get_settings()
        self.api_client = api_client or get_api_client()
        self.session_store = session_store or self.api_client.session_store
        self.http = httpx.Client(timeout=self.settings.api_timeout_seconds, transport=transport)
        self.api_client.set_token_refresher(self.refresh_token)

    def _api_key(self) -> str:
        if not self.settings.firebase_api_key:
            raise auth_error("auth/not-configured")
        return self.settings.firebase_api_key

    def _post(self, url: str, *, json: Any = None, data: Any = None) -> dict[str, Any]:
        key = self._api_key()
        try:
            resp = self.http.post(url, params={"key": key}, json=json, data=data)
        except httpx.RequestError as exc:
            raise auth_error("auth/network-request-failed", details={"error": str(exc)}) from exc
        if resp.is_error:
            raise parse_provider_error(resp)
        try:
            return resp.json()
        except ValueError as exc:
            raise auth_error("auth/internal-error", details={"status_code": resp.status_code}) from exc

    def _accounts(self, action: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._post(f"{self.settings.firebase_auth_url}/accounts:{action}", json=body)

    def _store_session(self, payload: dict[str, Any], *, fallback: AuthSession | None = None) -> AuthSession:
        expires_in = payload.get("expiresIn") or payload.get("expires_in") or 3600
        session = AuthSession(
            id_token=str(payload.get("idToken") or payload.get("id_token")),
            refresh_token=payload.get("refreshToken") or payload.get("refresh_token") or (fallback.refresh_token if fallback else None),
            user_id=payload.get("localId") or payload.get("user_id") or (fallback.user_id if fallback else None),
            email=payload.get("email") or (fallback.email if fallback else None),
            display_name=payload.get("displayName") or (fallback.display_name if fallback else None),
            expires_at=int(time.time()) + int(expires_in),
        )
        self.session_store.save(session)
        self.api_client.set_auth_token(session.id_token)
        return session

    def _require_session(self) -> AuthSession:
        session = self.session_store.load()
        if session is None:
            raise auth_error("auth/no-current-user")
        return session

    def _reauthenticate(self, password: str) -> AuthSession:
        session = self._require_session()
        if not session.email:
            raise auth_error("auth/no-current-user")
        payload = self._accounts(
            "signInWithPassword",
            {"email": session.email, "password": password, "returnSecureToken": True},
        )
        return self._store_session(payload, fallback=session)

    def sign_up(self, email: str, password: str, display_name: str) -> AuthUser:
        payload = self._accounts("signUp", {"email": email, "password": password, "returnSecureToken": True})
        session = self._store_session(payload)

        self._accounts("update", {"idToken": session.id_token, "displayName": display_name, "returnSecureToken": False})
        session.display_name = display_name
        self.session_store.save(session)
        LOGGER.info("Created account %s", session.user_id)
        return self.current_user()

    def sign_in(self, email: str, password: str) -> AuthUser:
        payload = self._accounts("signInWithPassword", {"email": email, "password": password, "returnSecureToken": True})
        self._store_session(payload)
        return self.current_user()

    def sign_out(self) -> None:
        self.api_client.clear_auth()

    def reset_password(self, email: str) -> None:
        self._accounts("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})

    def update_profile(self, *, display_name: str | None = None, photo_url: str | None = None) -> None:
        session = self._require_session()
        body: dict[str, Any] = {"idToken": session.id_token, "returnSecureToken": False}
        if display_name is not None:
            body["displayName"] = display_name
        if photo_url is not None:
            body["photoUrl"] = photo_url
        self._accounts("update", body)
        if display_name is not None:
            session.display_name = display_name
            self.session_store.save(session)

    def update_email(self, new_email: str, current_password: str) -> None:
        session = self._reauthenticate(current_password)
        payload = self._accounts("update", {"idToken": session.id_token, "email": new_email, "returnSecureToken": True})
        updated = self._store_session(payload, fallback=session)
        updated.email = new_email
        self.session_store.save(updated)

    def update_password(self, current_password: str, new_password: str) -> None:
        session = self._reauthenticate(current_password)
        payload = self._accounts("update", {"idToken": session.id_token, "password": new_password, "returnSecureToken": True})
        self._store_session(payload, fallback=session)

    def delete_account(self, password: str) -> None:
        session = self._reauthenticate(password)
        self._accounts("delete", {"idToken": session.id_token})
        self.api_client.clear_auth()

    def refresh_token(self) -> str | None:
        session = self.session_store.load()
        if session is None or not session.refresh_token:
            return None
        try:
            payload = self._post(
                self.settings.firebase_token_url,
                data={"grant_type": "refresh_token", "refresh_token": session.refresh_token},
            )
        except AuthError as exc:
            LOGGER.warning("Token refresh failed: %s (%s)", exc, exc.error_code)
            return None
        return self._store_session(payload, fallback=session).id_token

    def get_current_token(self) -> str | None:
        session = self.session_store.load()
        if session is None:
            return None
        if not session.expired:
            return session.id_token
        return self.refresh_token()

    def is_authenticated(self) -> bool:
        return self.session_store.load() is not None

    def current_user(self) -> AuthUser | None:
        session = self.session_store.load()
        if session is None:
            return None
        return AuthUser(uid=session.user_id, email=session.email, display_name=session.display_name)


_provider: FirebaseAuthProvider | None = None


def get_auth_provider() -> FirebaseAuthProvider:
    global _provider
    if _provider is None:
        _provider = FirebaseAuthProvider()
    return _provider


def reset_auth_provider(provider: FirebaseAuthProvider | None = None) -> None:
    global _provider
    _provider = provider
