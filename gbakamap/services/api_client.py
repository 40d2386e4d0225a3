from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from gbakamap.services.session_store import AuthSession, SessionStore
from gbakamap.utils.errors import GENERIC_ERROR_MESSAGE, AppError
from gbakamap.utils.settings import get_settings


LOGGER = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Impossible de contacter le serveur"

TokenRefresher = Callable[[], "str | None"]


def query_params(**values: Any) -> dict[str, str]:
    params: dict[str, str] = {}
    for name, value in values.items():
        if value is None:
            continue
        if isinstance(value, bool):
            params[name] = "true" if value else "false"
        else:
            params[name] = str(value)
    return params


class ApiClient:
    def __init__(
        self,
        *,
        session_store: SessionStore | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = get_settings()
        self.session_store = session_store or SessionStore()
        self.http = httpx.Client(
            base_url=self.settings.api_base_url,
            timeout=self.settings.api_timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self._auth_token: str | None = None
        self._token_refresher: TokenRefresher | None = None

    def set_token_refresher(self, refresher: TokenRefresher | None) -> None:
        self._token_refresher = refresher

    def set_auth_token(self, token: str) -> None:
        self._auth_token = token
        session = self.session_store.load()
        if session is None:
            session = AuthSession(id_token=token)
        else:
            session.id_token = token
        self.session_store.save(session)

    def clear_auth(self) -> None:
        self._auth_token = None
        self.session_store.clear()

    def _resolve_token(self) -> str | None:
        if self._auth_token:
            return self._auth_token

        stored = self.session_store.token()
        if stored:
            self._auth_token = stored
            return stored

        if self.session_store.load() is not None:
            # Expired user session: never fall back to the dev token.
            return self._auth_token if self._refresh_auth() else None

        if self.settings.is_dev_mode and self.settings.dev_token:
            return self.settings.dev_token
        return None

    def _headers(self) -> dict[str, str]:
        token = self._resolve_token()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            return self.http.request(method, url, params=params, json=json, headers=self._headers())
        except httpx.RequestError as exc:
            raise AppError(
                message=NETWORK_ERROR_MESSAGE,
                error_code="NETWORK_ERROR",
                status_code=503,
                details={"error_type": exc.__class__.__name__, "error": str(exc), "url": url},
            ) from exc

    def _refresh_auth(self) -> bool:
        if self._token_refresher is None:
            return False
        self._auth_token = None
        token = self._token_refresher()
        if not token:
            return False
        self._auth_token = token
        return True

    @staticmethod
    def _response_error(resp: httpx.Response) -> AppError:
        try:
            data = resp.json()
        except ValueError:
            data = None

        message = None
        code = None
        details = None
        if isinstance(data, dict):
            message = data.get("error") or data.get("message")
            code = data.get("code")
            details = data.get("details")
        return AppError(
            message=str(message or GENERIC_ERROR_MESSAGE),
            error_code=str(code or "API_ERROR"),
            status_code=resp.status_code,
            details=details,
        )

    def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        resp = self._send(method, url, params=params, json=json)

        if resp.status_code == 401:
            if self._refresh_auth():
                resp = self._send(method, url, params=params, json=json)
            if resp.status_code == 401:
                LOGGER.warning("API rejected credentials for %s %s; clearing stored session.", method, url)
                self.clear_auth()

        if resp.is_error:
            raise self._response_error(resp)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise AppError(
                message=GENERIC_ERROR_MESSAGE,
                error_code="INVALID_RESPONSE",
                status_code=502,
                details={"url": url, "content_type": resp.headers.get("content-type")},
            ) from exc

    def get(self, url: str, *, params: dict[str, str] | None = None) -> Any:
        return self.request("GET", url, params=params)

    def post(self, url: str, data: Any = None) -> Any:
        return self.request("POST", url, json=data)

    def patch(self, url: str, data: Any = None) -> Any:
        return self.request("PATCH", url, json=data)

    def delete(self, url: str) -> Any:
        return self.request("DELETE", url)

    @staticmethod
    def unwrap(payload: Any, fallback_message: str, *, require_data: bool = True) -> Any:
        if not isinstance(payload, dict):
            raise AppError(message=fallback_message, error_code="INVALID_RESPONSE", status_code=502)

        data = payload.get("data")
        if not payload.get("success") or (require_data and data is None):
            raise AppError(
                message=str(payload.get("error") or fallback_message),
                error_code=str(payload.get("code") or "API_ERROR"),
                details=payload.get("details"),
            )
        return data

    def close(self) -> None:
        self.http.close()


_client: ApiClient | None = None


def get_api_client() -> ApiClient:
    global _client
    if _client is None:
        _client = ApiClient()
    return _client


def reset_api_client(client: ApiClient | None = None) -> None:
    global _client
    _client = client
