from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError


LOGGER = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Une erreur est survenue"


@dataclass
class AppError(Exception):
    message: str
    error_code: str = "APP_ERROR"
    status_code: int = 400
    details: Any = None
    stage: str = "API"

    def __str__(self) -> str:
        return self.message


@dataclass
class AuthError(AppError):
    error_code: str = "auth/unknown"
    status_code: int = 401
    stage: str = "AUTH"


def log_error(stage: str, message: str, details: Any = None) -> None:
    payload = {
        "stage": stage,
        "message": message,
        "details": details,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    LOGGER.error(json.dumps(payload, default=str))


def user_message(exc: BaseException) -> str:
    if isinstance(exc, AppError):
        return exc.message or GENERIC_ERROR_MESSAGE
    if isinstance(exc, ValidationError):
        fields = sorted({".".join(str(part) for part in err["loc"]) or "valeur" for err in exc.errors()})
        return f"Données invalides: {', '.join(fields)}"
    return GENERIC_ERROR_MESSAGE
