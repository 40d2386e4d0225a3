from __future__ import annotations

import re

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
MIN_PASSWORD_LENGTH = 6
MIN_DISPLAY_NAME_LENGTH = 2


def validate_email(email: str | None) -> str | None:
    if not (email or "").strip():
        return "Email requis"
    if not EMAIL_PATTERN.search(email or ""):
        return "Email invalide"
    return None


def validate_password(password: str | None) -> str | None:
    if not password:
        return "Mot de passe requis"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Minimum {MIN_PASSWORD_LENGTH} caractères"
    return None


def _collect(**checks: str | None) -> dict[str, str]:
    return {field: message for field, message in checks.items() if message}


def validate_sign_in(email: str | None, password: str | None) -> dict[str, str]:
    return _collect(email=validate_email(email), password=validate_password(password))


def validate_sign_up(
    display_name: str | None,
    email: str | None,
    password: str | None,
    confirm_password: str | None,
    accept_terms: bool,
) -> dict[str, str]:
    name = (display_name or "").strip()
    if not name:
        name_error = "Nom requis"
    elif len(name) < MIN_DISPLAY_NAME_LENGTH:
        name_error = f"Minimum {MIN_DISPLAY_NAME_LENGTH} caractères"
    else:
        name_error = None

    if not confirm_password:
        confirm_error = "Confirmation requise"
    elif password != confirm_password:
        confirm_error = "Les mots de passe ne correspondent pas"
    else:
        confirm_error = None

    return _collect(
        displayName=name_error,
        email=validate_email(email),
        password=validate_password(password),
        confirmPassword=confirm_error,
        terms=None if accept_terms else "Veuillez accepter les conditions d'utilisation",
    )


def validate_reset(email: str | None) -> dict[str, str]:
    return _collect(email=validate_email(email))
