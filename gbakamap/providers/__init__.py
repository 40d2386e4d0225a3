from gbakamap.providers.firebase_auth import (
    AUTH_ERROR_MESSAGES,
    AuthUser,
    FirebaseAuthProvider,
    get_auth_provider,
    parse_provider_error,
    reset_auth_provider,
)

__all__ = [
    "AUTH_ERROR_MESSAGES",
    "AuthUser",
    "FirebaseAuthProvider",
    "get_auth_provider",
    "parse_provider_error",
    "reset_auth_provider",
]
