"""Thin wrapper around Supabase Auth.

The backend never stores passwords; every call here is delegated to the
Supabase project configured in settings. Failures surface as
``RemoteRequestError`` so the dashboard shows them like any other remote error.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from supabase import AuthError, create_client

from meuboleto.core.config import get_settings
from meuboleto.core.errors import RemoteRequestError, ValidationError
from meuboleto.services.audit_service import redact_email

logger = logging.getLogger(__name__)


@dataclass
class AuthSession:
    user_id: Optional[str]
    email: Optional[str]
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


def get_auth_client():
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise RuntimeError("Supabase não configurado")
    return create_client(settings.supabase_url, settings.supabase_key)


def get_admin_client():
    settings = get_settings()
    key = settings.supabase_service_role_key
    if not settings.supabase_url or not key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY não configurado")
    return create_client(settings.supabase_url, key)


def _log_email(email: str) -> str:
    return redact_email(email) if get_settings().pii_redaction_enabled else email


def _require_credentials(email: str, password: str) -> None:
    if not (email or "").strip():
        raise ValidationError("E-mail é obrigatório")
    if not password:
        raise ValidationError("Senha é obrigatória")


def _to_session(response: Any) -> AuthSession:
    user = getattr(response, "user", None)
    session = getattr(response, "session", None)
    return AuthSession(
        user_id=str(user.id) if user is not None else None,
        email=getattr(user, "email", None),
        access_token=getattr(session, "access_token", None),
        refresh_token=getattr(session, "refresh_token", None),
        expires_in=getattr(session, "expires_in", None),
    )


def _remote_error(action: str, exc: Exception) -> RemoteRequestError:
    status = getattr(exc, "status", None)
    message = getattr(exc, "message", None) or str(exc) or "Falha na autenticação"
    return RemoteRequestError(message, service=f"supabase_auth:{action}", upstream_status=status)


def sign_up(email: str, password: str) -> AuthSession:
    _require_credentials(email, password)
    try:
        response = get_auth_client().auth.sign_up({"email": email.strip(), "password": password})
    except (AuthError, httpx.HTTPError) as exc:
        logger.warning("Sign-up failed email=%s: %s", _log_email(email), exc)
        raise _remote_error("sign_up", exc) from exc
    logger.info("Sign-up requested email=%s", _log_email(email))
    return _to_session(response)


def sign_in(email: str, password: str) -> AuthSession:
    _require_credentials(email, password)
    try:
        response = get_auth_client().auth.sign_in_with_password({"email": email.strip(), "password": password})
    except (AuthError, httpx.HTTPError) as exc:
        logger.info("Sign-in rejected email=%s", _log_email(email))
        raise _remote_error("sign_in", exc) from exc
    return _to_session(response)


def request_password_reset(email: str) -> None:
    if not (email or "").strip():
        raise ValidationError("E-mail é obrigatório")
    settings = get_settings()
    options = {"redirect_to": settings.password_reset_redirect_url} if settings.password_reset_redirect_url else {}
    try:
        get_auth_client().auth.reset_password_for_email(email.strip(), options)
    except (AuthError, httpx.HTTPError) as exc:
        logger.warning("Password reset failed email=%s: %s", _log_email(email), exc)
        raise _remote_error("password_reset", exc) from exc
    logger.info("Password reset e-mail requested email=%s", _log_email(email))


def update_password(access_token: str, new_password: str) -> None:
    """Set a new password for the user that owns the recovery *access_token*."""
    if not access_token:
        raise ValidationError("Link de recuperação inválido")
    if not new_password or len(new_password) < 6:
        raise ValidationError("A senha deve ter pelo menos 6 caracteres")
    try:
        user_response = get_auth_client().auth.get_user(access_token)
        user = getattr(user_response, "user", None)
        if user is None:
            raise ValidationError("Link de recuperação inválido")
        get_admin_client().auth.admin.update_user_by_id(str(user.id), {"password": new_password})
    except (AuthError, httpx.HTTPError) as exc:
        raise _remote_error("password_update", exc) from exc
    logger.info("Password updated user=%s", user.id)


def sign_out(access_token: str) -> None:
    try:
        get_admin_client().auth.admin.sign_out(access_token)
    except (AuthError, httpx.HTTPError) as exc:
        raise _remote_error("sign_out", exc) from exc
