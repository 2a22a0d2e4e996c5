"""Identity endpoints delegated to Supabase Auth."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from meuboleto.core import identity
from meuboleto.core.auth import CurrentUser, get_current_user

router = APIRouter()


class Credentials(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordUpdateRequest(BaseModel):
    access_token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class SessionOut(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    confirmation_required: bool = False


class MessageOut(BaseModel):
    message: str


class MeOut(BaseModel):
    id: str
    email: Optional[str] = None


def _session_out(session: identity.AuthSession) -> SessionOut:
    return SessionOut(
        user_id=session.user_id,
        email=session.email,
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        confirmation_required=session.access_token is None,
    )


@router.post("/auth/sign-up", response_model=SessionOut, status_code=201)
def sign_up(payload: Credentials):
    return _session_out(identity.sign_up(str(payload.email), payload.password))


@router.post("/auth/sign-in", response_model=SessionOut)
def sign_in(payload: Credentials):
    return _session_out(identity.sign_in(str(payload.email), payload.password))


@router.post("/auth/password-reset", response_model=MessageOut)
def password_reset(payload: PasswordResetRequest):
    identity.request_password_reset(str(payload.email))
    return MessageOut(message="Enviamos um link de recuperação para o seu e-mail")


@router.post("/auth/password-update", response_model=MessageOut)
def password_update(payload: PasswordUpdateRequest):
    identity.update_password(payload.access_token, payload.new_password)
    return MessageOut(message="Senha atualizada com sucesso")


@router.post("/auth/sign-out", response_model=MessageOut)
def sign_out(current_user: CurrentUser = Depends(get_current_user)):
    identity.sign_out(current_user.access_token or "")
    return MessageOut(message="Sessão encerrada")


@router.get("/auth/me", response_model=MeOut)
def me(current_user: CurrentUser = Depends(get_current_user)):
    return MeOut(id=current_user.id, email=current_user.email)
