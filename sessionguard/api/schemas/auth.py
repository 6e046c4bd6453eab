"""
Esquemas Pydantic para refresh, logout y verificación de sesiones.

El refresh token puede venir en el body o en la cookie `refreshToken`.
"""
from typing import Optional

from pydantic import BaseModel, Field

from sessionguard.domain.device import LocationCapture


class RefreshPayload(BaseModel):
    refresh_token: Optional[str] = None


class LogoutPayload(BaseModel):
    refresh_token: Optional[str] = None


class VerifySessionPayload(BaseModel):
    session_id: str = Field(min_length=1)
    verification_token: str = Field(min_length=1)


class MessageOut(BaseModel):
    message: str


class SessionRefOut(BaseModel):
    id: str
    device_name: str


class RefreshOut(BaseModel):
    access_token: str
    refresh_token: str
    session: SessionRefOut


class VerifiedSessionOut(BaseModel):
    id: str
    is_verified: bool


class OpenSessionPayload(BaseModel):
    """Ubicación opcional: coordenadas GPS del cliente o la derivada de la IP."""

    location: Optional[LocationCapture] = None


class LoginOut(BaseModel):
    access_token: str
    refresh_token: str
    session: SessionRefOut
    requires_verification: bool


class MeOut(BaseModel):
    id: str
    email: Optional[str] = None
    token_version: int = 0
