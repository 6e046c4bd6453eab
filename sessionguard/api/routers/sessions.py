"""Rutas de sesiones del usuario autenticado: listado y revocación por dispositivo."""
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from sessionguard.api.deps import get_current_user, get_refresh_cookie, get_session_service
from sessionguard.api.schemas.auth import MessageOut
from sessionguard.api.schemas.session import RevokeOthersPayload, SessionOut, SessionsOut, SessionStatsOut
from sessionguard.core.exceptions import InvalidToken
from sessionguard.services.session_service import SessionService
from sessionguard.services.token_service import hash_token

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get("", response_model=SessionsOut, summary="Sesiones activas y estadísticas")
def list_sessions(
    user: Dict[str, Any] = Depends(get_current_user),
    cookie_token: Optional[str] = Depends(get_refresh_cookie),
    service: SessionService = Depends(get_session_service),
):
    user_id = str(user["_id"])
    current_hash = None
    if cookie_token:
        current_hash = hash_token(cookie_token)
        service.touch(cookie_token)
    sessions = service.list_sessions(user_id)
    stats = service.session_stats(user_id)
    return SessionsOut(
        sessions=[SessionOut.from_model(s, current_hash) for s in sessions],
        stats=SessionStatsOut(**asdict(stats)),
    )


@router.delete("/{session_id}", response_model=MessageOut, summary="Revocar una sesión")
def revoke_session(
    session_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cookie_token: Optional[str] = Depends(get_refresh_cookie),
    service: SessionService = Depends(get_session_service),
):
    current_hash = hash_token(cookie_token) if cookie_token else None
    service.revoke_session(session_id, str(user["_id"]), current_hash)
    return MessageOut(message="Session revoked successfully")


@router.post("/revoke-others", response_model=MessageOut, summary="Revocar las demás sesiones")
def revoke_other_sessions(
    payload: Optional[RevokeOthersPayload] = None,
    user: Dict[str, Any] = Depends(get_current_user),
    cookie_token: Optional[str] = Depends(get_refresh_cookie),
    service: SessionService = Depends(get_session_service),
):
    token = (payload.refresh_token if payload else None) or cookie_token
    if not token:
        raise InvalidToken("No current session found")
    service.revoke_other_sessions(str(user["_id"]), token)
    return MessageOut(message="Other sessions revoked successfully")
