"""Rutas de sesión: apertura, refresh (rotación), logout, verificación y cierre global."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response

from sessionguard.api.deps import (
    VerificationNotifier,
    get_auth_service,
    get_current_user,
    get_login_user,
    get_refresh_cookie,
    get_rotation_engine,
    get_session_service,
    get_settings,
    get_verification_notifier,
    get_verification_service,
)
from sessionguard.api.device import get_device_context
from sessionguard.api.schemas.auth import (
    LoginOut,
    LogoutPayload,
    MeOut,
    MessageOut,
    OpenSessionPayload,
    RefreshOut,
    RefreshPayload,
    SessionRefOut,
    VerifiedSessionOut,
    VerifySessionPayload,
)
from sessionguard.core.config import Settings
from sessionguard.core.exceptions import AuthError, InvalidToken, auth_error_response
from sessionguard.domain.device import DeviceContext
from sessionguard.services.auth_service import AuthService
from sessionguard.services.rotation_service import RotationEngine
from sessionguard.services.session_service import SessionService
from sessionguard.services.verification_service import VerificationService

router = APIRouter(prefix="/auth", tags=["Auth"])


def _set_refresh_cookie(response: Response, token: str, cfg: Settings, max_age: int) -> None:
    response.set_cookie(
        cfg.refresh_cookie_name,
        token,
        max_age=max_age,
        httponly=True,
        secure=cfg.refresh_cookie_secure,
        samesite="strict",
        path="/",
    )


def _clear_refresh_cookie(response: Response, cfg: Settings) -> None:
    response.delete_cookie(cfg.refresh_cookie_name, path="/")


@router.post(
    "/session",
    response_model=LoginOut,
    summary="Abrir sesión",
    description=(
        "Emite el par inicial de tokens para un usuario cuyas credenciales ya validó "
        "la dependencia `get_login_user`. Si el login es sospechoso la sesión queda "
        "pendiente de verificación y el token se entrega por el notificador."
    ),
)
def open_session(
    response: Response,
    payload: Optional[OpenSessionPayload] = None,
    user: Dict[str, Any] = Depends(get_login_user),
    device: DeviceContext = Depends(get_device_context),
    auth: AuthService = Depends(get_auth_service),
    notify: VerificationNotifier = Depends(get_verification_notifier),
    cfg: Settings = Depends(get_settings),
):
    result = auth.open_session(user, device, payload.location if payload else None)
    if result.verification_token:
        notify(user, result.session, result.verification_token)

    max_age = int(auth.codec.refresh_ttl.total_seconds())
    _set_refresh_cookie(response, result.refresh_token, cfg, max_age)
    return LoginOut(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        session=SessionRefOut(id=result.session.id or "", device_name=result.session.device_name),
        requires_verification=result.requires_verification,
    )


@router.get("/me", response_model=MeOut, summary="Usuario actual")
def me(user: Dict[str, Any] = Depends(get_current_user)):
    return MeOut(id=str(user["_id"]), email=user.get("email"), token_version=user.get("token_version", 0))


@router.post(
    "/refresh",
    response_model=RefreshOut,
    summary="Rotar refresh token",
    description="Canjea el refresh token vigente por un par nuevo de la misma familia.",
)
def refresh(
    request: Request,
    response: Response,
    payload: Optional[RefreshPayload] = None,
    cookie_token: Optional[str] = Depends(get_refresh_cookie),
    device: DeviceContext = Depends(get_device_context),
    engine: RotationEngine = Depends(get_rotation_engine),
    cfg: Settings = Depends(get_settings),
):
    token = (payload.refresh_token if payload else None) or cookie_token
    try:
        if not token:
            raise InvalidToken("No refresh token provided")
        result = engine.rotate(token, device)
    except AuthError as exc:
        # Cualquier fallo invalida la cookie del cliente; no se reintenta
        err = auth_error_response(request, exc)
        _clear_refresh_cookie(err, cfg)
        return err

    max_age = int(engine.codec.refresh_ttl.total_seconds())
    _set_refresh_cookie(response, result.refresh_token, cfg, max_age)
    return RefreshOut(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        session=SessionRefOut(id=result.session.id or "", device_name=result.session.device_name),
    )


@router.post(
    "/logout",
    response_model=MessageOut,
    summary="Cerrar sesión",
    description="Revoca la sesión del refresh token actual (body o cookie).",
)
def logout(
    response: Response,
    payload: Optional[LogoutPayload] = None,
    cookie_token: Optional[str] = Depends(get_refresh_cookie),
    auth: AuthService = Depends(get_auth_service),
    cfg: Settings = Depends(get_settings),
):
    token = (payload.refresh_token if payload else None) or cookie_token
    auth.logout(token)
    _clear_refresh_cookie(response, cfg)
    return MessageOut(message="ok")


@router.post(
    "/verify-session",
    response_model=VerifiedSessionOut,
    summary="Verificar sesión sospechosa",
    description="Valida el token de verificación entregado fuera de banda y marca la sesión como verificada.",
)
def verify_session(
    payload: VerifySessionPayload,
    user: Dict[str, Any] = Depends(get_current_user),
    verification: VerificationService = Depends(get_verification_service),
):
    session = verification.verify_session(payload.session_id, payload.verification_token, str(user["_id"]))
    return VerifiedSessionOut(id=session.id or "", is_verified=session.is_verified)


@router.post(
    "/logout-all",
    response_model=MessageOut,
    summary="Cerrar todas las sesiones",
    description="Revoca todas las sesiones activas del usuario.",
)
def logout_all(
    response: Response,
    user: Dict[str, Any] = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
    cfg: Settings = Depends(get_settings),
):
    sessions.revoke_all_sessions(str(user["_id"]))
    _clear_refresh_cookie(response, cfg)
    return MessageOut(message="ok")


@router.post(
    "/force-logout",
    response_model=MessageOut,
    summary="Forzar logout global",
    description="Incrementa token_version (invalida todos los tokens al instante) y revoca todas las sesiones.",
)
def force_logout(
    response: Response,
    user: Dict[str, Any] = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
    cfg: Settings = Depends(get_settings),
):
    auth.force_logout_all(str(user["_id"]))
    _clear_refresh_cookie(response, cfg)
    return MessageOut(message="ok")
