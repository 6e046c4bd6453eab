"""
Dependencias reutilizables para routers (FastAPI Depends).

- Construye repositorios y servicios sobre la DB compartida.
- Autenticación: extrae y valida el Access Token, devuelve el usuario actual.
- Mantener esta capa delgada: sin lógica de negocio.
"""
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Header, Request
from pymongo.database import Database

from sessionguard.core.config import Settings, settings
from sessionguard.core.exceptions import InvalidToken
from sessionguard.core.time import Clock, utcnow
from sessionguard.infrastructure.db.mongo import get_db
from sessionguard.infrastructure.db.schemas.session import SessionModel
from sessionguard.repositories.session_repo import SessionRepository
from sessionguard.repositories.user_repo import UserRepository
from sessionguard.services.auth_service import AuthService
from sessionguard.services.rotation_service import RotationEngine
from sessionguard.services.session_service import SessionService
from sessionguard.services.token_service import TokenCodec
from sessionguard.services.verification_service import VerificationService

_log = logging.getLogger("sessionguard.api")


def get_settings() -> Settings:
    return settings


def get_database() -> Database:
    return get_db()


def get_clock() -> Clock:
    return utcnow


def get_session_repo(db: Database = Depends(get_database), clock: Clock = Depends(get_clock)) -> SessionRepository:
    return SessionRepository(db, clock)


def get_user_repo(db: Database = Depends(get_database), clock: Clock = Depends(get_clock)) -> UserRepository:
    return UserRepository(db, clock)


def get_codec(cfg: Settings = Depends(get_settings)) -> TokenCodec:
    return TokenCodec(cfg)


def get_auth_service(
    sessions: SessionRepository = Depends(get_session_repo),
    users: UserRepository = Depends(get_user_repo),
    codec: TokenCodec = Depends(get_codec),
    cfg: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> AuthService:
    return AuthService(sessions, users, codec, cfg, clock)


def get_rotation_engine(
    sessions: SessionRepository = Depends(get_session_repo),
    users: UserRepository = Depends(get_user_repo),
    codec: TokenCodec = Depends(get_codec),
    cfg: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> RotationEngine:
    return RotationEngine(sessions, users, codec, cfg, clock)


def get_verification_service(
    sessions: SessionRepository = Depends(get_session_repo),
    users: UserRepository = Depends(get_user_repo),
    clock: Clock = Depends(get_clock),
) -> VerificationService:
    return VerificationService(sessions, users, clock)


def get_session_service(
    sessions: SessionRepository = Depends(get_session_repo),
    cfg: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> SessionService:
    return SessionService(sessions, cfg, clock)


def get_refresh_cookie(request: Request, cfg: Settings = Depends(get_settings)) -> Optional[str]:
    return request.cookies.get(cfg.refresh_cookie_name)


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidToken("Access token required")
    token = authorization.split(" ", 1)[1]
    return auth.authenticate(token)


def get_login_user() -> Dict[str, Any]:
    """Usuario con credenciales ya validadas para abrir una sesión.

    La validación de credenciales vive fuera de este servicio: la app que lo embebe
    sobreescribe esta dependencia (`app.dependency_overrides[get_login_user]`).
    """
    raise InvalidToken("Credentials required")


VerificationNotifier = Callable[[Dict[str, Any], SessionModel, str], None]


def _log_verification_issued(user: Dict[str, Any], session: SessionModel, token: str) -> None:
    # El envío real (correo) es externo; nunca se loggea el token
    _log.info("verification token pending dispatch user_id=%s session_id=%s", user.get("_id"), session.id)


def get_verification_notifier() -> VerificationNotifier:
    return _log_verification_issued
