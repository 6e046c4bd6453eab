"""
Emisión de sesiones en el login, logout, force-logout y autenticación de access tokens.

Flujo de login: contexto de dispositivo → familia nueva → heurística de login
sospechoso → tope de sesiones → par de tokens → sesión persistida → (si no es
sospechoso) aprendizaje de ubicaciones conocidas.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional
import logging

from sessionguard.core.config import Settings, settings as default_settings
from sessionguard.core.exceptions import Invalidated
from sessionguard.core.time import Clock, utcnow
from sessionguard.domain.device import DeviceContext, LocationCapture, apply_location
from sessionguard.domain.ports import SessionStore, UserStore
from sessionguard.infrastructure.db.schemas.session import SessionModel
from sessionguard.services.login_detector import check_suspicious_login, known_location_updates
from sessionguard.services.session_limiter import SessionLimiter
from sessionguard.services.token_service import (
    TokenCodec,
    generate_token_family,
    generate_verification_token,
    hash_token,
)

LOGOUT_REASON = "User logout"
LOGOUT_ALL_REASON = "User logout all devices"

_log = logging.getLogger("sessionguard.auth")


@dataclass
class LoginResult:
    access_token: str
    refresh_token: str
    session: SessionModel
    requires_verification: bool
    # Se entrega al llamador para el envío externo (correo); nunca se loggea
    verification_token: Optional[str] = None


def build_session(
    *,
    user_id: str,
    refresh_token: str,
    token_family: str,
    device: DeviceContext,
    now: datetime,
    expires_at: datetime,
) -> SessionModel:
    """Sesión nueva (no sospechosa, verificada) con la foto del dispositivo."""
    return SessionModel(
        user_id=str(user_id),
        refresh_token_hash=hash_token(refresh_token),
        token_family=token_family,
        **device.model_dump(),
        created_at=now,
        last_used_at=now,
        expires_at=expires_at,
    )


class AuthService:
    def __init__(
        self,
        sessions: SessionStore,
        users: UserStore,
        codec: Optional[TokenCodec] = None,
        settings: Settings = default_settings,
        clock: Clock = utcnow,
    ) -> None:
        self.sessions = sessions
        self.users = users
        self.codec = codec or TokenCodec(settings)
        self.limiter = SessionLimiter(sessions, settings)
        self.clock = clock

    def open_session(
        self,
        user: Dict[str, Any],
        device: DeviceContext,
        location: Optional[LocationCapture] = None,
    ) -> LoginResult:
        """Crea la sesión inicial de un usuario ya autenticado (credenciales validadas fuera)."""
        user_id = str(user["_id"])
        token_version = user.get("token_version", 0)
        known_countries = user.get("known_countries") or []
        known_ips = user.get("known_ips") or []
        device = apply_location(device, location)

        check = check_suspicious_login(known_countries, known_ips, device.country, device.ip_address)

        self.limiter.enforce(user_id)

        family = generate_token_family()
        access = self.codec.create_access_token(user_id=user_id, token_version=token_version)
        refresh = self.codec.create_refresh_token(user_id=user_id, token_family=family, token_version=token_version)

        now = self.clock()
        session = build_session(
            user_id=user_id,
            refresh_token=refresh,
            token_family=family,
            device=device,
            now=now,
            expires_at=self.codec.refresh_token_expiry(now),
        )
        verification_token = None
        if check.is_suspicious:
            verification_token = generate_verification_token()
            session.is_suspicious = True
            session.suspicious_reason = check.reason
            session.is_verified = False
            session.verification_token = verification_token
            session.verification_token_expires = self.codec.verification_expiry(now)

        session.id = self.sessions.create_session(session)

        if check.is_suspicious:
            _log.warning("suspicious login user_id=%s session_id=%s reason=%s", user_id, session.id, check.reason)
        else:
            upd = known_location_updates(known_countries, known_ips, device.country, device.ip_address)
            self.users.add_known_locations(
                user_id, country=upd.country, ip_address=upd.ip_address, last_login=now
            )

        return LoginResult(
            access_token=access,
            refresh_token=refresh,
            session=session,
            requires_verification=check.is_suspicious,
            verification_token=verification_token,
        )

    def logout(self, refresh_token: Optional[str]) -> bool:
        """Revoca la sesión activa del refresh; token vacío o desconocido no es error."""
        if not refresh_token:
            return False
        revoked = self.sessions.find_and_revoke_atomic(hash_token(refresh_token), LOGOUT_REASON)
        return revoked is not None

    def force_logout_all(self, user_id: str, reason: str = LOGOUT_ALL_REASON) -> int:
        """Invalida todo al instante: sube token_version y revoca todas las sesiones."""
        self.users.increment_token_version(user_id)
        count = self.sessions.revoke_all_for_user(user_id, reason)
        _log.info("force logout user_id=%s revoked=%s", user_id, count)
        return count

    def authenticate(self, access_token: str) -> Dict[str, Any]:
        """Valida el access token y la token_version vigente del usuario; devuelve el usuario."""
        payload = self.codec.verify_access_token(access_token)
        user = self.users.get_user_by_id(payload["userId"])
        if not user:
            raise Invalidated("User not found")
        if user.get("token_version", 0) != payload.get("tokenVersion"):
            raise Invalidated()
        return user
