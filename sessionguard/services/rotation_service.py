"""
Rotación de refresh tokens con detección de robo.

Estados por intento: Presented → Theft | RaceLost | Blocked (requiere verificación)
| Invalidated | Rotated. Ningún resultado se reintenta: reintentar un token consumido
es indistinguible de un ataque.
"""
from dataclasses import dataclass
from typing import Optional
import logging

from sessionguard.core.config import Settings, settings as default_settings
from sessionguard.core.exceptions import (
    Invalidated,
    RequiresVerification,
    SessionNotFoundOrAlreadyUsed,
    TokenTheftDetected,
)
from sessionguard.core.time import Clock, utcnow
from sessionguard.domain.device import DeviceContext
from sessionguard.domain.ports import SessionStore, UserStore
from sessionguard.infrastructure.db.schemas.session import SessionModel
from sessionguard.services.auth_service import build_session
from sessionguard.services.token_service import TokenCodec, hash_token

ROTATED_REASON = "Token rotated"
THEFT_FAMILY_REASON = "Token theft detected - token reused"
THEFT_USER_REASON = "Token theft detected - all sessions invalidated"

_log = logging.getLogger("sessionguard.rotation")


@dataclass
class RotationResult:
    access_token: str
    refresh_token: str
    session: SessionModel


class RotationEngine:
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
        self.clock = clock

    def _handle_theft(self, user_id: str, token_family: str) -> None:
        self.sessions.revoke_family(token_family, THEFT_FAMILY_REASON)
        if self.users.get_user_by_id(user_id):
            self.users.increment_token_version(user_id)
            self.sessions.revoke_all_for_user(user_id, THEFT_USER_REASON)
        _log.warning("refresh token reuse detected user_id=%s family=%s", user_id, token_family)

    def rotate(self, old_refresh_token: str, device: DeviceContext) -> RotationResult:
        """Canjea un refresh vigente por un par nuevo de la misma familia.

        Lanza InvalidToken, TokenTheftDetected, SessionNotFoundOrAlreadyUsed,
        Invalidated o RequiresVerification.
        """
        payload = self.codec.verify_refresh_token(old_refresh_token)
        token_family = payload["tokenFamily"]
        token_version = payload.get("tokenVersion")
        user_id = payload["userId"]
        token_hash = hash_token(old_refresh_token)

        # Este token exacto ya se consumió antes: se está reutilizando
        if self.sessions.find_revoked(token_hash) is not None:
            self._handle_theft(user_id, token_family)
            raise TokenTheftDetected()

        # CAS: solo una petición concurrente con el mismo token pasa de aquí
        consumed = self.sessions.find_and_revoke_atomic(token_hash, ROTATED_REASON)
        if consumed is None:
            _log.info("rotation lost race or stale token user_id=%s family=%s", user_id, token_family)
            raise SessionNotFoundOrAlreadyUsed()

        user = self.users.get_user_by_id(consumed.user_id)
        if not user or user.get("token_version", 0) != token_version:
            _log.warning("rotation with stale token version user_id=%s", consumed.user_id)
            raise Invalidated()

        # Queda revocada: la verificación se hace sobre la sesión vigente antes de rotar
        if consumed.requires_verification:
            raise RequiresVerification()

        current_version = user.get("token_version", 0)
        new_refresh = self.codec.create_refresh_token(
            user_id=consumed.user_id, token_family=token_family, token_version=current_version
        )
        new_access = self.codec.create_access_token(user_id=consumed.user_id, token_version=current_version)

        now = self.clock()
        session = build_session(
            user_id=consumed.user_id,
            refresh_token=new_refresh,
            token_family=token_family,
            device=device,
            now=now,
            expires_at=self.codec.refresh_token_expiry(now),
        )
        session.id = self.sessions.create_session(session)
        _log.info("refresh rotated user_id=%s family=%s session_id=%s", consumed.user_id, token_family, session.id)
        return RotationResult(access_token=new_access, refresh_token=new_refresh, session=session)
