"""
Gestión de sesiones del propio usuario: listado, estadísticas y revocación por dispositivo.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from sessionguard.core.config import Settings, settings as default_settings
from sessionguard.core.exceptions import CannotRevokeCurrentSession, SessionNotFound
from sessionguard.core.time import Clock, utcnow
from sessionguard.domain.ports import SessionStore
from sessionguard.infrastructure.db.schemas.session import SessionModel
from sessionguard.services.token_service import hash_token

REVOKE_DEVICE_REASON = "User logout from device"
REVOKE_ALL_REASON = "User logout all devices"
REVOKE_OTHERS_REASON = "User logout other devices"


@dataclass
class SessionStats:
    active_sessions: int
    suspicious_sessions: int
    max_sessions: int


class SessionService:
    def __init__(self, sessions: SessionStore, settings: Settings = default_settings, clock: Clock = utcnow) -> None:
        self.sessions = sessions
        self.settings = settings
        self.clock = clock

    def list_sessions(self, user_id: str) -> List[SessionModel]:
        """Sesiones activas, la usada más recientemente primero."""
        return self.sessions.list_active(user_id, sort_by="last_used_at", ascending=False)

    def get_session(self, session_id: str, user_id: str) -> SessionModel:
        session = self.sessions.get_active_for_user(session_id, user_id)
        if session is None:
            raise SessionNotFound()
        return session

    def revoke_session(self, session_id: str, user_id: str, current_hash: Optional[str] = None) -> SessionModel:
        session = self.get_session(session_id, user_id)
        if current_hash and session.refresh_token_hash == current_hash:
            raise CannotRevokeCurrentSession()
        revoked = self.sessions.revoke_session(session_id, user_id, REVOKE_DEVICE_REASON)
        if revoked is None:
            raise SessionNotFound()
        return revoked

    def revoke_all_sessions(self, user_id: str) -> int:
        return self.sessions.revoke_all_for_user(user_id, REVOKE_ALL_REASON)

    def revoke_other_sessions(self, user_id: str, current_refresh_token: str) -> int:
        return self.sessions.revoke_others(user_id, hash_token(current_refresh_token), REVOKE_OTHERS_REASON)

    def session_stats(self, user_id: str) -> SessionStats:
        return SessionStats(
            active_sessions=self.sessions.count_active(user_id),
            suspicious_sessions=self.sessions.count_suspicious(user_id),
            max_sessions=self.settings.max_sessions_per_user,
        )

    def touch(self, refresh_token: str) -> bool:
        """Actualiza last_used_at como mucho una vez por ventana de throttle."""
        window = timedelta(minutes=self.settings.last_used_throttle_minutes)
        return self.sessions.touch_last_used(hash_token(refresh_token), self.clock() - window)
