"""Tope de sesiones activas por usuario: revoca las más antiguas para hacer lugar."""
import logging

from sessionguard.core.config import Settings, settings as default_settings
from sessionguard.domain.ports import SessionStore

SESSION_LIMIT_REASON = "session limit exceeded"

_log = logging.getLogger("sessionguard.limiter")


class SessionLimiter:
    def __init__(self, sessions: SessionStore, settings: Settings = default_settings) -> None:
        self.sessions = sessions
        self.max_sessions = settings.max_sessions_per_user

    def enforce(self, user_id: str) -> int:
        """Revoca las `count - max + 1` sesiones más antiguas si ya se alcanzó el tope.

        Debe correr antes de insertar la nueva sesión para no superar el tope ni
        transitoriamente. Devuelve cuántas se revocaron.
        """
        active = self.sessions.list_active(user_id, sort_by="created_at", ascending=True)
        if len(active) < self.max_sessions:
            return 0
        oldest = active[: len(active) - self.max_sessions + 1]
        revoked = self.sessions.revoke_many([s.id for s in oldest], SESSION_LIMIT_REASON)
        _log.info("session limit user_id=%s active=%s revoked=%s", user_id, len(active), revoked)
        return revoked
