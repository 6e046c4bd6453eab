"""
Verificación humana de una sesión marcada como sospechosa.

La verificación debe hacerse sobre la sesión vigente antes de su primera rotación;
una vez verificada, la sesión (y sus sucesoras por rotación) rotan con normalidad.
"""
import hmac
import logging

from sessionguard.core.exceptions import VerificationFailed
from sessionguard.core.time import Clock, naive_utc, utcnow
from sessionguard.domain.ports import SessionStore, UserStore
from sessionguard.infrastructure.db.schemas.session import SessionModel
from sessionguard.services.login_detector import known_location_updates

_log = logging.getLogger("sessionguard.verification")


class VerificationService:
    def __init__(self, sessions: SessionStore, users: UserStore, clock: Clock = utcnow) -> None:
        self.sessions = sessions
        self.users = users
        self.clock = clock

    def verify_session(self, session_id: str, verification_token: str, user_id: str) -> SessionModel:
        session = self.sessions.get_active_for_user(session_id, user_id)
        if session is None:
            raise VerificationFailed(VerificationFailed.NOT_FOUND)
        if not session.is_suspicious:
            raise VerificationFailed(VerificationFailed.NOT_SUSPICIOUS)

        # compare_digest sobre str solo admite ASCII; en bytes acepta cualquier entrada
        stored = (session.verification_token or "").encode("utf-8")
        given = (verification_token or "").encode("utf-8")
        if not stored or not hmac.compare_digest(stored, given):
            raise VerificationFailed(VerificationFailed.INVALID_TOKEN)

        expires = session.verification_token_expires
        if expires is None or not self.clock() < naive_utc(expires):
            raise VerificationFailed(VerificationFailed.EXPIRED)

        verified = self.sessions.mark_verified(session.id)
        if verified is None:
            # Revocada o expirada entre la lectura y la escritura
            raise VerificationFailed(VerificationFailed.NOT_FOUND)

        # El usuario confirmó el login: su ubicación pasa a ser conocida
        user = self.users.get_user_by_id(user_id)
        if user:
            upd = known_location_updates(
                user.get("known_countries") or [], user.get("known_ips") or [], verified.country, verified.ip_address
            )
            if upd.country or upd.ip_address:
                self.users.add_known_locations(
                    user_id, country=upd.country, ip_address=upd.ip_address, last_login=None
                )
        _log.info("session verified user_id=%s session_id=%s", user_id, verified.id)
        return verified
