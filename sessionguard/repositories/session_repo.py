"""
Persistencia de sesiones (colección `session`).

`find_and_revoke_atomic` es un único `find_one_and_update` condicionado a que la
sesión siga activa: bajo peticiones concurrentes con el mismo refresh token solo una
observa el documento previo sin revocar; las demás reciben None.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from sessionguard.core.time import Clock, utcnow
from sessionguard.infrastructure.db.schemas.session import SessionModel

SESSION_COLL = "session"


def _oid(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


class SessionRepository:
    def __init__(self, db: Database, clock: Clock = utcnow) -> None:
        self.coll = db[SESSION_COLL]
        self.clock = clock

    def _active_filter(self, **extra: Any) -> Dict[str, Any]:
        filtro: Dict[str, Any] = {"is_revoked": False, "expires_at": {"$gt": self.clock()}}
        filtro.update(extra)
        return filtro

    def _revoke_update(self, reason: str) -> Dict[str, Any]:
        return {"$set": {"is_revoked": True, "revoked_at": self.clock(), "revoked_reason": reason}}

    @staticmethod
    def _model(doc: Optional[Dict[str, Any]]) -> Optional[SessionModel]:
        return SessionModel.from_doc(doc) if doc else None

    def create_session(self, record: SessionModel) -> str:
        res = self.coll.insert_one(record.to_doc())
        return str(res.inserted_id)

    def find_and_revoke_atomic(self, refresh_token_hash: str, reason: str) -> Optional[SessionModel]:
        doc = self.coll.find_one_and_update(
            self._active_filter(refresh_token_hash=refresh_token_hash),
            self._revoke_update(reason),
            return_document=ReturnDocument.BEFORE,
        )
        return self._model(doc)

    def find_revoked(self, refresh_token_hash: str) -> Optional[SessionModel]:
        return self._model(self.coll.find_one({"refresh_token_hash": refresh_token_hash, "is_revoked": True}))

    def find_active_by_hash(self, refresh_token_hash: str) -> Optional[SessionModel]:
        return self._model(self.coll.find_one(self._active_filter(refresh_token_hash=refresh_token_hash)))

    def get_active_for_user(self, session_id: str, user_id: str) -> Optional[SessionModel]:
        sid, uid = _oid(session_id), _oid(user_id)
        if sid is None or uid is None:
            return None
        return self._model(self.coll.find_one(self._active_filter(_id=sid, user_id=uid)))

    def revoke_family(self, token_family: str, reason: str) -> int:
        res = self.coll.update_many({"token_family": token_family, "is_revoked": False}, self._revoke_update(reason))
        return res.modified_count

    def revoke_all_for_user(self, user_id: str, reason: str) -> int:
        uid = _oid(user_id)
        if uid is None:
            return 0
        res = self.coll.update_many({"user_id": uid, "is_revoked": False}, self._revoke_update(reason))
        return res.modified_count

    def revoke_many(self, session_ids: Sequence[str], reason: str) -> int:
        ids = [oid for oid in (_oid(s) for s in session_ids) if oid is not None]
        if not ids:
            return 0
        res = self.coll.update_many({"_id": {"$in": ids}, "is_revoked": False}, self._revoke_update(reason))
        return res.modified_count

    def revoke_session(self, session_id: str, user_id: str, reason: str) -> Optional[SessionModel]:
        sid, uid = _oid(session_id), _oid(user_id)
        if sid is None or uid is None:
            return None
        doc = self.coll.find_one_and_update(
            {"_id": sid, "user_id": uid, "is_revoked": False},
            self._revoke_update(reason),
            return_document=ReturnDocument.AFTER,
        )
        return self._model(doc)

    def revoke_others(self, user_id: str, keep_hash: str, reason: str) -> int:
        uid = _oid(user_id)
        if uid is None:
            return 0
        res = self.coll.update_many(
            {"user_id": uid, "is_revoked": False, "refresh_token_hash": {"$ne": keep_hash}},
            self._revoke_update(reason),
        )
        return res.modified_count

    def mark_verified(self, session_id: str) -> Optional[SessionModel]:
        """Marca verificada una sesión activa y borra su token de verificación."""
        sid = _oid(session_id)
        if sid is None:
            return None
        doc = self.coll.find_one_and_update(
            self._active_filter(_id=sid),
            {"$set": {"is_verified": True, "verification_token": None, "verification_token_expires": None}},
            return_document=ReturnDocument.AFTER,
        )
        return self._model(doc)

    def touch_last_used(self, refresh_token_hash: str, older_than: datetime) -> bool:
        res = self.coll.update_one(
            {"refresh_token_hash": refresh_token_hash, "is_revoked": False, "last_used_at": {"$lt": older_than}},
            {"$set": {"last_used_at": self.clock()}},
        )
        return res.modified_count > 0

    def list_active(self, user_id: str, sort_by: str = "created_at", ascending: bool = True) -> List[SessionModel]:
        uid = _oid(user_id)
        if uid is None:
            return []
        direction = ASCENDING if ascending else DESCENDING
        cursor = self.coll.find(self._active_filter(user_id=uid)).sort([(sort_by, direction), ("_id", direction)])
        return [SessionModel.from_doc(d) for d in cursor]

    def count_active(self, user_id: str) -> int:
        uid = _oid(user_id)
        if uid is None:
            return 0
        return self.coll.count_documents(self._active_filter(user_id=uid))

    def count_suspicious(self, user_id: str) -> int:
        uid = _oid(user_id)
        if uid is None:
            return 0
        return self.coll.count_documents(self._active_filter(user_id=uid, is_suspicious=True, is_verified=False))
