"""
Contratos de persistencia que consume el motor de sesiones.

El almacén debe ofrecer una actualización condicional atómica (compare-and-set sobre
`is_revoked`); es la única primitiva de sincronización entre procesos.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sessionguard.infrastructure.db.schemas.session import SessionModel


class SessionStore(Protocol):
    def create_session(self, record: SessionModel) -> str:
        ...

    def find_and_revoke_atomic(self, refresh_token_hash: str, reason: str) -> Optional[SessionModel]:
        """Revoca si está activa y devuelve el registro previo; None si no había activa."""
        ...

    def find_revoked(self, refresh_token_hash: str) -> Optional[SessionModel]:
        ...

    def find_active_by_hash(self, refresh_token_hash: str) -> Optional[SessionModel]:
        ...

    def get_active_for_user(self, session_id: str, user_id: str) -> Optional[SessionModel]:
        ...

    def revoke_family(self, token_family: str, reason: str) -> int:
        ...

    def revoke_all_for_user(self, user_id: str, reason: str) -> int:
        ...

    def revoke_many(self, session_ids: Sequence[str], reason: str) -> int:
        ...

    def revoke_session(self, session_id: str, user_id: str, reason: str) -> Optional[SessionModel]:
        ...

    def revoke_others(self, user_id: str, keep_hash: str, reason: str) -> int:
        ...

    def mark_verified(self, session_id: str) -> Optional[SessionModel]:
        ...

    def touch_last_used(self, refresh_token_hash: str, older_than: datetime) -> bool:
        ...

    def list_active(self, user_id: str, sort_by: str = "created_at", ascending: bool = True) -> List[SessionModel]:
        ...

    def count_active(self, user_id: str) -> int:
        ...

    def count_suspicious(self, user_id: str) -> int:
        ...


class UserStore(Protocol):
    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    def increment_token_version(self, user_id: str) -> None:
        ...

    def add_known_locations(
        self, user_id: str, *, country: Optional[str], ip_address: Optional[str], last_login: Optional[datetime]
    ) -> None:
        ...
