"""Schemas de salida para el listado de sesiones (sin hashes, familias ni tokens)."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from sessionguard.infrastructure.db.schemas.session import SessionModel


class SessionOut(BaseModel):
    id: str
    device_name: str
    browser: str
    os: str
    ip_address: str
    country: str
    city: str
    location_source: str
    is_suspicious: bool
    suspicious_reason: Optional[str] = None
    is_verified: bool
    created_at: datetime
    last_used_at: datetime
    is_current: bool = False

    @classmethod
    def from_model(cls, s: SessionModel, current_hash: Optional[str] = None) -> "SessionOut":
        return cls(
            id=s.id or "",
            device_name=s.device_name,
            browser=s.browser,
            os=s.os,
            ip_address=s.ip_address,
            country=s.country,
            city=s.city,
            location_source=s.location_source,
            is_suspicious=s.is_suspicious,
            suspicious_reason=s.suspicious_reason,
            is_verified=s.is_verified,
            created_at=s.created_at,
            last_used_at=s.last_used_at,
            is_current=bool(current_hash) and s.refresh_token_hash == current_hash,
        )


class SessionStatsOut(BaseModel):
    active_sessions: int
    suspicious_sessions: int
    max_sessions: int


class SessionsOut(BaseModel):
    sessions: List[SessionOut]
    stats: SessionStatsOut


class RevokeOthersPayload(BaseModel):
    refresh_token: Optional[str] = None
