"""
Modelo Pydantic para documentos de la colección `session`.

Una fila por generación de refresh token; nunca guarda el token en claro.
"""
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel


class SessionModel(BaseModel):
    id: Optional[str] = None  # ObjectId en string; None antes de insertar
    user_id: str  # ObjectId en string
    refresh_token_hash: str
    token_family: str

    device_name: str = "Unknown Device"
    browser: str = "Unknown Browser"
    os: str = "Unknown OS"
    ip_address: str
    user_agent: Optional[str] = None
    country: str = "Unknown"
    city: str = "Unknown"
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_source: Literal["ip", "gps"] = "ip"

    is_suspicious: bool = False
    suspicious_reason: Optional[str] = None
    is_verified: bool = True
    verification_token: Optional[str] = None
    verification_token_expires: Optional[datetime] = None

    created_at: datetime
    last_used_at: datetime
    expires_at: datetime
    is_revoked: bool = False
    revoked_at: Optional[datetime] = None
    revoked_reason: Optional[str] = None

    def is_active(self, now: datetime) -> bool:
        return not self.is_revoked and self.expires_at > now

    @property
    def requires_verification(self) -> bool:
        return self.is_suspicious and not self.is_verified

    def to_doc(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"id"})
        doc["user_id"] = ObjectId(self.user_id)
        return doc

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "SessionModel":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        data["user_id"] = str(data["user_id"])
        return cls(**data)
