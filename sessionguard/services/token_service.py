"""
Creación y verificación de JWTs de acceso y refresh.

Los tokens son cadenas opacas para el resto del servicio; solo este módulo los firma
o los parsea. Claims:
- access:  {userId, tokenVersion, type: "access"}
- refresh: {userId, tokenFamily, tokenVersion, type: "refresh"}
más iat/exp/jti registrados (jti evita dos refresh idénticos emitidos en el mismo segundo).
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import uuid4

import jwt as pyjwt

from sessionguard.core.config import Settings, settings as default_settings
from sessionguard.core.exceptions import InvalidToken
from sessionguard.core.time import naive_utc, parse_duration

ACCESS = "access"
REFRESH = "refresh"

DEFAULT_ACCESS_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TTL = timedelta(days=7)
DEFAULT_VERIFICATION_TTL = timedelta(hours=24)


def hash_token(token: str) -> str:
    """Hash de un solo sentido (sha256 hex); es lo único que se persiste del refresh."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_token_family() -> str:
    return secrets.token_hex(16)


def generate_verification_token() -> str:
    # 256-bit random token in hex
    return secrets.token_hex(32)


class TokenCodec:
    def __init__(self, settings: Settings = default_settings) -> None:
        self.settings = settings
        self.access_ttl = parse_duration(settings.access_token_ttl, DEFAULT_ACCESS_TTL)
        self.refresh_ttl = parse_duration(settings.refresh_token_ttl, DEFAULT_REFRESH_TTL)
        self.verification_ttl = parse_duration(settings.verification_token_ttl, DEFAULT_VERIFICATION_TTL)

    def _encode(self, claims: Dict[str, Any], ttl: timedelta, secret: str) -> str:
        now = datetime.now(timezone.utc)
        payload = dict(claims)
        payload["iat"] = int(now.timestamp())
        payload["exp"] = int((now + ttl).timestamp())
        payload["jti"] = uuid4().hex
        return pyjwt.encode(payload, secret, algorithm=self.settings.jwt_algorithm)

    def _decode(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        try:
            payload = pyjwt.decode(token, key=secret, algorithms=[self.settings.jwt_algorithm])
        except pyjwt.PyJWTError as e:
            raise InvalidToken(f"Invalid {expected_type} token: {e}") from e
        if payload.get("type") != expected_type:
            raise InvalidToken("Invalid token type")
        if not payload.get("userId"):
            raise InvalidToken("Invalid token payload")
        return payload

    def create_access_token(self, *, user_id: str, token_version: int) -> str:
        claims = {"userId": str(user_id), "tokenVersion": token_version, "type": ACCESS}
        return self._encode(claims, self.access_ttl, self.settings.jwt_access_secret)

    def create_refresh_token(self, *, user_id: str, token_family: str, token_version: int) -> str:
        claims = {
            "userId": str(user_id),
            "tokenFamily": token_family,
            "tokenVersion": token_version,
            "type": REFRESH,
        }
        return self._encode(claims, self.refresh_ttl, self.settings.jwt_refresh_secret)

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        """Decodifica y valida firma/expiración/tipo. Lanza InvalidToken."""
        return self._decode(token, self.settings.jwt_access_secret, ACCESS)

    def verify_refresh_token(self, token: str) -> Dict[str, Any]:
        payload = self._decode(token, self.settings.jwt_refresh_secret, REFRESH)
        if not payload.get("tokenFamily"):
            raise InvalidToken("Invalid token payload")
        return payload

    def refresh_token_expiry(self, now: datetime) -> datetime:
        """`expires_at` de la sesión que respalda un refresh emitido en `now`."""
        return naive_utc(now) + self.refresh_ttl

    def verification_expiry(self, now: datetime) -> datetime:
        return naive_utc(now) + self.verification_ttl
