"""Configuración central del servicio de sesiones (Pydantic Settings).

- Carga variables desde .env en la raíz del proyecto.
- Agrupa ajustes por área: App, CORS, Mongo, JWT, políticas de sesión.
"""
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resuelve el .env ubicado en la raíz del proyecto (independiente del CWD)
ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """Variables de configuración con valores por defecto razonables.

    Los TTL usan la gramática `<entero><unidad>` con unidad en s|m|h|d.
    """
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # no fallar si hay variables no usadas
    )

    # App
    app_name: str = "Sessionguard API"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    cors_allow_any: bool = False

    # Mongo
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "sessionguard"
    mongo_tls: bool = False
    mongo_tls_insecure: bool = False
    mongo_tls_allow_invalid_hostnames: bool = False

    # JWT (secretos separados para access y refresh)
    jwt_access_secret: str = Field(
        "change-me-access",
        validation_alias=AliasChoices("JWT_ACCESS_SECRET", "jwt_access_secret"),
    )
    jwt_refresh_secret: str = Field(
        "change-me-refresh",
        validation_alias=AliasChoices("JWT_REFRESH_SECRET", "jwt_refresh_secret"),
    )
    jwt_algorithm: str = "HS256"
    access_token_ttl: str = Field(
        "15m",
        validation_alias=AliasChoices("JWT_ACCESS_EXPIRES_IN", "ACCESS_TOKEN_TTL", "access_token_ttl"),
    )
    refresh_token_ttl: str = Field(
        "7d",
        validation_alias=AliasChoices("JWT_REFRESH_EXPIRES_IN", "REFRESH_TOKEN_TTL", "refresh_token_ttl"),
    )

    # Políticas de sesión
    max_sessions_per_user: int = Field(
        3,
        ge=1,
        validation_alias=AliasChoices("MAX_SESSIONS_PER_USER", "max_sessions_per_user"),
    )
    verification_token_ttl: str = "24h"
    last_used_throttle_minutes: int = 5

    # Cookie de refresh (la fija la capa HTTP)
    refresh_cookie_name: str = "refreshToken"
    refresh_cookie_secure: bool = True

    @property
    def api_prefix_normalized(self) -> str:
        """Devuelve `api_prefix` con '/' inicial y sin '/' final ("" si está vacío)."""
        pref = (self.api_prefix or "").strip()
        if not pref:
            return ""
        if not pref.startswith("/"):
            pref = "/" + pref
        if len(pref) > 1 and pref.endswith("/"):
            pref = pref[:-1]
        return pref


settings = Settings()
