"""
Bootstrap de la base Mongo: índices de la colección `session`.

Se ejecuta al inicio; no tumba la app si algún índice no se puede crear.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from sessionguard.repositories.session_repo import SESSION_COLL

_log = logging.getLogger("sessionguard.mongo.bootstrap")


SESSION_INDEXES: List[Dict[str, Any]] = [
    # Único entre todas las filas, revocadas o no
    {"keys": [("refresh_token_hash", ASCENDING)], "unique": True, "name": "uniq_refresh_token_hash"},
    {"keys": [("token_family", ASCENDING)], "name": "ix_token_family"},
    {"keys": [("user_id", ASCENDING), ("is_revoked", ASCENDING), ("created_at", ASCENDING)], "name": "ix_user_active"},
    # Limpieza perezosa de sesiones expiradas
    {"keys": [("expires_at", ASCENDING)], "expireAfterSeconds": 0, "name": "ttl_expires_at"},
]


def _ensure_indexes(db: Database, name: str, indexes: List[Dict[str, Any]]) -> None:
    coll = db[name]
    for ix in indexes:
        opts = dict(ix)
        keys = opts.pop("keys")
        try:
            coll.create_index(keys, **opts)
        except PyMongoError as e:
            # Ignora fallas de índice (p.ej. ya existe con otras opciones)
            _log.warning("No se pudo crear índice en '%s' (%s): %s", name, keys, e)


def ensure_collections(db: Database) -> None:
    """Garantiza los índices mínimos de las colecciones del servicio."""
    _ensure_indexes(db, SESSION_COLL, SESSION_INDEXES)
