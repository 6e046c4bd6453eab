"""
Cliente MongoDB (pymongo) compartido por los repositorios.

`init_mongo()` se llama una sola vez en el startup; los repositorios reciben la
base ya resuelta vía `get_db()`.
"""
from __future__ import annotations

import logging
from typing import Optional

import certifi
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from sessionguard.core.config import Settings, settings as default_settings

_log = logging.getLogger("sessionguard.mongo")

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def _build_client(settings: Settings) -> MongoClient:
    uri = settings.mongo_uri
    kwargs = dict(serverSelectionTimeoutMS=15000)
    if uri.startswith("mongodb+srv://"):
        # SRV ya implica TLS; proveemos CA bundle para robustez
        kwargs["tlsCAFile"] = certifi.where()
    elif settings.mongo_tls:
        kwargs["tls"] = True
        kwargs["tlsCAFile"] = certifi.where()
        kwargs["tlsAllowInvalidCertificates"] = settings.mongo_tls_insecure
        kwargs["tlsAllowInvalidHostnames"] = settings.mongo_tls_allow_invalid_hostnames
    return MongoClient(uri, **kwargs)


def init_mongo(settings: Settings = default_settings) -> None:
    """Inicializa el cliente y valida conexión (ping). No tumba la app si falla."""
    global _client, _db
    try:
        _client = _build_client(settings)
        _client.admin.command("ping")
        _db = _client[settings.mongo_db]
        _log.info("Mongo conectado db=%s", settings.mongo_db)
    except ServerSelectionTimeoutError as e:
        _log.warning("Mongo no accesible (timeout): %s", e)
        _client = None
        _db = None
    except PyMongoError as e:
        _log.warning("Error de conexión a Mongo: %s", e)
        _client = None
        _db = None


def get_db() -> Database:
    """Devuelve la base de datos; úsalo en dependencias/servicios, no en routers."""
    if _db is None:
        raise RuntimeError("Mongo no inicializado. Intenta más tarde.")
    return _db


def db_ready() -> bool:
    return _db is not None
