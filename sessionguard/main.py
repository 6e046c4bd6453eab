"""Entrada principal de la app FastAPI (configura middlewares, excepciones y routers)."""
import logging

from fastapi import FastAPI

from sessionguard.api.router import api_router
from sessionguard.core.config import Settings, settings as default_settings
from sessionguard.core.exceptions import register_exception_handlers
from sessionguard.core.logging import setup_logging
from sessionguard.core.middleware import add_middlewares
from sessionguard.infrastructure.db.bootstrap import ensure_collections
from sessionguard.infrastructure.db.mongo import db_ready, get_db, init_mongo

_log = logging.getLogger("sessionguard.startup")


def create_app(settings: Settings = default_settings) -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title=settings.app_name)

    add_middlewares(app, settings)
    register_exception_handlers(app)

    @app.on_event("startup")
    def on_startup():
        init_mongo(settings)
        # Garantiza índices mínimos si hay conexión
        if db_ready():
            ensure_collections(get_db())
        else:
            _log.warning("Mongo no listo; omitiendo ensure_collections()")

    # Monta routers bajo el prefijo configurado
    app.include_router(api_router, prefix=settings.api_prefix_normalized)
    return app


app = create_app()
