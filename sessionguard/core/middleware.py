"""
Middlewares de aplicación: request id, logging por petición, no-store en respuestas
con tokens y CORS (con credenciales, la cookie de refresh viaja cross-site).
"""
import logging
import time
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from sessionguard.core.config import Settings, settings as default_settings

_QUIET_PATHS = ("/health", "/ping")


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("X-Request-Id") or uuid.uuid4().hex
        request.state.request_id = rid
        response = await call_next(request)
        response.headers["X-Request-Id"] = rid
        return response


class NoStoreMiddleware(BaseHTTPMiddleware):
    """Las respuestas de /auth y /sessions llevan tokens o datos de sesión: nunca cachear."""

    def __init__(self, app: FastAPI, prefixes: tuple[str, ...]) -> None:
        super().__init__(app)
        self.prefixes = prefixes

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith(self.prefixes):
            response.headers["Cache-Control"] = "no-store"
            response.headers["Pragma"] = "no-cache"
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: FastAPI) -> None:
        super().__init__(app)
        self.log = logging.getLogger("sessionguard.request")

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        status = 0
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dt_ms = int((time.perf_counter() - start) * 1000)
            rid = getattr(request.state, "request_id", None)
            path = request.url.path
            forwarded = request.headers.get("x-forwarded-for")
            ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else "-")
            # Los probes de salud no ensucian el log en INFO
            level = logging.DEBUG if path.endswith(_QUIET_PATHS) else logging.INFO
            self.log.log(
                level,
                "method=%s path=%s status=%s latency_ms=%s ip=%s request_id=%s",
                request.method, path, status, dt_ms, ip, rid,
            )


def add_middlewares(app: FastAPI, settings: Settings = default_settings) -> None:
    # Con cors_allow_any=True se aceptan todos los orígenes vía regex (sin credentials)
    cors_kwargs = dict(
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    if settings.cors_allow_any:
        cors_kwargs["allow_origins"] = []
        cors_kwargs["allow_origin_regex"] = ".*"
        cors_kwargs["allow_credentials"] = False
    prefix = settings.api_prefix_normalized
    app.add_middleware(CORSMiddleware, **cors_kwargs)
    app.add_middleware(NoStoreMiddleware, prefixes=(f"{prefix}/auth", f"{prefix}/sessions"))
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(LoggingMiddleware)
