"""
Errores del ciclo de vida de sesiones y handlers globales para respuestas consistentes.

Cada error de dominio lleva un `code` estable y el status HTTP sugerido; los
servicios los lanzan y la capa HTTP solo los traduce.
"""
import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class AuthError(Exception):
    """Base de los errores de autenticación/sesión."""

    code = "AUTH_ERROR"
    status_code = 401
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidToken(AuthError):
    code = "INVALID_TOKEN"
    default_message = "Invalid or expired token"


class TokenTheftDetected(AuthError):
    code = "TOKEN_THEFT_DETECTED"
    default_message = (
        "Security alert: potential token theft detected. "
        "All sessions have been invalidated. Please login again."
    )


class SessionNotFoundOrAlreadyUsed(AuthError):
    code = "SESSION_NOT_FOUND_OR_ALREADY_USED"
    default_message = "Session not found or already used"


class RequiresVerification(AuthError):
    code = "SESSION_REQUIRES_VERIFICATION"
    status_code = 403
    default_message = "Session requires verification. Please verify your session first."


class Invalidated(AuthError):
    code = "SESSION_INVALIDATED"
    default_message = "Session invalidated. Please login again."


class VerificationFailed(AuthError):
    """Fallo de verificación de sesión sospechosa con motivo específico."""

    code = "VERIFICATION_FAILED"
    status_code = 400

    NOT_FOUND = "NotFound"
    NOT_SUSPICIOUS = "NotSuspicious"
    INVALID_TOKEN = "InvalidToken"
    EXPIRED = "Expired"

    _MESSAGES = {
        NOT_FOUND: "Session not found",
        NOT_SUSPICIOUS: "Session does not require verification",
        INVALID_TOKEN: "Invalid verification token",
        EXPIRED: "Verification token expired",
    }

    def __init__(self, reason: str) -> None:
        self.reason = reason
        if reason == self.NOT_FOUND:
            self.status_code = 404
        super().__init__(self._MESSAGES.get(reason, "Verification failed"))


class SessionNotFound(AuthError):
    code = "SESSION_NOT_FOUND"
    status_code = 404
    default_message = "Session not found"


class CannotRevokeCurrentSession(AuthError):
    code = "CANNOT_REVOKE_CURRENT_SESSION"
    status_code = 400
    default_message = "Cannot revoke current session. Use logout instead."


def _req_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", object()), "request_id", None)


def auth_error_response(request: Request, exc: AuthError) -> JSONResponse:
    body: Dict[str, Any] = {"message": exc.message, "code": exc.code}
    reason = getattr(exc, "reason", None)
    if reason:
        body["reason"] = reason
    rid = _req_id(request)
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=exc.status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    log = logging.getLogger("sessionguard.errors")

    @app.exception_handler(AuthError)
    async def _auth_error_handler(request: Request, exc: AuthError):
        return auth_error_response(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        body: Dict[str, Any] = {"message": exc.detail or "HTTP error"}
        rid = _req_id(request)
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):
        body: Dict[str, Any] = {"message": "Validation error", "errors": exc.errors()}
        rid = _req_id(request)
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=422, content=body)

    @app.exception_handler(Exception)
    async def _generic_handler(request: Request, exc: Exception):
        rid = _req_id(request)
        log.exception("Unhandled error request_id=%s", rid)
        body: Dict[str, Any] = {"message": "Internal server error"}
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=500, content=body)
