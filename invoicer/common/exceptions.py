"""
Errores de dominio compartidos por todos los módulos.

Los servicios convierten cualquier fallo de acceso a datos en uno de estos
tipos; los routers no capturan nada, el handler registrado en la app los
traduce a respuestas HTTP.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base de los errores de dominio."""
    status_code = status.HTTP_400_BAD_REQUEST
    error = "app_error"

    def __init__(self, detail: str = "Error de aplicación"):
        super().__init__(detail)
        self.detail = detail


class NotFound(AppError):
    """Entidad inexistente o perteneciente a otro usuario."""
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class ValidationError(AppError):
    """Entrada inválida: montos negativos, enum desconocido, email mal formado."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error = "validation_error"


class ConflictError(AppError):
    """Número de documento duplicado u otra restricción única."""
    status_code = status.HTTP_409_CONFLICT
    error = "conflict"


class TransientError(AppError):
    """Fallo de conectividad con la base de datos; se puede reintentar."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "transient_error"


class AuthFailure(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "auth_failure"

    def __init__(self, detail: str = "Credenciales inválidas"):
        super().__init__(detail)


class InvalidTransition(AppError):
    status_code = status.HTTP_409_CONFLICT
    error = "invalid_transition"

    def __init__(self, current, target, detail: str = None):
        self.current = current
        self.target = target
        super().__init__(
            detail or f"Transición de estado inválida: {current} -> {target}"
        )


async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, (TransientError, ConflictError, InvalidTransition)):
        logger.warning(f"{exc.error} en {request.method} {request.url.path}: {exc.detail}")
    else:
        logger.debug(f"{exc.error} en {request.method} {request.url.path}: {exc.detail}")

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthFailure) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.error},
        headers=headers
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registra el handler de errores de dominio en la app."""
    app.add_exception_handler(AppError, app_error_handler)
