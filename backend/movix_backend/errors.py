"""
Error handling shared by every app.

parse_error() turns raw provider/database errors into a message that can be
shown to the user plus a retryable flag. movix_exception_handler() plugs the
domain exceptions into DRF so views can simply raise.
"""

import logging
from dataclasses import dataclass

from django.core.exceptions import ObjectDoesNotExist
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import IntegrityError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    AuthenticationFailed,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    Throttled,
    ValidationError,
)
from rest_framework.views import exception_handler

from dispatch.state_machines.offer_state import OfferStateException
from dispatch.state_machines.request_state import RequestStateException

logger = logging.getLogger(__name__)

MSG_UNKNOWN = "Error desconocido"
MSG_NETWORK = "Error de conexión. Verifica tu internet."
MSG_UNAUTHORIZED = "No autorizado. Tu cuenta puede estar en revisión."
MSG_NOT_FOUND = "Registro no encontrado o no válido."
MSG_EXPIRED = "Solicitud expirada. Intenta con otra."
MSG_SESSION = "Sesión expirada. Inicia sesión nuevamente."
MSG_GENERIC = "Error al procesar la solicitud."
MSG_VALIDATION = "Datos inválidos. Revisa la información enviada."


@dataclass(frozen=True)
class ParsedError:
    message: str
    retryable: bool


def _error_fields(error):
    code = getattr(error, "code", None)
    message = getattr(error, "message", None)
    if message is None and isinstance(error, Exception):
        message = str(error)
    return (str(code) if code is not None else None), (str(message) if message else "")


def parse_error(error) -> ParsedError:
    if not error:
        return ParsedError(MSG_UNKNOWN, True)

    logger.error(f"[Backend Error]: {error!r}")

    if isinstance(error, str):
        lowered = error.lower()
        if "network" in lowered or "fetch" in lowered:
            return ParsedError(MSG_NETWORK, True)
        return ParsedError(error, True)

    code, message = _error_fields(error)
    lowered = message.lower()

    if "network" in lowered or "fetch" in lowered or code == "NETWORK_ERROR":
        return ParsedError(MSG_NETWORK, True)

    # 42501 is a row level security violation
    if (
        code in ("PGRST301", "42501", "401", "403")
        or "policy" in message
        or "permission denied" in message
        or "not authorized" in lowered
    ):
        return ParsedError(MSG_UNAUTHORIZED, False)

    # foreign key violation, usually the referenced row does not exist
    if code == "23503" or (isinstance(error, IntegrityError) and "foreign key" in lowered):
        return ParsedError(MSG_NOT_FOUND, False)

    if "REQUEST_EXPIRED" in message or "expirada" in message or "expired" in message:
        return ParsedError(MSG_EXPIRED, False)

    if "No autenticado" in message or "not authenticated" in message or code == "AUTH_REQUIRED":
        return ParsedError(MSG_SESSION, False)

    if message:
        return ParsedError(MSG_GENERIC, True)

    return ParsedError(MSG_UNKNOWN, True)


class ServiceError(APIException):
    """
    Business rule failure with a machine readable code.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = MSG_GENERIC
    default_code = "SERVICE_ERROR"

    retryable = False

    def __init__(self, message=None, code=None, status_code=None, retryable=None, **extra):
        super().__init__(detail=message or self.default_detail, code=code or self.default_code)
        self.error_code = code or self.default_code
        self.message = str(self.detail)
        self.extra = extra
        if status_code is not None:
            self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


# DRF exception class -> error code for errors that are not ServiceError
DRF_ERROR_CODES = {
    NotAuthenticated: "UNAUTHORIZED",
    AuthenticationFailed: "UNAUTHORIZED",
    PermissionDenied: "FORBIDDEN",
    NotFound: "NOT_FOUND",
    ValidationError: "VALIDATION_ERROR",
}


def _drf_error_code(exc):
    for exc_class, code in DRF_ERROR_CODES.items():
        if isinstance(exc, exc_class):
            return code
    return str(exc.default_code).upper()


def movix_exception_handler(exc, context):
    """
    Every API error leaves as {success, error, message, retryable, ...}.
    Validation errors keep the per field detail under "errors".
    """
    if isinstance(exc, (RequestStateException, OfferStateException)):
        exc = ConflictError(str(exc), code="INVALID_STATE")
    elif isinstance(exc, (ObjectDoesNotExist, Http404)):
        exc = NotFound(MSG_NOT_FOUND)
    elif isinstance(exc, DjangoPermissionDenied):
        exc = PermissionDenied()
    elif isinstance(exc, IntegrityError):
        parsed = parse_error(exc)
        exc = ServiceError(parsed.message, code="DATABASE_ERROR", retryable=parsed.retryable)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ServiceError):
        logger.warning(f"{exc.error_code}: {exc.message}")
        response.data = {
            "success": False,
            "error": exc.error_code,
            "message": exc.message,
            "retryable": exc.retryable,
            **exc.extra,
        }
    elif isinstance(exc, ValidationError):
        response.data = {
            "success": False,
            "error": "VALIDATION_ERROR",
            "message": MSG_VALIDATION,
            "retryable": False,
            "errors": response.data,
        }
    elif isinstance(exc, APIException):
        response.data = {
            "success": False,
            "error": _drf_error_code(exc),
            "message": str(exc.detail),
            "retryable": isinstance(exc, Throttled),
        }

    return response
