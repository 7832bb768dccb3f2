"""
Excepciones de la aplicación.
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Define las excepciones del dominio para un manejo centralizado de errores.
El servidor las convierte en el sobre de error JSON; el cliente
(`taller.client`) reconstruye la misma clase a partir de `error_code`.

NOTA: BusinessValidationError es distinta de pydantic.ValidationError.
- pydantic.ValidationError: errores de formato/tipo en la entrada (FastAPI → 422 VALIDATION_ERROR)
- BusinessValidationError: violaciones de reglas de negocio (nuestro handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ValidationError",       # alias de BusinessValidationError
    "ConflictError",
    "InvalidTransitionError",
    "ReadOnlyViolationError",
    "WorkOrderClosedError",
    "SaleAlreadyGeneratedError",
    "SaleNotReadyError",
    "NoEligibleOrdersError",
    "NetworkError",
    "exception_from_payload",
]


class AppException(Exception):
    """
    Excepción base de la aplicación.

    Attributes:
        status_code: código HTTP devuelto al cliente
        error_code: identificador estable del error
        detail: mensaje legible para el usuario
        extra: datos adicionales (campo, estados permitidos, ...)
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Error interno del servidor"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail if detail is not None else self.default_detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(self.detail)

    def to_payload(self) -> Dict[str, Any]:
        """Sobre de error enviado por la API."""
        return {
            "success": False,
            "message": self.detail,
            "error_code": self.error_code,
            "extra": self.extra,
        }


class NotFoundError(AppException):
    """El recurso solicitado no existe."""

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    default_detail: str = "Recurso no encontrado"


class DuplicateError(AppException):
    """
    Se intenta crear un recurso duplicado.

    Violaciones de restricciones unique (placa, VIN, número de documento).
    """

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"
    default_detail: str = "El recurso ya existe"


class BusinessValidationError(ValueError, AppException):
    """
    Violación de una regla de negocio.

    Hereda de ValueError para que los validadores de Pydantic la capturen.

    Ejemplos:
        - "La cantidad debe ser mayor que cero"
        - "La fecha inicial no puede ser posterior a la final"
        - "Se superó el máximo de fotos por fase"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"
    default_detail: str = "Validación de datos fallida"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # AppException directamente, ValueError no acepta los kwargs
        AppException.__init__(self, detail, error_code, extra)


# Alias de compatibilidad
ValidationError = BusinessValidationError


class ConflictError(AppException):
    """
    Conflicto con el estado actual del recurso.

    La operación no puede ejecutarse por el estado en que se encuentra.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"
    default_detail: str = "Conflicto de estado"


class InvalidTransitionError(ConflictError):
    """El estado destino no está entre los siguientes permitidos."""

    error_code: str = "INVALID_TRANSITION"
    default_detail: str = "Transición de estado no permitida"


class ReadOnlyViolationError(ConflictError):
    """Se intenta modificar una parte de la orden que ya es de solo lectura."""

    error_code: str = "READ_ONLY_VIOLATION"
    default_detail: str = "La información ya no es editable en el estado actual"


class WorkOrderClosedError(ConflictError):
    """La orden ya tiene venta o está en estado terminal."""

    error_code: str = "WORK_ORDER_CLOSED"
    default_detail: str = "La orden de trabajo está cerrada"


class SaleAlreadyGeneratedError(ConflictError):
    """La orden ya tiene una venta (remisión) asociada."""

    error_code: str = "SALE_ALREADY_GENERATED"
    default_detail: str = "La orden ya tiene una venta generada"


class SaleNotReadyError(ConflictError):
    """La orden no está lista para facturar."""

    error_code: str = "SALE_NOT_READY"
    default_detail: str = "La orden no está lista para generar la venta"


class NoEligibleOrdersError(BusinessValidationError):
    """No hay órdenes liquidables para el técnico en el período."""

    error_code: str = "NO_ELIGIBLE_ORDERS"
    default_detail: str = "No hay órdenes pendientes de liquidar en el período"


class NetworkError(AppException):
    """El servidor no es alcanzable (solo lado cliente)."""

    status_code: int = 503
    error_code: str = "NETWORK_ERROR"
    default_detail: str = "No fue posible comunicarse con el servidor"


# ------------------------------------------------------------
# Registro error_code → clase (usado por el cliente)
# ------------------------------------------------------------
_BY_CODE: Dict[str, type] = {
    cls.error_code: cls
    for cls in (
        NotFoundError,
        DuplicateError,
        BusinessValidationError,
        ConflictError,
        InvalidTransitionError,
        ReadOnlyViolationError,
        WorkOrderClosedError,
        SaleAlreadyGeneratedError,
        SaleNotReadyError,
        NoEligibleOrdersError,
        NetworkError,
    )
}
_BY_CODE["VALIDATION_ERROR"] = BusinessValidationError

_BY_STATUS: Dict[int, type] = {
    404: NotFoundError,
    409: ConflictError,
    422: BusinessValidationError,
    400: BusinessValidationError,
}


def exception_from_payload(status_code: int, payload: Any) -> AppException:
    """
    Reconstruye la excepción tipada a partir de una respuesta de error.

    Usa `error_code` cuando es conocido y, si no, el código HTTP.
    """
    message = None
    error_code = None
    extra = None
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("detail")
        error_code = payload.get("error_code")
        extra = payload.get("extra")
    if not isinstance(message, str):
        message = None

    cls = _BY_CODE.get(error_code) or _BY_STATUS.get(status_code, AppException)
    exc = cls(message, error_code=error_code, extra=extra)
    if cls is AppException:
        exc.status_code = status_code
    return exc
