"""
Excepciones de la aplicación.
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Excepciones de dominio para un manejo centralizado de errores.

NOTA: BusinessValidationError es distinta de pydantic.ValidationError.
- pydantic.ValidationError: errores de formato/tipo en los datos de entrada (FastAPI → 422)
- BusinessValidationError: violaciones de reglas de negocio (nuestro handler → 422)
"""

import uuid
from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "BusinessValidationError",
    "ValidationError",
    "ConflictError",
    "AlreadyAcceptedError",
    "TransactionConflictError",
    "StoreUnavailableError",
]


class AppException(Exception):
    """
    Excepción base de la aplicación.

    Attributes:
        status_code: Código HTTP a devolver al cliente
        error_code: Identificador único del error para el frontend
        detail: Mensaje legible para el usuario
        extra: Datos adicionales para el frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class NotFoundError(AppException):
    """
    El presupuesto, la orden o el pago referenciado no existe.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        detail: str = "Recurso no encontrado",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class BusinessValidationError(ValueError, AppException):
    """
    Violación de una regla de negocio.

    Hereda de ValueError para poder usarse dentro de validadores Pydantic.

    Ejemplos:
        - "El presupuesto debe tener al menos un ítem"
        - "El monto del pago debe ser mayor a cero"
        - "No se puede aceptar un presupuesto anulado"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "Validación de datos fallida",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Llama a AppException.__init__ directamente para saltear ValueError
        AppException.__init__(self, detail, error_code, extra)


ValidationError = BusinessValidationError


class ConflictError(AppException):
    """
    La operación no puede ejecutarse por el estado actual del recurso.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"

    def __init__(
        self,
        detail: str = "Conflicto de estado",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class AlreadyAcceptedError(ConflictError):
    """
    El presupuesto ya fue convertido en orden de trabajo.

    Se levanta dentro de la transacción de aceptación para abortarla;
    QuoteService.accept la convierte en un resultado `already_accepted`
    que lleva el id de la orden existente.
    """

    error_code: str = "QUOTE_ALREADY_ACCEPTED"

    def __init__(self, order_id: uuid.UUID) -> None:
        self.order_id = order_id
        super().__init__(
            f"El presupuesto ya fue aceptado (orden {order_id})",
            extra={"order_id": str(order_id)},
        )


class TransactionConflictError(ConflictError):
    """
    Escritura concurrente detectada por la base; los reintentos se agotaron.
    """

    error_code: str = "TRANSACTION_CONFLICT"

    def __init__(
        self,
        detail: str = "Conflicto de concurrencia, reintente la operación",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class StoreUnavailableError(AppException):
    """
    La base de datos no es alcanzable. No se reintenta.
    """

    status_code: int = 503
    error_code: str = "STORE_UNAVAILABLE"

    def __init__(
        self,
        detail: str = "Base de datos no disponible",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)
