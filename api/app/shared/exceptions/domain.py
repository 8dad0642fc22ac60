"""
Excepciones relacionadas con la lógica de dominio.

Los puntos de entrada de cara al usuario (bind, change-binding, QR)
propagan estas excepciones; el handler global las serializa.
"""
from typing import Any

from app.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class EntityNotFoundException(DomainException):
    """Excepción cuando no se encuentra una entidad."""

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f"{entity_name} con ID {entity_id} no encontrado",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)}
        )
        self.status_code = 404


class ValidationException(DomainException):
    """Excepción para errores de validación."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )


class ConflictException(DomainException):
    """Excepción cuando el cliente ya tiene un contacto WeCom vinculado."""

    def __init__(self, row_id: str, external_user_id: str = ""):
        super().__init__(
            message="El cliente ya tiene un contacto de WeChat vinculado, selecciona otro cliente",
            error_code="CUSTOMER_ALREADY_BOUND",
            details={"row_id": row_id, "external_user_id": external_user_id}
        )
        self.status_code = 409


class ExternalServiceException(AppException):
    """
    Falla de un proveedor externo (Mingdao o WeCom) vista desde un
    endpoint de usuario: se distingue de un error de request invalido.
    """

    def __init__(self, service: str, message: str, details=None):
        super().__init__(
            message=f"Error en {service}: {message}",
            status_code=502,
            error_code="EXTERNAL_SERVICE_ERROR",
            details={"service": service, **(details or {})}
        )
