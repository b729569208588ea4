"""
Excepciones personalizadas para la aplicación.

Estas excepciones son capturadas por el decorador handle_errors en decorators.py
y convertidas automáticamente en respuestas JSON apropiadas.

Ejemplos de uso:
    # Lanzar una excepción básica
    raise AppException("Datos inválidos", 400)

    # Usar la taxonomía de errores
    raise NotFoundError("Ruta de aprendizaje no encontrada")

    # Errores de validación con varios campos
    raise ValidationError("Datos inválidos", errors=["fecha_fin inválida", "orden requerido"])
"""
from typing import List, Optional


class AppException(Exception):
    """
    Excepción base para errores de la aplicación.

    Permite especificar un código HTTP personalizado y detalles adicionales.
    """

    # Códigos de error HTTP comunes
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_ERROR = 500

    def __init__(self, message: str, code: int = BAD_REQUEST, details: dict = None,
                 errors: Optional[List[str]] = None):
        """
        Inicializa una nueva excepción de aplicación.

        Args:
            message: Mensaje descriptivo del error
            code: Código HTTP de estado (por defecto 400)
            details: Diccionario con detalles adicionales del error
            errors: Lista de mensajes cuando fallan varios campos a la vez
        """
        self.message = message
        self.code = code
        self.details = details
        self.errors = errors
        super().__init__(self.message)


class ValidationError(AppException):
    """IDs mal formados, estados fuera del enum, fechas o números inválidos."""

    def __init__(self, message: str, details: dict = None, errors: Optional[List[str]] = None):
        super().__init__(message, AppException.BAD_REQUEST, details, errors)


class AuthorizationError(AppException):
    """Rol incorrecto, grupo ajeno, membresía no aprobada o ruta ya completada."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, AppException.FORBIDDEN, details)


class NotFoundError(AppException):
    """Entidad inexistente o que no pertenece a la jerarquía indicada."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, AppException.NOT_FOUND, details)


class InternalError(AppException):
    """Fallo inesperado del almacenamiento o transacción abortada."""

    def __init__(self, message: str = "Error interno del servidor", details: dict = None):
        super().__init__(message, AppException.INTERNAL_ERROR, details)
