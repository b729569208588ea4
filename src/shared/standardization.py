"""
Estandarización para la API de rutas de aprendizaje

Este módulo unifica la funcionalidad de estandarización:
1. Estandarización de rutas (APIBlueprint, APIRoute)
2. Estandarización de servicios (BaseService, VerificationBaseService)
3. Códigos de error estandarizados (ErrorCodes)
"""

from flask import jsonify, Blueprint
from src.shared.decorators import handle_errors, auth_required, role_required, validate_json
from src.shared.exceptions import AppException, NotFoundError
from src.shared.utils import ensure_json_serializable
from src.shared.validators import validate_object_id
from typing import List, Dict, Any, Optional
from bson.objectid import ObjectId
from src.shared.database import get_db

#-------------------------------------------------------
# ESTANDARIZACIÓN DE RUTAS
#-------------------------------------------------------

class APIBlueprint(Blueprint):
    """
    Extensión de Flask Blueprint para definir rutas estandarizadas.
    """

    def __init__(self, name, import_name, **kwargs):
        super().__init__(name, import_name, **kwargs)


class APIRoute:
    """
    Clase de utilidad para estandarizar rutas y respuestas.
    """

    @staticmethod
    def standard(auth_required_flag: bool = False,
                 roles: List[str] = None,
                 required_fields: List[str] = None,
                 schema: Dict = None):
        """
        Decorador compuesto que aplica los decoradores estándar de la aplicación.

        El orden es handle_errors -> auth_required -> role_required -> validate_json,
        de modo que la autorización se comprueba antes de validar el cuerpo.

        Args:
            auth_required_flag: Si es True, requiere autenticación JWT
            roles: Lista de tipos de usuario permitidos para acceder a la ruta
            required_fields: Lista de campos requeridos en el cuerpo JSON
            schema: Esquema de validación para el cuerpo JSON
        """
        decorators = [handle_errors]

        if auth_required_flag:
            decorators.append(auth_required)
            if roles:
                decorators.append(role_required(roles))

        if required_fields or schema:
            decorators.append(validate_json(required_fields, schema))

        def decorator(f):
            for decorator in reversed(decorators):
                f = decorator(f)
            return f

        return decorator

    @staticmethod
    def success(data: Any = None, message: str = None, status_code: int = 200) -> tuple:
        """
        Crea una respuesta exitosa estandarizada: {"success": true, "data", "message"}.
        """
        response = {"success": True}

        if data is not None:
            response["data"] = ensure_json_serializable(data)

        if message:
            response["message"] = message

        return jsonify(response), status_code

    @staticmethod
    def error(error_code: str, message: str, details: Dict = None, status_code: int = 400) -> tuple:
        """
        Crea una respuesta de error estandarizada.

        Args:
            error_code: Código de error único (ej. "RECURSO_NO_ENCONTRADO")
            message: Mensaje descriptivo del error
            details: Detalles adicionales del error (opcional)
            status_code: Código de estado HTTP (por defecto 400)
        """
        response = {
            "success": False,
            "error": error_code,
            "message": message
        }

        if details:
            response["details"] = details

        return jsonify(response), status_code

    @staticmethod
    def from_app_exception(exception: AppException) -> tuple:
        response = {
            "success": False,
            "error": exception.__class__.__name__,
            "message": exception.message
        }

        if exception.details:
            response["details"] = exception.details
        if exception.errors:
            response["errors"] = exception.errors

        return jsonify(response), exception.code

#-------------------------------------------------------
# ESTANDARIZACIÓN DE SERVICIOS
#-------------------------------------------------------

class BaseService:
    """
    Clase base para servicios sobre una colección de MongoDB.

    La conexión se resuelve en el primer acceso, así los servicios pueden
    instanciarse al importar las rutas. Se puede inyectar otra base de datos
    con el parámetro db (pruebas, hilos en segundo plano).
    """

    def __init__(self, collection_name: str, db=None):
        self.collection_name = collection_name
        self._db = db

    @property
    def db(self):
        if self._db is None:
            self._db = get_db()
        return self._db

    @property
    def collection(self):
        return self.db[self.collection_name]

    def get_by_id(self, id: str) -> Optional[Dict]:
        """
        Obtiene un documento de la colección por su ID.

        Raises:
            ValidationError: Si el ID no es válido
        """
        validate_object_id(id, self.collection_name)
        return self.collection.find_one({"_id": ObjectId(id)})

    def count(self, filter: Dict = None) -> int:
        return self.collection.count_documents(filter or {})

#-------------------------------------------------------
# CÓDIGOS DE ERROR ESTANDARIZADOS
#-------------------------------------------------------

class ErrorCodes:
    """
    Códigos de error estandarizados para toda la aplicación.
    """

    RESOURCE_NOT_FOUND = "RECURSO_NO_ENCONTRADO"    # 404
    INVALID_DATA = "DATOS_INVALIDOS"                # 400
    MISSING_FIELDS = "CAMPOS_FALTANTES"             # 400
    INVALID_ID = "ID_INVALIDO"                      # 400
    AUTHENTICATION_ERROR = "ERROR_AUTENTICACION"    # 401
    PERMISSION_DENIED = "PERMISO_DENEGADO"          # 403
    DATABASE_ERROR = "ERROR_BASE_DATOS"             # 500
    SERVER_ERROR = "ERROR_SERVIDOR"                 # 500

#-------------------------------------------------------
# SERVICIOS DE VERIFICACIÓN ESTANDARIZADOS
#-------------------------------------------------------

class VerificationBaseService(BaseService):
    """
    Extiende BaseService con búsquedas que fallan con NotFoundError.
    """

    def find_or_404(self, collection_name: str, entity_id, entity_label: str,
                    message: str = None) -> Dict:
        """
        Busca un documento por ID en cualquier colección.

        Args:
            collection_name: Colección donde buscar
            entity_id: ID (str u ObjectId)
            entity_label: Nombre legible de la entidad ("tema", "módulo"...)
            message: Mensaje del 404 (por defecto "<entidad> no encontrado")

        Raises:
            ValidationError: Si el ID no es válido
            NotFoundError: Si el documento no existe
        """
        validate_object_id(entity_id, entity_label)
        document = self.db[collection_name].find_one({"_id": ObjectId(entity_id)})
        if not document:
            raise NotFoundError(message or f"{entity_label.capitalize()} no encontrado")
        return document

