from functools import wraps
from flask import request, jsonify, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from bson.objectid import ObjectId
from src.shared.database import get_db
from src.shared.constants import ROLES
from src.shared.exceptions import AppException
from src.shared.validators import is_valid_object_id
import logging


def _error_response(exception: AppException):
    response = {
        "success": False,
        "error": exception.__class__.__name__,
        "message": str(exception.message)
    }
    if exception.details:
        response["details"] = exception.details
    if exception.errors:
        response["errors"] = exception.errors
    return jsonify(response), exception.code


def handle_errors(f):
    """Decorador para manejar excepciones en las rutas"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except AppException as e:
            return _error_response(e)
        except Exception as e:
            current_app.logger.exception(f"Error inesperado: {str(e)}")
            return jsonify({
                "success": False,
                "error": "ERROR_SERVIDOR",
                "message": "Error interno del servidor"
            }), 500
    return decorated_function


def auth_required(f):
    """
    Decorador para requerir autenticación mediante JWT.

    La identidad del token es el _id del usuario. Tras verificarlo se carga el
    usuario y se dejan en el request user_id, user_type (tipo_usuario) y user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        logger = logging.getLogger(__name__)

        try:
            verify_jwt_in_request()
            user_id = get_jwt_identity()
            user = None
            if is_valid_object_id(user_id):
                user = get_db().users.find_one({"_id": ObjectId(user_id)})
        except Exception as e:
            logger.error(f"Auth_required: Error de autenticación: {str(e)}")
            return jsonify({
                "success": False,
                "error": "ERROR_AUTENTICACION",
                "message": "Error de autenticación"
            }), 401

        if not user:
            logger.warning(f"Auth_required: Usuario con ID {user_id} no encontrado en la base de datos")
            return jsonify({
                "success": False,
                "error": "ERROR_AUTENTICACION",
                "message": "Usuario no encontrado"
            }), 401

        request.user_id = str(user["_id"])
        request.user_type = user.get("tipo_usuario")
        request.user = {"_id": request.user_id, "tipo_usuario": request.user_type}
        logger.debug(f"Auth_required: Usuario {request.user_id} autenticado como {request.user_type}")

        return f(*args, **kwargs)
    return decorated_function


def role_required(required_roles):
    """
    Decorador para verificar que el tipo de usuario está entre los permitidos.
    Debe usarse después de auth_required.

    Args:
        required_roles: Un tipo de usuario o lista de tipos. Acepta valores
                        ("Docente") o claves del diccionario ROLES ("TEACHER").
    """
    if isinstance(required_roles, str):
        required_roles = [required_roles]

    allowed = [ROLES.get(role, role) for role in required_roles]

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(request, 'user_id'):
                return jsonify({
                    "success": False,
                    "error": "ERROR_AUTENTICACION",
                    "message": "Se requiere autenticación"
                }), 401

            if getattr(request, 'user_type', None) not in allowed:
                return jsonify({
                    "success": False,
                    "error": "ERROR_PERMISO",
                    "message": f"Acceso denegado. Se requiere uno de los roles: {', '.join(allowed)}"
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def validate_json(required_fields=None, schema=None):
    """Decorador para validar JSON en las solicitudes"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return jsonify({
                    "success": False,
                    "error": "ERROR_FORMATO",
                    "message": "Se esperaba contenido JSON"
                }), 400

            if required_fields:
                missing_fields = [field for field in required_fields if data.get(field) in (None, "")]
                if missing_fields:
                    return jsonify({
                        "success": False,
                        "error": "CAMPOS_FALTANTES",
                        "message": f"Faltan campos requeridos: {', '.join(missing_fields)}",
                        "errors": [f"{field} es requerido" for field in missing_fields]
                    }), 400

            if schema:
                from src.shared.validators import validate_schema
                is_valid, errors = validate_schema(data, schema)
                if not is_valid:
                    return jsonify({
                        "success": False,
                        "error": "DATOS_INVALIDOS",
                        "message": "Datos inválidos",
                        "details": errors,
                        "errors": [f"{field}: {message}" for field, message in errors.items()]
                    }), 400

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def get_auth_user_id():
    """Obtiene el ID del usuario autenticado"""
    return getattr(request, 'user_id', None)


def get_auth_user():
    """Obtiene el contexto {_id, tipo_usuario} del usuario autenticado"""
    return getattr(request, 'user', None)
