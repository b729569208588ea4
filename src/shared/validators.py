"""
Funciones de validación para datos de la aplicación.

Este módulo contiene funciones para validar IDs de MongoDB, valores de enumeraciones
y esquemas sencillos para el cuerpo JSON de las peticiones.

Ejemplos de uso:
    # Validar un ObjectId de MongoDB
    validate_object_id(theme_id, "tema")

    # Validar un estado
    validate_enum(status, ["Visto", "Completado"], "estado del tema")
"""

import re
from typing import Iterable, Optional
from bson.objectid import ObjectId
from src.shared.exceptions import ValidationError
from src.shared.logging import log_warning


def is_valid_object_id(id_str) -> bool:
    """
    Valida si un valor es un ObjectId válido de MongoDB.

    Args:
        id_str: Valor a validar

    Returns:
        bool: True si es un ObjectId válido, False en caso contrario
    """
    if id_str is None:
        return False
    if isinstance(id_str, ObjectId):
        return True
    return isinstance(id_str, str) and ObjectId.is_valid(id_str)


def validate_object_id(id_str, entity_name: str = "objeto") -> None:
    """
    Valida un ObjectId y lanza una excepción si no es válido.

    Raises:
        ValidationError: Si el ID falta o no es un ObjectId válido
    """
    if not id_str:
        log_warning(f"ID no proporcionado para {entity_name}", "validators")
        raise ValidationError(f"ID de {entity_name} no proporcionado")

    if not is_valid_object_id(id_str):
        log_warning(f"ID inválido: {id_str} para {entity_name}", "validators")
        raise ValidationError(f"ID de {entity_name} inválido: {id_str}")


def validate_object_ids(**ids) -> None:
    """
    Valida varios IDs a la vez y reporta todos los inválidos en un único error.

    Ejemplo:
        validate_object_ids(ruta=learning_path_id, tema=theme_id)
    """
    errors = [f"ID de {name} inválido" for name, value in ids.items() if not is_valid_object_id(value)]
    if errors:
        raise ValidationError("IDs inválidos", errors=errors)


def validate_enum(value, allowed: Iterable, field_name: str) -> None:
    allowed = list(allowed)
    if value not in allowed:
        raise ValidationError(
            f"Valor de {field_name} inválido: {value}. Opciones válidas: {', '.join(map(str, allowed))}"
        )


def validate_schema(data, schema):
    """
    Valida un objeto de datos contra un esquema

    Args:
        data (dict): Los datos a validar
        schema (dict): El esquema con las reglas de validación

    Returns:
        tuple: (is_valid, errors) donde is_valid es un booleano y errors es un dict con los errores
    """
    errors = {}

    for field, rules in schema.items():
        if rules.get('required', False) and field not in data:
            errors[field] = "Campo requerido"
            continue

        if field not in data:
            continue

        value = data[field]

        if value is None and rules.get('nullable', False):
            continue

        if 'type' in rules:
            expected_type = rules['type']

            if expected_type == 'string' and not isinstance(value, str):
                errors[field] = "Debe ser una cadena de texto"
            elif expected_type == 'number' and (isinstance(value, bool) or not isinstance(value, (int, float))):
                errors[field] = "Debe ser un número"
            elif expected_type == 'integer' and (isinstance(value, bool) or not isinstance(value, int)):
                errors[field] = "Debe ser un número entero"
            elif expected_type == 'boolean' and not isinstance(value, bool):
                errors[field] = "Debe ser un valor booleano"
            elif expected_type == 'object_id' and not is_valid_object_id(value):
                errors[field] = "Debe ser un ID válido"

        if 'minLength' in rules and isinstance(value, (str, list)):
            min_length = rules['minLength']
            if len(value) < min_length:
                errors[field] = f"Debe tener al menos {min_length} caracteres"

        if 'maxLength' in rules and isinstance(value, (str, list)):
            max_length = rules['maxLength']
            if len(value) > max_length:
                errors[field] = f"Debe tener como máximo {max_length} caracteres"

        if 'pattern' in rules and isinstance(value, str):
            if not re.match(rules['pattern'], value):
                errors[field] = "No cumple con el formato requerido"

        if 'enum' in rules:
            enum = rules['enum']
            if value not in enum:
                errors[field] = f"Valor no permitido. Opciones válidas: {', '.join(map(str, enum))}"

    return len(errors) == 0, errors


def parse_optional_number(value, field_name: str, integer: bool = False,
                          positive: bool = False) -> Optional[float]:
    """
    Normaliza un campo numérico opcional de una asignación.

    None o cadena vacía limpian el campo. Lanza ValidationError si el valor
    no es numérico, es negativo, o no cumple la restricción de entero/positivo.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} debe ser un número")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field_name} debe ser un número")
    if not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} debe ser un número")

    if integer:
        if isinstance(value, float):
            if not value.is_integer():
                raise ValidationError(f"{field_name} debe ser un número entero")
            value = int(value)
    if positive and value <= 0:
        raise ValidationError(f"{field_name} debe ser un número entero positivo")
    if value < 0:
        raise ValidationError(f"{field_name} no puede ser negativo")
    return value
