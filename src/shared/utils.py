"""
Utilidades generales para toda la aplicación.

IMPORTANTE: Para decoradores como handle_errors, auth_required, role_required y validate_json,
importar desde src.shared.decorators, NO desde este archivo.
"""

from datetime import datetime, timezone
from typing import Any, Optional, Union
from bson import ObjectId

__all__ = ['utc_now', 'parse_datetime', 'to_object_id', 'ensure_json_serializable']

# Formatos aceptados además de ISO 8601
_EXTRA_DATE_FORMATS = [
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%Y/%m/%d",
]


def utc_now() -> datetime:
    """Fecha actual en UTC sin tzinfo, como la guarda pymongo por defecto"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Convierte una fecha recibida en el JSON a datetime (UTC, naive).

    Returns:
        datetime o None si el valor no se puede interpretar
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = None
            for format_str in _EXTRA_DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, format_str)
                    break
                except ValueError:
                    continue
            if parsed is None:
                return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_object_id(value: Union[str, ObjectId]) -> ObjectId:
    return value if isinstance(value, ObjectId) else ObjectId(value)


def ensure_json_serializable(data: Any) -> Any:
    """Convierte ObjectId a string y datetime a ISO 8601 para poder devolverlos como JSON"""
    if isinstance(data, list):
        return [ensure_json_serializable(item) for item in data]
    elif isinstance(data, dict):
        return {key: ensure_json_serializable(value) for key, value in data.items()}
    elif isinstance(data, ObjectId):
        return str(data)
    elif isinstance(data, datetime):
        return data.isoformat()
    else:
        return data
