from datetime import datetime
from typing import Optional

from src.shared.constants import ASSIGNMENT_STATUS
from src.shared.utils import to_object_id, utc_now


class LearningPath:
    def __init__(self,
                 nombre: str,
                 group_id: str,
                 descripcion: str = "",
                 fecha_inicio: Optional[datetime] = None,
                 fecha_fin: Optional[datetime] = None,
                 activo: bool = True):
        self.nombre = nombre.strip()
        self.descripcion = (descripcion or "").strip()
        self.group_id = to_object_id(group_id)
        self.fecha_inicio = fecha_inicio
        self.fecha_fin = fecha_fin
        self.activo = activo
        self.created_at = utc_now()

    def to_dict(self) -> dict:
        return {
            "nombre": self.nombre,
            "descripcion": self.descripcion,
            "group_id": self.group_id,
            "fecha_inicio": self.fecha_inicio,
            "fecha_fin": self.fecha_fin,
            "activo": self.activo,
            "created_at": self.created_at
        }


class Module:
    def __init__(self,
                 nombre: str,
                 learning_path_id: str,
                 orden: int,
                 descripcion: str = ""):
        self.nombre = nombre.strip()
        self.descripcion = (descripcion or "").strip()
        self.learning_path_id = to_object_id(learning_path_id)
        self.orden = orden
        self.created_at = utc_now()

    def to_dict(self) -> dict:
        return {
            "nombre": self.nombre,
            "descripcion": self.descripcion,
            "learning_path_id": self.learning_path_id,
            "orden": self.orden,
            "created_at": self.created_at
        }


class Theme:
    def __init__(self,
                 nombre: str,
                 module_id: str,
                 orden: int,
                 descripcion: str = ""):
        self.nombre = nombre.strip()
        self.descripcion = (descripcion or "").strip()
        self.module_id = to_object_id(module_id)
        self.orden = orden
        self.created_at = utc_now()

    def to_dict(self) -> dict:
        return {
            "nombre": self.nombre,
            "descripcion": self.descripcion,
            "module_id": self.module_id,
            "orden": self.orden,
            "created_at": self.created_at
        }


class ContentAssignment:
    """
    Ubicación de un Recurso o una Actividad dentro de un tema.

    type discrimina cuál de resource_id / activity_id está presente; el otro
    no se guarda. group_id y docente_id se copian de la jerarquía para que el
    planificador de estados pueda notificar sin recorrerla.
    """
    def __init__(self,
                 theme_id: str,
                 type: str,
                 orden: int,
                 group_id: str,
                 docente_id: str,
                 resource_id: Optional[str] = None,
                 activity_id: Optional[str] = None,
                 fecha_inicio: Optional[datetime] = None,
                 fecha_fin: Optional[datetime] = None,
                 puntos_maximos: Optional[float] = None,
                 intentos_permitidos: Optional[int] = None,
                 tiempo_limite: Optional[int] = None,
                 status: str = ASSIGNMENT_STATUS["DRAFT"]):
        self.theme_id = to_object_id(theme_id)
        self.type = type
        self.resource_id = to_object_id(resource_id) if resource_id else None
        self.activity_id = to_object_id(activity_id) if activity_id else None
        self.orden = orden
        self.group_id = to_object_id(group_id)
        self.docente_id = to_object_id(docente_id)
        self.fecha_inicio = fecha_inicio
        self.fecha_fin = fecha_fin
        self.puntos_maximos = puntos_maximos
        self.intentos_permitidos = intentos_permitidos
        self.tiempo_limite = tiempo_limite
        self.status = status
        self.created_at = utc_now()

    def to_dict(self) -> dict:
        document = {
            "theme_id": self.theme_id,
            "type": self.type,
            "orden": self.orden,
            "group_id": self.group_id,
            "docente_id": self.docente_id,
            "fecha_inicio": self.fecha_inicio,
            "fecha_fin": self.fecha_fin,
            "puntos_maximos": self.puntos_maximos,
            "intentos_permitidos": self.intentos_permitidos,
            "tiempo_limite": self.tiempo_limite,
            "status": self.status,
            "created_at": self.created_at
        }
        if self.resource_id:
            document["resource_id"] = self.resource_id
        if self.activity_id:
            document["activity_id"] = self.activity_id
        return document
