from datetime import datetime
from typing import Dict, Optional

from src.shared.constants import PATH_STATUS
from src.shared.utils import to_object_id, utc_now


class Progress:
    """
    Progreso de un estudiante en una ruta de aprendizaje.

    En MongoDB los temas y módulos se guardan como arreglos
    (completed_themes, completed_modules). En memoria se indexan por el id
    en texto para buscar y actualizar una entrada sin recorrer el arreglo;
    los dict conservan el orden de inserción al volver a serializar.
    """

    def __init__(self,
                 student_id,
                 learning_path_id,
                 group_id,
                 path_status: str = PATH_STATUS["NOT_STARTED"],
                 path_completion_date: Optional[datetime] = None,
                 completed_themes: Optional[list] = None,
                 completed_modules: Optional[list] = None,
                 _id=None,
                 created_at: Optional[datetime] = None,
                 updated_at: Optional[datetime] = None):
        self._id = to_object_id(_id) if _id else None
        self.student_id = to_object_id(student_id)
        self.learning_path_id = to_object_id(learning_path_id)
        self.group_id = to_object_id(group_id) if group_id else None
        self.path_status = path_status
        self.path_completion_date = path_completion_date
        self.themes: Dict[str, dict] = {}
        self.modules: Dict[str, dict] = {}
        for entry in completed_themes or []:
            self.set_theme(entry["theme_id"], entry["status"], entry.get("completion_date"))
        for entry in completed_modules or []:
            self.set_module(entry["module_id"], entry["status"], entry.get("completion_date"),
                            forced=entry.get("forced", False))
        self.created_at = created_at or utc_now()
        self.updated_at = updated_at or self.created_at

    @classmethod
    def from_dict(cls, document: dict) -> "Progress":
        return cls(
            student_id=document["student_id"],
            learning_path_id=document["learning_path_id"],
            group_id=document.get("group_id"),
            path_status=document.get("path_status", PATH_STATUS["NOT_STARTED"]),
            path_completion_date=document.get("path_completion_date"),
            completed_themes=document.get("completed_themes"),
            completed_modules=document.get("completed_modules"),
            _id=document.get("_id"),
            created_at=document.get("created_at"),
            updated_at=document.get("updated_at"),
        )

    @property
    def is_new(self) -> bool:
        return self._id is None

    # Temas
    def theme_status(self, theme_id) -> Optional[str]:
        entry = self.themes.get(str(theme_id))
        return entry["status"] if entry else None

    def set_theme(self, theme_id, status: str, completion_date: Optional[datetime] = None):
        self.themes[str(theme_id)] = {
            "theme_id": to_object_id(theme_id),
            "status": status,
            "completion_date": completion_date,
        }

    def remove_theme(self, theme_id) -> bool:
        return self.themes.pop(str(theme_id), None) is not None

    # Módulos
    def module_status(self, module_id) -> Optional[str]:
        entry = self.modules.get(str(module_id))
        return entry["status"] if entry else None

    def module_completion_date(self, module_id) -> Optional[datetime]:
        entry = self.modules.get(str(module_id))
        return entry["completion_date"] if entry else None

    def set_module(self, module_id, status: str, completion_date: Optional[datetime] = None,
                   forced: bool = False):
        """forced marca un En Progreso fijado por el docente sin temas activos"""
        entry = {
            "module_id": to_object_id(module_id),
            "status": status,
            "completion_date": completion_date,
        }
        if forced:
            entry["forced"] = True
        self.modules[str(module_id)] = entry

    def module_forced(self, module_id) -> bool:
        entry = self.modules.get(str(module_id))
        return bool(entry and entry.get("forced"))

    def unforce_module(self, module_id):
        entry = self.modules.get(str(module_id))
        if entry:
            entry.pop("forced", None)

    def remove_module(self, module_id) -> bool:
        return self.modules.pop(str(module_id), None) is not None

    def to_dict(self) -> dict:
        document = {
            "student_id": self.student_id,
            "learning_path_id": self.learning_path_id,
            "group_id": self.group_id,
            "path_status": self.path_status,
            "path_completion_date": self.path_completion_date,
            "completed_themes": [dict(entry) for entry in self.themes.values()],
            "completed_modules": [dict(entry) for entry in self.modules.values()],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self._id:
            document["_id"] = self._id
        return document


def not_started_progress() -> dict:
    """Vista sintética que devuelven las lecturas cuando aún no hay documento"""
    return {
        "path_status": PATH_STATUS["NOT_STARTED"],
        "completed_themes": [],
        "completed_modules": [],
    }
