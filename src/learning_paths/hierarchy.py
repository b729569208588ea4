"""
Resolución de la cadena de propiedad Asignación -> Tema -> Módulo -> Ruta -> Grupo -> Docente.

Todos los handlers que necesitan saber a qué grupo pertenece una entidad, y
quién es su docente, pasan por HierarchyService en lugar de repetir el recorrido.
"""

from typing import Dict, Optional
from bson import ObjectId
from pymongo import ASCENDING

from src.shared.constants import COLLECTIONS, ROLES
from src.shared.exceptions import AuthorizationError, NotFoundError
from src.shared.standardization import VerificationBaseService
from src.shared.utils import to_object_id


class OwnershipContext:
    """Entidades ya verificadas de la cadena y el grupo dueño"""

    def __init__(self, learning_path: Dict, group: Optional[Dict],
                 module: Optional[Dict] = None, theme: Optional[Dict] = None,
                 assignment: Optional[Dict] = None):
        self.learning_path = learning_path
        self.group = group
        self.module = module
        self.theme = theme
        self.assignment = assignment

    @property
    def learning_path_id(self) -> ObjectId:
        return self.learning_path["_id"]

    @property
    def group_id(self) -> Optional[ObjectId]:
        return self.learning_path.get("group_id")

    @property
    def teacher_id(self) -> Optional[ObjectId]:
        return self.group.get("docente_id") if self.group else None

    @property
    def group_active(self) -> bool:
        return bool(self.group) and self.group.get("activo", True) is not False

    def is_owned_by(self, user_id) -> bool:
        return self.teacher_id is not None and str(self.teacher_id) == str(user_id)


class HierarchyService(VerificationBaseService):
    def __init__(self, db=None):
        super().__init__(collection_name=COLLECTIONS["LEARNING_PATHS"], db=db)

    def _context_for_path(self, learning_path: Dict, **children) -> OwnershipContext:
        group = None
        if learning_path.get("group_id"):
            group = self.db.groups.find_one({"_id": learning_path["group_id"]})
        return OwnershipContext(learning_path, group, **children)

    def resolve_learning_path(self, learning_path_id) -> OwnershipContext:
        learning_path = self.find_or_404(COLLECTIONS["LEARNING_PATHS"], learning_path_id, "ruta de aprendizaje",
                                         "Ruta de aprendizaje no encontrada")
        return self._context_for_path(learning_path)

    def resolve_module(self, module_id) -> OwnershipContext:
        module = self.find_or_404(COLLECTIONS["MODULES"], module_id, "módulo")
        learning_path = self.db.learning_paths.find_one({"_id": module.get("learning_path_id")})
        if not learning_path:
            raise NotFoundError("Ruta de aprendizaje del módulo no encontrada")
        return self._context_for_path(learning_path, module=module)

    def resolve_theme(self, theme_id) -> OwnershipContext:
        theme = self.find_or_404(COLLECTIONS["THEMES"], theme_id, "tema")
        module = self.db.modules.find_one({"_id": theme.get("module_id")})
        if not module:
            raise NotFoundError("Módulo del tema no encontrado")
        learning_path = self.db.learning_paths.find_one({"_id": module.get("learning_path_id")})
        if not learning_path:
            raise NotFoundError("Ruta de aprendizaje del tema no encontrada")
        return self._context_for_path(learning_path, module=module, theme=theme)

    def resolve_assignment(self, assignment_id) -> OwnershipContext:
        assignment = self.find_or_404(COLLECTIONS["CONTENT_ASSIGNMENTS"], assignment_id, "asignación",
                                      "Asignación no encontrada")
        context = self.resolve_theme(assignment["theme_id"])
        context.assignment = assignment
        return context

    @staticmethod
    def require_owner(context: OwnershipContext, user_id, user_type: str = None,
                      allow_admin: bool = False) -> OwnershipContext:
        """
        Exige que el usuario sea el docente dueño de un grupo activo.

        Raises:
            AuthorizationError: Si el grupo no existe, está archivado o pertenece a otro docente
        """
        if allow_admin and user_type == ROLES["ADMIN"]:
            return context
        if not context.is_owned_by(user_id):
            raise AuthorizationError("No tienes permiso para gestionar el contenido de este grupo")
        if not context.group_active:
            raise AuthorizationError("El grupo está archivado")
        return context

    def get_path_structure(self, learning_path_id) -> Dict[str, list]:
        """
        Módulos de la ruta y los temas de cada uno, ordenados por orden.

        Returns:
            dict {module_id: [theme_id, ...]} con ids en texto
        """
        path_oid = to_object_id(learning_path_id)
        modules = list(self.db.modules.find(
            {"learning_path_id": path_oid}, {"_id": 1}, sort=[("orden", ASCENDING)]
        ))
        structure = {str(module["_id"]): [] for module in modules}
        if not structure:
            return structure

        themes = self.db.themes.find(
            {"module_id": {"$in": [module["_id"] for module in modules]}},
            {"_id": 1, "module_id": 1},
            sort=[("orden", ASCENDING)]
        )
        for theme in themes:
            module_key = str(theme["module_id"])
            if module_key in structure:
                structure[module_key].append(str(theme["_id"]))
        return structure

    def get_module_theme_ids(self, module_id) -> list:
        themes = self.db.themes.find({"module_id": to_object_id(module_id)}, {"_id": 1},
                                     sort=[("orden", ASCENDING)])
        return [str(theme["_id"]) for theme in themes]
