"""
Servicios de progreso de estudiantes en rutas de aprendizaje.

- ProgressService: registro de Visto/Completado por parte del estudiante y
  lecturas de progreso para estudiantes y docentes.
- TeacherOverrideService: el docente fija el estado de un módulo o tema para
  todos los estudiantes aprobados del grupo.

Las reglas de agregación Tema -> Módulo -> Ruta están en aggregation.py; aquí
solo se carga, se valida y se persiste.
"""

from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime

from src.shared.constants import (
    COLLECTIONS, ROLES, PATH_STATUS, MODULE_STATUS, THEME_STATUS,
    ASSIGNMENT_TYPES, SUBMISSION_STATUS
)
from src.shared.exceptions import AuthorizationError, NotFoundError
from src.shared.logging import log_error, log_info
from src.shared.standardization import VerificationBaseService
from src.shared.utils import to_object_id, utc_now
from src.shared.validators import validate_enum, validate_object_ids
from src.groups.services import GroupAccessService
from src.learning_paths.hierarchy import HierarchyService
from .aggregation import (
    PathStructure, record_theme_event, update_module_after_theme_event,
    complete_path_if_done, recompute_dependent_statuses
)
from .models import Progress, not_started_progress

STUDENT_THEME_STATUSES = (THEME_STATUS["SEEN"], THEME_STATUS["COMPLETED"])


class _ProgressStore(VerificationBaseService):
    """Carga y guarda documentos Progress de la colección progress"""

    def __init__(self, db=None, clock: Callable[[], datetime] = None):
        super().__init__(collection_name=COLLECTIONS["PROGRESS"], db=db)
        self.hierarchy = HierarchyService(db=db)
        self.groups = GroupAccessService(db=db)
        self.clock = clock or utc_now

    def find_progress(self, student_id, learning_path_id) -> Optional[Progress]:
        document = self.collection.find_one({
            "student_id": to_object_id(student_id),
            "learning_path_id": to_object_id(learning_path_id)
        })
        return Progress.from_dict(document) if document else None

    def save_progress(self, progress: Progress, now: datetime) -> Progress:
        """
        Inserta o reemplaza el documento completo.

        Raises:
            DuplicateKeyError: Si otro proceso creó el documento del mismo
                               estudiante y ruta entre la lectura y la inserción
        """
        progress.updated_at = now
        document = progress.to_dict()
        if progress.is_new:
            result = self.collection.insert_one(document)
            progress._id = result.inserted_id
        else:
            self.collection.replace_one({"_id": progress._id}, document)
        return progress


class ProgressService(_ProgressStore):

    def record_theme_progress(self, student_id, learning_path_id, theme_id, status: str,
                              user_type: str = ROLES["STUDENT"]) -> Dict:
        """
        Registra que el estudiante vio o completó un tema y propaga el cambio
        al módulo y a la ruta.

        Args:
            status: "Visto" o "Completado"

        Returns:
            Dict: Documento de progreso actualizado

        Raises:
            ValidationError: IDs o estado inválidos
            AuthorizationError: No es estudiante, no es miembro aprobado o la ruta ya está completada
            NotFoundError: La ruta no existe o no tiene grupo, o el tema no pertenece a la ruta
        """
        validate_object_ids(estudiante=student_id, ruta=learning_path_id, tema=theme_id)
        validate_enum(status, STUDENT_THEME_STATUSES, "estado del tema")
        if user_type != ROLES["STUDENT"]:
            raise AuthorizationError("Solo los estudiantes pueden registrar su progreso")

        path_context = self.hierarchy.resolve_learning_path(learning_path_id)
        if not path_context.group_id:
            raise NotFoundError("La ruta de aprendizaje no está asociada a ningún grupo")
        if not self.groups.is_approved_member(student_id, path_context.group_id):
            raise AuthorizationError("No eres miembro aprobado del grupo de esta ruta de aprendizaje")

        theme_context = self.hierarchy.resolve_theme(theme_id)
        if theme_context.learning_path_id != path_context.learning_path_id:
            raise NotFoundError("El tema no pertenece a esta ruta de aprendizaje")

        structure = self.hierarchy.get_path_structure(learning_path_id)
        module_id = str(theme_context.module["_id"])
        theme_ids = structure.get(module_id, [str(theme_context.theme["_id"])])

        now = self.clock()
        progress = self._load_for_event(student_id, path_context.learning_path_id, path_context.group_id, now)

        theme_completed = record_theme_event(progress, str(theme_context.theme["_id"]), status, now)
        self.save_progress(progress, now)

        module_before = dict(progress.modules.get(module_id) or {})
        module_completed = update_module_after_theme_event(progress, module_id, theme_ids, now)
        if (progress.modules.get(module_id) or {}) != module_before:
            self.save_progress(progress, now)

        if theme_completed or module_completed:
            complete_path_if_done(progress, structure, now)
            self.save_progress(progress, now)

        log_info(f"Tema {theme_id} marcado como {status} por el estudiante {student_id}", "progress")
        return progress.to_dict()

    def _load_for_event(self, student_id, learning_path_id, group_id, now: datetime) -> Progress:
        """Documento del estudiante listo para un evento; lo crea en memoria si no existe"""
        progress = self.find_progress(student_id, learning_path_id)
        if progress is None:
            return Progress(student_id, learning_path_id, group_id,
                            path_status=PATH_STATUS["IN_PROGRESS"], created_at=now)
        if progress.path_status == PATH_STATUS["COMPLETED"]:
            raise AuthorizationError("La ruta de aprendizaje ya está completada")
        if progress.path_status == PATH_STATUS["NOT_STARTED"]:
            progress.path_status = PATH_STATUS["IN_PROGRESS"]
        return progress

    def get_my_progress(self, student_id, learning_path_id) -> Dict:
        """
        Progreso propio del estudiante; vista No Iniciado si aún no hay documento.
        Solo para miembros aprobados del grupo de la ruta.
        """
        validate_object_ids(estudiante=student_id, ruta=learning_path_id)
        context = self.hierarchy.resolve_learning_path(learning_path_id)
        if not context.group_id:
            raise NotFoundError("La ruta de aprendizaje no está asociada a ningún grupo")
        if not self.groups.is_approved_member(student_id, context.group_id):
            raise AuthorizationError("No eres miembro aprobado del grupo de esta ruta de aprendizaje")

        progress = self.find_progress(student_id, learning_path_id)
        document = progress.to_dict() if progress else {
            "student_id": to_object_id(student_id),
            "learning_path_id": context.learning_path_id,
            **not_started_progress()
        }
        total, graded = self._activity_counts(context, [student_id])
        document.update(total_activities=total, graded_activities=graded.get(str(student_id), 0))
        return document

    def _activity_counts(self, context, student_ids) -> Tuple[int, Dict[str, int]]:
        """
        Actividades asignadas a los temas de la ruta en su grupo y, por
        estudiante, cuántas tienen alguna entrega calificada.

        Returns:
            (total_activities, {student_id: graded_activities})
        """
        theme_ids = [to_object_id(theme_id)
                     for theme_ids in self.hierarchy.get_path_structure(context.learning_path_id).values()
                     for theme_id in theme_ids]
        if not theme_ids:
            return 0, {}

        assignment_ids = [assignment["_id"] for assignment in self.db[COLLECTIONS["CONTENT_ASSIGNMENTS"]].find(
            {"theme_id": {"$in": theme_ids}, "group_id": context.group_id, "type": ASSIGNMENT_TYPES["ACTIVITY"]},
            {"_id": 1}
        )]
        if not assignment_ids:
            return 0, {}

        pipeline = [
            {"$match": {
                "student_id": {"$in": [to_object_id(student_id) for student_id in student_ids]},
                "assignment_id": {"$in": assignment_ids},
                "estado_envio": SUBMISSION_STATUS["GRADED"]
            }},
            {"$group": {"_id": {"student_id": "$student_id", "assignment_id": "$assignment_id"}}},
            {"$group": {"_id": "$_id.student_id", "graded": {"$sum": 1}}}
        ]
        graded = {str(row["_id"]): row["graded"]
                  for row in self.db[COLLECTIONS["SUBMISSIONS"]].aggregate(pipeline)}
        return len(assignment_ids), graded

    def _owned_group(self, group_id, teacher_id) -> Dict:
        group = self.groups.get_group(group_id)
        if not GroupAccessService.is_group_owner(group, teacher_id):
            raise NotFoundError("Grupo no encontrado o no te pertenece")
        return group

    def get_group_path_progress(self, group_id, learning_path_id, teacher_id) -> List[Dict]:
        """
        Progreso de todos los estudiantes aprobados del grupo en una ruta.

        Returns:
            Lista de {"student", "progress", "total_activities", "graded_activities"}
            en el orden de las membresías; los estudiantes sin documento reciben
            la vista No Iniciado
        """
        validate_object_ids(grupo=group_id, ruta=learning_path_id)
        self._owned_group(group_id, teacher_id)

        context = self.hierarchy.resolve_learning_path(learning_path_id)
        if str(context.group_id) != str(group_id):
            raise NotFoundError("Ruta de aprendizaje no encontrada en este grupo")

        students = self.groups.get_approved_students(group_id)
        if not students:
            return []

        student_ids = [student["_id"] for student in students]
        documents = self.collection.find({
            "learning_path_id": context.learning_path_id,
            "student_id": {"$in": student_ids}
        })
        by_student = {str(document["student_id"]): document for document in documents}
        total, graded = self._activity_counts(context, student_ids)

        return [{
            "student": student,
            "progress": by_student.get(str(student["_id"])) or not_started_progress(),
            "total_activities": total,
            "graded_activities": graded.get(str(student["_id"]), 0)
        } for student in students]

    def get_student_path_progress(self, student_id, learning_path_id, teacher_id) -> Dict:
        """
        Progreso de un estudiante concreto en una ruta de un grupo del docente.
        """
        validate_object_ids(estudiante=student_id, ruta=learning_path_id)
        context = self.hierarchy.resolve_learning_path(learning_path_id)
        if not context.group_id:
            raise NotFoundError("Grupo no encontrado o no te pertenece")
        self._owned_group(context.group_id, teacher_id)

        if not self.groups.is_approved_member(student_id, context.group_id):
            raise NotFoundError("El estudiante no es miembro aprobado de este grupo")

        total, graded = self._activity_counts(context, [student_id])
        counts = {"total_activities": total, "graded_activities": graded.get(str(student_id), 0)}

        progress = self.find_progress(student_id, learning_path_id)
        if progress:
            return {**progress.to_dict(), **counts}

        student = self.db.users.find_one(
            {"_id": to_object_id(student_id)},
            {"nombre": 1, "apellidos": 1, "email": 1}
        )
        return {
            "message": "El estudiante aún no ha iniciado esta ruta de aprendizaje",
            "student": student,
            "progress": not_started_progress(),
            **counts
        }


class TeacherOverrideService(_ProgressStore):
    """
    Overrides del docente sobre el progreso de todo un grupo.

    Las comprobaciones de permisos y pertenencia se hacen antes de escribir.
    Luego se procesa estudiante a estudiante: un fallo con uno se registra y
    no detiene a los demás.
    """

    def _verify_scope(self, group_id, learning_path_id, user: Dict):
        group = self.groups.get_group(group_id)
        if not group:
            raise NotFoundError("Grupo no encontrado")
        if user.get("tipo_usuario") != ROLES["ADMIN"] and not GroupAccessService.is_group_owner(group, user["_id"]):
            raise AuthorizationError("No tienes permiso para modificar el progreso de este grupo")

        context = self.hierarchy.resolve_learning_path(learning_path_id)
        if str(context.group_id) != str(group_id):
            raise NotFoundError("Ruta de aprendizaje no encontrada en este grupo")
        return context

    def _apply_to_group(self, group_id, learning_path_id, structure: PathStructure,
                        change: Callable[[Progress, datetime], None]) -> Dict:
        student_ids = self.groups.get_approved_student_ids(group_id)
        updated = 0
        for student_id in student_ids:
            try:
                now = self.clock()
                progress = self.find_progress(student_id, learning_path_id) or Progress(
                    student_id, learning_path_id, group_id, created_at=now
                )
                change(progress, now)
                recompute_dependent_statuses(progress, structure, now)
                self.save_progress(progress, now)
                updated += 1
            except Exception as e:
                log_error(f"No se pudo actualizar el progreso del estudiante {student_id}", e, "progress")
        return {"updated_count": updated, "total_students": len(student_ids)}

    def set_module_status(self, group_id, learning_path_id, module_id, status: str, user: Dict) -> Dict:
        """
        Fija el estado de un módulo para todos los estudiantes aprobados.

        - Completado: el módulo y todos sus temas quedan completados.
        - En Progreso: se fija el módulo; sus temas no cambian.
        - No Iniciado: se borran el módulo y las entradas de sus temas.

        Returns:
            {"updated_count", "total_students"}
        """
        validate_object_ids(grupo=group_id, ruta=learning_path_id, modulo=module_id)
        validate_enum(status, MODULE_STATUS.values(), "estado del módulo")

        context = self._verify_scope(group_id, learning_path_id, user)
        module = self.find_or_404(COLLECTIONS["MODULES"], module_id, "módulo")
        if str(module.get("learning_path_id")) != str(context.learning_path_id):
            raise NotFoundError("El módulo no pertenece a esta ruta de aprendizaje")

        structure = self.hierarchy.get_path_structure(learning_path_id)
        theme_ids = structure.get(str(module["_id"]), [])

        def change(progress: Progress, now: datetime):
            if status == MODULE_STATUS["COMPLETED"]:
                for theme_id in theme_ids:
                    if progress.theme_status(theme_id) != THEME_STATUS["COMPLETED"]:
                        progress.set_theme(theme_id, THEME_STATUS["COMPLETED"], now)
                if progress.module_status(module_id) != MODULE_STATUS["COMPLETED"]:
                    progress.set_module(module_id, MODULE_STATUS["COMPLETED"], now)
            elif status == MODULE_STATUS["IN_PROGRESS"]:
                progress.set_module(module_id, MODULE_STATUS["IN_PROGRESS"], None, forced=True)
            else:
                progress.remove_module(module_id)
                for theme_id in theme_ids:
                    progress.remove_theme(theme_id)

        result = self._apply_to_group(context.group_id, context.learning_path_id, structure, change)
        log_info(f"Módulo {module_id} fijado a {status} para {result['updated_count']} estudiantes", "progress")
        return result

    def set_theme_status(self, group_id, learning_path_id, theme_id, status: str, user: Dict) -> Dict:
        """
        Fija el estado de un tema para todos los estudiantes aprobados.
        No Iniciado borra la entrada del tema.
        """
        validate_object_ids(grupo=group_id, ruta=learning_path_id, tema=theme_id)
        validate_enum(status, THEME_STATUS.values(), "estado del tema")

        context = self._verify_scope(group_id, learning_path_id, user)
        theme_context = self.hierarchy.resolve_theme(theme_id)
        if theme_context.learning_path_id != context.learning_path_id:
            raise NotFoundError("El tema no pertenece a esta ruta de aprendizaje")

        structure = self.hierarchy.get_path_structure(learning_path_id)
        module_id = theme_context.module["_id"]

        def change(progress: Progress, now: datetime):
            progress.unforce_module(module_id)
            if status == THEME_STATUS["NOT_STARTED"]:
                progress.remove_theme(theme_id)
            else:
                progress.set_theme(theme_id, status, now)

        result = self._apply_to_group(context.group_id, context.learning_path_id, structure, change)
        log_info(f"Tema {theme_id} fijado a {status} para {result['updated_count']} estudiantes", "progress")
        return result
