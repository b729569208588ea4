from typing import Dict, List, Optional, Tuple
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, UpdateOne

from src.shared.constants import (
    COLLECTIONS, ROLES, ASSIGNMENT_STATUS, ASSIGNMENT_TYPES,
    NOTIFICATION_TYPES, POINTS_ACTIVITY_TYPES, ATTEMPTS_ACTIVITY_TYPES
)
from src.shared.exceptions import (
    AppException, AuthorizationError, InternalError, NotFoundError, ValidationError
)
from src.shared.logging import log_error, log_info, log_warning
from src.shared.standardization import VerificationBaseService
from src.shared.utils import parse_datetime
from src.shared.validators import (
    parse_optional_number, validate_enum, validate_object_id
)
from src.groups.services import GroupAccessService
from src.notifications.services import NotificationService
from .hierarchy import HierarchyService
from .models import LearningPath, Module, Theme, ContentAssignment

NUMERIC_ASSIGNMENT_FIELDS = ("puntos_maximos", "intentos_permitidos", "tiempo_limite")
DATE_ASSIGNMENT_FIELDS = ("fecha_inicio", "fecha_fin")


def _next_orden(collection, parent_field: str, parent_id: ObjectId) -> int:
    """orden = max + 1 dentro del padre, empezando en 1"""
    last = collection.find_one({parent_field: parent_id}, {"orden": 1}, sort=[("orden", DESCENDING)])
    return (last["orden"] + 1) if last and last.get("orden") is not None else 1


def _close_orden_gap(collection, parent_field: str, parent_id: ObjectId, deleted_orden) -> int:
    """
    Decrementa en uno el orden de los hermanos posteriores al eliminado.

    Returns:
        Número de documentos reordenados
    """
    if deleted_orden is None:
        return 0
    siblings = list(collection.find(
        {parent_field: parent_id, "orden": {"$gt": deleted_orden}},
        {"_id": 1},
        sort=[("orden", ASCENDING)]
    ))
    if not siblings:
        return 0
    collection.bulk_write([
        UpdateOne({"_id": sibling["_id"]}, {"$inc": {"orden": -1}}) for sibling in siblings
    ])
    return len(siblings)


def _clean_text_fields(data: dict, entity_label: str) -> dict:
    """Valida nombre/descripcion de una actualización parcial"""
    update = {}
    if "nombre" in data:
        nombre = data["nombre"]
        if not isinstance(nombre, str) or not nombre.strip():
            raise ValidationError(f"El nombre del {entity_label} debe ser un texto no vacío")
        update["nombre"] = nombre.strip()
    if "descripcion" in data:
        descripcion = data["descripcion"]
        if descripcion is not None and not isinstance(descripcion, str):
            raise ValidationError("La descripción debe ser texto")
        update["descripcion"] = (descripcion or "").strip()
    if not update:
        raise ValidationError(f"Se debe proporcionar nombre o descripción para actualizar el {entity_label}")
    return update


class LearningPathService(VerificationBaseService):
    def __init__(self, db=None):
        super().__init__(collection_name=COLLECTIONS["LEARNING_PATHS"], db=db)
        self.hierarchy = HierarchyService(db=db)
        self.groups = GroupAccessService(db=db)

    def create_learning_path(self, data: dict, teacher_id: str) -> Dict:
        """
        Crea una ruta en un grupo activo del docente.

        Raises:
            ValidationError: Nombre o group_id ausentes o fechas inválidas
            NotFoundError: El grupo no existe, no está activo o no pertenece al docente
        """
        nombre = data.get("nombre")
        if not isinstance(nombre, str) or not nombre.strip():
            raise ValidationError("El nombre de la ruta es obligatorio")
        validate_object_id(data.get("group_id"), "grupo")

        group = self.groups.get_group(data["group_id"])
        if not group or not GroupAccessService.is_group_owner(group, teacher_id) or group.get("activo") is False:
            raise NotFoundError("Grupo no encontrado, no está activo o no te pertenece")

        fecha_inicio, fecha_fin = self._parse_path_dates(data)

        learning_path = LearningPath(
            nombre=nombre,
            group_id=data["group_id"],
            descripcion=data.get("descripcion", ""),
            fecha_inicio=fecha_inicio,
            fecha_fin=fecha_fin
        ).to_dict()
        result = self.collection.insert_one(learning_path)
        learning_path["_id"] = result.inserted_id
        log_info(f"Ruta de aprendizaje {result.inserted_id} creada en el grupo {data['group_id']}", "learning_paths")
        return learning_path

    @staticmethod
    def _parse_path_dates(data: dict) -> Tuple[Optional[object], Optional[object]]:
        dates = {}
        for field in DATE_ASSIGNMENT_FIELDS:
            value = data.get(field)
            if value in (None, ""):
                dates[field] = None
                continue
            parsed = parse_datetime(value)
            if parsed is None:
                raise ValidationError(f"Fecha inválida para {field}")
            dates[field] = parsed
        if dates["fecha_inicio"] and dates["fecha_fin"] and dates["fecha_fin"] <= dates["fecha_inicio"]:
            raise ValidationError("La fecha de fin debe ser posterior a la fecha de inicio")
        return dates["fecha_inicio"], dates["fecha_fin"]

    def update_learning_path(self, learning_path_id: str, data: dict, teacher_id: str) -> Dict:
        update = _clean_text_fields(data, "ruta")
        context = self.hierarchy.resolve_learning_path(learning_path_id)
        self.hierarchy.require_owner(context, teacher_id)

        self.collection.update_one({"_id": context.learning_path_id}, {"$set": update})
        return {**context.learning_path, **update}

    def delete_learning_path(self, learning_path_id: str, nombre_confirmacion: str, teacher_id: str) -> str:
        """
        Elimina la ruta con sus módulos, temas, asignaciones y progresos.

        Todo ocurre en una transacción: si algún paso falla no se borra nada.

        Args:
            nombre_confirmacion: Debe coincidir exactamente con el nombre de la ruta

        Returns:
            str: Nombre de la ruta eliminada

        Raises:
            ValidationError: Si el nombre de confirmación no coincide
            InternalError: Si la transacción falla
        """
        context = self.hierarchy.resolve_learning_path(learning_path_id)
        self.hierarchy.require_owner(context, teacher_id)

        nombre = context.learning_path.get("nombre", "")
        if not isinstance(nombre_confirmacion, str) or nombre_confirmacion.strip() != nombre:
            raise ValidationError("El nombre de la ruta de aprendizaje no coincide. Escribe el nombre exacto para confirmar.")

        path_oid = context.learning_path_id
        try:
            with self.db.client.start_session() as session:
                with session.start_transaction():
                    module_ids = [m["_id"] for m in self.db.modules.find(
                        {"learning_path_id": path_oid}, {"_id": 1}, session=session)]
                    if module_ids:
                        theme_ids = [t["_id"] for t in self.db.themes.find(
                            {"module_id": {"$in": module_ids}}, {"_id": 1}, session=session)]
                        if theme_ids:
                            self.db.content_assignments.delete_many({"theme_id": {"$in": theme_ids}}, session=session)
                        self.db.themes.delete_many({"module_id": {"$in": module_ids}}, session=session)
                    self.db.modules.delete_many({"learning_path_id": path_oid}, session=session)
                    self.db.progress.delete_many({"learning_path_id": path_oid}, session=session)
                    self.collection.delete_one({"_id": path_oid}, session=session)
        except AppException:
            raise
        except Exception as e:
            log_error(f"Error durante la eliminación en cascada de la ruta {learning_path_id}", e, "learning_paths")
            raise InternalError("Error al eliminar la ruta de aprendizaje. No se realizó ningún cambio.")

        log_info(f"Ruta de aprendizaje {learning_path_id} eliminada con todo su contenido", "learning_paths")
        return nombre

    def get_learning_path_structure(self, learning_path_id: str, user: Dict) -> Dict:
        """
        Árbol completo de la ruta: módulos -> temas -> asignaciones, todo ordenado.

        Pueden verlo el docente dueño del grupo y los estudiantes aprobados.
        Si el grupo está archivado nadie puede verlo.
        """
        context = self.hierarchy.resolve_learning_path(learning_path_id)
        if context.group and not context.group_active:
            raise AuthorizationError("El grupo asociado a esta ruta de aprendizaje ha sido archivado")

        user_id = user["_id"]
        user_type = user.get("tipo_usuario")
        can_view = False
        if user_type == ROLES["TEACHER"]:
            can_view = context.is_owned_by(user_id)
        elif user_type == ROLES["STUDENT"] and context.group_id:
            can_view = self.groups.is_approved_member(user_id, context.group_id)
        if not can_view:
            raise AuthorizationError("No tienes permiso para ver esta ruta de aprendizaje")

        learning_path = context.learning_path
        modules = list(self.db.modules.find({"learning_path_id": learning_path["_id"]}, sort=[("orden", ASCENDING)]))
        module_ids = [module["_id"] for module in modules]
        themes = list(self.db.themes.find({"module_id": {"$in": module_ids}}, sort=[("orden", ASCENDING)])) if module_ids else []
        theme_ids = [theme["_id"] for theme in themes]
        assignments = list(self.db.content_assignments.find(
            {"theme_id": {"$in": theme_ids}}, sort=[("orden", ASCENDING)])) if theme_ids else []

        resources = self._index_by_id(
            self.db.resources,
            [a["resource_id"] for a in assignments if a.get("resource_id")],
            {"title": 1, "type": 1, "link_url": 1, "video_url": 1, "content_body": 1}
        )
        activities = self._index_by_id(
            self.db.activities,
            [a["activity_id"] for a in assignments if a.get("activity_id")],
            {"title": 1, "type": 1}
        )

        assignments_by_theme: Dict[str, List[Dict]] = {}
        for assignment in assignments:
            is_resource = assignment.get("type") == ASSIGNMENT_TYPES["RESOURCE"]
            assignments_by_theme.setdefault(str(assignment["theme_id"]), []).append({
                "_id": assignment["_id"],
                "type": assignment.get("type"),
                "orden": assignment.get("orden"),
                "status": assignment.get("status"),
                "fecha_inicio": assignment.get("fecha_inicio"),
                "fecha_fin": assignment.get("fecha_fin"),
                "puntos_maximos": assignment.get("puntos_maximos"),
                "intentos_permitidos": assignment.get("intentos_permitidos"),
                "tiempo_limite": assignment.get("tiempo_limite"),
                "resource_id": resources.get(str(assignment.get("resource_id"))) if is_resource else None,
                "activity_id": activities.get(str(assignment.get("activity_id"))) if not is_resource else None
            })

        themes_by_module: Dict[str, List[Dict]] = {}
        for theme in themes:
            themes_by_module.setdefault(str(theme["module_id"]), []).append({
                "_id": theme["_id"],
                "nombre": theme.get("nombre"),
                "descripcion": theme.get("descripcion"),
                "orden": theme.get("orden"),
                "assignments": assignments_by_theme.get(str(theme["_id"]), [])
            })

        group = context.group
        return {
            "_id": learning_path["_id"],
            "nombre": learning_path.get("nombre"),
            "descripcion": learning_path.get("descripcion"),
            "fecha_inicio": learning_path.get("fecha_inicio"),
            "fecha_fin": learning_path.get("fecha_fin"),
            "activo": learning_path.get("activo", True),
            "group_id": {
                "_id": group["_id"],
                "nombre": group.get("nombre"),
                "activo": group.get("activo", True)
            } if group else None,
            "modules": [{
                "_id": module["_id"],
                "nombre": module.get("nombre"),
                "descripcion": module.get("descripcion"),
                "orden": module.get("orden"),
                "themes": themes_by_module.get(str(module["_id"]), [])
            } for module in modules]
        }

    @staticmethod
    def _index_by_id(collection, ids: List[ObjectId], projection: Dict) -> Dict[str, Dict]:
        if not ids:
            return {}
        return {str(doc["_id"]): doc for doc in collection.find({"_id": {"$in": ids}}, projection)}


class ModuleService(VerificationBaseService):
    def __init__(self, db=None):
        super().__init__(collection_name=COLLECTIONS["MODULES"], db=db)
        self.hierarchy = HierarchyService(db=db)

    def create_module(self, learning_path_id: str, data: dict, teacher_id: str) -> Dict:
        nombre = data.get("nombre")
        if not isinstance(nombre, str) or not nombre.strip():
            raise ValidationError("El nombre del módulo es obligatorio")
        context = self.hierarchy.resolve_learning_path(learning_path_id)
        self.hierarchy.require_owner(context, teacher_id)

        orden = _next_orden(self.collection, "learning_path_id", context.learning_path_id)
        module = Module(nombre, context.learning_path_id, orden, data.get("descripcion", "")).to_dict()
        result = self.collection.insert_one(module)
        module["_id"] = result.inserted_id
        return module

    def update_module(self, module_id: str, data: dict, teacher_id: str) -> Dict:
        update = _clean_text_fields(data, "módulo")
        context = self.hierarchy.resolve_module(module_id)
        self.hierarchy.require_owner(context, teacher_id)

        self.collection.update_one({"_id": context.module["_id"]}, {"$set": update})
        return {**context.module, **update}

    def delete_module(self, module_id: str, teacher_id: str) -> None:
        """
        Elimina el módulo, sus temas y asignaciones, y sus entradas de progreso.
        Los módulos posteriores de la ruta suben una posición.
        """
        context = self.hierarchy.resolve_module(module_id)
        self.hierarchy.require_owner(context, teacher_id)
        module = context.module

        theme_ids = [t["_id"] for t in self.db.themes.find({"module_id": module["_id"]}, {"_id": 1})]
        if theme_ids:
            self.db.content_assignments.delete_many({"theme_id": {"$in": theme_ids}})
        self.db.themes.delete_many({"module_id": module["_id"]})
        self.collection.delete_one({"_id": module["_id"]})

        self.db.progress.update_many(
            {"learning_path_id": context.learning_path_id},
            {"$pull": {
                "completed_modules": {"module_id": module["_id"]},
                "completed_themes": {"theme_id": {"$in": theme_ids}}
            }}
        )
        _close_orden_gap(self.collection, "learning_path_id", context.learning_path_id, module.get("orden"))


class ThemeService(VerificationBaseService):
    def __init__(self, db=None):
        super().__init__(collection_name=COLLECTIONS["THEMES"], db=db)
        self.hierarchy = HierarchyService(db=db)

    def create_theme(self, module_id: str, data: dict, teacher_id: str) -> Dict:
        nombre = data.get("nombre")
        if not isinstance(nombre, str) or not nombre.strip():
            raise ValidationError("El nombre del tema es obligatorio")
        context = self.hierarchy.resolve_module(module_id)
        self.hierarchy.require_owner(context, teacher_id)

        module_oid = context.module["_id"]
        orden = _next_orden(self.collection, "module_id", module_oid)
        theme = Theme(nombre, module_oid, orden, data.get("descripcion", "")).to_dict()
        result = self.collection.insert_one(theme)
        theme["_id"] = result.inserted_id
        return theme

    def update_theme(self, theme_id: str, data: dict, teacher_id: str) -> Dict:
        update = _clean_text_fields(data, "tema")
        context = self.hierarchy.resolve_theme(theme_id)
        self.hierarchy.require_owner(context, teacher_id)

        self.collection.update_one({"_id": context.theme["_id"]}, {"$set": update})
        return {**context.theme, **update}

    def delete_theme(self, theme_id: str, teacher_id: str) -> None:
        context = self.hierarchy.resolve_theme(theme_id)
        self.hierarchy.require_owner(context, teacher_id)
        theme = context.theme

        self.db.content_assignments.delete_many({"theme_id": theme["_id"]})
        self.collection.delete_one({"_id": theme["_id"]})
        self.db.progress.update_many(
            {"learning_path_id": context.learning_path_id},
            {"$pull": {"completed_themes": {"theme_id": theme["_id"]}}}
        )
        _close_orden_gap(self.collection, "module_id", theme["module_id"], theme.get("orden"))


class ContentAssignmentService(VerificationBaseService):
    def __init__(self, db=None, notification_service: NotificationService = None):
        super().__init__(collection_name=COLLECTIONS["CONTENT_ASSIGNMENTS"], db=db)
        self.hierarchy = HierarchyService(db=db)
        self.groups = GroupAccessService(db=db)
        self.notifications = notification_service or NotificationService(db=db)

    def _content_item(self, assignment_type: str, item_id) -> Dict:
        if assignment_type == ASSIGNMENT_TYPES["RESOURCE"]:
            return self.find_or_404(COLLECTIONS["RESOURCES"], item_id, "recurso")
        return self.find_or_404(COLLECTIONS["ACTIVITIES"], item_id, "actividad", "Actividad no encontrada")

    @staticmethod
    def _normalize_fields(data: dict, assignment_type: str, content_type: Optional[str]) -> Tuple[Dict, List[str]]:
        """
        Valida fechas y campos numéricos presentes en data.

        Los campos numéricos que no aplican al subtipo de contenido se ignoran.
        None o "" significan limpiar el campo.

        Returns:
            (valores normalizados, lista de errores)
        """
        values = {}
        errors = []

        for field in DATE_ASSIGNMENT_FIELDS:
            if field not in data:
                continue
            raw = data[field]
            if raw in (None, ""):
                values[field] = None
                continue
            parsed = parse_datetime(raw)
            if parsed is None:
                errors.append(f"Fecha inválida para {field}")
            else:
                values[field] = parsed

        is_activity = assignment_type == ASSIGNMENT_TYPES["ACTIVITY"]
        allowed = {
            "puntos_maximos": is_activity and content_type in POINTS_ACTIVITY_TYPES,
            "intentos_permitidos": is_activity and content_type in ATTEMPTS_ACTIVITY_TYPES,
            "tiempo_limite": is_activity and content_type in ATTEMPTS_ACTIVITY_TYPES,
        }
        rules = {
            "puntos_maximos": {},
            "intentos_permitidos": {"integer": True},
            "tiempo_limite": {"integer": True, "positive": True},
        }
        for field in NUMERIC_ASSIGNMENT_FIELDS:
            if field not in data or not allowed[field]:
                continue
            try:
                values[field] = parse_optional_number(data[field], field, **rules[field])
            except ValidationError as e:
                errors.append(e.message)

        return values, errors

    def assign_content(self, theme_id: str, data: dict, teacher_id: str) -> Dict:
        """
        Asigna un Recurso o una Actividad al final de un tema.

        Raises:
            ValidationError: Tipo, referencia, fechas o campos numéricos inválidos
            AuthorizationError: El tema no pertenece a un grupo activo del docente
            NotFoundError: El tema o el contenido referenciado no existen
        """
        assignment_type = data.get("type")
        resource_id = data.get("resource_id")
        activity_id = data.get("activity_id")

        validate_enum(assignment_type, ASSIGNMENT_TYPES.values(), "tipo de asignación")
        if resource_id and activity_id:
            raise ValidationError("Solo se puede asignar un Resource o una Activity a la vez")
        item_id = resource_id if assignment_type == ASSIGNMENT_TYPES["RESOURCE"] else activity_id
        if not item_id:
            field = "resource_id" if assignment_type == ASSIGNMENT_TYPES["RESOURCE"] else "activity_id"
            raise ValidationError(f"Debe proporcionar un {field} válido para el tipo {assignment_type}")

        context = self.hierarchy.resolve_theme(theme_id)
        self.hierarchy.require_owner(context, teacher_id)
        content_item = self._content_item(assignment_type, item_id)

        values, errors = self._normalize_fields(data, assignment_type, content_item.get("type"))
        if values.get("fecha_inicio") and values.get("fecha_fin") and values["fecha_fin"] <= values["fecha_inicio"]:
            errors.append("La fecha de fin debe ser posterior a la fecha de inicio")
        if errors:
            raise ValidationError("Datos inválidos para la asignación", errors=errors)

        theme_oid = context.theme["_id"]
        assignment = ContentAssignment(
            theme_id=theme_oid,
            type=assignment_type,
            orden=_next_orden(self.collection, "theme_id", theme_oid),
            group_id=context.group_id,
            docente_id=context.teacher_id,
            resource_id=resource_id if assignment_type == ASSIGNMENT_TYPES["RESOURCE"] else None,
            activity_id=activity_id if assignment_type == ASSIGNMENT_TYPES["ACTIVITY"] else None,
            **values
        ).to_dict()
        result = self.collection.insert_one(assignment)
        assignment["_id"] = result.inserted_id
        assignment["contentItemType"] = content_item.get("type")
        log_info(f"Asignación {result.inserted_id} creada en el tema {theme_id} con orden {assignment['orden']}",
                 "learning_paths")
        return assignment

    def get_content_assignment(self, assignment_id: str, teacher_id: str) -> Dict:
        context = self.hierarchy.resolve_assignment(assignment_id)
        self.hierarchy.require_owner(context, teacher_id)
        assignment = dict(context.assignment)
        item_id = assignment.get("resource_id") or assignment.get("activity_id")
        content_item = None
        if item_id:
            collection = self.db.resources if assignment.get("resource_id") else self.db.activities
            content_item = collection.find_one({"_id": item_id})
        assignment["contentItemType"] = content_item.get("type") if content_item else None
        assignment["content_item"] = content_item
        return assignment

    def update_content_assignment(self, assignment_id: str, data: dict, teacher_id: str) -> Dict:
        """
        Actualiza fechas y campos numéricos de una asignación.
        None o "" eliminan el campo.
        """
        context = self.hierarchy.resolve_assignment(assignment_id)
        self.hierarchy.require_owner(context, teacher_id)
        assignment = context.assignment

        item_id = assignment.get("resource_id") or assignment.get("activity_id")
        content_type = None
        if item_id:
            collection = self.db.resources if assignment.get("resource_id") else self.db.activities
            content_item = collection.find_one({"_id": item_id}, {"type": 1})
            content_type = content_item.get("type") if content_item else None

        values, errors = self._normalize_fields(data, assignment.get("type"), content_type)
        fecha_inicio = values["fecha_inicio"] if "fecha_inicio" in values else assignment.get("fecha_inicio")
        fecha_fin = values["fecha_fin"] if "fecha_fin" in values else assignment.get("fecha_fin")
        if fecha_inicio and fecha_fin and fecha_fin <= fecha_inicio:
            errors.append("La fecha de fin debe ser posterior a la fecha de inicio")
        if errors:
            raise ValidationError("Datos inválidos para la asignación", errors=errors)
        if not values:
            raise ValidationError("Se deben proporcionar datos válidos para actualizar la asignación")

        to_set = {field: value for field, value in values.items() if value is not None}
        to_unset = {field: "" for field, value in values.items() if value is None}
        update = {}
        if to_set:
            update["$set"] = to_set
        if to_unset:
            update["$unset"] = to_unset
        self.collection.update_one({"_id": assignment["_id"]}, update)

        updated = {key: value for key, value in assignment.items() if key not in to_unset}
        updated.update(to_set)
        return updated

    def update_content_assignment_status(self, assignment_id: str, status: str, user: Dict) -> Tuple[Dict, bool]:
        """
        Cambia el estado Draft/Open/Closed de una asignación.

        Al pasar a Open se notifica a cada estudiante aprobado del grupo. Un
        fallo al notificar se registra pero no revierte el cambio de estado.

        Returns:
            (asignación, True si el estado cambió)
        """
        validate_enum(status, ASSIGNMENT_STATUS.values(), "estado de la asignación")
        assignment = self.find_or_404(COLLECTIONS["CONTENT_ASSIGNMENTS"], assignment_id, "asignación",
                                      "Asignación no encontrada")

        user_id = user["_id"]
        if str(assignment.get("docente_id")) != str(user_id) and user.get("tipo_usuario") != ROLES["ADMIN"]:
            raise AuthorizationError("No tienes permiso para modificar el estado de esta asignación")

        if assignment.get("status") == status:
            return assignment, False

        previous_status = assignment.get("status")
        self.collection.update_one({"_id": assignment["_id"]}, {"$set": {"status": status}})
        assignment["status"] = status

        if status == ASSIGNMENT_STATUS["OPEN"] and previous_status != ASSIGNMENT_STATUS["OPEN"]:
            try:
                self._notify_assignment_opened(assignment, user_id)
            except Exception as e:
                log_error(f"No se pudieron enviar las notificaciones de la asignación {assignment_id}", e,
                          "learning_paths")

        return assignment, True

    def _notify_assignment_opened(self, assignment: Dict, sender_id) -> int:
        context = self.hierarchy.resolve_theme(assignment["theme_id"])
        if not context.group_id:
            log_warning(f"La asignación {assignment['_id']} no tiene grupo; no se notifica", "learning_paths")
            return 0

        item = None
        if assignment.get("activity_id"):
            item = self.db.activities.find_one({"_id": assignment["activity_id"]}, {"title": 1})
        elif assignment.get("resource_id"):
            item = self.db.resources.find_one({"_id": assignment["resource_id"]}, {"title": 1})
        title = (item or {}).get("title") or "Asignación sin nombre"
        path_name = context.learning_path.get("nombre", "")
        link = (f"/student/learning-paths/{context.learning_path_id}/themes/"
                f"{context.theme['_id']}/assignments/{assignment['_id']}")

        student_ids = self.groups.get_approved_student_ids(context.group_id)
        students = self.db.users.find(
            {"_id": {"$in": student_ids}, "tipo_usuario": ROLES["STUDENT"]}, {"_id": 1}
        ) if student_ids else []

        sent = 0
        for student in students:
            self.notifications.create_notification(
                recipient=student["_id"],
                sender=sender_id,
                type=NOTIFICATION_TYPES["NEW_ASSIGNMENT"],
                message=f"La asignación '{title}' de '{path_name}' ya está abierta.",
                link=link
            )
            sent += 1
        log_info(f"Asignación {assignment['_id']} abierta; {sent} estudiantes notificados", "learning_paths")
        return sent

    def delete_content_assignment(self, assignment_id: str, teacher_id: str) -> int:
        """
        Elimina la asignación y cierra el hueco de orden en su tema.

        Returns:
            Número de asignaciones reordenadas
        """
        context = self.hierarchy.resolve_assignment(assignment_id)
        self.hierarchy.require_owner(context, teacher_id)
        assignment = context.assignment

        self.collection.delete_one({"_id": assignment["_id"]})
        return _close_orden_gap(self.collection, "theme_id", assignment["theme_id"], assignment.get("orden"))
