from flask import request

from src.shared.constants import ROLES, ASSIGNMENT_STATUS, ASSIGNMENT_TYPES
from src.shared.decorators import get_auth_user, get_auth_user_id
from src.shared.standardization import APIBlueprint, APIRoute
from .services import LearningPathService, ModuleService, ThemeService, ContentAssignmentService

learning_paths_bp = APIBlueprint('learning_paths', __name__)

learning_path_service = LearningPathService()
module_service = ModuleService()
theme_service = ThemeService()
assignment_service = ContentAssignmentService()

TEXT_UPDATE_SCHEMA = {
    "nombre": {"type": "string", "minLength": 1},
    "descripcion": {"type": "string", "nullable": True}
}


# Rutas de aprendizaje
@learning_paths_bp.route('/', methods=['POST'])
@APIRoute.standard(
    auth_required_flag=True,
    roles=[ROLES["TEACHER"]],
    required_fields=['nombre', 'group_id'],
    schema={
        "nombre": {"type": "string", "minLength": 1},
        "group_id": {"type": "object_id"},
        "descripcion": {"type": "string", "nullable": True}
    }
)
def create_learning_path():
    learning_path = learning_path_service.create_learning_path(request.get_json(), get_auth_user_id())
    return APIRoute.success(data=learning_path, message="Ruta de aprendizaje creada exitosamente", status_code=201)


@learning_paths_bp.route('/<learning_path_id>/structure', methods=['GET'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"], ROLES["STUDENT"]])
def get_learning_path_structure(learning_path_id):
    """Árbol módulos -> temas -> asignaciones, para el docente dueño o estudiantes aprobados"""
    structure = learning_path_service.get_learning_path_structure(learning_path_id, get_auth_user())
    return APIRoute.success(data=structure)


@learning_paths_bp.route('/<learning_path_id>', methods=['PUT'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]], schema=TEXT_UPDATE_SCHEMA)
def update_learning_path(learning_path_id):
    learning_path = learning_path_service.update_learning_path(
        learning_path_id, request.get_json(), get_auth_user_id()
    )
    return APIRoute.success(data=learning_path, message="Ruta de aprendizaje actualizada")


@learning_paths_bp.route('/<learning_path_id>', methods=['DELETE'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]], required_fields=['nombreConfirmacion'])
def delete_learning_path(learning_path_id):
    """
    Borrado en cascada de la ruta. El cuerpo debe repetir el nombre exacto:
    {"nombreConfirmacion": "<nombre de la ruta>"}
    """
    nombre = learning_path_service.delete_learning_path(
        learning_path_id, request.get_json()['nombreConfirmacion'], get_auth_user_id()
    )
    return APIRoute.success(
        message=f"Ruta de aprendizaje '{nombre}' y todo su contenido asociado han sido eliminados."
    )


# Módulos
@learning_paths_bp.route('/<learning_path_id>/modules', methods=['POST'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]], required_fields=['nombre'])
def create_module(learning_path_id):
    module = module_service.create_module(learning_path_id, request.get_json(), get_auth_user_id())
    return APIRoute.success(data=module, message="Módulo creado exitosamente", status_code=201)


@learning_paths_bp.route('/modules/<module_id>', methods=['PUT'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]], schema=TEXT_UPDATE_SCHEMA)
def update_module(module_id):
    module = module_service.update_module(module_id, request.get_json(), get_auth_user_id())
    return APIRoute.success(data=module, message="Módulo actualizado")


@learning_paths_bp.route('/modules/<module_id>', methods=['DELETE'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]])
def delete_module(module_id):
    module_service.delete_module(module_id, get_auth_user_id())
    return APIRoute.success(message="Módulo y su contenido eliminados exitosamente")


# Temas
@learning_paths_bp.route('/modules/<module_id>/themes', methods=['POST'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]], required_fields=['nombre'])
def create_theme(module_id):
    theme = theme_service.create_theme(module_id, request.get_json(), get_auth_user_id())
    return APIRoute.success(data=theme, message="Tema creado exitosamente", status_code=201)


@learning_paths_bp.route('/themes/<theme_id>', methods=['PUT'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]], schema=TEXT_UPDATE_SCHEMA)
def update_theme(theme_id):
    theme = theme_service.update_theme(theme_id, request.get_json(), get_auth_user_id())
    return APIRoute.success(data=theme, message="Tema actualizado")


@learning_paths_bp.route('/themes/<theme_id>', methods=['DELETE'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]])
def delete_theme(theme_id):
    theme_service.delete_theme(theme_id, get_auth_user_id())
    return APIRoute.success(message="Tema y sus asignaciones eliminados exitosamente")


# Asignaciones de contenido
@learning_paths_bp.route('/themes/<theme_id>/assign-content', methods=['POST'])
@APIRoute.standard(
    auth_required_flag=True,
    roles=[ROLES["TEACHER"]],
    required_fields=['type'],
    schema={
        "type": {"type": "string", "enum": list(ASSIGNMENT_TYPES.values())},
        "resource_id": {"type": "object_id", "nullable": True},
        "activity_id": {"type": "object_id", "nullable": True}
    }
)
def assign_content_to_theme(theme_id):
    """
    Asigna un Recurso o una Actividad al final del tema.

    Body:
        {"type": "Resource" | "Activity", "resource_id" | "activity_id",
         "fecha_inicio"?, "fecha_fin"?, "puntos_maximos"?, "intentos_permitidos"?, "tiempo_limite"?}
    """
    assignment = assignment_service.assign_content(theme_id, request.get_json(), get_auth_user_id())
    return APIRoute.success(data=assignment, message="Contenido asignado exitosamente", status_code=201)


@learning_paths_bp.route('/assignments/<assignment_id>', methods=['GET'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]])
def get_content_assignment(assignment_id):
    assignment = assignment_service.get_content_assignment(assignment_id, get_auth_user_id())
    return APIRoute.success(data=assignment)


@learning_paths_bp.route('/assignments/<assignment_id>', methods=['PUT'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]])
def update_content_assignment(assignment_id):
    """null o "" en un campo lo elimina de la asignación"""
    data = request.get_json(silent=True) or {}
    assignment = assignment_service.update_content_assignment(assignment_id, data, get_auth_user_id())
    return APIRoute.success(data=assignment, message="Asignación actualizada")


@learning_paths_bp.route('/assignments/<assignment_id>/status', methods=['PUT'])
@APIRoute.standard(
    auth_required_flag=True,
    roles=[ROLES["TEACHER"], ROLES["ADMIN"]],
    required_fields=['status'],
    schema={"status": {"type": "string", "enum": list(ASSIGNMENT_STATUS.values())}}
)
def update_content_assignment_status(assignment_id):
    status = request.get_json()['status']
    assignment, changed = assignment_service.update_content_assignment_status(
        assignment_id, status, get_auth_user()
    )
    message = (f"Estado de la asignación actualizado a {status}" if changed
               else f"La asignación ya se encuentra en estado {status}")
    return APIRoute.success(data=assignment, message=message)


@learning_paths_bp.route('/assignments/<assignment_id>', methods=['DELETE'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]])
def delete_content_assignment(assignment_id):
    assignment_service.delete_content_assignment(assignment_id, get_auth_user_id())
    return APIRoute.success(message="Asignación eliminada exitosamente")
