"""
Progress Routes - Registro y consulta del progreso en rutas de aprendizaje.
"""

from flask import request

from src.shared.standardization import APIBlueprint, APIRoute
from src.shared.decorators import get_auth_user, get_auth_user_id
from src.shared.constants import ROLES
from .services import ProgressService, TeacherOverrideService

progress_bp = APIBlueprint('progress', __name__)

progress_service = ProgressService()
override_service = TeacherOverrideService()


@progress_bp.route('/update-theme', methods=['POST'])
@APIRoute.standard(
    auth_required_flag=True,
    roles=[ROLES["STUDENT"]],
    required_fields=['learningPathId', 'themeId', 'status']
)
def update_theme_progress():
    """
    El estudiante marca un tema como Visto o Completado.

    Body:
        {"learningPathId": str, "themeId": str, "status": "Visto" | "Completado"}

    Returns:
        Documento de progreso actualizado
    """
    data = request.get_json()
    progress = progress_service.record_theme_progress(
        student_id=get_auth_user_id(),
        learning_path_id=data['learningPathId'],
        theme_id=data['themeId'],
        status=data['status'],
        user_type=request.user_type
    )
    return APIRoute.success(data=progress, message="Progreso del tema actualizado")


@progress_bp.route('/my/<learning_path_id>', methods=['GET'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["STUDENT"]])
def get_my_progress(learning_path_id):
    progress = progress_service.get_my_progress(get_auth_user_id(), learning_path_id)
    return APIRoute.success(data=progress)


@progress_bp.route('/group/<group_id>/path/<learning_path_id>/docente', methods=['GET'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]])
def get_group_path_progress(group_id, learning_path_id):
    """Resumen de progreso de cada estudiante aprobado del grupo"""
    summary = progress_service.get_group_path_progress(group_id, learning_path_id, get_auth_user_id())
    return APIRoute.success(data=summary)


@progress_bp.route('/student/<student_id>/path/<learning_path_id>/docente', methods=['GET'])
@APIRoute.standard(auth_required_flag=True, roles=[ROLES["TEACHER"]])
def get_student_path_progress(student_id, learning_path_id):
    progress = progress_service.get_student_path_progress(student_id, learning_path_id, get_auth_user_id())
    return APIRoute.success(data=progress)


@progress_bp.route('/teacher/set-module-status', methods=['POST'])
@APIRoute.standard(
    auth_required_flag=True,
    roles=[ROLES["TEACHER"], ROLES["ADMIN"]],
    required_fields=['moduleId', 'learningPathId', 'groupId', 'status']
)
def set_module_status():
    """
    Fija el estado de un módulo para todos los estudiantes aprobados del grupo.

    Body:
        {"moduleId", "learningPathId", "groupId", "status": "No Iniciado" | "En Progreso" | "Completado"}
    """
    data = request.get_json()
    result = override_service.set_module_status(
        group_id=data['groupId'],
        learning_path_id=data['learningPathId'],
        module_id=data['moduleId'],
        status=data['status'],
        user=get_auth_user()
    )
    return APIRoute.success(
        data=result,
        message=f"Estado del módulo actualizado a '{data['status']}' para {result['updated_count']} estudiantes."
    )


@progress_bp.route('/teacher/set-theme-status', methods=['POST'])
@APIRoute.standard(
    auth_required_flag=True,
    roles=[ROLES["TEACHER"], ROLES["ADMIN"]],
    required_fields=['themeId', 'learningPathId', 'groupId', 'status']
)
def set_theme_status():
    data = request.get_json()
    result = override_service.set_theme_status(
        group_id=data['groupId'],
        learning_path_id=data['learningPathId'],
        theme_id=data['themeId'],
        status=data['status'],
        user=get_auth_user()
    )
    return APIRoute.success(
        data=result,
        message=f"Estado del tema actualizado a '{data['status']}' para {result['updated_count']} estudiantes."
    )
