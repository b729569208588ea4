from flask import request

from src.shared.decorators import get_auth_user_id
from src.shared.standardization import APIBlueprint, APIRoute
from .services import NotificationService

notifications_bp = APIBlueprint('notifications', __name__)
notification_service = NotificationService()


@notifications_bp.route('/', methods=['GET'])
@APIRoute.standard(auth_required_flag=True)
def get_notifications():
    """Notificaciones del usuario autenticado, más recientes primero (?page=&limit=)"""
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 10, type=int)
    result = notification_service.list_notifications(get_auth_user_id(), page, limit)
    return APIRoute.success(data=result)


@notifications_bp.route('/<notification_id>/mark-read', methods=['PATCH'])
@APIRoute.standard(auth_required_flag=True)
def mark_notification_as_read(notification_id):
    notification = notification_service.mark_as_read(notification_id, get_auth_user_id())
    return APIRoute.success(data=notification, message="Notificación marcada como leída")


@notifications_bp.route('/mark-all-read', methods=['POST'])
@APIRoute.standard(auth_required_flag=True)
def mark_all_notifications_as_read():
    modified = notification_service.mark_all_as_read(get_auth_user_id())
    return APIRoute.success(
        data={"modified_count": modified},
        message="Todas las notificaciones marcadas como leídas"
    )


@notifications_bp.route('/all', methods=['DELETE'])
@APIRoute.standard(auth_required_flag=True)
def delete_all_notifications():
    deleted = notification_service.delete_all_notifications(get_auth_user_id())
    return APIRoute.success(
        data={"deleted_count": deleted},
        message=f"Se eliminaron {deleted} notificaciones"
    )


@notifications_bp.route('/<notification_id>', methods=['DELETE'])
@APIRoute.standard(auth_required_flag=True)
def delete_notification(notification_id):
    notification_service.delete_notification(notification_id, get_auth_user_id())
    return APIRoute.success(message="Notificación eliminada exitosamente")
