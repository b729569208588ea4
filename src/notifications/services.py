import math
from typing import Dict, Optional
from bson import ObjectId
from flask import current_app, has_app_context
from pymongo import DESCENDING, ReturnDocument

from src.shared.constants import COLLECTIONS, NOTIFICATION_EVENT, NOTIFICATION_TYPES
from src.shared.exceptions import NotFoundError, ValidationError
from src.shared.logging import log_error, log_info
from src.shared.standardization import BaseService
from src.shared.utils import to_object_id
from src.shared.validators import validate_enum, validate_object_id
from .dispatcher import NotificationDispatcher, NullNotificationDispatcher
from .models import Notification


class NotificationService(BaseService):
    """
    Persiste notificaciones y las empuja al canal en tiempo real del destinatario.

    El dispatcher se inyecta en el constructor; si no se inyecta se usa el
    registrado por la aplicación Flask y, fuera de contexto, uno nulo.
    """

    def __init__(self, db=None, dispatcher: Optional[NotificationDispatcher] = None):
        super().__init__(collection_name=COLLECTIONS["NOTIFICATIONS"], db=db)
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> NotificationDispatcher:
        if self._dispatcher is not None:
            return self._dispatcher
        if has_app_context():
            registered = current_app.extensions.get("notification_dispatcher")
            if registered is not None:
                return registered
        return NullNotificationDispatcher()

    def create_notification(self, recipient, type: str, message: str,
                            link: Optional[str] = None, sender=None) -> Dict:
        """
        Crea una notificación y la emite a la sala del destinatario.

        Un fallo del canal en tiempo real se registra pero no anula la
        notificación ya guardada.

        Returns:
            Dict: Documento insertado (con _id)
        """
        validate_object_id(recipient, "destinatario")
        validate_enum(type, NOTIFICATION_TYPES.values(), "tipo de notificación")
        if not message:
            raise ValidationError("El mensaje de la notificación es obligatorio")

        document = Notification(recipient, type, message, link, sender).to_dict()
        result = self.collection.insert_one(document)
        document["_id"] = result.inserted_id

        try:
            self.dispatcher.emit(str(document["recipient"]), NOTIFICATION_EVENT, document)
        except Exception as e:
            log_error(f"No se pudo emitir la notificación {result.inserted_id}", e, "notifications")

        return document

    def list_notifications(self, user_id, page: int = 1, limit: int = 10) -> Dict:
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        query = {"recipient": to_object_id(user_id)}

        notifications = list(
            self.collection.find(query, sort=[("createdAt", DESCENDING)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        total = self.collection.count_documents(query)
        unread = self.collection.count_documents({**query, "isRead": False})

        return {
            "notifications": notifications,
            "total": total,
            "unread": unread,
            "page": page,
            "pages": math.ceil(total / limit) if total else 0
        }

    def mark_as_read(self, notification_id, user_id) -> Dict:
        validate_object_id(notification_id, "notificación")
        notification = self.collection.find_one_and_update(
            {"_id": ObjectId(notification_id), "recipient": to_object_id(user_id), "isRead": False},
            {"$set": {"isRead": True}},
            return_document=ReturnDocument.AFTER
        )
        if not notification:
            raise NotFoundError("Notificación no encontrada, no autorizada, o ya estaba marcada como leída")
        return notification

    def mark_all_as_read(self, user_id) -> int:
        result = self.collection.update_many(
            {"recipient": to_object_id(user_id), "isRead": False},
            {"$set": {"isRead": True}}
        )
        return result.modified_count

    def delete_notification(self, notification_id, user_id) -> None:
        validate_object_id(notification_id, "notificación")
        result = self.collection.delete_one(
            {"_id": ObjectId(notification_id), "recipient": to_object_id(user_id)}
        )
        if result.deleted_count == 0:
            raise NotFoundError("Notificación no encontrada o no tienes permiso para borrarla")

    def delete_all_notifications(self, user_id) -> int:
        result = self.collection.delete_many({"recipient": to_object_id(user_id)})
        if result.deleted_count == 0:
            raise NotFoundError("No se encontraron notificaciones para eliminar")
        log_info(f"Eliminadas {result.deleted_count} notificaciones del usuario {user_id}", "notifications")
        return result.deleted_count
