"""
Canal de notificaciones en tiempo real.

Cada usuario tiene una "sala" identificada por su id. La capa de transporte
(websocket, SSE, cola...) se suscribe a la sala con un callback y recibe los
eventos que emite NotificationService. El dispatcher se inyecta en los
servicios; create_app registra la instancia de la aplicación en
app.extensions["notification_dispatcher"].
"""

import logging
import threading
from typing import Callable, Dict, List

from src.shared.utils import ensure_json_serializable

log = logging.getLogger("rutas.notifications")

Subscriber = Callable[[str, dict], None]


class NotificationDispatcher:
    """Interfaz mínima: emitir un evento a la sala de un usuario"""

    def emit(self, room: str, event: str, payload: dict) -> int:
        raise NotImplementedError


class NullNotificationDispatcher(NotificationDispatcher):
    """Se usa cuando no hay canal configurado; solo deja traza"""

    def emit(self, room: str, event: str, payload: dict) -> int:
        log.debug(f"[NOTIFY] sin canal en tiempo real: room={room} event={event}")
        return 0


class RoomNotificationDispatcher(NotificationDispatcher):
    def __init__(self) -> None:
        self.rooms: Dict[str, List[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, room, callback: Subscriber) -> None:
        room = str(room)
        with self._lock:
            self.rooms.setdefault(room, []).append(callback)
            total = len(self.rooms[room])
        log.info(f"[NOTIFY SUBSCRIBE] room={room} subscribers={total}")

    def unsubscribe(self, room, callback: Subscriber) -> None:
        room = str(room)
        with self._lock:
            callbacks = self.rooms.get(room)
            if not callbacks:
                return
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self.rooms.pop(room, None)
        log.info(f"[NOTIFY UNSUBSCRIBE] room={room}")

    def emit(self, room, event: str, payload: dict) -> int:
        """
        Entrega el evento a todos los suscriptores de la sala.

        Un suscriptor que falla se da de baja y se registra el error; el resto
        sigue recibiendo el evento.

        Returns:
            Número de suscriptores que recibieron el evento
        """
        room = str(room)
        with self._lock:
            callbacks = list(self.rooms.get(room, []))
        log.debug(f"[NOTIFY EMIT] room={room} subscribers={len(callbacks)} event={event}")
        if not callbacks:
            return 0

        data = ensure_json_serializable(payload)
        delivered = 0
        dead = []
        for callback in callbacks:
            try:
                callback(event, data)
                delivered += 1
            except Exception as e:
                log.exception(f"[NOTIFY EMIT ERROR] room={room}: {e}")
                dead.append(callback)

        for callback in dead:
            self.unsubscribe(room, callback)
        return delivered
