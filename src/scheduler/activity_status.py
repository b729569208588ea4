"""
Cierre automático de asignaciones vencidas.

Cada intervalo busca las asignaciones en estado Open cuya fecha_fin ya pasó,
las pasa a Closed y avisa al docente. El job nunca propaga excepciones: los
errores se registran y la siguiente ejecución vuelve a intentarlo.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Optional

from src.shared.constants import (
    ASSIGNMENT_STATUS, COLLECTIONS, NOTIFICATION_TYPES, UNKNOWN_ACTIVITY_TITLE
)
from src.shared.database import get_db
from src.shared.utils import utc_now
from src.notifications.services import NotificationService

logger = logging.getLogger("rutas.scheduler")

AUTO_CLOSE_LINK = "/teacher/assignments"


class ActivityStatusScheduler:
    def __init__(self,
                 db=None,
                 notification_service: Optional[NotificationService] = None,
                 interval_seconds: float = 60,
                 clock: Optional[Callable[[], datetime]] = None):
        self._db = db
        self.notification_service = notification_service or NotificationService(db=db)
        self.interval_seconds = interval_seconds
        self.clock = clock or utc_now
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def db(self):
        if self._db is None:
            self._db = get_db()
        return self._db

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="ActivityStatusScheduler", daemon=True)
        self._thread.start()
        logger.info(f"Planificador de estados de actividades iniciado (cada {self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout if timeout is not None else self.interval_seconds)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()

    def run_once(self) -> int:
        """
        Ejecuta una pasada del job.

        Returns:
            Número de asignaciones cerradas en esta pasada
        """
        now = self.clock()
        try:
            assignments = list(self.db[COLLECTIONS["CONTENT_ASSIGNMENTS"]].find({
                "status": ASSIGNMENT_STATUS["OPEN"],
                "fecha_fin": {"$lte": now}
            }))
        except Exception:
            logger.exception("Error al buscar asignaciones vencidas")
            return 0

        if not assignments:
            logger.info("No assignments to update.")
            return 0

        closed = 0
        for assignment in assignments:
            if self._close_assignment(assignment):
                closed += 1
        logger.info(f"Procesadas {len(assignments)} asignaciones vencidas, {closed} cerradas")
        return closed

    def _close_assignment(self, assignment: Dict) -> bool:
        assignment_id = assignment["_id"]
        try:
            self.db[COLLECTIONS["CONTENT_ASSIGNMENTS"]].update_one(
                {"_id": assignment_id},
                {"$set": {"status": ASSIGNMENT_STATUS["CLOSED"]}}
            )
        except Exception:
            logger.exception(f"Error al cerrar la asignación {assignment_id}")
            return False
        logger.info(f"Assignment {assignment_id} status updated to Closed.")

        docente_id = assignment.get("docente_id")
        if not docente_id:
            logger.warning(
                f"Cannot send notification for assignment {assignment_id} because docente_id is missing."
            )
            return True

        try:
            title = self._activity_title(assignment)
            self.notification_service.create_notification(
                recipient=docente_id,
                type=NOTIFICATION_TYPES["GENERAL_INFO"],
                message=(f"La actividad asignada '{title}' ha sido cerrada automáticamente "
                         f"porque su fecha de finalización ha pasado."),
                link=AUTO_CLOSE_LINK
            )
        except Exception:
            logger.exception(f"Error al notificar el cierre de la asignación {assignment_id}")
        return True

    def _activity_title(self, assignment: Dict) -> str:
        activity_id = assignment.get("activity_id")
        if not activity_id:
            return UNKNOWN_ACTIVITY_TITLE
        activity = self.db[COLLECTIONS["ACTIVITIES"]].find_one({"_id": activity_id}, {"title": 1})
        return (activity or {}).get("title") or UNKNOWN_ACTIVITY_TITLE
