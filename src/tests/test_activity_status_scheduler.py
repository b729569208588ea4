import time
import unittest
from datetime import datetime, timedelta
from unittest.mock import MagicMock
from bson import ObjectId

from src.scheduler.activity_status import ActivityStatusScheduler

NOW = datetime(2024, 6, 15, 10, 0, 0)


class TestActivityStatusScheduler(unittest.TestCase):

    def setUp(self):
        self.db = MagicMock()
        self.db.__getitem__.side_effect = lambda name: getattr(self.db, name)
        self.assignments = []
        self.db.content_assignments.find.side_effect = self._find_due
        self.activities = {}
        self.db.activities.find_one.side_effect = lambda query, *args, **kwargs: self.activities.get(query["_id"])
        self.notifications = MagicMock()
        self.scheduler = ActivityStatusScheduler(
            db=self.db, notification_service=self.notifications, interval_seconds=0.01, clock=lambda: NOW
        )

    def _find_due(self, query, *args, **kwargs):
        return [
            assignment for assignment in self.assignments
            if assignment["status"] == query["status"] and assignment["fecha_fin"] <= query["fecha_fin"]["$lte"]
        ]

    def add_assignment(self, fecha_fin, status="Open", docente_id="default", title="Quiz final"):
        activity_id = ObjectId()
        if title:
            self.activities[activity_id] = {"_id": activity_id, "title": title}
        assignment = {
            "_id": ObjectId(),
            "status": status,
            "fecha_fin": fecha_fin,
            "activity_id": activity_id,
            "docente_id": ObjectId() if docente_id == "default" else docente_id,
        }
        self.assignments.append(assignment)
        return assignment

    def test_past_due_assignment_is_closed_and_teacher_notified(self):
        assignment = self.add_assignment(NOW - timedelta(days=1))

        with self.assertLogs("rutas.scheduler", level="INFO") as logs:
            closed = self.scheduler.run_once()

        self.assertEqual(closed, 1)
        self.db.content_assignments.update_one.assert_called_once_with(
            {"_id": assignment["_id"]}, {"$set": {"status": "Closed"}}
        )
        self.notifications.create_notification.assert_called_once_with(
            recipient=assignment["docente_id"],
            type="GENERAL_INFO",
            message=("La actividad asignada 'Quiz final' ha sido cerrada automáticamente "
                     "porque su fecha de finalización ha pasado."),
            link="/teacher/assignments"
        )
        self.assertTrue(any(f"Assignment {assignment['_id']} status updated to Closed." in line
                            for line in logs.output))

    def test_assignment_due_tomorrow_is_untouched(self):
        self.add_assignment(NOW + timedelta(days=1))

        self.assertEqual(self.scheduler.run_once(), 0)
        self.db.content_assignments.update_one.assert_not_called()
        self.notifications.create_notification.assert_not_called()

    def test_closed_or_draft_assignments_are_ignored(self):
        self.add_assignment(NOW - timedelta(days=2), status="Closed")
        self.add_assignment(NOW - timedelta(days=2), status="Draft")

        with self.assertLogs("rutas.scheduler", level="INFO") as logs:
            self.assertEqual(self.scheduler.run_once(), 0)
        self.assertEqual(logs.output, ["INFO:rutas.scheduler:No assignments to update."])

    def test_due_exactly_now_is_closed(self):
        self.add_assignment(NOW)
        self.assertEqual(self.scheduler.run_once(), 1)

    def test_save_failure_skips_notification(self):
        self.add_assignment(NOW - timedelta(hours=1))
        self.db.content_assignments.update_one.side_effect = RuntimeError("DB save failed")

        with self.assertLogs("rutas.scheduler", level="ERROR"):
            closed = self.scheduler.run_once()

        self.assertEqual(closed, 0)
        self.notifications.create_notification.assert_not_called()

    def test_one_failure_does_not_stop_the_batch(self):
        first = self.add_assignment(NOW - timedelta(hours=3))
        self.add_assignment(NOW - timedelta(hours=2))
        self.db.content_assignments.update_one.side_effect = [RuntimeError("write conflict"), MagicMock()]

        self.assertEqual(self.scheduler.run_once(), 1)
        self.assertEqual(self.notifications.create_notification.call_count, 1)
        self.assertNotEqual(self.notifications.create_notification.call_args.kwargs["recipient"],
                            first["docente_id"])

    def test_missing_teacher_logs_warning(self):
        assignment = self.add_assignment(NOW - timedelta(days=1), docente_id=None)

        with self.assertLogs("rutas.scheduler", level="WARNING") as logs:
            closed = self.scheduler.run_once()

        self.assertEqual(closed, 1)
        self.notifications.create_notification.assert_not_called()
        self.assertIn(
            f"Cannot send notification for assignment {assignment['_id']} because docente_id is missing.",
            logs.output[0]
        )

    def test_missing_activity_uses_placeholder_title(self):
        self.add_assignment(NOW - timedelta(days=1), title=None)

        self.scheduler.run_once()

        message = self.notifications.create_notification.call_args.kwargs["message"]
        self.assertIn("'NombreDesconocido'", message)

    def test_notification_failure_is_logged(self):
        self.add_assignment(NOW - timedelta(days=1))
        self.notifications.create_notification.side_effect = RuntimeError("notifications down")

        with self.assertLogs("rutas.scheduler", level="ERROR"):
            self.assertEqual(self.scheduler.run_once(), 1)

    def test_query_failure_never_propagates(self):
        self.db.content_assignments.find.side_effect = RuntimeError("connection reset")

        with self.assertLogs("rutas.scheduler", level="ERROR"):
            self.assertEqual(self.scheduler.run_once(), 0)

    def test_start_and_stop_background_thread(self):
        self.add_assignment(NOW - timedelta(days=1))

        self.scheduler.start()
        self.assertTrue(self.scheduler.is_running)
        deadline = time.time() + 2
        while not self.db.content_assignments.update_one.called and time.time() < deadline:
            time.sleep(0.01)
        self.scheduler.stop(timeout=1)

        self.assertFalse(self.scheduler.is_running)
        self.db.content_assignments.update_one.assert_called()


if __name__ == '__main__':
    unittest.main()
