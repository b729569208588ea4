import unittest
from datetime import datetime

from bson import ObjectId

from src.shared.constants import PATH_STATUS, MODULE_STATUS, THEME_STATUS, ROLES
from src.shared.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.progress.services import ProgressService
from src.tests.progress_fixtures import LearningPathFixture, by_id

NOW = datetime(2024, 5, 10, 12, 0, 0)


class TestRecordThemeProgress(unittest.TestCase):

    def setUp(self):
        self.fx = LearningPathFixture()
        self.service = ProgressService(db=self.fx.db, clock=lambda: NOW)

    def record(self, theme_id, status):
        return self.service.record_theme_progress(
            str(self.fx.student_id), str(self.fx.path_id), str(theme_id), status
        )

    def test_first_event_creates_progress_document(self):
        document = self.record(self.fx.t1, THEME_STATUS["SEEN"])

        self.fx.db.progress.insert_one.assert_called_once()
        self.assertEqual(document["path_status"], PATH_STATUS["IN_PROGRESS"])
        self.assertEqual(document["group_id"], self.fx.group_id)
        self.assertEqual(document["completed_themes"], [
            {"theme_id": self.fx.t1, "status": "Visto", "completion_date": NOW}
        ])
        self.assertEqual(document["completed_modules"], [
            {"module_id": self.fx.m1, "status": "En Progreso", "completion_date": None}
        ])

    def test_completing_every_theme_completes_modules_and_path(self):
        self.record(self.fx.t1, THEME_STATUS["COMPLETED"])
        document = self.record(self.fx.t2, THEME_STATUS["COMPLETED"])
        modules = {entry["module_id"]: entry for entry in document["completed_modules"]}
        self.assertEqual(modules[self.fx.m1]["status"], MODULE_STATUS["COMPLETED"])
        self.assertEqual(document["path_status"], PATH_STATUS["IN_PROGRESS"])

        document = self.record(self.fx.t3, THEME_STATUS["COMPLETED"])
        self.assertEqual(document["path_status"], PATH_STATUS["COMPLETED"])
        self.assertEqual(document["path_completion_date"], NOW)
        self.fx.db.progress.insert_one.assert_called_once()
        self.assertEqual(self.fx.saved[str(self.fx.student_id)]["path_status"], PATH_STATUS["COMPLETED"])

    def test_completed_path_rejects_new_events(self):
        for theme_id in (self.fx.t1, self.fx.t2, self.fx.t3):
            self.record(theme_id, THEME_STATUS["COMPLETED"])

        with self.assertRaises(AuthorizationError):
            self.record(self.fx.t1, THEME_STATUS["SEEN"])

    def test_seen_after_completed_keeps_theme_completed(self):
        self.record(self.fx.t1, THEME_STATUS["COMPLETED"])
        document = self.record(self.fx.t1, THEME_STATUS["SEEN"])
        self.assertEqual(document["completed_themes"][0]["status"], THEME_STATUS["COMPLETED"])

    def test_theme_is_kept_when_module_save_fails(self):
        self.fx.db.progress.replace_one.side_effect = RuntimeError("write failed")

        with self.assertRaises(RuntimeError):
            self.record(self.fx.t1, THEME_STATUS["SEEN"])

        stored = self.fx.saved[str(self.fx.student_id)]
        self.assertEqual(stored["completed_themes"][0]["theme_id"], self.fx.t1)
        self.assertEqual(stored["completed_modules"], [])

    def test_repeated_completion_is_idempotent(self):
        first = self.record(self.fx.t1, THEME_STATUS["COMPLETED"])
        second = self.record(self.fx.t1, THEME_STATUS["COMPLETED"])
        self.assertEqual(first["completed_themes"], second["completed_themes"])
        self.assertEqual(first["completed_modules"], second["completed_modules"])
        self.assertEqual(second["path_status"], PATH_STATUS["IN_PROGRESS"])

    def test_invalid_status_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.record(self.fx.t1, "No Iniciado")
        self.fx.db.progress.insert_one.assert_not_called()

    def test_invalid_ids_are_reported_together(self):
        with self.assertRaises(ValidationError) as ctx:
            self.service.record_theme_progress(str(self.fx.student_id), "abc", "xyz", "Visto")
        self.assertEqual(len(ctx.exception.errors), 2)

    def test_only_students_can_record(self):
        with self.assertRaises(AuthorizationError):
            self.service.record_theme_progress(
                str(self.fx.student_id), str(self.fx.path_id), str(self.fx.t1), "Visto",
                user_type=ROLES["TEACHER"]
            )

    def test_unapproved_member_is_rejected(self):
        self.fx.db.memberships.find_one.return_value = None
        with self.assertRaises(AuthorizationError):
            self.record(self.fx.t1, THEME_STATUS["SEEN"])
        self.fx.db.progress.insert_one.assert_not_called()

    def test_theme_from_another_path_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.record(self.fx.foreign_theme, THEME_STATUS["SEEN"])

    def test_theme_added_to_completed_module_keeps_path_open(self):
        self.record(self.fx.t1, THEME_STATUS["COMPLETED"])
        self.record(self.fx.t2, THEME_STATUS["COMPLETED"])
        t4 = ObjectId()
        self.fx.db.themes.find.return_value.append({"_id": t4, "module_id": self.fx.m1})

        document = self.record(self.fx.t3, THEME_STATUS["COMPLETED"])

        modules = {entry["module_id"]: entry for entry in document["completed_modules"]}
        self.assertEqual(modules[self.fx.m1]["status"], MODULE_STATUS["IN_PROGRESS"])
        self.assertIsNone(modules[self.fx.m1]["completion_date"])
        self.assertEqual(modules[self.fx.m2]["status"], MODULE_STATUS["COMPLETED"])
        self.assertEqual(document["path_status"], PATH_STATUS["IN_PROGRESS"])
        self.assertIsNone(document["path_completion_date"])
        self.assertEqual(self.fx.saved[str(self.fx.student_id)]["path_status"], PATH_STATUS["IN_PROGRESS"])

    def test_missing_path_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.service.record_theme_progress(
                str(self.fx.student_id), str(ObjectId()), str(self.fx.t1), "Visto"
            )


class TestProgressReads(unittest.TestCase):

    def setUp(self):
        self.fx = LearningPathFixture()
        self.service = ProgressService(db=self.fx.db, clock=lambda: NOW)

    def test_my_progress_without_document_is_not_started(self):
        document = self.service.get_my_progress(str(self.fx.student_id), str(self.fx.path_id))
        self.assertEqual(document["path_status"], PATH_STATUS["NOT_STARTED"])
        self.assertEqual(document["completed_themes"], [])
        self.assertEqual(document["learning_path_id"], self.fx.path_id)
        self.assertEqual(document["total_activities"], 0)
        self.assertEqual(document["graded_activities"], 0)

    def test_my_progress_requires_approved_membership(self):
        self.fx.db.memberships.find_one.return_value = None
        with self.assertRaises(AuthorizationError):
            self.service.get_my_progress(str(self.fx.student_id), str(self.fx.path_id))
        self.fx.db.progress.find_one.assert_not_called()

    def test_my_progress_counts_graded_activities(self):
        self.fx.db.content_assignments.find.return_value = [{"_id": ObjectId()}, {"_id": ObjectId()}]
        self.fx.db.submissions.aggregate.return_value = [{"_id": self.fx.student_id, "graded": 1}]
        self.service.record_theme_progress(
            str(self.fx.student_id), str(self.fx.path_id), str(self.fx.t1), THEME_STATUS["SEEN"]
        )

        document = self.service.get_my_progress(str(self.fx.student_id), str(self.fx.path_id))

        self.assertEqual(document["total_activities"], 2)
        self.assertEqual(document["graded_activities"], 1)
        self.assertEqual(document["path_status"], PATH_STATUS["IN_PROGRESS"])
        query = self.fx.db.content_assignments.find.call_args.args[0]
        self.assertEqual(query["group_id"], self.fx.group_id)
        self.assertEqual(query["type"], "Activity")
        self.assertEqual(set(query["theme_id"]["$in"]), {self.fx.t1, self.fx.t2, self.fx.t3})
        match = self.fx.db.submissions.aggregate.call_args.args[0][0]["$match"]
        self.assertEqual(match["estado_envio"], "Calificado")

    def test_group_summary_lists_every_approved_student(self):
        other_student = ObjectId()
        self.fx.db.memberships.find.return_value = [
            {"usuario_id": self.fx.student_id}, {"usuario_id": other_student}
        ]
        self.fx.db.users.find.return_value = [
            {"_id": other_student, "nombre": "Luis", "apellidos": "Pérez", "email": "luis@example.com"},
            {"_id": self.fx.student_id, "nombre": "Ana", "apellidos": "Gómez", "email": "ana@example.com"},
        ]
        stored = {"_id": ObjectId(), "student_id": self.fx.student_id, "path_status": "En Progreso"}
        self.fx.db.progress.find.return_value = [stored]

        summary = self.service.get_group_path_progress(
            str(self.fx.group_id), str(self.fx.path_id), str(self.fx.teacher_id)
        )

        self.assertEqual([entry["student"]["nombre"] for entry in summary], ["Ana", "Luis"])
        self.assertEqual(summary[0]["progress"], stored)
        self.assertEqual(summary[1]["progress"]["path_status"], PATH_STATUS["NOT_STARTED"])

    def test_group_summary_includes_activity_counts(self):
        other_student = ObjectId()
        self.fx.db.memberships.find.return_value = [
            {"usuario_id": self.fx.student_id}, {"usuario_id": other_student}
        ]
        self.fx.db.users.find.return_value = [
            {"_id": self.fx.student_id, "nombre": "Ana"}, {"_id": other_student, "nombre": "Luis"}
        ]
        self.fx.db.progress.find.return_value = []
        self.fx.db.content_assignments.find.return_value = [{"_id": ObjectId()}, {"_id": ObjectId()}, {"_id": ObjectId()}]
        self.fx.db.submissions.aggregate.return_value = [{"_id": other_student, "graded": 3}]

        summary = self.service.get_group_path_progress(
            str(self.fx.group_id), str(self.fx.path_id), str(self.fx.teacher_id)
        )

        counts = {entry["student"]["nombre"]: (entry["total_activities"], entry["graded_activities"])
                  for entry in summary}
        self.assertEqual(counts, {"Ana": (3, 0), "Luis": (3, 3)})
        self.fx.db.submissions.aggregate.assert_called_once()

    def test_group_summary_requires_group_owner(self):
        with self.assertRaises(NotFoundError):
            self.service.get_group_path_progress(
                str(self.fx.group_id), str(self.fx.path_id), str(ObjectId())
            )

    def test_group_summary_requires_path_in_group(self):
        self.fx.db.learning_paths.find_one.side_effect = by_id([
            {"_id": self.fx.path_id, "nombre": "Álgebra", "group_id": ObjectId()}
        ])
        with self.assertRaises(NotFoundError):
            self.service.get_group_path_progress(
                str(self.fx.group_id), str(self.fx.path_id), str(self.fx.teacher_id)
            )

    def test_student_detail_without_document(self):
        self.fx.db.users.find_one.return_value = {"_id": self.fx.student_id, "nombre": "Ana"}
        result = self.service.get_student_path_progress(
            str(self.fx.student_id), str(self.fx.path_id), str(self.fx.teacher_id)
        )
        self.assertIn("message", result)
        self.assertEqual(result["student"]["nombre"], "Ana")
        self.assertEqual(result["progress"]["path_status"], PATH_STATUS["NOT_STARTED"])
        self.assertEqual(result["total_activities"], 0)

    def test_student_detail_includes_activity_counts(self):
        self.fx.db.content_assignments.find.return_value = [{"_id": ObjectId()}]
        self.fx.db.submissions.aggregate.return_value = [{"_id": self.fx.student_id, "graded": 1}]
        ProgressService(db=self.fx.db, clock=lambda: NOW).record_theme_progress(
            str(self.fx.student_id), str(self.fx.path_id), str(self.fx.t3), THEME_STATUS["COMPLETED"]
        )

        result = self.service.get_student_path_progress(
            str(self.fx.student_id), str(self.fx.path_id), str(self.fx.teacher_id)
        )

        self.assertEqual(result["student_id"], self.fx.student_id)
        self.assertEqual(result["total_activities"], 1)
        self.assertEqual(result["graded_activities"], 1)

    def test_no_activities_skips_submission_lookup(self):
        self.fx.db.content_assignments.find.return_value = []
        document = self.service.get_my_progress(str(self.fx.student_id), str(self.fx.path_id))
        self.assertEqual(document["total_activities"], 0)
        self.fx.db.submissions.aggregate.assert_not_called()

    def test_student_detail_requires_approved_membership(self):
        self.fx.db.memberships.find_one.return_value = None
        with self.assertRaises(NotFoundError):
            self.service.get_student_path_progress(
                str(self.fx.student_id), str(self.fx.path_id), str(self.fx.teacher_id)
            )


if __name__ == '__main__':
    unittest.main()
