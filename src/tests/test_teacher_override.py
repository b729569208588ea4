import unittest
from datetime import datetime
from bson import ObjectId

from src.shared.constants import PATH_STATUS, MODULE_STATUS, THEME_STATUS, ROLES
from src.shared.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.progress.services import ProgressService, TeacherOverrideService
from src.tests.progress_fixtures import LearningPathFixture

NOW = datetime(2024, 6, 1, 9, 30, 0)


class TestTeacherOverrides(unittest.TestCase):

    def setUp(self):
        self.fx = LearningPathFixture()
        self.second_student = ObjectId()
        self.fx.db.memberships.find.return_value = [
            {"usuario_id": self.fx.student_id}, {"usuario_id": self.second_student}
        ]
        self.service = TeacherOverrideService(db=self.fx.db, clock=lambda: NOW)
        self.teacher = {"_id": str(self.fx.teacher_id), "tipo_usuario": ROLES["TEACHER"]}

    def set_module(self, module_id, status, user=None):
        return self.service.set_module_status(
            str(self.fx.group_id), str(self.fx.path_id), str(module_id), status, user or self.teacher
        )

    def set_theme(self, theme_id, status, user=None):
        return self.service.set_theme_status(
            str(self.fx.group_id), str(self.fx.path_id), str(theme_id), status, user or self.teacher
        )

    def stored(self, student_id):
        return self.fx.saved[str(student_id)]

    def statuses(self, entries, key):
        return {entry[key]: entry["status"] for entry in entries}

    def test_completing_module_completes_its_themes_for_every_student(self):
        result = self.set_module(self.fx.m1, MODULE_STATUS["COMPLETED"])

        self.assertEqual(result, {"updated_count": 2, "total_students": 2})
        for student_id in (self.fx.student_id, self.second_student):
            document = self.stored(student_id)
            self.assertEqual(self.statuses(document["completed_themes"], "theme_id"),
                             {self.fx.t1: "Completado", self.fx.t2: "Completado"})
            self.assertEqual(self.statuses(document["completed_modules"], "module_id"),
                             {self.fx.m1: "Completado"})
            self.assertEqual(document["path_status"], PATH_STATUS["IN_PROGRESS"])

    def test_completing_every_module_completes_the_path(self):
        self.set_module(self.fx.m1, MODULE_STATUS["COMPLETED"])
        self.set_module(self.fx.m2, MODULE_STATUS["COMPLETED"])

        document = self.stored(self.fx.student_id)
        self.assertEqual(document["path_status"], PATH_STATUS["COMPLETED"])
        self.assertEqual(document["path_completion_date"], NOW)

    def test_resetting_a_theme_demotes_module_and_path(self):
        self.set_module(self.fx.m1, MODULE_STATUS["COMPLETED"])
        self.set_module(self.fx.m2, MODULE_STATUS["COMPLETED"])

        self.set_theme(self.fx.t3, THEME_STATUS["NOT_STARTED"])

        document = self.stored(self.fx.student_id)
        self.assertNotIn(self.fx.t3, self.statuses(document["completed_themes"], "theme_id"))
        self.assertNotIn(self.fx.m2, self.statuses(document["completed_modules"], "module_id"))
        self.assertEqual(document["path_status"], PATH_STATUS["IN_PROGRESS"])
        self.assertIsNone(document["path_completion_date"])

    def test_module_not_started_removes_module_and_theme_entries(self):
        self.set_module(self.fx.m1, MODULE_STATUS["COMPLETED"])
        self.set_module(self.fx.m1, MODULE_STATUS["NOT_STARTED"])

        document = self.stored(self.fx.student_id)
        self.assertEqual(document["completed_themes"], [])
        self.assertEqual(document["completed_modules"], [])
        self.assertEqual(document["path_status"], PATH_STATUS["NOT_STARTED"])

    def test_forced_in_progress_module_is_kept(self):
        self.set_module(self.fx.m2, MODULE_STATUS["IN_PROGRESS"])

        document = self.stored(self.fx.student_id)
        self.assertEqual(self.statuses(document["completed_modules"], "module_id"),
                         {self.fx.m2: "En Progreso"})
        self.assertEqual(document["path_status"], PATH_STATUS["IN_PROGRESS"])
        self.assertTrue(document["completed_modules"][0]["forced"])

    def test_resetting_a_seen_theme_clears_module_and_path(self):
        ProgressService(db=self.fx.db, clock=lambda: NOW).record_theme_progress(
            str(self.fx.student_id), str(self.fx.path_id), str(self.fx.t1), THEME_STATUS["SEEN"]
        )
        self.assertNotIn("forced", self.stored(self.fx.student_id)["completed_modules"][0])

        self.set_theme(self.fx.t1, THEME_STATUS["NOT_STARTED"])

        document = self.stored(self.fx.student_id)
        self.assertEqual(document["completed_themes"], [])
        self.assertEqual(document["completed_modules"], [])
        self.assertEqual(document["path_status"], PATH_STATUS["NOT_STARTED"])

    def test_theme_change_releases_forced_module(self):
        self.set_module(self.fx.m2, MODULE_STATUS["IN_PROGRESS"])
        self.set_theme(self.fx.t3, THEME_STATUS["SEEN"])

        document = self.stored(self.fx.student_id)
        self.assertEqual(self.statuses(document["completed_modules"], "module_id"), {self.fx.m2: "En Progreso"})
        self.assertNotIn("forced", document["completed_modules"][0])

        self.set_theme(self.fx.t3, THEME_STATUS["NOT_STARTED"])

        document = self.stored(self.fx.student_id)
        self.assertEqual(document["completed_modules"], [])
        self.assertEqual(document["path_status"], PATH_STATUS["NOT_STARTED"])

    def test_forced_module_survives_override_on_another_module(self):
        self.set_module(self.fx.m2, MODULE_STATUS["IN_PROGRESS"])
        self.set_theme(self.fx.t1, THEME_STATUS["SEEN"])
        self.set_theme(self.fx.t1, THEME_STATUS["NOT_STARTED"])

        document = self.stored(self.fx.student_id)
        self.assertEqual(self.statuses(document["completed_modules"], "module_id"), {self.fx.m2: "En Progreso"})
        self.assertEqual(document["path_status"], PATH_STATUS["IN_PROGRESS"])

    def test_seen_theme_puts_module_in_progress(self):
        self.set_theme(self.fx.t1, THEME_STATUS["SEEN"])

        document = self.stored(self.second_student)
        self.assertEqual(self.statuses(document["completed_themes"], "theme_id"), {self.fx.t1: "Visto"})
        self.assertEqual(self.statuses(document["completed_modules"], "module_id"), {self.fx.m1: "En Progreso"})

    def test_failure_for_one_student_does_not_stop_the_others(self):
        find_progress = self.fx.db.progress.find_one.side_effect

        def flaky_find(query, *args, **kwargs):
            if query["student_id"] == self.fx.student_id:
                raise RuntimeError("timeout")
            return find_progress(query, *args, **kwargs)

        self.fx.db.progress.find_one.side_effect = flaky_find
        result = self.set_module(self.fx.m1, MODULE_STATUS["COMPLETED"])

        self.assertEqual(result, {"updated_count": 1, "total_students": 2})
        self.assertIn(str(self.second_student), self.fx.saved)
        self.assertNotIn(str(self.fx.student_id), self.fx.saved)

    def test_teacher_of_another_group_cannot_override(self):
        intruder = {"_id": str(ObjectId()), "tipo_usuario": ROLES["TEACHER"]}
        with self.assertRaises(AuthorizationError):
            self.set_module(self.fx.m1, MODULE_STATUS["COMPLETED"], user=intruder)
        self.fx.db.progress.insert_one.assert_not_called()

    def test_admin_can_override_any_group(self):
        admin = {"_id": str(ObjectId()), "tipo_usuario": ROLES["ADMIN"]}
        result = self.set_theme(self.fx.t1, THEME_STATUS["COMPLETED"], user=admin)
        self.assertEqual(result["updated_count"], 2)

    def test_module_of_another_path_is_rejected(self):
        with self.assertRaises(NotFoundError):
            self.set_module(self.fx.foreign_module, MODULE_STATUS["COMPLETED"])
        self.fx.db.progress.insert_one.assert_not_called()

    def test_invalid_status_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.set_module(self.fx.m1, "Visto")
        with self.assertRaises(ValidationError):
            self.set_theme(self.fx.t1, "En Progreso")

    def test_unknown_group_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.service.set_theme_status(
                str(ObjectId()), str(self.fx.path_id), str(self.fx.t1), "Visto", self.teacher
            )


if __name__ == '__main__':
    unittest.main()
