import unittest
from unittest import mock

from appwrite.exception import AppwriteException

from fakes import FakeDatabases, FakeQuery, make_service

from gradetrackr.core.models import ScannedCourse
from gradetrackr.core.scales import GradingScale
from gradetrackr.core.validation import ValidationError
from gradetrackr.services.appwrite_service import AppwriteServiceError
from gradetrackr.state.tracker_state import TrackerState, optimistic_update


class OptimisticUpdateTests(unittest.TestCase):
    def test_restores_snapshot_on_failure(self):
        class Holder:
            items = [1, 2]

        holder = Holder()
        with self.assertRaises(RuntimeError):
            with optimistic_update(holder, "items"):
                holder.items.append(3)
                raise RuntimeError("remote write failed")
        self.assertEqual(holder.items, [1, 2])

    def test_keeps_change_on_success(self):
        class Holder:
            value = "old"

        holder = Holder()
        with optimistic_update(holder, "value"):
            holder.value = "new"
        self.assertEqual(holder.value, "new")


class TrackerStateTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch("gradetrackr.services.appwrite_service.Query", FakeQuery)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.databases = FakeDatabases()
        self.service = make_service(self.databases)
        self.messages = []
        self.state = TrackerState(self.service, "u1", notify=lambda msg, err: self.messages.append((msg, err)))

    def _seed(self):
        semester = self.state.add_semester("Year 1")
        self.state.add_course(semester.id, "Maths", "3", "A")
        self.state.add_course(semester.id, "English", 2, "B")
        return semester

    def test_load_reads_everything(self):
        self.service.set_grading_scale("u1", GradingScale.NUC_REFORM_4_0)
        semester = self.service.create_semester("u1", "S")
        self.service.create_course("u1", semester.id, name="X", credit_hours=4, grade="B")
        self.service.upsert_goal("u1", 3.5)

        self.assertTrue(self.state.load())

        self.assertIs(self.state.scale, GradingScale.NUC_REFORM_4_0)
        self.assertEqual(self.state.semesters[0].gpa, 3.0)
        self.assertEqual(self.state.goal.target_cgpa, 3.5)
        self.assertFalse(self.state.loading)

    def test_load_failure_reports_message(self):
        self.databases.fail_on.add("list_documents")
        self.assertFalse(self.state.load())
        self.assertTrue(self.messages[-1][1])
        self.assertIn("Failed to load data", self.messages[-1][0])

    def test_courses_drive_cgpa(self):
        semester = self._seed()
        self.assertAlmostEqual(self.state.semester_gpa(semester.id), 4.6)
        self.assertEqual(self.state.semester_gpa("missing"), 0.0)
        self.assertAlmostEqual(self.state.cgpa, 4.6)
        self.assertEqual(self.state.total_credits, 5)

    def test_add_semester_imports_complete_scanned_courses(self):
        scanned = [
            ScannedCourse("Biology", 3, "A"),
            ScannedCourse(None, 2, "B"),
            ScannedCourse("Lab", 1, "C"),
        ]
        semester = self.state.add_semester("Scanned", scanned)
        self.assertEqual([c.name for c in semester.courses], ["Biology", "Lab"])
        self.assertEqual(self.messages[-1], ("Successfully imported 2 courses!", False))

    def test_scanned_rows_outside_scale_are_skipped(self):
        scanned = [
            ScannedCourse("Biology", 3, "A"),
            ScannedCourse("Chemistry", 40, "B"),
            ScannedCourse("Physics", 2, "A+"),
        ]
        semester = self.state.add_semester("Scanned", scanned)
        self.assertEqual([c.name for c in semester.courses], ["Biology"])
        persisted = [doc["name"] for doc in self.databases.collections["courses"].values()]
        self.assertEqual(persisted, ["Biology"])

    def test_non_finite_credits_never_persist(self):
        semester = self._seed()
        with self.assertRaises(ValidationError):
            self.state.add_course(semester.id, "Bad", "nan", "A")
        self.assertEqual(len(self.databases.collections["courses"]), 2)
        self.assertAlmostEqual(self.state.cgpa, 4.6)

    def test_partial_import_keeps_semester_in_sync(self):
        create_course = self.service.create_course
        created = []

        def fail_after_first(*args, **kwargs):
            if created:
                raise AppwriteServiceError("Network request failed")
            created.append(create_course(*args, **kwargs))
            return created[-1]

        scanned = [ScannedCourse("Biology", 3, "A"), ScannedCourse("Lab", 1, "C")]
        with mock.patch.object(self.service, "create_course", side_effect=fail_after_first):
            self.assertIsNone(self.state.add_semester("Scanned", scanned))

        self.assertTrue(self.messages[-1][1])
        self.assertEqual(len(self.state.semesters), 1)
        local = self.state.semesters[0]
        self.assertIn(local.id, self.databases.collections["semesters"])
        self.assertEqual([c.id for c in local.courses], list(self.databases.collections["courses"]))
        self.assertAlmostEqual(local.gpa, 5.0)

    def test_failed_semester_delete_reloads_courses(self):
        semester = self._seed()
        delete_document = self.databases.delete_document

        def keep_semester(database_id, collection_id, document_id):
            if collection_id == "semesters":
                raise AppwriteException("Network request failed", 503)
            return delete_document(database_id, collection_id, document_id)

        with mock.patch.object(self.databases, "delete_document", side_effect=keep_semester):
            self.assertFalse(self.state.delete_semester(semester.id, confirmed=True))

        local = self.state.semester(semester.id)
        self.assertIsNotNone(local)
        self.assertEqual(local.courses, [])
        self.assertEqual(self.databases.collections["courses"], {})
        self.assertEqual(local.gpa, 0.0)

    def test_invalid_input_never_reaches_service(self):
        semester = self._seed()
        calls = len(self.databases.calls)
        with self.assertRaises(ValidationError):
            self.state.add_course(semester.id, "", "9", "A")
        with self.assertRaises(ValidationError):
            self.state.save_goal("5.5")
        self.assertEqual(len(self.databases.calls), calls)

    def test_rename_rolls_back_on_failure(self):
        semester = self._seed()
        self.databases.fail_on.add("update_document")

        self.assertFalse(self.state.rename_semester(semester.id, "Renamed"))

        self.assertEqual(self.state.semester(semester.id).name, "Year 1")
        self.assertTrue(self.messages[-1][1])

    def test_update_course_rolls_back_on_failure(self):
        semester = self._seed()
        course_id = semester.courses[0].id
        self.databases.fail_on.add("update_document")

        self.assertFalse(self.state.update_course(semester.id, course_id, "Maths", 3, "F"))

        restored = self.state.semester(semester.id)
        self.assertEqual(restored.courses[0].grade, "A")
        self.assertAlmostEqual(restored.gpa, 4.6)

    def test_update_course_persists(self):
        semester = self._seed()
        course_id = semester.courses[1].id

        self.assertTrue(self.state.update_course(semester.id, course_id, "English II", 2, "A"))

        self.assertAlmostEqual(self.state.semester(semester.id).gpa, 5.0)
        self.assertEqual(self.databases.collections["courses"][course_id]["name"], "English II")

    def test_deletes_require_confirmation(self):
        semester = self._seed()
        course_id = semester.courses[0].id

        self.assertFalse(self.state.delete_course(semester.id, course_id))
        self.assertFalse(self.state.delete_semester(semester.id))
        self.assertEqual(len(self.state.semesters), 1)

        self.assertTrue(self.state.delete_course(semester.id, course_id, confirmed=True))
        self.assertAlmostEqual(self.state.semester(semester.id).gpa, 4.0)
        self.assertTrue(self.state.delete_semester(semester.id, confirmed=True))
        self.assertEqual(self.state.semesters, [])

    def test_goal_progress(self):
        self._seed()
        self.assertIsNone(self.state.goal_progress())
        self.assertTrue(self.state.save_goal("5"))
        progress = self.state.goal_progress()
        self.assertAlmostEqual(progress.progress_percent, 92.0)
        self.assertFalse(progress.reached)

    def test_goal_save_failure_keeps_previous_goal(self):
        self.state.save_goal(3.0)
        self.databases.fail_on.update({"update_document", "create_document"})
        self.assertFalse(self.state.save_goal(4.0))
        self.assertEqual(self.state.goal.target_cgpa, 3.0)

    def test_scale_change_reinterprets_grades(self):
        semester = self._seed()
        self.assertTrue(self.state.set_grading_scale(GradingScale.NUC_REFORM_4_0))
        self.assertAlmostEqual(self.state.semester(semester.id).gpa, 3.6)
        self.assertEqual(self.service.get_grading_scale("u1"), GradingScale.NUC_REFORM_4_0)

    def test_scale_change_rolls_back_on_failure(self):
        semester = self._seed()
        self.databases.fail_on.update({"update_document", "create_document"})

        self.assertFalse(self.state.set_grading_scale(GradingScale.NUC_REFORM_4_0))

        self.assertIs(self.state.scale, GradingScale.DEFAULT)
        self.assertAlmostEqual(self.state.semester(semester.id).gpa, 4.6)


if __name__ == "__main__":
    unittest.main()
