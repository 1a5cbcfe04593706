"""In-memory semesters, goal and grading-scale preference for one signed-in user.

All remote writes go through ``AppwriteService``. Failures are reported through
the ``notify`` callback; update operations are applied optimistically and rolled
back when the remote write fails.
"""

from contextlib import contextmanager
import copy
import logging
from typing import Any, Callable, Iterable, Iterator, List, Optional

from gradetrackr.core.goal import GoalProgress, goal_progress
from gradetrackr.core.gpa import calculate_cgpa, total_credits
from gradetrackr.core.models import Course, GoalData, ScannedCourse, Semester
from gradetrackr.core.scales import GradingScale, grade_points, max_points
from gradetrackr.core.validation import (
    importable_courses,
    validate_course,
    validate_semester_name,
    validate_target_cgpa,
)
from gradetrackr.services.appwrite_service import AppwriteService, AppwriteServiceError


logger = logging.getLogger(__name__)

Notify = Callable[[str, bool], None]


def _silent(message: str, is_error: bool) -> None:
    logger.debug("notify(%s): %s", "error" if is_error else "ok", message)


@contextmanager
def optimistic_update(target: Any, *attrs: str) -> Iterator[None]:
    """Snapshot ``attrs`` on ``target``; restore them if the block raises."""
    snapshot = {attr: copy.deepcopy(getattr(target, attr)) for attr in attrs}
    try:
        yield
    except Exception:
        for attr, value in snapshot.items():
            setattr(target, attr, value)
        raise


class TrackerState:
    def __init__(self, service: AppwriteService, uid: str, notify: Optional[Notify] = None) -> None:
        self.service = service
        self.uid = uid
        self.notify = notify or _silent
        self.semesters: List[Semester] = []
        self.goal: Optional[GoalData] = None
        self.scale = GradingScale.DEFAULT
        self.loading = False

    @property
    def points(self):
        return grade_points(self.scale)

    @property
    def cgpa(self) -> float:
        return calculate_cgpa(self.semesters, self.points)

    @property
    def total_credits(self) -> float:
        return total_credits(self.semesters)

    @property
    def max_cgpa(self) -> float:
        return max_points(self.scale)

    def semester(self, semester_id: str) -> Optional[Semester]:
        return next((s for s in self.semesters if s.id == semester_id), None)

    def semester_gpa(self, semester_id: str) -> float:
        semester = self.semester(semester_id)
        return semester.gpa if semester else 0.0

    def goal_progress(self) -> Optional[GoalProgress]:
        if self.goal is None:
            return None
        return goal_progress(self.cgpa, self.goal.target_cgpa)

    def _refresh_gpas(self) -> None:
        points = self.points
        for semester in self.semesters:
            semester.refresh_gpa(points)

    def _fail(self, message: str, exc: Exception) -> None:
        logger.warning("%s: %s", message, exc)
        self.notify(f"{message}: {exc}", True)

    def _reload_courses(self, semester: Semester) -> None:
        """Replace local courses with the persisted ones after a partial remote failure."""
        try:
            semester.courses = self.service.list_courses(self.uid, semester.id)
        except AppwriteServiceError as exc:
            logger.warning("Could not reload semester %s: %s", semester.id, exc)
            return
        semester.refresh_gpa(self.points)

    def load(self) -> bool:
        self.loading = True
        try:
            self.scale = self.service.get_grading_scale(self.uid)
            self.semesters = self.service.load_semesters(self.uid, self.points)
            self.goal = self.service.get_goal(self.uid)
            return True
        except AppwriteServiceError as exc:
            self._fail("Failed to load data", exc)
            return False
        finally:
            self.loading = False

    # Semesters

    def add_semester(self, name: str, scanned_courses: Iterable[ScannedCourse] = ()) -> Optional[Semester]:
        name = validate_semester_name(name)
        scanned = importable_courses(scanned_courses, self.scale)
        semester: Optional[Semester] = None
        try:
            semester = self.service.create_semester(self.uid, name)
            for course_name, credits, grade in scanned:
                self.service.create_course(
                    self.uid,
                    semester.id,
                    name=course_name,
                    credit_hours=credits,
                    grade=grade,
                )
            if scanned:
                semester.courses = self.service.list_courses(self.uid, semester.id)
        except AppwriteServiceError as exc:
            self._fail("Failed to add semester", exc)
            if semester is not None:
                # the semester exists remotely, keep it with whatever courses landed
                self._reload_courses(semester)
                self.semesters.insert(0, semester)
            return None

        semester.refresh_gpa(self.points)
        self.semesters.insert(0, semester)
        if scanned:
            self.notify(f"Successfully imported {len(scanned)} courses!", False)
        else:
            self.notify("Semester added successfully", False)
        return semester

    def rename_semester(self, semester_id: str, name: str) -> bool:
        name = validate_semester_name(name)
        semester = self.semester(semester_id)
        if semester is None:
            return False
        try:
            with optimistic_update(self, "semesters"):
                semester.name = name
                self.service.update_semester(self.uid, semester_id, name)
        except AppwriteServiceError as exc:
            self._fail("Could not update semester name", exc)
            return False
        self.notify("Semester updated successfully", False)
        return True

    def delete_semester(self, semester_id: str, confirmed: bool = False) -> bool:
        if not confirmed:
            return False
        try:
            self.service.delete_semester(self.uid, semester_id)
        except AppwriteServiceError as exc:
            self._fail("Failed to delete semester", exc)
            semester = self.semester(semester_id)
            if semester is not None:
                # course documents may already be gone
                self._reload_courses(semester)
            return False
        self.semesters = [s for s in self.semesters if s.id != semester_id]
        self.notify("Semester deleted successfully", False)
        return True

    # Courses

    def add_course(self, semester_id: str, name: str, credit_hours: Any, grade: str) -> Optional[Course]:
        name, credits, grade = validate_course(name, credit_hours, grade, self.scale)
        semester = self.semester(semester_id)
        if semester is None:
            return None
        try:
            course = self.service.create_course(
                self.uid, semester_id, name=name, credit_hours=credits, grade=grade
            )
        except AppwriteServiceError as exc:
            self._fail("Failed to add course", exc)
            return None
        semester.courses.append(course)
        semester.refresh_gpa(self.points)
        return course

    def update_course(self, semester_id: str, course_id: str, name: str, credit_hours: Any, grade: str) -> bool:
        name, credits, grade = validate_course(name, credit_hours, grade, self.scale)
        semester = self.semester(semester_id)
        course = next((c for c in semester.courses if c.id == course_id), None) if semester else None
        if course is None:
            return False
        try:
            with optimistic_update(self, "semesters"):
                course.name, course.credit_hours, course.grade = name, credits, grade
                semester.refresh_gpa(self.points)
                self.service.update_course(
                    self.uid, course_id, name=name, credit_hours=credits, grade=grade
                )
        except AppwriteServiceError as exc:
            self._fail("Failed to update course", exc)
            return False
        return True

    def delete_course(self, semester_id: str, course_id: str, confirmed: bool = False) -> bool:
        if not confirmed:
            return False
        semester = self.semester(semester_id)
        if semester is None:
            return False
        try:
            self.service.delete_course(self.uid, course_id)
        except AppwriteServiceError as exc:
            self._fail("Failed to delete course", exc)
            return False
        semester.courses = [c for c in semester.courses if c.id != course_id]
        semester.refresh_gpa(self.points)
        return True

    # Preferences

    def save_goal(self, target: Any) -> bool:
        target_cgpa = validate_target_cgpa(target, self.scale)
        try:
            with optimistic_update(self, "goal"):
                self.goal = GoalData(target_cgpa=target_cgpa)
                self.service.upsert_goal(self.uid, target_cgpa)
        except AppwriteServiceError as exc:
            self._fail("Failed to save goal", exc)
            return False
        self.notify("Goal updated successfully", False)
        return True

    def set_grading_scale(self, scale: GradingScale) -> bool:
        if scale == self.scale:
            return True
        try:
            with optimistic_update(self, "scale", "semesters"):
                self.scale = scale
                self._refresh_gpas()
                self.service.set_grading_scale(self.uid, scale)
        except AppwriteServiceError as exc:
            self._fail("Could not save grading scale", exc)
            return False
        return True
