from datetime import datetime, timezone
import logging
from typing import Dict, List, Optional, Sequence

from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.id import ID
from appwrite.query import Query
from appwrite.services.databases import Databases

from gradetrackr.config.settings import settings
from gradetrackr.core.gpa import unknown_grades
from gradetrackr.core.models import Course, GoalData, Semester
from gradetrackr.core.scales import GradingScale, scale_or_default


logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class AppwriteServiceError(Exception):
    pass


class AppwriteService:
    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str,
        database_id: str,
        profiles_collection_id: str,
        semesters_collection_id: str,
        courses_collection_id: str,
        goals_collection_id: str,
        databases: Optional[Databases] = None,
    ) -> None:
        if not endpoint:
            raise AppwriteServiceError("Missing APPWRITE_ENDPOINT in environment")
        if not project_id:
            raise AppwriteServiceError("Missing APPWRITE_PROJECT_ID in environment")
        if not api_key:
            raise AppwriteServiceError("Missing APPWRITE_API_KEY in environment")
        if not database_id:
            raise AppwriteServiceError("Missing APPWRITE_DATABASE_ID in environment")

        self.database_id = database_id
        self.profiles_collection_id = profiles_collection_id
        self.semesters_collection_id = semesters_collection_id
        self.courses_collection_id = courses_collection_id
        self.goals_collection_id = goals_collection_id

        if databases is None:
            client = Client()
            client.set_endpoint(endpoint.rstrip("/"))
            client.set_project(project_id)
            client.set_key(api_key)
            databases = Databases(client)

        self.db = databases

    @classmethod
    def from_settings(cls) -> "AppwriteService":
        return cls(
            endpoint=settings.appwrite_endpoint,
            project_id=settings.appwrite_project_id,
            api_key=settings.appwrite_api_key,
            database_id=settings.appwrite_database_id,
            profiles_collection_id=settings.appwrite_profiles_collection_id,
            semesters_collection_id=settings.appwrite_semesters_collection_id,
            courses_collection_id=settings.appwrite_courses_collection_id,
            goals_collection_id=settings.appwrite_goals_collection_id,
        )

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _is_not_found(exc: AppwriteException) -> bool:
        return getattr(exc, "code", None) == 404

    def _list_documents(self, collection_id: str, queries: List[str]) -> List[Dict]:
        try:
            result = self.db.list_documents(self.database_id, collection_id, queries=queries)
            return list(result.get("documents", []))
        except AppwriteException as exc:
            logger.error("List on %s failed: %s", collection_id, exc)
            raise AppwriteServiceError(str(exc)) from exc

    def _list_all(self, collection_id: str, queries: List[str]) -> List[Dict]:
        documents: List[Dict] = []
        offset = 0
        while True:
            page = self._list_documents(
                collection_id,
                [*queries, Query.limit(PAGE_SIZE), Query.offset(offset)],
            )
            documents.extend(page)
            if len(page) < PAGE_SIZE:
                return documents
            offset += PAGE_SIZE

    def _create_document(self, collection_id: str, data: Dict, document_id: Optional[str] = None) -> Dict:
        try:
            return self.db.create_document(
                self.database_id,
                collection_id,
                document_id or ID.unique(),
                data,
            )
        except AppwriteException as exc:
            logger.error("Create on %s failed: %s", collection_id, exc)
            raise AppwriteServiceError(str(exc)) from exc

    def _update_document(self, collection_id: str, document_id: str, data: Dict) -> Dict:
        try:
            return self.db.update_document(self.database_id, collection_id, document_id, data)
        except AppwriteException as exc:
            logger.error("Update of %s/%s failed: %s", collection_id, document_id, exc)
            raise AppwriteServiceError(str(exc)) from exc

    def _delete_document(self, collection_id: str, document_id: str) -> None:
        try:
            self.db.delete_document(self.database_id, collection_id, document_id)
        except AppwriteException as exc:
            logger.error("Delete of %s/%s failed: %s", collection_id, document_id, exc)
            raise AppwriteServiceError(str(exc)) from exc

    def _get_optional(self, collection_id: str, document_id: str) -> Optional[Dict]:
        try:
            return self.db.get_document(self.database_id, collection_id, document_id)
        except AppwriteException as exc:
            if self._is_not_found(exc):
                return None
            raise AppwriteServiceError(str(exc)) from exc

    def _find_first(self, collection_id: str, queries: List[str]) -> Optional[Dict]:
        docs = self._list_documents(collection_id, [*queries, Query.limit(1)])
        if not docs:
            return None
        return docs[0]

    @staticmethod
    def _to_semester(doc: Dict) -> Semester:
        return Semester(id=doc["$id"], name=doc.get("name", ""))

    @staticmethod
    def _to_course(doc: Dict) -> Course:
        return Course(
            id=doc["$id"],
            name=doc.get("name", ""),
            credit_hours=float(doc.get("credit_hours", 0)),
            grade=str(doc.get("grade", "")),
            semester_id=doc.get("semester_id"),
        )

    # Profile

    def ensure_user_profile(self, uid: str, email: str) -> None:
        if self._get_optional(self.profiles_collection_id, uid):
            return
        self._create_document(
            self.profiles_collection_id,
            {
                "user_id": uid,
                "email": email,
                "grading_scale": GradingScale.DEFAULT.value,
                "updated_at": self._now_iso(),
            },
            document_id=uid,
        )

    def get_grading_scale(self, uid: str) -> GradingScale:
        profile = self._get_optional(self.profiles_collection_id, uid) or {}
        return scale_or_default(profile.get("grading_scale"))

    def set_grading_scale(self, uid: str, scale: GradingScale) -> None:
        data = {"grading_scale": scale.value, "updated_at": self._now_iso()}
        if self._get_optional(self.profiles_collection_id, uid):
            self._update_document(self.profiles_collection_id, uid, data)
            return
        self._create_document(self.profiles_collection_id, {"user_id": uid, **data}, document_id=uid)

    # Semesters

    def list_semesters(self, uid: str) -> List[Semester]:
        docs = self._list_all(
            self.semesters_collection_id,
            [
                Query.equal("user_id", [uid]),
                Query.order_desc("created_at"),
            ],
        )
        return [self._to_semester(doc) for doc in docs]

    def create_semester(self, uid: str, name: str) -> Semester:
        doc = self._create_document(
            self.semesters_collection_id,
            {
                "user_id": uid,
                "name": name,
                "created_at": self._now_iso(),
            },
        )
        if not doc:
            raise AppwriteServiceError("Failed to create semester. No data returned from the database.")
        return self._to_semester(doc)

    def _owned_semester(self, uid: str, semester_id: str) -> Optional[Dict]:
        return self._find_first(
            self.semesters_collection_id,
            [
                Query.equal("$id", [semester_id]),
                Query.equal("user_id", [uid]),
            ],
        )

    def update_semester(self, uid: str, semester_id: str, name: str) -> None:
        if not self._owned_semester(uid, semester_id):
            raise AppwriteServiceError(
                "Update failed: The semester was not found or you don't have permission to edit it."
            )
        self._update_document(self.semesters_collection_id, semester_id, {"name": name})

    def delete_semester(self, uid: str, semester_id: str) -> None:
        if not self._owned_semester(uid, semester_id):
            return
        for course in self.list_courses(uid, semester_id):
            self._delete_document(self.courses_collection_id, course.id)
        self._delete_document(self.semesters_collection_id, semester_id)

    # Courses

    def list_courses(self, uid: str, semester_id: str) -> List[Course]:
        return self.list_courses_for_semesters(uid, [semester_id])

    def list_courses_for_semesters(self, uid: str, semester_ids: Sequence[str]) -> List[Course]:
        if not semester_ids:
            return []
        docs = self._list_all(
            self.courses_collection_id,
            [
                Query.equal("user_id", [uid]),
                Query.equal("semester_id", list(semester_ids)),
                Query.order_asc("created_at"),
            ],
        )
        return [self._to_course(doc) for doc in docs]

    def create_course(self, uid: str, semester_id: str, *, name: str, credit_hours: float, grade: str) -> Course:
        doc = self._create_document(
            self.courses_collection_id,
            {
                "user_id": uid,
                "semester_id": semester_id,
                "name": name,
                "credit_hours": credit_hours,
                "grade": grade,
                "created_at": self._now_iso(),
            },
        )
        return self._to_course(doc)

    def _owned_course(self, uid: str, course_id: str) -> Optional[Dict]:
        return self._find_first(
            self.courses_collection_id,
            [
                Query.equal("$id", [course_id]),
                Query.equal("user_id", [uid]),
            ],
        )

    def update_course(
        self,
        uid: str,
        course_id: str,
        *,
        name: Optional[str] = None,
        credit_hours: Optional[float] = None,
        grade: Optional[str] = None,
    ) -> None:
        data: Dict = {}
        if name:
            data["name"] = name
        if credit_hours is not None:
            data["credit_hours"] = credit_hours
        if grade:
            data["grade"] = grade
        if not data:
            return
        if not self._owned_course(uid, course_id):
            raise AppwriteServiceError("Course not found.")
        self._update_document(self.courses_collection_id, course_id, data)

    def delete_course(self, uid: str, course_id: str) -> None:
        if not self._owned_course(uid, course_id):
            return
        self._delete_document(self.courses_collection_id, course_id)

    def load_semesters(self, uid: str, points: Dict[str, float]) -> List[Semester]:
        semesters = self.list_semesters(uid)
        if not semesters:
            return []

        courses = self.list_courses_for_semesters(uid, [semester.id for semester in semesters])
        by_semester: Dict[str, List[Course]] = {semester.id: [] for semester in semesters}
        for course in courses:
            if course.semester_id in by_semester:
                by_semester[course.semester_id].append(course)

        for semester in semesters:
            semester.courses = by_semester[semester.id]
            semester.refresh_gpa(points)

        mismatched = unknown_grades(courses, points)
        if mismatched:
            logger.warning("Grades %s are not in the active scale and count as 0 points", mismatched)
        return semesters

    # Goal

    def get_goal(self, uid: str) -> Optional[GoalData]:
        doc = self._get_optional(self.goals_collection_id, uid)
        if not doc:
            return None
        return GoalData(target_cgpa=float(doc.get("target_cgpa", 0)))

    def upsert_goal(self, uid: str, target_cgpa: float) -> None:
        data = {"target_cgpa": target_cgpa, "updated_at": self._now_iso()}
        if self._get_optional(self.goals_collection_id, uid):
            self._update_document(self.goals_collection_id, uid, data)
            return
        self._create_document(self.goals_collection_id, {"user_id": uid, **data}, document_id=uid)

    def delete_goal(self, uid: str) -> None:
        if not self._get_optional(self.goals_collection_id, uid):
            return
        self._delete_document(self.goals_collection_id, uid)
