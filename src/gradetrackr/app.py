import base64
import binascii
from dataclasses import asdict
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from gradetrackr.config.logging_config import configure_logging
from gradetrackr.config.settings import settings
from gradetrackr.core.goal import goal_progress
from gradetrackr.core.gpa import CourseResult, calculate_cgpa, calculate_projected_cgpa, total_credits
from gradetrackr.core.models import ScannedCourse
from gradetrackr.core.scales import GradingScale, grade_definitions, grade_points, max_points, parse_scale
from gradetrackr.core.validation import (
    ValidationError,
    importable_courses,
    validate_course,
    validate_course_update,
    validate_new_password,
    validate_projection_inputs,
    validate_semester_name,
    validate_target_cgpa,
)
from gradetrackr.services.appwrite_service import AppwriteService, AppwriteServiceError
from gradetrackr.services.auth_service import AppwriteAuthService, AuthServiceError
from gradetrackr.services.feedback_service import Cooldown, FeedbackService, FeedbackServiceError
from gradetrackr.services.functions_service import FunctionServiceError
from gradetrackr.services.scan_service import ScanService, ScanServiceError


configure_logging()

app = FastAPI(title="GradeTrackr API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_origin_regex=settings.cors_allow_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_feedback_cooldowns: Dict[str, Cooldown] = {}


class AuthPayload(BaseModel):
    email: str
    password: str
    name: Optional[str] = None


class RecoveryRequestPayload(BaseModel):
    email: str
    url: str = ""


class RecoveryCompletePayload(BaseModel):
    user_id: str
    secret: str
    password: str
    confirm_password: str


class ScalePayload(BaseModel):
    grading_scale: str


class ScannedCoursePayload(BaseModel):
    name: Optional[str] = None
    credit_hours: Optional[float] = None
    grade: Optional[str] = None


class SemesterPayload(BaseModel):
    name: str
    courses: List[ScannedCoursePayload] = Field(default_factory=list)


class SemesterRenamePayload(BaseModel):
    name: str


class CoursePayload(BaseModel):
    name: str
    credit_hours: float
    grade: str


class CourseUpdatePayload(BaseModel):
    name: Optional[str] = None
    credit_hours: Optional[float] = None
    grade: Optional[str] = None


class GoalPayload(BaseModel):
    target_cgpa: float


class HypotheticalPayload(BaseModel):
    name: str = ""
    credit_hours: float = 3.0
    grade: str


class WhatIfPayload(BaseModel):
    current_cgpa: float
    current_credits: float
    courses: List[HypotheticalPayload] = Field(default_factory=list)


class ScanPayload(BaseModel):
    image: str
    mime_type: str = ""


class FeedbackPayload(BaseModel):
    subject: str
    suggestion: str
    name: str = ""
    email: str = ""


def get_db() -> AppwriteService:
    try:
        return AppwriteService.from_settings()
    except AppwriteServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def get_auth() -> AppwriteAuthService:
    try:
        return AppwriteAuthService.from_settings()
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def get_scanner() -> ScanService:
    try:
        return ScanService.from_settings()
    except FunctionServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def get_feedback() -> FeedbackService:
    try:
        return FeedbackService.from_settings()
    except FunctionServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def _cooldown_for(uid: str) -> Cooldown:
    for key in [key for key, cooldown in _feedback_cooldowns.items() if not cooldown.active]:
        del _feedback_cooldowns[key]
    return _feedback_cooldowns.setdefault(uid, Cooldown())


def _required_uid(x_user_id: Optional[str]) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing x-user-id header")
    return x_user_id


def _invalid(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors)


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/auth/signup")
def sign_up(
    payload: AuthPayload,
    auth: AppwriteAuthService = Depends(get_auth),
    db: AppwriteService = Depends(get_db),
) -> Dict:
    try:
        result = auth.sign_up(payload.email, payload.password, payload.name)
        db.ensure_user_profile(result.uid, result.email)
        return asdict(result)
    except AuthServiceError as exc:
        raise _bad_request(exc) from exc
    except AppwriteServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@app.post("/auth/login")
def login(payload: AuthPayload, auth: AppwriteAuthService = Depends(get_auth)) -> Dict:
    try:
        return asdict(auth.sign_in(payload.email, payload.password))
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


@app.post("/auth/recovery")
def request_recovery(payload: RecoveryRequestPayload, auth: AppwriteAuthService = Depends(get_auth)) -> Dict[str, str]:
    try:
        auth.request_password_reset(payload.email, payload.url)
        return {"status": "sent"}
    except AuthServiceError as exc:
        raise _bad_request(exc) from exc


@app.put("/auth/recovery")
def complete_recovery(payload: RecoveryCompletePayload, auth: AppwriteAuthService = Depends(get_auth)) -> Dict[str, str]:
    try:
        password = validate_new_password(payload.password, payload.confirm_password)
    except ValidationError as exc:
        raise _invalid(exc) from exc
    try:
        auth.complete_password_reset(payload.user_id, payload.secret, password)
        return {"status": "updated"}
    except AuthServiceError as exc:
        raise _bad_request(exc) from exc


@app.get("/scales")
def list_scales() -> Dict[str, List[Dict]]:
    return {scale.value: [asdict(definition) for definition in grade_definitions(scale)] for scale in GradingScale}


@app.get("/profile/scale")
def get_scale(x_user_id: Optional[str] = Header(default=None), db: AppwriteService = Depends(get_db)) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        scale = db.get_grading_scale(uid)
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc
    return {"grading_scale": scale.value, "max_cgpa": max_points(scale)}


@app.put("/profile/scale")
def set_scale(
    payload: ScalePayload,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        scale = parse_scale(payload.grading_scale)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    try:
        db.set_grading_scale(uid, scale)
        return {"grading_scale": scale.value}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.get("/semesters")
def list_semesters(x_user_id: Optional[str] = Header(default=None), db: AppwriteService = Depends(get_db)) -> List[Dict]:
    uid = _required_uid(x_user_id)
    try:
        scale = db.get_grading_scale(uid)
        return [asdict(semester) for semester in db.load_semesters(uid, grade_points(scale))]
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.post("/semesters")
def create_semester(
    payload: SemesterPayload,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        name = validate_semester_name(payload.name)
    except ValidationError as exc:
        raise _invalid(exc) from exc

    scanned = [ScannedCourse(**course.model_dump()) for course in payload.courses]
    try:
        scale = db.get_grading_scale(uid)
        imports = importable_courses(scanned, scale)
        semester = db.create_semester(uid, name)
        for course_name, credits, grade in imports:
            db.create_course(uid, semester.id, name=course_name, credit_hours=credits, grade=grade)
        if imports:
            semester.courses = db.list_courses(uid, semester.id)
        semester.refresh_gpa(grade_points(scale))
        return {**asdict(semester), "imported": len(imports)}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.patch("/semesters/{semester_id}")
def rename_semester(
    semester_id: str,
    payload: SemesterRenamePayload,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        name = validate_semester_name(payload.name)
    except ValidationError as exc:
        raise _invalid(exc) from exc
    try:
        db.update_semester(uid, semester_id, name)
        return {"status": "updated"}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.delete("/semesters/{semester_id}")
def delete_semester(
    semester_id: str,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        db.delete_semester(uid, semester_id)
        return {"status": "deleted"}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.get("/semesters/{semester_id}/courses")
def list_courses(
    semester_id: str,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> List[Dict]:
    uid = _required_uid(x_user_id)
    try:
        return [asdict(course) for course in db.list_courses(uid, semester_id)]
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.post("/semesters/{semester_id}/courses")
def create_course(
    semester_id: str,
    payload: CoursePayload,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        scale = db.get_grading_scale(uid)
        try:
            name, credits, grade = validate_course(payload.name, payload.credit_hours, payload.grade, scale)
        except ValidationError as exc:
            raise _invalid(exc) from exc
        course = db.create_course(uid, semester_id, name=name, credit_hours=credits, grade=grade)
        return asdict(course)
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.patch("/courses/{course_id}")
def update_course(
    course_id: str,
    payload: CourseUpdatePayload,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        scale = db.get_grading_scale(uid)
        try:
            fields = validate_course_update(payload.model_dump(exclude_none=True), scale)
        except ValidationError as exc:
            raise _invalid(exc) from exc
        db.update_course(uid, course_id, **fields)
        return {"status": "updated"}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.delete("/courses/{course_id}")
def delete_course(
    course_id: str,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        db.delete_course(uid, course_id)
        return {"status": "deleted"}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.get("/goal")
def get_goal(x_user_id: Optional[str] = Header(default=None), db: AppwriteService = Depends(get_db)) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        goal = db.get_goal(uid)
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc
    return {"target_cgpa": goal.target_cgpa if goal else None}


@app.put("/goal")
def save_goal(
    payload: GoalPayload,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        scale = db.get_grading_scale(uid)
        try:
            target = validate_target_cgpa(payload.target_cgpa, scale)
        except ValidationError as exc:
            raise _invalid(exc) from exc
        db.upsert_goal(uid, target)
        return {"target_cgpa": target}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.delete("/goal")
def delete_goal(x_user_id: Optional[str] = Header(default=None), db: AppwriteService = Depends(get_db)) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    try:
        db.delete_goal(uid)
        return {"status": "deleted"}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.get("/summary")
def summary(x_user_id: Optional[str] = Header(default=None), db: AppwriteService = Depends(get_db)) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        scale = db.get_grading_scale(uid)
        points = grade_points(scale)
        semesters = db.load_semesters(uid, points)
        goal = db.get_goal(uid)
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc

    cgpa = calculate_cgpa(semesters, points)
    return {
        "grading_scale": scale.value,
        "cgpa": cgpa,
        "total_credits": total_credits(semesters),
        "semesters": [{"id": s.id, "name": s.name, "gpa": s.gpa, "credits": s.total_credits} for s in semesters],
        "goal": asdict(goal_progress(cgpa, goal.target_cgpa)) if goal else None,
    }


@app.post("/what-if")
def what_if(
    payload: WhatIfPayload,
    x_user_id: Optional[str] = Header(default=None),
    db: AppwriteService = Depends(get_db),
) -> Dict:
    uid = _required_uid(x_user_id)
    try:
        scale = db.get_grading_scale(uid)
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc
    try:
        cgpa, credits = validate_projection_inputs(payload.current_cgpa, payload.current_credits, scale)
    except ValidationError as exc:
        raise _invalid(exc) from exc

    courses = [CourseResult(grade=c.grade, credit_hours=c.credit_hours) for c in payload.courses]
    projected = calculate_projected_cgpa(cgpa, credits, courses, grade_points(scale))
    new_credits = sum(c.credit_hours for c in courses)
    return {
        "current_cgpa": cgpa,
        "projected_cgpa": projected,
        "difference": projected - cgpa,
        "new_credits": new_credits,
        "total_credits": credits + new_credits,
    }


@app.post("/scan")
def scan(
    payload: ScanPayload,
    x_user_id: Optional[str] = Header(default=None),
    scanner: ScanService = Depends(get_scanner),
) -> Dict:
    _required_uid(x_user_id)
    image, mime_type = payload.image, payload.mime_type
    if image.startswith("data:") and "," in image:
        header, image = image.split(",", 1)
        mime_type = mime_type or header[len("data:"):].split(";", 1)[0]
    try:
        data = base64.b64decode(image, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image must be base64 encoded") from exc

    try:
        courses = scanner.scan_image(data, mime_type)
    except ScanServiceError as exc:
        raise _bad_request(exc) from exc
    return {"courses": [asdict(course) for course in courses]}


@app.post("/feedback")
def feedback(
    payload: FeedbackPayload,
    x_user_id: Optional[str] = Header(default=None),
    service: FeedbackService = Depends(get_feedback),
) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    service.cooldown = _cooldown_for(uid)
    try:
        service.submit(payload.subject, payload.suggestion, payload.name, payload.email)
    except ValidationError as exc:
        raise _invalid(exc) from exc
    except FeedbackServiceError as exc:
        code = status.HTTP_429_TOO_MANY_REQUESTS if service.cooldown.active else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=str(exc)) from exc
    return {"status": "sent"}
