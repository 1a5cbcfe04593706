import base64
import logging
from typing import Any, Dict, List, Optional

from gradetrackr.config.settings import settings
from gradetrackr.core.models import ScannedCourse
from gradetrackr.services.functions_service import FunctionServiceError, FunctionsService


logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
MAX_SCAN_BYTES = 4 * 1024 * 1024


class ScanServiceError(Exception):
    pass


def validate_image(data: bytes, mime_type: str) -> None:
    if len(data) > MAX_UPLOAD_BYTES:
        raise ScanServiceError("Image size should be less than 5MB")
    if not (mime_type or "").startswith("image/"):
        raise ScanServiceError("Please select a valid image file")


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_scanned(entry: Any) -> ScannedCourse:
    if not isinstance(entry, dict):
        return ScannedCourse()
    name = entry.get("name")
    grade = entry.get("grade")
    return ScannedCourse(
        name=str(name).strip() if name else None,
        credit_hours=_to_float(entry.get("creditHours", entry.get("credit_hours"))),
        grade=str(grade).strip().upper() if grade else None,
    )


class ScanService:
    def __init__(self, functions: FunctionsService, function_id: str) -> None:
        self.functions = functions
        self.function_id = function_id

    @classmethod
    def from_settings(cls) -> "ScanService":
        return cls(FunctionsService.from_settings(), settings.appwrite_scan_function_id)

    def scan_image(self, data: bytes, mime_type: str) -> List[ScannedCourse]:
        validate_image(data, mime_type)
        if len(data) > MAX_SCAN_BYTES:
            raise ScanServiceError("Image too large. Please use an image under 4MB.")

        encoded = base64.b64encode(data).decode("ascii")
        payload = {"image": f"data:{mime_type};base64,{encoded}"}
        try:
            response: Dict[str, Any] = self.functions.execute(self.function_id, payload)
        except FunctionServiceError as exc:
            raise ScanServiceError(str(exc) or "Failed to process image") from exc

        courses = response.get("courses")
        if not isinstance(courses, list):
            raise ScanServiceError("Invalid response from scanner")
        if not courses:
            raise ScanServiceError("No courses found in the image. Please try a clearer image.")

        logger.info("Scanner returned %d course rows", len(courses))
        return [_to_scanned(entry) for entry in courses]
