from dataclasses import dataclass
import os
from dotenv import load_dotenv


load_dotenv()


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    appwrite_endpoint: str = os.getenv("APPWRITE_ENDPOINT", "")
    appwrite_project_id: str = os.getenv("APPWRITE_PROJECT_ID", "")
    appwrite_api_key: str = os.getenv("APPWRITE_API_KEY") or os.getenv("APPWRITE_FUNCTION_API_KEY", "")
    appwrite_database_id: str = os.getenv("APPWRITE_DATABASE_ID", "")

    appwrite_profiles_collection_id: str = os.getenv("APPWRITE_PROFILES_COLLECTION_ID", "profiles")
    appwrite_semesters_collection_id: str = os.getenv("APPWRITE_SEMESTERS_COLLECTION_ID", "semesters")
    appwrite_courses_collection_id: str = os.getenv("APPWRITE_COURSES_COLLECTION_ID", "courses")
    appwrite_goals_collection_id: str = os.getenv("APPWRITE_GOALS_COLLECTION_ID", "goals")

    appwrite_scan_function_id: str = os.getenv("APPWRITE_SCAN_FUNCTION_ID", "image-parse")
    appwrite_feedback_function_id: str = os.getenv("APPWRITE_FEEDBACK_FUNCTION_ID", "send-suggestion-ack")

    password_reset_url: str = os.getenv("PASSWORD_RESET_URL", "http://localhost:8550/update-password")

    cors_allowed_origins: tuple[str, ...] = _split_csv(
        os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    )
    cors_allow_origin_regex: str = os.getenv(
        "CORS_ALLOW_ORIGIN_REGEX",
        r"^https?:\/\/(localhost|127\.0\.0\.1)(:\d+)?$",
    )

    log_level: str = os.getenv("GRADETRACKR_LOG_LEVEL", "INFO")


settings = Settings()
