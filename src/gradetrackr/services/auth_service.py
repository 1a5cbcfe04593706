from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional
import requests
from requests import RequestException

from gradetrackr.config.settings import settings


logger = logging.getLogger(__name__)

UNAVAILABLE = "AUTH_SERVICE_UNAVAILABLE"


class AuthServiceError(Exception):
    pass


@dataclass
class AuthResult:
    uid: str
    email: str
    session_secret: str
    session_id: str

    @classmethod
    def from_session(cls, session: Dict[str, Any], email: str) -> "AuthResult":
        if not session.get("userId"):
            raise AuthServiceError("INVALID_APPWRITE_SESSION")
        return cls(
            uid=str(session["userId"]),
            email=email,
            session_secret=str(session.get("secret") or ""),
            session_id=str(session.get("$id") or ""),
        )


class AppwriteAuthService:
    """Appwrite account endpoints, called over REST with the project header only."""

    ACCOUNT_PATH = "/account"
    SESSION_PATH = "/account/sessions/email"
    RECOVERY_PATH = "/account/recovery"

    def __init__(self, endpoint: str, project_id: str, timeout: float = 15) -> None:
        if not endpoint:
            raise AuthServiceError("Missing APPWRITE_ENDPOINT in environment")
        if not project_id:
            raise AuthServiceError("Missing APPWRITE_PROJECT_ID in environment")
        self.base_url = endpoint.rstrip("/")
        self.headers = {
            "X-Appwrite-Project": project_id,
            "Content-Type": "application/json",
        }
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "AppwriteAuthService":
        return cls(settings.appwrite_endpoint, settings.appwrite_project_id)

    def sign_up(self, email: str, password: str, name: Optional[str] = None) -> AuthResult:
        account = {"userId": "unique()", "email": email, "password": password}
        display_name = (name or "").strip()
        if display_name:
            account["name"] = display_name
        self._call("POST", self.ACCOUNT_PATH, account)
        return self.sign_in(email, password)

    def sign_in(self, email: str, password: str) -> AuthResult:
        session = self._call("POST", self.SESSION_PATH, {"email": email, "password": password})
        return AuthResult.from_session(session, email)

    def request_password_reset(self, email: str, redirect_url: str = "") -> None:
        self._call(
            "POST",
            self.RECOVERY_PATH,
            {"email": email, "url": redirect_url or settings.password_reset_url},
        )

    def complete_password_reset(self, user_id: str, secret: str, password: str) -> None:
        self._call(
            "PUT",
            self.RECOVERY_PATH,
            {"userId": user_id, "secret": secret, "password": password},
        )

    def _call(self, method: str, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = requests.request(
                method,
                self.base_url + path,
                headers=self.headers,
                json=body,
                timeout=self.timeout,
            )
            data = response.json()
        except RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise AuthServiceError(UNAVAILABLE) from exc
        except ValueError as exc:
            logger.error("%s %s returned a non-JSON body", method, path)
            raise AuthServiceError(UNAVAILABLE) from exc

        if response.status_code >= 400:
            reason = str(data.get("message") or data.get("type") or "AUTH_ERROR")
            logger.info("%s %s rejected: %s", method, path, reason)
            raise AuthServiceError(reason)
        return data
