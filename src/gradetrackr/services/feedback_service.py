import logging
import time
from typing import Callable, Optional

from gradetrackr.config.settings import settings
from gradetrackr.core.validation import validate_feedback
from gradetrackr.services.functions_service import FunctionServiceError, FunctionsService


logger = logging.getLogger(__name__)

COOLDOWN_SECONDS = 60


class FeedbackServiceError(Exception):
    pass


class Cooldown:
    """Local rate limit; holds no persistent state."""

    def __init__(self, seconds: float = COOLDOWN_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.seconds = seconds
        self.clock = clock
        self._started_at: Optional[float] = None

    @property
    def remaining(self) -> int:
        if self._started_at is None:
            return 0
        left = self.seconds - (self.clock() - self._started_at)
        return max(0, int(round(left)))

    @property
    def active(self) -> bool:
        return self.remaining > 0

    def start(self) -> None:
        self._started_at = self.clock()


class FeedbackService:
    def __init__(self, functions: FunctionsService, function_id: str, cooldown: Optional[Cooldown] = None) -> None:
        self.functions = functions
        self.function_id = function_id
        self.cooldown = cooldown or Cooldown()

    @classmethod
    def from_settings(cls) -> "FeedbackService":
        return cls(FunctionsService.from_settings(), settings.appwrite_feedback_function_id)

    def submit(self, subject: str, body: str, name: str, email: str) -> None:
        if self.cooldown.active:
            raise FeedbackServiceError(f"Please wait {self.cooldown.remaining}s before sending another suggestion.")

        subject, body = validate_feedback(subject, body)
        try:
            self.functions.execute(
                self.function_id,
                {
                    "email": email,
                    "name": name,
                    "subject": subject,
                    "suggestion": body,
                },
            )
        except FunctionServiceError as exc:
            raise FeedbackServiceError(str(exc) or "Failed to submit suggestion") from exc

        logger.info("Suggestion submitted by %s", email)
        self.cooldown.start()
