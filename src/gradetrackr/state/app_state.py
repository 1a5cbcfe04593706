from dataclasses import dataclass, field
from typing import Optional

from gradetrackr.state.session_state import SessionState
from gradetrackr.state.tracker_state import TrackerState


@dataclass
class AppState:
    session: SessionState = field(default_factory=SessionState)
    tracker: Optional[TrackerState] = None

    def sign_out(self) -> None:
        self.session.clear()
        self.tracker = None


app_state = AppState()
