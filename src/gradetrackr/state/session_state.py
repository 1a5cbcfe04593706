from dataclasses import dataclass
from typing import Optional


@dataclass
class SessionState:
    uid: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    session_secret: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.uid and self.session_secret)

    def clear(self) -> None:
        self.uid = None
        self.email = None
        self.name = None
        self.session_secret = None
        self.session_id = None
