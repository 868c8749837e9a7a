import time
from typing import Dict, Optional

from werkzeug.security import generate_password_hash, check_password_hash

from .errors import AuthError
from .models import Session, generate_session_id

SESSION_TTL_SEC = 24 * 60 * 60


class SessionRegistry:
    """In-memory table of host sessions, keyed by short session id."""

    def __init__(self, host_password: str, ttl_sec: int = SESSION_TTL_SEC):
        self._password_hash = generate_password_hash(host_password)
        self.ttl_sec = ttl_sec
        self._sessions: Dict[str, Session] = {}

    def __len__(self):
        return len(self._sessions)

    def __contains__(self, session_id):
        return session_id in self._sessions

    def check_password(self, secret) -> bool:
        return bool(secret) and check_password_hash(self._password_hash, secret)

    def create(self, secret, now: Optional[float] = None) -> str:
        if not self.check_password(secret):
            raise AuthError('Invalid host password')
        session_id = generate_session_id(taken=self)
        self._sessions[session_id] = Session.create(session_id, secret, now=now)
        return session_id

    def lookup(self, session_id) -> Optional[Session]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def sweep_expired(self, now: Optional[float] = None) -> int:
        """Drop sessions older than the TTL. Returns how many were removed."""
        now = time.time() if now is None else now
        expired = [sid for sid, s in self._sessions.items() if now - s.created_at > self.ttl_sec]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)
