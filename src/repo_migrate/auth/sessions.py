"""In-process registry of caller sessions and their auth contexts."""

import threading
import uuid
from datetime import datetime, timedelta
from typing import Dict, Optional

from loguru import logger
from pydantic import BaseModel, Field

from ..models.auth import AuthContext


class Session(BaseModel):
    """Caller session."""

    id: str = Field(..., description='Session ID')
    user_id: Optional[str] = Field(default=None, description='User ID')
    user_login: Optional[str] = Field(default=None, description='User login')
    auth: Optional[AuthContext] = Field(default=None, description='Auth context')
    created_at: datetime = Field(..., description='Creation timestamp')
    expires_at: datetime = Field(..., description='Expiry timestamp')

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the session has expired."""
        return (now or datetime.now()) >= self.expires_at


class SessionRegistry:
    """Thread-safe map of session ID to session."""

    def __init__(self, timeout_minutes: int = 30):
        """Initialize session registry.

        Args:
            timeout_minutes: Session lifetime; non-positive values use 30
        """
        self.timeout = timedelta(minutes=timeout_minutes if timeout_minutes > 0 else 30)
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component='SessionRegistry')

    def create(
        self,
        user_login: Optional[str] = None,
        user_id: Optional[str] = None,
        auth: Optional[AuthContext] = None,
    ) -> Session:
        """Create and register a new session."""
        now = datetime.now()
        session = Session(
            id=str(uuid.uuid4()),
            user_id=user_id,
            user_login=user_login,
            auth=auth,
            created_at=now,
            expires_at=now + self.timeout,
        )
        with self._lock:
            self._sessions[session.id] = session
        self.logger.info(f'Created session {session.id} for {user_login}')
        return session.copy(deep=True)

    def get(self, session_id: str) -> Optional[Session]:
        """Return a copy of a live session, dropping it if expired."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if session.is_expired():
                del self._sessions[session_id]
                expired = True
            else:
                expired = False
                session = session.copy(deep=True)
        if expired:
            self.logger.debug(f'Session {session_id} expired')
            return None
        return session

    def update_auth(self, session_id: str, auth: AuthContext) -> bool:
        """Replace the auth context of a session.

        Returns:
            True if the session exists
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            session.auth = auth.copy(deep=True)
        return True

    def delete(self, session_id: str) -> bool:
        """Remove a session."""
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def purge_expired(self) -> int:
        """Remove every expired session.

        Returns:
            Number of sessions removed
        """
        now = datetime.now()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            self.logger.info(f'Purged {len(expired)} expired sessions')
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
