"""In-memory wizard sessions"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import logging
import uuid

from feedback_wizard.services.notification_service import SessionNotificationSink
from feedback_wizard.services.wizard import WizardState, WizardStateMachine

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WizardSession:
    id: str
    state: WizardState
    notifications: SessionNotificationSink = field(default_factory=SessionNotificationSink)
    # set while Persist/Analyze are running; the router rejects every action meanwhile
    in_flight: bool = False
    last_seen_at: datetime = field(default_factory=_now)


class WizardSessionStore:
    """
    Holds wizard sessions between requests.

    Sessions idle for longer than ``ttl`` are evicted on the next create/get,
    unless a submission is running for them. ``ttl=None`` keeps sessions until
    they are discarded.
    """

    def __init__(self, ttl: Optional[timedelta] = None):
        self.ttl = ttl
        self._sessions: Dict[str, WizardSession] = {}

    def create(self, machine: WizardStateMachine) -> WizardSession:
        self.evict_expired()
        session = WizardSession(id=uuid.uuid4().hex, state=machine.start())
        self._sessions[session.id] = session
        logger.info(f"Started wizard session {session.id}")
        return session

    def get(self, session_id: str) -> Optional[WizardSession]:
        self.evict_expired()
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen_at = _now()
        return session

    def discard(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def evict_expired(self) -> int:
        if self.ttl is None:
            return 0

        cutoff = _now() - self.ttl
        expired = [
            session_id for session_id, session in self._sessions.items()
            if session.last_seen_at < cutoff and not session.in_flight
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info(f"Evicted {len(expired)} idle wizard session(s)")
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
