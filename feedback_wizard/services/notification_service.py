"""User-facing submission notices"""
from typing import Dict, List, Literal
import logging

logger = logging.getLogger(__name__)

NoticeKind = Literal["success", "error"]


class NotificationSink:
    """Receives user-facing status messages; never used for control flow"""

    def notify(self, kind: NoticeKind, message: str) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    def notify(self, kind: NoticeKind, message: str) -> None:
        logger.info(f"[{kind}] {message}")


class SessionNotificationSink(NotificationSink):
    """Queues notices on a wizard session until the client reads them"""

    def __init__(self):
        self._pending: List[Dict[str, str]] = []

    def notify(self, kind: NoticeKind, message: str) -> None:
        self._pending.append({"kind": kind, "message": message})

    def drain(self) -> List[Dict[str, str]]:
        pending, self._pending = self._pending, []
        return pending


def notify_safely(sink: NotificationSink, kind: NoticeKind, message: str) -> None:
    """Fire-and-forget delivery: a broken sink is logged, never raised"""
    try:
        sink.notify(kind, message)
    except Exception as e:
        logger.error(f"Notification delivery failed: {e}")
