"""
Per-user notification channel.

Asynchronous write failures end up here instead of being raised to the
caller. Clients drain pending notifications over REST or listen over the
notifications WebSocket.
"""
import threading
import uuid
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, Dict, List

from database.models import utcnow, isoformat
from core.logger import logger


@dataclass
class Notification:
    """A discrete, user-facing message."""
    user_id: str
    level: str  # "info" | "success" | "error"
    title: str
    description: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "level": self.level,
            "title": self.title,
            "description": self.description,
            "createdAt": isoformat(self.created_at),
        }


class NotificationCenter:
    """Bounded per-user backlog plus live listeners."""

    def __init__(self, backlog: int = 50):
        self.backlog = backlog
        self._pending: Dict[str, Deque[Notification]] = defaultdict(lambda: deque(maxlen=self.backlog))
        self._listeners: Dict[str, Dict[int, Callable[[Notification], None]]] = defaultdict(dict)
        self._next_listener = 0
        self._lock = threading.Lock()

    def notify(self, user_id: str, level: str, title: str, description: str = "") -> Notification:
        notification = Notification(user_id=user_id, level=level, title=title, description=description)
        with self._lock:
            listeners = list(self._listeners.get(user_id, {}).values())
            if not listeners:
                self._pending[user_id].append(notification)

        for listener in listeners:
            try:
                listener(notification)
            except Exception as e:
                logger.warning(f"Notification listener for user {user_id} failed: {e}")
        return notification

    def drain(self, user_id: str) -> List[Notification]:
        """Return and clear pending notifications for a user, oldest first."""
        with self._lock:
            pending = self._pending.pop(user_id, None)
        return list(pending) if pending else []

    def listen(self, user_id: str, callback: Callable[[Notification], None]) -> int:
        """Deliver the backlog to callback, then every new notification until unlisten."""
        with self._lock:
            self._next_listener += 1
            token = self._next_listener
            self._listeners[user_id][token] = callback
            pending = self._pending.pop(user_id, None)
        for notification in pending or []:
            callback(notification)
        return token

    def unlisten(self, user_id: str, token: int) -> None:
        with self._lock:
            listeners = self._listeners.get(user_id)
            if listeners is not None:
                listeners.pop(token, None)
                if not listeners:
                    del self._listeners[user_id]
