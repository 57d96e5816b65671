"""
Fire-and-forget writes.

Routers validate input and check preconditions synchronously, then hand the
actual write to `WriteDispatcher.run` as a background task. The write runs in
its own session; committed report versions are published to the live hub,
and failures are logged and sent to the initiating user's notification
channel. Failed writes are not retried.
"""
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from database.connection import Database
from services.live_updates import LiveQueryHub
from services.notifications import NotificationCenter
from core.logger import logger


# A write receives a session and returns the report records it changed (to publish)
WriteFn = Callable[[Session], Optional[Iterable[dict]]]


class WriteDispatcher:
    """Runs accepted writes and routes their outcome."""

    def __init__(self, db: Database, live: LiveQueryHub, notifications: NotificationCenter):
        self.db = db
        self.live = live
        self.notifications = notifications

    def run(self, user_id: str, action: str, write: WriteFn, failure_title: str) -> bool:
        """
        Execute one write.

        Args:
            user_id: User who initiated the write (receives failure notifications)
            action: Short name for logging (e.g. "report_create")
            write: Callable doing the work inside a session
            failure_title: Notification title shown to the user on failure

        Returns:
            True if the write committed
        """
        try:
            with self.db.get_session() as session:
                changed = list(write(session) or [])
        except Exception as e:
            logger.error(f"Write '{action}' for user {user_id} failed: {e}", exc_info=True)
            self.notifications.notify(
                user_id,
                "error",
                failure_title,
                "The change could not be saved. Please try again.",
            )
            return False

        for record in changed:
            self.live.publish(record)
        logger.info(f"Write '{action}' for user {user_id} committed ({len(changed)} report(s) published)")
        return True
