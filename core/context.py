"""
Application context: the runtime collaborators every operation needs.

Built once at startup (see app.lifespan) and stored on `app.state.ctx`;
request handlers get it through `auth.dependencies.get_context`.
"""
from database.connection import Database
from services.live_updates import LiveQueryHub
from services.notifications import NotificationCenter
from services.write_dispatcher import WriteDispatcher
import config


class AppContext:
    """Database, live hub, notification center and write dispatcher."""

    def __init__(self, db: Database, notification_backlog: int = 50):
        self.db = db
        self.live = LiveQueryHub()
        self.notifications = NotificationCenter(backlog=notification_backlog)
        self.writer = WriteDispatcher(db, self.live, self.notifications)

    @classmethod
    def from_config(cls) -> "AppContext":
        db = Database(
            database_url=config.DATABASE_URL,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW
        )
        return cls(db, notification_backlog=config.NOTIFICATION_BACKLOG)
