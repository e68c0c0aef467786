# core/user_feed.py

from threading import Lock
from typing import Callable, List, Optional

from pydantic import ValidationError

from core.config import settings
from core.logging_config import get_logger
from models.user import UserRecord


logger = get_logger("user_feed")

FeedListener = Callable[[List[UserRecord]], None]


class UserListFeed:
    """
    Live user list kept in step with the store's snapshot pushes.

    Every push replaces the whole list: the most recent snapshot wins.
    After close() further pushes are ignored.
    """

    def __init__(self, store, collection: Optional[str] = None):
        self._store = store
        self._collection = collection or settings.USERS_TABLE
        self._users: List[UserRecord] = []
        self._listeners: List[FeedListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._closed = False
        self._lock = Lock()

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None and not self._closed

    @property
    def users(self) -> List[UserRecord]:
        with self._lock:
            return list(self._users)

    def open(self):
        if self._unsubscribe is not None:
            return
        self._closed = False
        self._unsubscribe = self._store.subscribe(self._collection, self._on_snapshot)
        logger.info(f"User feed opened on {self._collection}")

    def on_change(self, listener: FeedListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _on_snapshot(self, rows: List[dict]):
        if self._closed:
            return

        users = []
        for row in rows:
            try:
                users.append(UserRecord(**{**row, "id": str(row.get("id"))}))
            except ValidationError as e:
                logger.warning(f"Skipping malformed user row {row.get('id')}: {e.error_count()} errors")

        with self._lock:
            self._users = users

        for listener in list(self._listeners):
            try:
                listener(list(users))
            except Exception:
                logger.exception("User feed listener failed")

    def close(self):
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info(f"User feed on {self._collection} closed")
