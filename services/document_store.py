# services/document_store.py

from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from core.errors import DataAccessFailure, data_access_failure
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import sanitize


SnapshotCallback = Callable[[List[dict]], None]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseDocumentStore:
    """
    Collection/record access over Supabase tables.

    subscribe() delivers full snapshots of a collection: one immediately,
    then one after every write made through this store (or an explicit
    refresh()). Each push is the complete list, never a diff.
    """

    def __init__(self, client_factory: Callable = get_supabase_client):
        self._client_factory = client_factory
        self._client = None
        self._subscribers: Dict[str, List[SnapshotCallback]] = {}
        self._lock = Lock()

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory()
            if self._client is None:
                raise DataAccessFailure("Document store", "Supabase client not configured")
        return self._client

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------
    def read(self, collection: str, record_id: str) -> Optional[dict]:
        try:
            result = (
                self.client.table(collection)
                .select("*")
                .eq("id", record_id)
                .limit(1)
                .execute()
            )
        except DataAccessFailure:
            raise
        except Exception as e:
            raise data_access_failure(e, f"Read {collection}/{record_id}") from e

        return result.data[0] if result.data else None

    def find_by(self, collection: str, field: str, value: Any) -> List[dict]:
        try:
            result = (
                self.client.table(collection)
                .select("*")
                .eq(field, value)
                .execute()
            )
        except DataAccessFailure:
            raise
        except Exception as e:
            raise data_access_failure(e, f"Query {collection} by {field}") from e

        return result.data or []

    def list(self, collection: str) -> List[dict]:
        try:
            result = (
                self.client.table(collection)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except DataAccessFailure:
            raise
        except Exception as e:
            raise data_access_failure(e, f"List {collection}") from e

        return result.data or []

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------
    def write(self, collection: str, record_id: str, record: dict) -> dict:
        """Create or replace a record."""
        data = sanitize({**record, "id": record_id})
        data.setdefault("created_at", _now())
        data["updated_at"] = _now()

        try:
            result = self.client.table(collection).upsert(data).execute()
        except DataAccessFailure:
            raise
        except Exception as e:
            raise data_access_failure(e, f"Write {collection}/{record_id}") from e

        self._publish(collection)
        return result.data[0] if result.data else data

    def update(self, collection: str, record_id: str, partial: dict) -> Optional[dict]:
        data = sanitize(partial)
        data["updated_at"] = _now()

        try:
            result = (
                self.client.table(collection)
                .update(data)
                .eq("id", record_id)
                .execute()
            )
        except DataAccessFailure:
            raise
        except Exception as e:
            raise data_access_failure(e, f"Update {collection}/{record_id}") from e

        self._publish(collection)
        return result.data[0] if result.data else None

    def delete(self, collection: str, record_id: str):
        try:
            self.client.table(collection).delete().eq("id", record_id).execute()
        except DataAccessFailure:
            raise
        except Exception as e:
            raise data_access_failure(e, f"Delete {collection}/{record_id}") from e

        self._publish(collection)

    # ------------------------------------------------------------
    # Snapshot subscriptions
    # ------------------------------------------------------------
    def subscribe(self, collection: str, callback: SnapshotCallback) -> Callable[[], None]:
        snapshot = self.list(collection)

        with self._lock:
            self._subscribers.setdefault(collection, []).append(callback)

        def unsubscribe():
            with self._lock:
                callbacks = self._subscribers.get(collection, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        callback(snapshot)
        return unsubscribe

    def refresh(self, collection: str):
        """Push a fresh snapshot, e.g. after changes made outside this store."""
        self._publish(collection)

    def _publish(self, collection: str):
        with self._lock:
            callbacks = list(self._subscribers.get(collection, []))
        if not callbacks:
            return

        try:
            snapshot = self.list(collection)
        except DataAccessFailure as e:
            # Subscribers keep their last snapshot; the write itself succeeded
            logger.warning(f"Snapshot push for {collection} skipped: {e.message}")
            return

        for callback in callbacks:
            try:
                callback(list(snapshot))
            except Exception:
                logger.exception(f"Snapshot subscriber for {collection} failed")


# ============================================================
# Shared instance
# ============================================================
_store: Optional[SupabaseDocumentStore] = None


def get_document_store() -> SupabaseDocumentStore:
    global _store
    if _store is None:
        _store = SupabaseDocumentStore()
    return _store
