# alea/store.py
"""
Document store on top of SQLAlchemy.

Documents are JSON objects addressed by slash-separated paths
(``courses/<id>/modules/<day>``). The store offers get/set/update/delete,
atomic multi-document transactions, numeric increments and live
subscriptions to a collection.
"""
import logging
import threading
import uuid
from collections import defaultdict
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, sessionmaker

from .models import DocumentRecord

logger = logging.getLogger(__name__)

Listener = Callable[[List[Dict[str, Any]]], None]


class DocumentNotFound(LookupError):
    def __init__(self, path: str):
        super().__init__(f"Document not found: {path}")
        self.path = path


class Increment:
    """Field transform: add ``amount`` to the stored number (missing counts as 0)."""

    def __init__(self, amount: int = 1):
        self.amount = amount

    def __repr__(self):
        return f"Increment({self.amount})"


def split_path(path: str) -> Tuple[str, str]:
    parts = [p for p in path.strip("/").split("/") if p]
    if len(parts) < 2 or len(parts) % 2:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(parts[:-1]), parts[-1]


def _collection(path: str) -> str:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts or len(parts) % 2 == 0:
        raise ValueError(f"Not a collection path: {path!r}")
    return "/".join(parts)


def encode(value: Any) -> Any:
    """Make a value JSON-safe; datetimes become ISO-8601 strings."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode(v) for v in value]
    return value


def _apply(base: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in fields.items():
        if isinstance(value, Increment):
            base[key] = (base.get(key) or 0) + value.amount
        else:
            base[key] = encode(value)
    return base


def _sort_key(value: Any):
    return (value is not None, value if value is not None else "")


def _query(
    docs: List[Dict[str, Any]],
    where: Optional[Dict[str, Any]] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
    start_after: Optional[str] = None,
) -> List[Dict[str, Any]]:
    if where:
        docs = [d for d in docs if all(d.get(k) == encode(v) for k, v in where.items())]
    if order_by:
        docs.sort(key=lambda d: _sort_key(d.get(order_by)), reverse=descending)
    if start_after is not None:
        ids = [d["id"] for d in docs]
        docs = docs[ids.index(start_after) + 1:] if start_after in ids else []
    if limit is not None:
        docs = docs[:limit]
    return docs


class WriteBatch:
    """Reads and writes inside one store transaction; writes commit together."""

    def __init__(self, session: Session):
        self._session = session
        self.touched = set()

    def _row(self, collection: str, doc_id: str) -> Optional[DocumentRecord]:
        stmt = (
            select(DocumentRecord)
            .where(DocumentRecord.collection == collection, DocumentRecord.doc_id == doc_id)
            .with_for_update()
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        row = self._row(*split_path(path))
        return dict(row.data) if row is not None else None

    def set(self, path: str, data: Dict[str, Any], merge: bool = False):
        collection, doc_id = split_path(path)
        row = self._row(collection, doc_id)
        if row is None:
            self._session.add(DocumentRecord(collection=collection, doc_id=doc_id, data=_apply({}, data)))
        else:
            base = dict(row.data) if merge else {}
            row.data = _apply(base, data)
        self.touched.add(collection)

    def update(self, path: str, fields: Dict[str, Any]):
        collection, doc_id = split_path(path)
        row = self._row(collection, doc_id)
        if row is None:
            raise DocumentNotFound(path)
        row.data = _apply(dict(row.data), fields)
        self.touched.add(collection)

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(f"{_collection(collection)}/{doc_id}", data)
        return doc_id

    def delete(self, path: str):
        collection, doc_id = split_path(path)
        row = self._row(collection, doc_id)
        if row is not None:
            self._session.delete(row)
            self.touched.add(collection)

    def list(self, collection: str, **query) -> List[Dict[str, Any]]:
        stmt = (
            select(DocumentRecord)
            .where(DocumentRecord.collection == _collection(collection))
            .order_by(DocumentRecord.id)
        )
        rows = self._session.execute(stmt).scalars().all()
        return _query([{"id": r.doc_id, **r.data} for r in rows], **query)

    def collection_group(self, name: str) -> List[Tuple[str, Dict[str, Any]]]:
        """All documents of every collection whose last segment is ``name``."""
        stmt = select(DocumentRecord).where(
            or_(DocumentRecord.collection == name, DocumentRecord.collection.like(f"%/{name}"))
        )
        rows = self._session.execute(stmt).scalars().all()
        return [(r.path, dict(r.data)) for r in rows if r.collection.split("/")[-1] == name]


class _Subscription:
    def __init__(self, callback: Listener, order_by: Optional[str], descending: bool):
        self.callback = callback
        self.order_by = order_by
        self.descending = descending


class DocumentStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        # Serialises transactions so read-modify-write sequences are atomic
        self._lock = threading.RLock()
        self._listeners: Dict[str, List[_Subscription]] = defaultdict(list)
        self._listeners_lock = threading.Lock()

    @contextmanager
    def transaction(self) -> Iterator[WriteBatch]:
        """All writes made through the yielded batch commit atomically on exit."""
        with self._lock:
            session = self._session_factory()
            batch = WriteBatch(session)
            try:
                yield batch
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
        self._notify(batch.touched)

    batch = transaction

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        with self.transaction() as txn:
            return txn.get(path)

    def set(self, path: str, data: Dict[str, Any], merge: bool = False):
        with self.transaction() as txn:
            txn.set(path, data, merge=merge)

    def update(self, path: str, fields: Dict[str, Any]):
        with self.transaction() as txn:
            txn.update(path, fields)

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        with self.transaction() as txn:
            return txn.add(collection, data)

    def delete(self, path: str):
        with self.transaction() as txn:
            txn.delete(path)

    def list(self, collection: str, **query) -> List[Dict[str, Any]]:
        with self.transaction() as txn:
            return txn.list(collection, **query)

    def collection_group(self, name: str) -> List[Tuple[str, Dict[str, Any]]]:
        with self.transaction() as txn:
            return txn.collection_group(name)

    def subscribe(
        self,
        collection: str,
        callback: Listener,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Callable[[], None]:
        """
        Call ``callback`` with the full (ordered) collection now and after
        every committed change to it. Returns the unsubscribe function.
        """
        collection = _collection(collection)
        subscription = _Subscription(callback, order_by, descending)
        with self._listeners_lock:
            self._listeners[collection].append(subscription)
        callback(self.list(collection, order_by=order_by, descending=descending))

        def unsubscribe():
            with self._listeners_lock:
                self._listeners[collection] = [
                    s for s in self._listeners[collection] if s is not subscription
                ]

        return unsubscribe

    def _notify(self, collections):
        for collection in collections:
            with self._listeners_lock:
                subscriptions = list(self._listeners.get(collection, ()))
            for subscription in subscriptions:
                try:
                    snapshot = self.list(
                        collection,
                        order_by=subscription.order_by,
                        descending=subscription.descending,
                    )
                    subscription.callback(snapshot)
                except Exception:
                    logger.exception("Listener on %s failed", collection)
