# alea/notifications.py
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from .schemas import Notification, NotificationStatus
from .store import DocumentStore, WriteBatch

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def notifications_path(user_id: str) -> str:
    return f"users/{user_id}/notifications"


def parse_notifications(docs: List[Dict]) -> List[Notification]:
    notifications = []
    for doc in docs:
        try:
            notifications.append(Notification.model_validate(doc))
        except ValidationError as e:
            logger.warning("Skipping malformed notification %s: %s", doc.get("id"), e)
    return notifications


class NotificationChannel:
    """
    Per-user job notifications.

    A notification is created as ``generating`` when a job starts and moves
    once to ``complete`` or ``failed``. Terminal notifications are never
    transitioned again.
    """

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def start(self, user_id: str, job_type: str, message: str, related_doc_id: Optional[str] = None,
              course_id: Optional[str] = None) -> str:
        data = {
            "message": message,
            "status": NotificationStatus.GENERATING.value,
            "type": job_type,
            "isRead": False,
            "createdAt": self.clock(),
        }
        if related_doc_id:
            data["relatedDocId"] = related_doc_id
        if course_id:
            data["courseId"] = course_id
        return self.store.add(notifications_path(user_id), data)

    def complete(self, txn: WriteBatch, user_id: str, notification_id: str, message: str,
                 job_type: str, related_doc_id: Optional[str] = None, link: Optional[str] = None,
                 course_id: Optional[str] = None) -> bool:
        """Mark complete inside ``txn`` so it commits with the job's artifact."""
        return self._finish(txn, user_id, notification_id, NotificationStatus.COMPLETE,
                            message, job_type, related_doc_id, link, course_id)

    def fail(self, user_id: str, notification_id: str, message: str,
             job_type: str, related_doc_id: Optional[str] = None, course_id: Optional[str] = None) -> bool:
        with self.store.transaction() as txn:
            return self._finish(txn, user_id, notification_id, NotificationStatus.FAILED,
                                message, job_type, related_doc_id, course_id=course_id)

    def _finish(self, txn, user_id, notification_id, status, message, job_type, related_doc_id,
                link=None, course_id=None) -> bool:
        path = f"{notifications_path(user_id)}/{notification_id}"
        current = txn.get(path)
        if current is not None and NotificationStatus(current["status"]).is_terminal:
            logger.warning("Notification %s is already %s; not marking %s",
                           path, current["status"], status.value)
            return False

        # The user may have cleared the record meanwhile; set() recreates it
        fields = {
            "message": message,
            "status": status.value,
            "type": job_type,
            "isRead": False,
            "createdAt": self.clock(),
        }
        if related_doc_id:
            fields["relatedDocId"] = related_doc_id
        if link:
            fields["link"] = link
        if course_id:
            fields["courseId"] = course_id
        txn.set(path, fields, merge=True)
        return True

    def list(self, user_id: str) -> List[Notification]:
        docs = self.store.list(notifications_path(user_id), order_by="createdAt", descending=True)
        return parse_notifications(docs)

    def mark_read(self, user_id: str, notification_id: str):
        self.store.update(f"{notifications_path(user_id)}/{notification_id}", {"isRead": True})

    def mark_all_read(self, user_id: str) -> int:
        path = notifications_path(user_id)
        with self.store.transaction() as txn:
            unread = txn.list(path, where={"isRead": False})
            for doc in unread:
                txn.update(f"{path}/{doc['id']}", {"isRead": True})
        return len(unread)

    def clear(self, user_id: str, notification_id: str):
        self.store.delete(f"{notifications_path(user_id)}/{notification_id}")

    def clear_all(self, user_id: str) -> int:
        path = notifications_path(user_id)
        with self.store.transaction() as txn:
            docs = txn.list(path)
            for doc in docs:
                txn.delete(f"{path}/{doc['id']}")
        return len(docs)

    def subscribe(self, user_id: str, callback: Callable[[List[Notification]], None]) -> Callable[[], None]:
        """Deliver the user's notifications, newest first, now and on every change."""
        return self.store.subscribe(
            notifications_path(user_id),
            lambda docs: callback(parse_notifications(docs)),
            order_by="createdAt",
            descending=True,
        )
