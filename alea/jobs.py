# alea/jobs.py
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .schemas import NotificationStatus
from .store import DocumentStore

logger = logging.getLogger(__name__)

CLAIMS_COLLECTION = "job_claims"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobInFlight(Exception):
    def __init__(self, job_type: str, related_doc_id: str):
        super().__init__(f"A {job_type.replace('_', ' ')} job for {related_doc_id} is already running")
        self.job_type = job_type
        self.related_doc_id = related_doc_id


class JobClaims:
    """
    One live claim per (job type, entity, user). A claim expires after
    ``ttl_seconds`` so a crashed worker does not lock the entity forever.
    """

    def __init__(self, store: DocumentStore, ttl_seconds: int = 600, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    @staticmethod
    def key(job_type: str, related_doc_id: str, user_id: str) -> str:
        raw = f"{job_type}:{related_doc_id}:{user_id}"
        return hashlib.sha1(raw.encode("utf-8")).hexdigest()

    def acquire(self, job_type: str, related_doc_id: str, user_id: str) -> str:
        key = self.key(job_type, related_doc_id, user_id)
        path = f"{CLAIMS_COLLECTION}/{key}"
        now = self.clock()
        with self.store.transaction() as txn:
            existing = txn.get(path)
            if existing and datetime.fromisoformat(existing["expiresAt"]) > now:
                raise JobInFlight(job_type, related_doc_id)
            txn.set(path, {
                "userId": user_id,
                "type": job_type,
                "relatedDocId": related_doc_id,
                "expiresAt": now + self.ttl,
            })
        logger.info("Claimed %s for %s (user %s)", job_type, related_doc_id, user_id)
        return key

    def release(self, key: str):
        self.store.delete(f"{CLAIMS_COLLECTION}/{key}")


def sweep_stale_jobs(store: DocumentStore, max_age_seconds: int, now: Optional[datetime] = None) -> int:
    """
    Fail ``generating`` notifications older than ``max_age_seconds``.

    Covers workers that died between starting a job and recording its
    outcome. Returns the number of notifications marked failed.
    """
    now = now or utcnow()
    cutoff = now - timedelta(seconds=max_age_seconds)
    swept = 0
    with store.transaction() as txn:
        for path, data in txn.collection_group("notifications"):
            if data.get("status") != NotificationStatus.GENERATING.value:
                continue
            if datetime.fromisoformat(data["createdAt"]) >= cutoff:
                continue
            txn.update(path, {
                "status": NotificationStatus.FAILED.value,
                "message": "This job did not finish. Please try again.",
                "isRead": False,
                # Settling time, as for any other failure
                "createdAt": now,
            })
            swept += 1
    if swept:
        logger.warning("Marked %d stale generating notification(s) as failed", swept)
    return swept
