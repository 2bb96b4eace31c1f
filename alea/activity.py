# alea/activity.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .store import DocumentStore

logger = logging.getLogger(__name__)

ACTIVITY_LOGS = "activity_logs"
PAGE_SIZE = 10


def log_activity(store: DocumentStore, user_id: str, user_email: str, action: str,
                 details: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Record a user action. Logging failures never fail the action itself."""
    try:
        return store.add(ACTIVITY_LOGS, {
            "timestamp": datetime.now(timezone.utc),
            "userId": user_id,
            "userEmail": user_email,
            "action": action,
            "details": details or {},
        })
    except Exception as e:
        logger.error(f"Error logging activity {action} for {user_id}: {e}")
        return None


def get_activity_logs(store: DocumentStore, user_id: str, start_after: Optional[str] = None,
                      page_size: int = PAGE_SIZE) -> Tuple[List[Dict], Optional[str]]:
    """One page of the user's activity, newest first, plus the cursor for the next page."""
    logs = store.list(
        ACTIVITY_LOGS,
        where={"userId": user_id},
        order_by="timestamp",
        descending=True,
        start_after=start_after,
        limit=page_size,
    )
    last_visible = logs[-1]["id"] if logs else None
    return logs, last_visible


def count_activity(store: DocumentStore, user_id: str) -> int:
    return len(store.list(ACTIVITY_LOGS, where={"userId": user_id}))
