# alea/credits.py
from datetime import datetime, timezone
from typing import Optional

from .store import DocumentStore, WriteBatch


class NoCreditsLeft(Exception):
    def __init__(self, user_id: str):
        super().__init__("You have used all of today's course credits. Try again tomorrow.")
        self.user_id = user_id


def _current_credits(txn: WriteBatch, user_id: str, daily_allowance: int, now: datetime) -> int:
    path = f"users/{user_id}"
    user = txn.get(path)
    last_reset = user.get("lastCreditReset") if user else None
    if last_reset is None or datetime.fromisoformat(last_reset).date() != now.date():
        txn.set(path, {"credits": daily_allowance, "lastCreditReset": now}, merge=True)
        return daily_allowance
    return user.get("credits", 0)


def check_and_reset_credits(store: DocumentStore, user_id: str, daily_allowance: int = 10,
                            now: Optional[datetime] = None) -> int:
    """Current credits, topped back up to the daily allowance on a new (UTC) day."""
    if not isinstance(user_id, str) or not user_id.strip():
        raise TypeError("Invalid userId provided.")
    with store.transaction() as txn:
        return _current_credits(txn, user_id, daily_allowance, now or datetime.now(timezone.utc))


def spend_credit(store: DocumentStore, user_id: str, daily_allowance: int = 10,
                 now: Optional[datetime] = None) -> int:
    """Take one credit; returns what is left."""
    with store.transaction() as txn:
        credits = _current_credits(txn, user_id, daily_allowance, now or datetime.now(timezone.utc))
        if credits <= 0:
            raise NoCreditsLeft(user_id)
        txn.update(f"users/{user_id}", {"credits": credits - 1})
        return credits - 1
