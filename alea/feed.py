# alea/feed.py
"""
Client-side view of the notification channel.

Feed it every snapshot the channel delivers (WebSocket message or a plain
listing). It keeps the unread count and fires the sound and toast hooks at
most once per notification, when that notification settles.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Set

from .schemas import Notification, NotificationStatus

logger = logging.getLogger(__name__)

FAILURE_WINDOW_SECONDS = 15

Hook = Callable[[Notification], None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _noop(notification: Notification):
    pass


class NotificationFeed:
    def __init__(
        self,
        on_sound: Optional[Hook] = None,
        on_toast: Optional[Hook] = None,
        on_settled: Optional[Hook] = None,
        mark_read: Optional[Callable[[str], None]] = None,
        failure_window_seconds: int = FAILURE_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.on_sound = on_sound or _noop
        self.on_toast = on_toast or _noop
        self.on_settled = on_settled or _noop
        self.mark_read = mark_read
        self.failure_window = timedelta(seconds=failure_window_seconds)
        self.clock = clock

        self.notifications: List[Notification] = []
        self.bell_open = False
        self._handled: Set[str] = set()

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.is_read)

    def apply(self, notifications: Iterable[Notification]) -> List[Notification]:
        """Take a new snapshot; returns the notifications that fired side effects."""
        self.notifications = list(notifications)
        fired = []
        for notification in self.notifications:
            if not notification.status.is_terminal or notification.id in self._handled:
                continue
            self._handled.add(notification.id)
            self.on_settled(notification)
            if self._should_announce(notification):
                self.on_toast(notification)
                if not self.bell_open:
                    self.on_sound(notification)
                fired.append(notification)

        if self.bell_open:
            self._mark_visible_read()
        return fired

    def _should_announce(self, notification: Notification) -> bool:
        if notification.is_read:
            return False
        if notification.status is NotificationStatus.FAILED:
            # Old failures come back on every reconnect
            age = self.clock() - notification.created_at
            if age > self.failure_window:
                logger.debug("Ignoring stale failure %s (%s old)", notification.id, age)
                return False
        return True

    def set_bell_open(self, is_open: bool):
        self.bell_open = is_open
        if is_open:
            self._mark_visible_read()

    def _mark_visible_read(self):
        for notification in self.notifications:
            if notification.is_read:
                continue
            if self.mark_read is not None:
                self.mark_read(notification.id)
            notification.is_read = True

    def reset(self):
        """Forget everything, e.g. on logout."""
        self.notifications = []
        self.bell_open = False
        self._handled.clear()
