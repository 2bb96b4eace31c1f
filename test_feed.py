from datetime import datetime, timedelta, timezone

import pytest

from alea.feed import NotificationFeed
from alea.schemas import Notification

NOW = datetime(2024, 6, 1, 9, 0, 0, tzinfo=timezone.utc)


def notification(nid, status, age_seconds=1, is_read=False, related="m1"):
    return Notification(
        id=nid,
        message=f"{nid} {status}",
        status=status,
        type="module_generation",
        relatedDocId=related,
        isRead=is_read,
        createdAt=NOW - timedelta(seconds=age_seconds),
    )


@pytest.fixture
def events():
    return {"sound": [], "toast": [], "settled": [], "read": []}


@pytest.fixture
def feed(events):
    return NotificationFeed(
        on_sound=lambda n: events["sound"].append(n.id),
        on_toast=lambda n: events["toast"].append(n.id),
        on_settled=lambda n: events["settled"].append(n.id),
        mark_read=events["read"].append,
        clock=lambda: NOW,
    )


def test_unread_count(feed):
    feed.apply([
        notification("a", "generating"),
        notification("b", "complete", is_read=True),
        notification("c", "failed"),
    ])
    assert feed.unread_count == 2


def test_generating_fires_nothing(feed, events):
    assert feed.apply([notification("a", "generating")]) == []
    assert events["sound"] == events["toast"] == events["settled"] == []


def test_each_notification_fires_once(feed, events):
    feed.apply([notification("a", "generating")])
    feed.apply([notification("a", "complete")])
    feed.apply([notification("a", "complete")])
    feed.apply([notification("b", "complete"), notification("a", "complete")])

    assert events["sound"] == ["a", "b"]
    assert events["toast"] == ["a", "b"]
    assert events["settled"] == ["a", "b"]


def test_stale_failures_are_ignored(feed, events):
    fired = feed.apply([
        notification("recent", "failed", age_seconds=5),
        notification("stale", "failed", age_seconds=60),
    ])
    assert [n.id for n in fired] == ["recent"]
    assert events["sound"] == ["recent"]
    # Stale jobs are still settled so their triggers unblock
    assert events["settled"] == ["recent", "stale"]


def test_read_notifications_do_not_replay(feed, events):
    feed.apply([notification("a", "complete", is_read=True)])
    assert events["toast"] == []
    assert events["settled"] == ["a"]


def test_open_bell_suppresses_sound_and_marks_read(feed, events):
    feed.apply([notification("a", "generating"), notification("old", "complete", is_read=True)])
    feed.set_bell_open(True)
    assert events["read"] == ["a"]
    assert feed.unread_count == 0

    feed.apply([notification("a", "complete"), notification("old", "complete", is_read=True)])
    assert events["toast"] == ["a"]
    assert events["sound"] == []
    assert events["read"] == ["a", "a"]

    feed.set_bell_open(False)
    feed.apply([notification("b", "failed")])
    assert events["sound"] == ["b"]


def test_reset_forgets_history(feed, events):
    feed.apply([notification("a", "complete")])
    feed.reset()
    assert feed.notifications == []
    feed.apply([notification("a", "complete")])
    assert events["toast"] == ["a", "a"]
