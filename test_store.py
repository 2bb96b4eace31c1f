from datetime import datetime, timezone

import pytest

from alea.store import DocumentNotFound, Increment, split_path


@pytest.fixture
def store(services):
    return services.store


def test_set_and_get(store):
    store.set("courses/c1", {"title": "Intro", "userId": "u1"})
    assert store.get("courses/c1") == {"title": "Intro", "userId": "u1"}
    assert store.get("courses/missing") is None


def test_set_replaces_unless_merge(store):
    store.set("users/u1", {"credits": 5, "name": "Ann"})
    store.set("users/u1", {"credits": 4}, merge=True)
    assert store.get("users/u1") == {"credits": 4, "name": "Ann"}

    store.set("users/u1", {"credits": 3})
    assert store.get("users/u1") == {"credits": 3}


def test_update_missing_document_raises(store):
    with pytest.raises(DocumentNotFound) as exc_info:
        store.update("courses/nope", {"title": "x"})
    assert exc_info.value.path == "courses/nope"


def test_increment(store):
    store.set("courses/c1", {"flashcardCount": 2})
    store.update("courses/c1", {"flashcardCount": Increment(3)})
    store.update("courses/c1", {"newField": Increment(-1)})
    assert store.get("courses/c1") == {"flashcardCount": 5, "newField": -1}


def test_datetimes_are_stored_as_iso_strings(store):
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    store.set("courses/c1", {"createdAt": created, "nested": {"at": created}})
    doc = store.get("courses/c1")
    assert doc["createdAt"] == "2024-05-01T12:00:00+00:00"
    assert doc["nested"]["at"] == doc["createdAt"]


def test_transaction_rolls_back_on_error(store):
    store.set("courses/c1", {"title": "Before"})
    with pytest.raises(RuntimeError):
        with store.transaction() as txn:
            txn.update("courses/c1", {"title": "After"})
            txn.set("courses/c2", {"title": "New"})
            raise RuntimeError("boom")
    assert store.get("courses/c1") == {"title": "Before"}
    assert store.get("courses/c2") is None


def test_transaction_reads_its_own_writes(store):
    with store.transaction() as txn:
        txn.set("courses/c1", {"count": 1})
        txn.update("courses/c1", {"count": Increment(1)})
        assert txn.get("courses/c1") == {"count": 2}


def test_add_generates_ids(store):
    first = store.add("activity_logs", {"n": 1})
    second = store.add("activity_logs", {"n": 2})
    assert first != second
    assert store.get(f"activity_logs/{first}") == {"n": 1}


def test_list_query(store):
    for i, user in enumerate(["u1", "u2", "u1", "u1"]):
        store.set(f"logs/l{i}", {"userId": user, "at": i})

    docs = store.list("logs", where={"userId": "u1"}, order_by="at", descending=True)
    assert [d["id"] for d in docs] == ["l3", "l2", "l0"]

    page = store.list("logs", where={"userId": "u1"}, order_by="at", descending=True,
                      start_after="l3", limit=1)
    assert [d["id"] for d in page] == ["l2"]


def test_list_is_scoped_to_one_collection(store):
    store.set("courses/c1", {"title": "A"})
    store.set("courses/c1/modules/1", {"day": 1})
    assert [d["id"] for d in store.list("courses")] == ["c1"]
    assert store.list("courses/c1/modules") == [{"id": "1", "day": 1}]


def test_collection_group(store):
    store.set("users/u1/notifications/n1", {"status": "generating"})
    store.set("users/u2/notifications/n2", {"status": "complete"})
    store.set("users/u2/old_notifications/n3", {"status": "generating"})
    paths = sorted(path for path, _ in store.collection_group("notifications"))
    assert paths == ["users/u1/notifications/n1", "users/u2/notifications/n2"]


def test_invalid_paths():
    assert split_path("courses/c1/modules/2") == ("courses/c1/modules", "2")
    with pytest.raises(ValueError):
        split_path("courses")


def test_subscribe_delivers_snapshots(store):
    snapshots = []
    unsubscribe = store.subscribe("users/u1/notifications", snapshots.append,
                                  order_by="createdAt", descending=True)
    assert snapshots == [[]]

    store.set("users/u1/notifications/a", {"createdAt": "2024-01-01T00:00:00+00:00"})
    store.set("users/u1/notifications/b", {"createdAt": "2024-01-02T00:00:00+00:00"})
    store.set("users/u2/notifications/c", {"createdAt": "2024-01-03T00:00:00+00:00"})
    assert len(snapshots) == 3
    assert [d["id"] for d in snapshots[-1]] == ["b", "a"]

    unsubscribe()
    store.delete("users/u1/notifications/a")
    assert len(snapshots) == 3


def test_failing_listener_does_not_break_writes(store):
    def broken(docs):
        if docs:
            raise RuntimeError("listener bug")

    store.subscribe("courses", broken)
    store.set("courses/c1", {"title": "Still saved"})
    assert store.get("courses/c1") == {"title": "Still saved"}


def test_no_notification_for_rolled_back_transaction(store):
    snapshots = []
    store.subscribe("courses", snapshots.append)
    with pytest.raises(ValueError):
        with store.transaction() as txn:
            txn.set("courses/c1", {"title": "x"})
            raise ValueError("abort")
    assert snapshots == [[]]
