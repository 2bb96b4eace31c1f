from datetime import datetime, timedelta, timezone

import pytest

from alea.activity import count_activity, get_activity_logs, log_activity
from alea.credits import NoCreditsLeft, check_and_reset_credits, spend_credit


def test_triggers_are_logged(client, services, inference, alice, make_course):
    course_id = make_course(alice)
    client.post(f"/courses/{course_id}/modules/1/complete", headers=alice.headers)

    logs = client.get("/activity", headers=alice.headers).json()["logs"]

    assert [log["action"] for log in logs] == ["complete_module", "generate_course"]
    assert logs[0]["details"] == {"courseId": course_id, "day": 1}
    assert logs[1]["userEmail"] == "alice"


def test_pagination(client, services, alice, bob):
    for i in range(12):
        log_activity(services.store, alice.user_id, "alice", "generate_course", {"n": i})
    log_activity(services.store, bob.user_id, "bob", "generate_course")

    first = client.get("/activity", headers=alice.headers).json()
    assert len(first["logs"]) == 10
    assert first["last_visible"] == first["logs"][-1]["id"]

    second = client.get("/activity", params={"start_after": first["last_visible"]},
                        headers=alice.headers).json()
    assert len(second["logs"]) == 2
    seen = {log["id"] for log in first["logs"] + second["logs"]}
    assert len(seen) == 12

    assert client.get("/activity/count", headers=alice.headers).json() == {"count": 12}


def test_empty_page(services):
    assert get_activity_logs(services.store, "nobody") == ([], None)
    assert count_activity(services.store, "nobody") == 0


def test_logging_failures_are_swallowed():
    class BrokenStore:
        def add(self, collection, data):
            raise RuntimeError("store offline")

    assert log_activity(BrokenStore(), "u1", "user@example.com", "generate_course") is None


def test_credits_endpoint(client, inference, alice, make_course):
    assert client.get("/credits", headers=alice.headers).json() == {"credits": 10}
    make_course(alice)
    assert client.get("/credits", headers=alice.headers).json() == {"credits": 9}


def test_credits_reset_on_a_new_day(services):
    yesterday = datetime(2024, 4, 1, 23, 0, tzinfo=timezone.utc)
    today = yesterday + timedelta(hours=2)

    assert spend_credit(services.store, "u1", daily_allowance=2, now=yesterday) == 1
    assert spend_credit(services.store, "u1", daily_allowance=2, now=yesterday) == 0
    with pytest.raises(NoCreditsLeft):
        spend_credit(services.store, "u1", daily_allowance=2, now=yesterday)

    assert check_and_reset_credits(services.store, "u1", daily_allowance=2, now=today) == 2


def test_credits_need_a_user_id(services):
    with pytest.raises(TypeError):
        check_and_reset_credits(services.store, "  ")
