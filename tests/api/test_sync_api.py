from __future__ import annotations

import pytest


def _record(key: str, kind: str = "CLOCK_IN", ts: str = "2024-03-03T09:00:00Z"):
    return {
        "idempotency_key": key,
        "kind": kind,
        "timestamp": ts,
        "latitude": 40.4168,
        "longitude": -3.7038,
        "accuracy": 10,
    }


def test_sync_batch_then_resubmit(worker, attendance):
    batch = {"records": [_record("a"), _record("b", "CLOCK_OUT", "2024-03-03T17:00:00Z")]}

    first = worker.post("/api/sync/clock-records", json=batch)
    assert first.status_code == 200
    body = first.get_json()
    assert body["message"] == "Sync complete: 2 new, 0 duplicates, 0 errors"
    assert [s["worksite_name"] for s in body["results"]["synced"]] == ["Obra Centro", "Obra Centro"]

    second = worker.post("/api/sync/clock-records", json=batch).get_json()
    assert second["results"]["synced"] == []
    assert [d["idempotency_key"] for d in second["results"]["duplicates"]] == ["a", "b"]
    assert len(attendance.records) == 2


def test_malformed_record_rejects_the_whole_batch(worker, attendance):
    batch = {"records": [_record("a"), {**_record("b"), "latitude": 200}]}

    response = worker.post("/api/sync/clock-records", json=batch)

    assert response.status_code == 400
    assert "records[1]" in response.get_json()["message"]
    assert attendance.records == []


@pytest.mark.parametrize("sync_status", ["DONE", 3, ["PENDING"]])
def test_unknown_sync_status_is_a_validation_error(worker, attendance, sync_status):
    batch = {"records": [{**_record("a"), "sync_status": sync_status}]}

    response = worker.post("/api/sync/clock-records", json=batch)

    assert response.status_code == 400
    body = response.get_json()
    assert body["code"] == "VALIDATION_ERROR"
    assert "sync_status" in body["message"]
    assert attendance.records == []


def test_keys_are_kept_verbatim(worker, attendance):
    batch = {"records": [_record("abc"), _record("abc ")]}

    body = worker.post("/api/sync/clock-records", json=batch).get_json()

    assert [s["idempotency_key"] for s in body["results"]["synced"]] == ["abc", "abc "]
    assert body["results"]["duplicates"] == []
    assert len(attendance.records) == 2


def test_admin_sync_is_scoped_to_own_assignments(admin, attendance):
    # the admin has no assignment, so the event keeps a null worksite
    body = admin.post("/api/sync/clock-records", json={"records": [_record("a")]}).get_json()

    assert body["results"]["synced"][0]["worksite_id"] is None
    assert attendance.records[0].worksite_id is None


def test_empty_batch_is_rejected(worker):
    assert worker.post("/api/sync/clock-records", json={"records": []}).status_code == 400


def test_per_event_errors_are_reported(worker, attendance):
    attendance.fail_keys = {"b"}

    body = worker.post("/api/sync/clock-records", json={"records": [_record("a"), _record("b")]}).get_json()

    assert [e["idempotency_key"] for e in body["results"]["errors"]] == ["b"]
    assert [s["idempotency_key"] for s in body["results"]["synced"]] == ["a"]


def test_sync_status(worker):
    worker.post("/api/sync/clock-records", json={"records": [_record("a")]})

    body = worker.get("/api/sync/status").get_json()

    assert body["server_time"] == "2024-03-04T09:00:00+00:00"
    assert body["last_record"]["idempotency_key"] == "a"
    assert [w["worksite_id"] for w in body["worksites"]] == [1]
    assert body["pending_sync_count"] == 0


def test_sync_worksites_for_offline_cache(worker, admin, worksites):
    body = worker.get("/api/sync/worksites").get_json()
    assert [w["name"] for w in body["worksites"]] == ["Obra Centro"]
    assert body["synced_at"] == "2024-03-04T09:00:00+00:00"

    unassigned = worker.application.test_client()
    with unassigned.session_transaction() as sess:
        sess["user_id"] = 99
        sess["role"] = "WORKER"
    assert unassigned.get("/api/sync/worksites").get_json()["worksites"] == []
    assert len(admin.get("/api/sync/worksites").get_json()["worksites"]) == 1
