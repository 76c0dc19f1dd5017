"""End-to-end tests for the HTTP routes."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from uams import main
from uams.domain.errors import StoreUnavailable
from uams.repos.memory import InMemoryEventStore
from uams.services.scheduling import SchedulingService

_LECTURE = {
    "date": "2024-05-01",
    "start_time": "09:00",
    "end_time": "10:00",
    "venue_id": "H_01",
    "lecturer_id": 2407,
    "course_id": "IT1010",
}


@pytest.fixture(autouse=True)
def _fresh_state(monkeypatch):
    """Give every test an empty store and timeline."""
    store = InMemoryEventStore()
    monkeypatch.setattr(main, "event_store", store)
    monkeypatch.setattr(main, "scheduler", SchedulingService(store=store, bus=main.event_bus))
    main.timeline_repo._entries.clear()
    yield
    main.timeline_repo._entries.clear()


@pytest.fixture()
def client():
    return TestClient(main.app)


class _DownStore(InMemoryEventStore):
    async def fetch_events_on_date(self, kind, on_date):
        raise StoreUnavailable("connection refused")

    async def list_events(self, kind):
        raise StoreUnavailable("connection refused")


def test_schedule_lecture(client: TestClient):
    resp = client.post("/lectures", json=_LECTURE)

    assert resp.status_code == 201
    body = resp.json()
    assert body["kind"] == "lecture"
    assert body["id"] == "1"
    assert body["lecturer_id"] == "2407"
    assert body["start_time"] == "09:00:00"


def test_schedule_lecture_rejects_inverted_interval(client: TestClient):
    resp = client.post("/lectures", json={**_LECTURE, "start_time": "11:00"})
    assert resp.status_code == 422


def test_clashing_exam_returns_409_with_details(client: TestClient):
    client.post("/lectures", json=_LECTURE)

    resp = client.post(
        "/exams",
        json={
            "date": "2024-05-01",
            "start_time": "09:30",
            "end_time": "10:30",
            "venue_id": "H_01",
            "lecturer_id": "2407",
            "exam_category": "Final",
        },
    )

    assert resp.status_code == 409
    detail = resp.json()["detail"]
    assert detail["message"].startswith("Clash detected (venue, lecturer)")
    assert [c["type"] for c in detail["clashes"]] == ["VENUE", "LECTURER"]
    assert detail["clashes"][0]["with"]["id"] == "1"
    assert client.get("/timetable").json()[0]["kind"] == "lecture"
    assert len(client.get("/timetable").json()) == 1


def test_check_endpoint_reports_without_writing(client: TestClient):
    client.post("/lectures", json=_LECTURE)

    resp = client.post(
        "/clashes/check",
        json={
            "candidate": {
                "date": "2024-05-01",
                "start_time": "09:30",
                "end_time": "10:30",
                "venue_id": "H_02",
                "lecturer_id": "2407",
            }
        },
    )

    assert resp.status_code == 200
    clashes = resp.json()["clashes"]
    assert len(clashes) == 1
    assert clashes[0]["type"] == "LECTURER"
    assert clashes[0]["with"]["venue_id"] == "H_01"


def test_check_endpoint_with_exclusion(client: TestClient):
    client.post("/lectures", json=_LECTURE)

    resp = client.post(
        "/clashes/check",
        json={"candidate": _LECTURE, "exclude": {"kind": "lecture", "id": 1}},
    )

    assert resp.status_code == 200
    assert resp.json() == {"clashes": []}


def test_check_endpoint_invalid_interval(client: TestClient):
    resp = client.post(
        "/clashes/check",
        json={"candidate": {**_LECTURE, "start_time": "10:00", "end_time": "10:00"}},
    )
    assert resp.status_code == 422


def test_store_outage_is_503_not_clear(client: TestClient, monkeypatch):
    monkeypatch.setattr(main, "scheduler", SchedulingService(store=_DownStore(), bus=main.event_bus))

    resp = client.post("/clashes/check", json={"candidate": _LECTURE})
    assert resp.status_code == 503

    resp = client.post("/lectures", json=_LECTURE)
    assert resp.status_code == 503


def test_timetable_outage_is_503(client: TestClient, monkeypatch):
    monkeypatch.setattr(main, "event_store", _DownStore())
    assert client.get("/timetable").status_code == 503


def test_edit_and_history(client: TestClient):
    client.post("/lectures", json=_LECTURE)

    resp = client.patch("/events/lecture/1", json={"venue_id": "H_04"})
    assert resp.status_code == 200
    assert resp.json()["venue_id"] == "H_04"

    history = client.get("/events/lecture/1/history").json()
    assert [h["type"] for h in history] == ["scheduled", "rescheduled"]


def test_edit_unknown_event_is_404(client: TestClient):
    resp = client.patch("/events/exam/5", json={"venue_id": "H_04"})
    assert resp.status_code == 404


def test_get_and_delete_event(client: TestClient):
    client.post("/lectures", json=_LECTURE)

    assert client.get("/events/lecture/1").json()["course_id"] == "IT1010"

    resp = client.delete("/events/lecture/1")
    assert resp.status_code == 200
    assert resp.json() == {"status": "deleted"}
    assert client.get("/events/lecture/1").status_code == 404
    assert client.delete("/events/lecture/1").status_code == 404


def test_timetable_titles(client: TestClient):
    client.post("/lectures", json=_LECTURE)
    client.post(
        "/exams",
        json={
            "date": "2024-05-02",
            "start_time": "13:00",
            "end_time": "15:00",
            "venue_id": "H_01",
            "exam_category": "Practical",
        },
    )

    entries = client.get("/timetable").json()
    assert [(e["kind"], e["title"]) for e in entries] == [
        ("lecture", "Lecture: IT1010"),
        ("exam", "Exam (Practical)"),
    ]
    assert entries[0]["start"] == "2024-05-01T09:00:00"


def test_unknown_kind_rejected(client: TestClient):
    assert client.get("/events/seminar/1").status_code == 422


def test_shutdown_closes_event_store(monkeypatch):
    class _ClosingStore(InMemoryEventStore):
        closed = False

        async def aclose(self):
            self.closed = True

    store = _ClosingStore()
    monkeypatch.setattr(main, "event_store", store)

    with TestClient(main.app) as client:
        assert client.get("/timetable").status_code == 200
        assert store.closed is False
    assert store.closed is True
