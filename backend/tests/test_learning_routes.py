from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List

from fastapi import FastAPI
from fastapi.testclient import TestClient

from portal.catalog import CatalogStore, EvergreenSlot, LessonRecord, NumberedSlot
from portal.developer_routes import router as developer_router
from portal.learner_profile import LearnerProfile, LearnerProfileStore
from portal.main import app
from portal.telemetry import TelemetryEvent, register_listener, unregister_listener

NOW = datetime(2026, 10, 16, 12, tzinfo=timezone.utc)
NOW_PARAM = "2026-10-16T12:00:00Z"


def _seed() -> None:
    LearnerProfileStore().upsert(
        LearnerProfile(
            id="learner-1",
            join_date=NOW - timedelta(days=14),
            subscription_tier="esl_only",
            subscription_status="active",
        )
    )
    catalog = CatalogStore()
    for week in range(1, 11):
        level = "beginner" if week % 2 else "intermediate"
        catalog.upsert(
            LessonRecord(id=f"esl-{week}", title=f"Week {week}", slot=NumberedSlot(week_number=week), level=level)
        )
    catalog.upsert(LessonRecord(id="sample", title="Sample", slot=EvergreenSlot(), content_type="clil", language_support="german"))


def test_learning_view_endpoint(portal_db) -> None:
    _seed()
    client = TestClient(app)
    response = client.get("/api/learners/learner-1/view", params={"now": NOW_PARAM})
    assert response.status_code == 200
    payload = response.json()
    assert payload["profile_found"] is True
    assert payload["access"]["can_access_esl"] is True
    assert payload["progression"]["available_lesson_count"] == 3
    assert payload["progression"]["unlock_rate"] == 2
    assert [lesson["id"] for lesson in payload["visible_lessons"]] == ["esl-1", "esl-2", "esl-3", "sample"]
    assert payload["visible_lessons"][-1]["kind"] == "evergreen"
    assert payload["visible_lessons"][-1]["week_number"] is None
    assert payload["engagement"]["current_streak"] == 0
    assert payload["issues"] == []


def test_unknown_learner_gets_free_view(portal_db) -> None:
    _seed()
    client = TestClient(app)
    response = client.get("/api/learners/stranger/view", params={"now": NOW_PARAM})
    assert response.status_code == 200
    payload = response.json()
    assert payload["profile_found"] is False
    assert [lesson["id"] for lesson in payload["visible_lessons"]] == ["sample"]


def test_lessons_endpoint_filters_and_sorts(portal_db) -> None:
    _seed()
    client = TestClient(app)
    response = client.get(
        "/api/learners/learner-1/lessons",
        params={"now": NOW_PARAM, "level": "beginner", "content_type": "all"},
    )
    assert response.status_code == 200
    payload = response.json()
    assert [lesson["id"] for lesson in payload["lessons"]] == ["esl-3", "esl-1", "sample"]
    assert payload["count"] == 3


def test_filters_endpoint(portal_db) -> None:
    _seed()
    client = TestClient(app)
    response = client.get("/api/learners/learner-1/filters")
    assert response.status_code == 200
    assert response.json()["content_types"] == ["all", "esl"]


def test_completion_endpoint_is_idempotent(portal_db) -> None:
    _seed()
    client = TestClient(app)
    first = client.post(
        "/api/learners/learner-1/completions",
        json={"lesson_id": "esl-1", "score": 72, "completed_at": "2026-10-15T09:00:00Z"},
    )
    second = client.post(
        "/api/learners/learner-1/completions",
        json={"lesson_id": "esl-1", "score": 64, "completed_at": "2026-10-20T09:00:00Z"},
    )
    assert first.status_code == second.status_code == 200
    assert second.json()["recorded"] is True
    assert second.json()["percentage_score"] == 72
    assert second.json()["completed_at"].startswith("2026-10-15T09:00:00")

    view = client.get("/api/learners/learner-1/view", params={"now": NOW_PARAM}).json()
    assert view["progression"]["total_completed"] == 1
    assert view["progression"]["available_lesson_count"] == 4
    assert view["engagement"]["this_week_completed_count"] == 0


def test_completion_for_unknown_lesson_is_not_an_error(portal_db) -> None:
    _seed()
    client = TestClient(app)
    response = client.post("/api/learners/learner-1/completions", json={"lesson_id": "nope", "score": 50})
    assert response.status_code == 200
    assert response.json()["recorded"] is False


def test_blank_lesson_id_is_rejected(portal_db) -> None:
    client = TestClient(app)
    response = client.post("/api/learners/learner-1/completions", json={"lesson_id": "   "})
    assert response.status_code == 422


def test_missing_database_maps_to_service_unavailable(no_database) -> None:
    client = TestClient(app)
    response = client.get("/api/learners/learner-1/view")
    assert response.status_code == 503
    response = client.post("/api/learners/learner-1/completions", json={"lesson_id": "esl-1"})
    assert response.status_code == 503


def test_developer_routes(portal_db) -> None:
    _seed()
    CatalogStore().upsert(
        LessonRecord(
            id="esl-11",
            slot=NumberedSlot(week_number=11),
            published=False,
            release_date=NOW.date(),
        )
    )
    developer_app = FastAPI()
    developer_app.include_router(developer_router)
    client = TestClient(developer_app)

    captured: List[TelemetryEvent] = []
    register_listener(captured.append)
    try:
        lessons = client.get("/api/developer/lessons")
    finally:
        unregister_listener(captured.append)
    assert lessons.status_code == 200
    assert len(lessons.json()) == 11
    assert not any(event.name == "learning_view_resolved" for event in captured)

    released = client.post("/api/developer/release", json={"release_day": "2026-10-16"})
    assert released.status_code == 200
    assert [lesson["id"] for lesson in released.json()["released"]] == ["esl-11"]
    assert client.get("/api/developer/lessons").json()[0]["id"] == "esl-11"

    reset = client.post("/api/developer/reset", json={"learner_id": "learner-1"})
    assert reset.status_code == 204
    assert LearnerProfileStore().get("learner-1") is None
