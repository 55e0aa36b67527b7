"""Database-backed stores against a throwaway SQLite file."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update

from portal.cache import catalog_cache
from portal.catalog import EVERGREEN_WEEK_NUMBER, CatalogStore, EvergreenSlot, LessonRecord, NumberedSlot
from portal.completions import CompletionStore
from portal.config import get_settings
from portal.db.models import LearnerProfileModel, LessonCompletionModel, LessonModel
from portal.db.session import session_scope
from portal.errors import NotFound, UpstreamUnavailable
from portal.learner_profile import LearnerProfile, LearnerProfileStore
from portal.learning_view import LearningService
from portal.repositories.audit import recent_audit_events

NOW = datetime(2026, 10, 16, 12, tzinfo=timezone.utc)


def _seed(profiles: LearnerProfileStore, catalog: CatalogStore) -> None:
    profiles.upsert(
        LearnerProfile(
            id="learner-1",
            join_date=NOW - timedelta(days=14),
            subscription_tier="complete_plan",
            subscription_status="active",
            language_support="czech",
        )
    )
    for week in range(1, 11):
        catalog.upsert(LessonRecord(id=f"esl-{week}", title=f"Week {week}", slot=NumberedSlot(week_number=week)))
    catalog.upsert(
        LessonRecord(id="clil-cs-1", slot=NumberedSlot(week_number=1), content_type="clil", language_support="czech")
    )
    catalog.upsert(LessonRecord(id="sample", slot=EvergreenSlot()))
    catalog.upsert(
        LessonRecord(id="draft", slot=NumberedSlot(week_number=11), published=False)
    )


def test_evergreen_slot_is_stored_as_sentinel(portal_db) -> None:
    catalog = CatalogStore()
    catalog.upsert(LessonRecord(id="sample", slot=EvergreenSlot()))
    with session_scope(commit=False) as session:
        assert session.get(LessonModel, "sample").week_number == EVERGREEN_WEEK_NUMBER
    (stored,) = catalog.list_published()
    assert stored.is_evergreen
    assert stored.week_number is None


def test_catalog_week_excludes_evergreen_and_drafts(portal_db) -> None:
    catalog = CatalogStore()
    assert catalog.max_week_number() == 1
    _seed(LearnerProfileStore(), catalog)
    assert catalog.max_week_number() == 10
    published = catalog.list_published()
    assert [lesson.id for lesson in published][:2] == ["clil-cs-1", "esl-1"]
    assert "draft" not in {lesson.id for lesson in published}


def test_catalog_writes_invalidate_snapshot(portal_db) -> None:
    catalog = CatalogStore()
    catalog.upsert(LessonRecord(id="esl-1", slot=NumberedSlot(week_number=1)))
    assert len(catalog.list_published()) == 1
    catalog.upsert(LessonRecord(id="esl-2", slot=NumberedSlot(week_number=2)))
    assert len(catalog.list_published()) == 2
    assert catalog.delete("esl-2") is True
    assert len(catalog.list_published()) == 1


def _publish_outside_store(lesson_id: str) -> None:
    # Same effect as the release job running in its own process.
    with session_scope() as session:
        session.execute(update(LessonModel).where(LessonModel.id == lesson_id).values(published=True))


def test_catalog_snapshot_expires_after_ttl(portal_db, monkeypatch) -> None:
    catalog = CatalogStore()
    for week in (1, 2):
        catalog.upsert(LessonRecord(id=f"w{week}", slot=NumberedSlot(week_number=week)))
    catalog.upsert(LessonRecord(id="w3", slot=NumberedSlot(week_number=3), published=False))
    assert [lesson.id for lesson in catalog.list_published()] == ["w1", "w2"]

    _publish_outside_store("w3")
    assert catalog.max_week_number() == 3
    assert [lesson.id for lesson in catalog.list_published()] == ["w1", "w2"]

    later = datetime.now(timezone.utc) + timedelta(seconds=31)
    monkeypatch.setattr(catalog_cache, "_clock", lambda: later)
    assert [lesson.id for lesson in catalog.list_published()] == ["w1", "w2", "w3"]


def test_zero_ttl_disables_catalog_snapshot(portal_db, monkeypatch) -> None:
    monkeypatch.setenv("PORTAL_CATALOG_CACHE_TTL_SECONDS", "0")
    get_settings.cache_clear()
    catalog = CatalogStore()
    catalog.upsert(LessonRecord(id="w1", slot=NumberedSlot(week_number=1)))
    catalog.upsert(LessonRecord(id="w2", slot=NumberedSlot(week_number=2), published=False))
    assert len(catalog.list_published()) == 1

    _publish_outside_store("w2")
    assert [lesson.id for lesson in catalog.list_published()] == ["w1", "w2"]


def test_unknown_profile_fields_in_storage_fall_back(portal_db) -> None:
    profiles, catalog = LearnerProfileStore(), CatalogStore()
    _seed(profiles, catalog)
    with session_scope() as session:
        session.execute(
            update(LearnerProfileModel)
            .where(LearnerProfileModel.id == "learner-1")
            .values(preferred_level="advanced", language_support="klingon")
        )

    stored = profiles.get("learner-1")
    assert stored is not None
    assert stored.preferred_level == "both"
    assert stored.language_support == "english"

    view = LearningService(profiles, catalog, CompletionStore()).resolve_learning_view("learner-1", NOW)
    assert view.profile_found
    assert view.issues == []
    assert view.visible_lessons


def test_profile_join_date_is_immutable(portal_db) -> None:
    profiles = LearnerProfileStore()
    original = profiles.upsert(LearnerProfile(id="learner-1", join_date=NOW - timedelta(days=30)))
    updated = profiles.upsert(
        LearnerProfile(id="learner-1", join_date=NOW, subscription_tier="esl_only", subscription_status="active")
    )
    assert updated.join_date == original.join_date
    assert updated.subscription_tier == "esl_only"

    with session_scope(commit=False) as session:
        events = recent_audit_events(session, learner_id="learner-1", event_types=["profile_upsert"])
    assert len(events) == 2


def test_completion_upsert_keeps_one_row(portal_db) -> None:
    profiles, catalog, completions = LearnerProfileStore(), CatalogStore(), CompletionStore()
    _seed(profiles, catalog)

    first = completions.upsert_completion(
        "learner-1", "esl-1", is_completed=True, percentage_score=60, completed_at=NOW
    )
    again = completions.upsert_completion(
        "learner-1", "esl-1", is_completed=True, percentage_score=90, completed_at=NOW + timedelta(days=9)
    )
    lower = completions.upsert_completion(
        "learner-1", "esl-1", is_completed=True, percentage_score=10, completed_at=NOW + timedelta(days=10)
    )

    assert first.completed_at == again.completed_at == lower.completed_at == NOW
    assert again.percentage_score == 90
    assert lower.percentage_score == 90
    with session_scope(commit=False) as session:
        count = session.execute(select(func.count()).select_from(LessonCompletionModel)).scalar_one()
    assert count == 1

    history = completions.list_for_learner("learner-1")
    assert len(history) == 1
    assert history[0].slot == NumberedSlot(week_number=1)
    assert history[0].counts_toward_progression


def test_completion_for_missing_rows_raises_not_found(portal_db) -> None:
    profiles, catalog, completions = LearnerProfileStore(), CatalogStore(), CompletionStore()
    _seed(profiles, catalog)
    with pytest.raises(NotFound):
        completions.upsert_completion("learner-1", "nope", is_completed=True, percentage_score=50, completed_at=NOW)
    with pytest.raises(NotFound):
        completions.upsert_completion("nobody", "esl-1", is_completed=True, percentage_score=50, completed_at=NOW)


def test_learning_view_end_to_end(portal_db) -> None:
    profiles, catalog, completions = LearnerProfileStore(), CatalogStore(), CompletionStore()
    _seed(profiles, catalog)
    service = LearningService(profiles, catalog, completions)

    for lesson_id in ("esl-1", "esl-2", "clil-cs-1", "sample"):
        assert service.mark_lesson_complete("learner-1", lesson_id, 80, now=NOW - timedelta(days=2)).recorded
    assert service.mark_lesson_complete("learner-1", "ghost-lesson", 80, now=NOW).recorded is False

    view = service.resolve_learning_view("learner-1", NOW)
    assert view.profile_found
    assert view.progression is not None
    # Scenario: three weeks in, far behind a ten-week catalog, three numbered completions.
    assert view.progression.total_completed == 3
    assert view.progression.available_lesson_count == 6
    ids = [lesson.id for lesson in view.visible_lessons or []]
    assert ids[-1] == "sample"
    assert "draft" not in ids
    assert view.engagement is not None
    assert view.engagement.total_completed == 4
    assert view.engagement.current_streak == 1


def test_profile_delete_removes_completions(portal_db) -> None:
    profiles, catalog, completions = LearnerProfileStore(), CatalogStore(), CompletionStore()
    _seed(profiles, catalog)
    completions.upsert_completion("learner-1", "esl-1", is_completed=True, percentage_score=75, completed_at=NOW)
    assert profiles.delete("learner-1") is True
    assert profiles.get("learner-1") is None
    assert completions.list_for_learner("learner-1") == []
    assert profiles.delete("learner-1") is False


def test_stores_report_missing_database(no_database) -> None:
    with pytest.raises(UpstreamUnavailable):
        LearnerProfileStore().get("learner-1")
    with pytest.raises(UpstreamUnavailable):
        CatalogStore().list_published()
