"""Database-backed learner profile repository."""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.orm import Session

from ..db.models import LearnerProfileModel
from ..learner_profile import LearnerProfile
from .audit import record_audit


class LearnerProfileRepository:
    """Reads and writes learner profiles; subscription fields belong to billing."""

    def get(self, session: Session, learner_id: str) -> LearnerProfile | None:
        model = session.get(LearnerProfileModel, learner_id)
        if model is None:
            return None
        return self._to_domain(model)

    def upsert(self, session: Session, profile: LearnerProfile) -> LearnerProfile:
        model = session.get(LearnerProfileModel, profile.id)
        created = model is None
        if model is None:
            model = LearnerProfileModel(id=profile.id, join_date=profile.join_date)
            session.add(model)

        self._apply_profile(model, profile, created=created)
        session.flush()
        record_audit(
            session,
            model.id,
            "profile_upsert",
            {
                "created": created,
                "subscription_tier": model.subscription_tier,
                "subscription_status": model.subscription_status,
            },
        )
        return self._to_domain(model)

    def delete(self, session: Session, learner_id: str) -> bool:
        model = session.get(LearnerProfileModel, learner_id)
        if model is None:
            return False
        session.delete(model)
        session.flush()
        record_audit(session, None, "profile_delete", {"learner_id": learner_id})
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply_profile(self, model: LearnerProfileModel, profile: LearnerProfile, *, created: bool) -> None:
        # join_date is written once, when the account row is created.
        if created:
            model.join_date = profile.join_date
        model.subscription_tier = profile.subscription_tier
        model.subscription_status = profile.subscription_status
        model.preferred_level = profile.preferred_level
        model.language_support = profile.language_support

    def _to_domain(self, model: LearnerProfileModel) -> LearnerProfile:
        payload: Dict[str, Any] = {
            "id": model.id,
            "join_date": model.join_date,
            "subscription_tier": model.subscription_tier,
            "subscription_status": model.subscription_status,
            "preferred_level": model.preferred_level,
            "language_support": model.language_support,
        }
        return LearnerProfile.model_validate(payload)


learner_profiles = LearnerProfileRepository()

__all__ = ["LearnerProfileRepository", "learner_profiles"]
