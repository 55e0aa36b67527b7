"""Learner profile models and the profile store consumed by the engine."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .db.session import store_scope

logger = logging.getLogger(__name__)

SubscriptionTier = Literal["free", "esl_only", "clil_plus", "complete_plan"]
SubscriptionStatus = Literal["active", "inactive", "past_due", "cancelled"]
PreferredLevel = Literal["beginner", "intermediate", "both"]
SupportLanguage = Literal["english", "czech", "german", "french", "spanish", "polish"]

SUBSCRIPTION_TIERS: tuple[str, ...] = get_args(SubscriptionTier)
SUBSCRIPTION_STATUSES: tuple[str, ...] = get_args(SubscriptionStatus)
PREFERRED_LEVELS: tuple[str, ...] = get_args(PreferredLevel)
SUPPORT_LANGUAGES: tuple[str, ...] = get_args(SupportLanguage)
DEFAULT_SUPPORT_LANGUAGE: SupportLanguage = "english"


if TYPE_CHECKING:
    from .repositories.learner_profiles import LearnerProfileRepository


def _repo() -> "LearnerProfileRepository":
    from .repositories.learner_profiles import learner_profiles as repository

    return repository


def _now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive timestamps (SQLite round-trips) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _normalize_learner_id(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError("Learner id cannot be empty.")
    return normalized


class LearnerProfile(BaseModel):
    """Read model of a learner as written by the account and billing collaborators."""

    model_config = ConfigDict(frozen=True)

    id: str
    join_date: datetime = Field(default_factory=_now)
    subscription_tier: SubscriptionTier = "free"
    subscription_status: SubscriptionStatus = "inactive"
    preferred_level: PreferredLevel = "both"
    language_support: SupportLanguage = DEFAULT_SUPPORT_LANGUAGE

    @field_validator("join_date")
    @classmethod
    def _aware_join_date(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @field_validator("subscription_tier", mode="before")
    @classmethod
    def _coerce_tier(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in SUBSCRIPTION_TIERS:
            return value.strip().lower()
        logger.warning("Unknown subscription tier %r; treating as free", value)
        return "free"

    @field_validator("subscription_status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in SUBSCRIPTION_STATUSES:
            return value.strip().lower()
        logger.warning("Unknown subscription status %r; treating as inactive", value)
        return "inactive"

    @field_validator("preferred_level", mode="before")
    @classmethod
    def _coerce_level(cls, value: Any) -> Any:
        if value is None:
            return "both"
        if isinstance(value, str) and value.strip().lower() in PREFERRED_LEVELS:
            return value.strip().lower()
        logger.warning("Unknown preferred level %r; treating as both", value)
        return "both"

    @field_validator("language_support", mode="before")
    @classmethod
    def _coerce_language(cls, value: Any) -> Any:
        if value is None:
            return DEFAULT_SUPPORT_LANGUAGE
        if isinstance(value, str) and value.strip().lower() in SUPPORT_LANGUAGES:
            return value.strip().lower()
        logger.warning("Unknown support language %r; treating as %s", value, DEFAULT_SUPPORT_LANGUAGE)
        return DEFAULT_SUPPORT_LANGUAGE

    @classmethod
    def anonymous(cls, learner_id: str, now: datetime) -> "LearnerProfile":
        """Stand-in for a missing profile: free tier, joined at ``now``."""
        return cls(id=learner_id, join_date=now)


class LearnerProfileStore:
    """Database-backed profile store."""

    def get(self, learner_id: str) -> Optional[LearnerProfile]:
        normalized = _normalize_learner_id(learner_id)
        with store_scope(commit=False) as session:
            return _repo().get(session, normalized)

    def upsert(self, profile: LearnerProfile) -> LearnerProfile:
        with store_scope() as session:
            return _repo().upsert(session, profile)

    def delete(self, learner_id: str) -> bool:
        normalized = _normalize_learner_id(learner_id)
        with store_scope() as session:
            return _repo().delete(session, normalized)


profile_store = LearnerProfileStore()


__all__ = [
    "DEFAULT_SUPPORT_LANGUAGE",
    "LearnerProfile",
    "LearnerProfileStore",
    "PREFERRED_LEVELS",
    "PreferredLevel",
    "SUBSCRIPTION_STATUSES",
    "SUBSCRIPTION_TIERS",
    "SUPPORT_LANGUAGES",
    "SubscriptionStatus",
    "SubscriptionTier",
    "SupportLanguage",
    "ensure_aware",
    "profile_store",
]
