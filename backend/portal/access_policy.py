"""Subscription tier gating: which content categories a learner may see."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict

from .learner_profile import SUPPORT_LANGUAGES


class ContentAccess(BaseModel):
    """Capabilities derived purely from subscription tier and status."""

    model_config = ConfigDict(frozen=True)

    can_access_esl: bool = False
    can_access_clil: bool = False
    can_access_translation_support: bool = False

    @property
    def has_any_category_access(self) -> bool:
        return self.can_access_esl or self.can_access_clil


NO_ACCESS = ContentAccess()

_TIER_ACCESS: Dict[str, ContentAccess] = {
    "free": NO_ACCESS,
    "esl_only": ContentAccess(can_access_esl=True),
    "clil_plus": ContentAccess(can_access_clil=True, can_access_translation_support=True),
    "complete_plan": ContentAccess(
        can_access_esl=True,
        can_access_clil=True,
        can_access_translation_support=True,
    ),
}


def resolve_content_access(tier: object, status: object) -> ContentAccess:
    """Map a subscription tier and status to a capability set.

    Only an ``active`` subscription grants anything. Values the table does not
    know (including non-strings) resolve to no access.
    """
    if not isinstance(status, str) or status.strip().lower() != "active":
        return NO_ACCESS
    if not isinstance(tier, str):
        return NO_ACCESS
    return _TIER_ACCESS.get(tier.strip().lower(), NO_ACCESS)


def available_filter_options(access: ContentAccess, *, admin: bool = False) -> Dict[str, List[str]]:
    """Dropdown options the lessons page may offer for ``access``."""
    all_languages = ["all", *SUPPORT_LANGUAGES]
    if admin:
        return {
            "content_types": ["all", "esl", "clil"],
            "levels": ["all", "beginner", "intermediate"],
            "languages": all_languages,
        }

    levels = ["all", "beginner", "intermediate"]
    if access.can_access_esl and access.can_access_clil:
        content_types = ["all", "esl", "clil"]
        languages = all_languages
    elif access.can_access_esl:
        content_types = ["all", "esl"]
        languages = ["all", "english"]
    elif access.can_access_clil:
        content_types = ["all", "clil"]
        languages = ["all", *(language for language in SUPPORT_LANGUAGES if language != "english")]
    else:
        # Evergreen samples span every category and language.
        content_types = ["all", "esl", "clil"]
        languages = all_languages
    return {"content_types": content_types, "levels": levels, "languages": languages}


__all__ = [
    "ContentAccess",
    "NO_ACCESS",
    "available_filter_options",
    "resolve_content_access",
]
