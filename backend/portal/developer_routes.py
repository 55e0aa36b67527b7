"""Developer utilities for manual resets, catalog inspection, and releases."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, Field

from .api_models import LessonPayload, lesson_payload
from .catalog import catalog_store
from .errors import UpstreamUnavailable
from .learner_profile import profile_store
from .learning_view import get_learning_service
from .learning_week import ReleaseCalendar, utc_now


router = APIRouter(prefix="/api/developer", tags=["developer"])


class DeveloperResetRequest(BaseModel):
    learner_id: str = Field(..., min_length=1)


class DeveloperReleaseRequest(BaseModel):
    release_day: Optional[date] = None


class DeveloperReleasePayload(BaseModel):
    release_day: date
    released: List[LessonPayload] = Field(default_factory=list)


def _unavailable(exc: UpstreamUnavailable) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(exc),
    )


@router.post("/reset", status_code=status.HTTP_204_NO_CONTENT)
def developer_reset(payload: DeveloperResetRequest) -> Response:
    learner_id = payload.learner_id.strip()
    if not learner_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Learner id cannot be empty.",
        )
    try:
        profile_store.delete(learner_id)
    except UpstreamUnavailable as exc:
        raise _unavailable(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/lessons",
    response_model=List[LessonPayload],
    status_code=status.HTTP_200_OK,
)
def developer_lessons() -> List[LessonPayload]:
    """Every published lesson, ignoring subscription and unlock gating."""
    try:
        lessons = get_learning_service().catalog_overview()
    except UpstreamUnavailable as exc:
        raise _unavailable(exc) from exc
    return [lesson_payload(lesson) for lesson in lessons]


@router.post(
    "/release",
    response_model=DeveloperReleasePayload,
    status_code=status.HTTP_200_OK,
)
def developer_release(payload: DeveloperReleaseRequest) -> DeveloperReleasePayload:
    calendar = ReleaseCalendar.from_settings()
    release_day = payload.release_day or calendar.localize(utc_now()).date()
    try:
        released = catalog_store.release_due(release_day)
    except UpstreamUnavailable as exc:
        raise _unavailable(exc) from exc
    return DeveloperReleasePayload(
        release_day=release_day,
        released=[lesson_payload(lesson) for lesson in released],
    )
