"""Learner-facing REST endpoints for the lessons and analytics pages."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .api_models import (
    CompletionPayload,
    CompletionRequest,
    FilterOptionsPayload,
    LearningViewPayload,
    LessonListPayload,
    completion_payload,
    learning_view_payload,
    lesson_payload,
)
from .catalog_selector import ManualFilters
from .errors import UpstreamUnavailable
from .learner_profile import ensure_aware
from .learning_view import LearningService, get_learning_service
from .learning_week import utc_now


router = APIRouter(prefix="/api/learners", tags=["learners"])
logger = logging.getLogger(__name__)


def _resolve_now(now: Optional[datetime]) -> datetime:
    return ensure_aware(now) if now is not None else utc_now()


def _learner_id(raw: str) -> str:
    learner_id = raw.strip()
    if not learner_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Learner id cannot be empty.",
        )
    return learner_id


def _unavailable(exc: UpstreamUnavailable) -> HTTPException:
    logger.error("Learner data unavailable: %s", exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Learner data is temporarily unavailable.",
    )


@router.get(
    "/{learner_id}/view",
    response_model=LearningViewPayload,
    status_code=status.HTTP_200_OK,
)
def get_learning_view(
    learner_id: str,
    now: Optional[datetime] = Query(default=None),
    service: LearningService = Depends(get_learning_service),
) -> LearningViewPayload:
    try:
        view = service.resolve_learning_view(_learner_id(learner_id), _resolve_now(now))
    except UpstreamUnavailable as exc:
        raise _unavailable(exc) from exc
    return learning_view_payload(view)


@router.get(
    "/{learner_id}/lessons",
    response_model=LessonListPayload,
    status_code=status.HTTP_200_OK,
)
def list_learner_lessons(
    learner_id: str,
    content_type: Optional[str] = Query(default=None),
    level: Optional[str] = Query(default=None),
    language: Optional[str] = Query(default=None),
    now: Optional[datetime] = Query(default=None),
    service: LearningService = Depends(get_learning_service),
) -> LessonListPayload:
    normalized = _learner_id(learner_id)
    filters = ManualFilters(content_type=content_type, level=level, language=language)
    try:
        lessons = service.list_lessons(normalized, _resolve_now(now), filters)
    except UpstreamUnavailable as exc:
        raise _unavailable(exc) from exc
    if lessons is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Lesson list could not be computed.",
        )
    return LessonListPayload(
        learner_id=normalized,
        lessons=[lesson_payload(lesson) for lesson in lessons],
        count=len(lessons),
    )


@router.get(
    "/{learner_id}/filters",
    response_model=FilterOptionsPayload,
    status_code=status.HTTP_200_OK,
)
def get_filter_options(
    learner_id: str,
    service: LearningService = Depends(get_learning_service),
) -> FilterOptionsPayload:
    try:
        options = service.filter_options(_learner_id(learner_id))
    except UpstreamUnavailable as exc:
        raise _unavailable(exc) from exc
    return FilterOptionsPayload(**options)


@router.post(
    "/{learner_id}/completions",
    response_model=CompletionPayload,
    status_code=status.HTTP_200_OK,
)
def record_completion(
    learner_id: str,
    payload: CompletionRequest,
    service: LearningService = Depends(get_learning_service),
) -> CompletionPayload:
    lesson_id = payload.lesson_id.strip()
    if not lesson_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Lesson id cannot be empty.",
        )
    try:
        receipt = service.mark_lesson_complete(
            _learner_id(learner_id),
            lesson_id,
            payload.score,
            now=payload.completed_at,
        )
    except UpstreamUnavailable as exc:
        raise _unavailable(exc) from exc
    return completion_payload(receipt)


__all__ = ["router"]
