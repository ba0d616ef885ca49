import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool

from ..core.errors import NotFoundError, ValidationError
from ..models.quiz import QuizFilters, QuizListResponse, ShuffleRequest
from ..services.authorization import Principal
from ..services.container import Services
from ..services.quiz_combiner import combine_quizzes
from ..services.quiz_store import QuizStore
from ..services.quiz_validator import build_quiz
from .deps import get_services, quiz_admin, quiz_creator

logger = logging.getLogger(__name__)

router = APIRouter()


def _new_quiz_id(store: QuizStore) -> str:
    while True:
        quiz_id = f"quiz-{uuid4().hex[:12]}"
        if not store.exists(quiz_id):
            return quiz_id


LIST_RESPONSE = dict(response_model=QuizListResponse, response_model_by_alias=True, response_model_exclude_none=True)


@router.get("", **LIST_RESPONSE)
@router.get("/", include_in_schema=False, **LIST_RESPONSE)
def list_quizzes(
    subject: Optional[str] = Query(None),
    topic: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    summaries = services.quiz_store.list(QuizFilters(subject=subject, topic=topic, search=q))
    return QuizListResponse(quizzes=summaries, count=len(summaries))


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
async def create_quiz(
    request: Request,
    principal: Principal = Depends(quiz_creator),
    services: Services = Depends(get_services),
):
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError(["Body must be valid JSON"])
    store = services.quiz_store

    def _create():
        quiz = build_quiz(payload, _new_quiz_id(store), principal.subject, datetime.now(timezone.utc))
        return store.save(quiz.id, quiz)

    quiz = await run_in_threadpool(_create)
    logger.info("Quiz %s created by %s %s (%d questions)", quiz.id, principal.kind, principal.subject,
                len(quiz.questions))
    return {"success": True, "quiz": quiz.to_document()}


@router.post("/shuffle")
def shuffle_quizzes(payload: ShuffleRequest, services: Services = Depends(get_services)):
    combined = combine_quizzes(
        services.quiz_store,
        payload.quiz_ids,
        question_count=payload.question_count,
        shuffle=payload.shuffle,
    )
    return combined.to_document()


@router.get("/{quiz_id}")
def get_quiz(quiz_id: str, services: Services = Depends(get_services)):
    quiz = services.quiz_store.get(quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz not found", id=quiz_id)
    return quiz.to_document()


@router.delete("/{quiz_id}")
def delete_quiz(
    quiz_id: str,
    principal: Principal = Depends(quiz_admin),
    services: Services = Depends(get_services),
):
    if not services.quiz_store.delete(quiz_id):
        raise NotFoundError("Quiz not found", id=quiz_id)
    logger.info("Quiz %s deleted by %s", quiz_id, principal.subject)
    return {"success": True, "id": quiz_id}
