import logging

from fastapi import APIRouter, Depends, Query

from principia.api.deps import get_content_repo, get_learners_repo, get_learning_repo, require_learner_id
from principia.api.models import MasteryOverviewResponse, MasteryResponse, QuizAnswerRequest, QuizAnswerResponse, ScheduleResponse, WeakPrincipleResponse
from principia.services import learning as learning_service
from principia.storage.content_repo import ContentRepository
from principia.storage.learners_repo import LearnersRepository
from principia.storage.learning_repo import LearningRepository

router = APIRouter()
logger = logging.getLogger("principia.api.routes.mastery")


@router.post("/answers", response_model=QuizAnswerResponse)
async def record_quiz_answer(  # noqa: B008
  payload: QuizAnswerRequest,
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
  learning_repo: LearningRepository = Depends(get_learning_repo),  # noqa: B008
  learners_repo: LearnersRepository = Depends(get_learners_repo),  # noqa: B008
) -> QuizAnswerResponse:
  """Record a quiz answer against a principle."""
  outcome = await learning_service.record_quiz_answer(learner_id=learner_id, principle_id=payload.principle_id, was_correct=payload.was_correct, content_repo=content_repo, learning_repo=learning_repo, learners_repo=learners_repo)
  return QuizAnswerResponse(mastery=MasteryResponse.from_record(outcome.mastery), schedule=ScheduleResponse.from_record(outcome.schedule), schedule_created=outcome.schedule_created)


@router.get("/weak", response_model=list[WeakPrincipleResponse])
async def list_weak_principles(  # noqa: B008
  limit: int = Query(default=10, ge=1, le=100),
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  learning_repo: LearningRepository = Depends(get_learning_repo),  # noqa: B008
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
) -> list[WeakPrincipleResponse]:
  items = await learning_service.weak_principles(learner_id=learner_id, learning_repo=learning_repo, content_repo=content_repo, limit=limit)
  return [
    WeakPrincipleResponse(
      principle_id=item.mastery.principle_id,
      topic_id=item.mastery.topic_id,
      title=item.principle.title if item.principle else None,
      mastery_score=item.mastery.mastery_score,
      times_reviewed=item.mastery.times_reviewed,
      last_reviewed_at=item.mastery.last_reviewed_at,
    )
    for item in items
  ]


@router.get("/overview", response_model=MasteryOverviewResponse)
async def get_mastery_overview(  # noqa: B008
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  learning_repo: LearningRepository = Depends(get_learning_repo),  # noqa: B008
) -> MasteryOverviewResponse:
  overview = await learning_service.mastery_overview(learner_id=learner_id, learning_repo=learning_repo)
  return MasteryOverviewResponse.from_overview(overview)
