import logging

from fastapi import APIRouter, Depends, Query

from principia.api.deps import get_content_repo, get_learning_repo, require_learner_id
from principia.api.models import DueReviewResponse, GradeReviewRequest, GradeReviewResponse, MasteryResponse, ReviewStatsResponse, ScheduleResponse
from principia.services import learning as learning_service
from principia.storage.content_repo import ContentRepository
from principia.storage.learning_repo import LearningRepository

router = APIRouter()
logger = logging.getLogger("principia.api.routes.reviews")


@router.get("/due", response_model=list[DueReviewResponse])
async def list_due_reviews(  # noqa: B008
  limit: int = Query(default=50, ge=1, le=200),
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  learning_repo: LearningRepository = Depends(get_learning_repo),  # noqa: B008
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
) -> list[DueReviewResponse]:
  """List reviews that are due now, oldest first."""
  items = await learning_service.list_due_reviews(learner_id=learner_id, learning_repo=learning_repo, content_repo=content_repo, limit=limit)
  return [DueReviewResponse(schedule=ScheduleResponse.from_record(item.schedule), principle_title=item.principle.title if item.principle else None) for item in items]


@router.get("/stats", response_model=ReviewStatsResponse)
async def get_review_stats(  # noqa: B008
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  learning_repo: LearningRepository = Depends(get_learning_repo),  # noqa: B008
) -> ReviewStatsResponse:
  stats = await learning_service.review_stats(learner_id=learner_id, learning_repo=learning_repo)
  return ReviewStatsResponse(due_count=stats.due_count, total_tracked=stats.total_tracked, average_mastery=stats.average_mastery, mastered_count=stats.mastered_count)


@router.post("/{review_id}/grade", response_model=GradeReviewResponse)
async def grade_review(  # noqa: B008
  review_id: str,
  payload: GradeReviewRequest,
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  learning_repo: LearningRepository = Depends(get_learning_repo),  # noqa: B008
) -> GradeReviewResponse:
  """Grade a due review and return the rescheduled entry with a next-review hint."""
  outcome = await learning_service.grade_review(learner_id=learner_id, review_id=review_id, quality=payload.quality, learning_repo=learning_repo)
  return GradeReviewResponse(schedule=ScheduleResponse.from_record(outcome.schedule), mastery=MasteryResponse.from_record(outcome.mastery), next_review_in=outcome.next_review_in, message=outcome.message)
