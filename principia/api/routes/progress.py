import logging

from fastapi import APIRouter, Depends

from principia.api.deps import get_content_repo, get_learners_repo, get_progress_repo, require_learner_id
from principia.api.models import ReadingProgressRequest, TopicProgressResponse
from principia.services import quizzes as quiz_service
from principia.storage.content_repo import ContentRepository
from principia.storage.learners_repo import LearnersRepository
from principia.storage.quiz_repo import ProgressRepository

router = APIRouter()
logger = logging.getLogger("principia.api.routes.progress")


@router.get("", response_model=list[TopicProgressResponse])
async def list_progress(  # noqa: B008
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  progress_repo: ProgressRepository = Depends(get_progress_repo),  # noqa: B008
) -> list[TopicProgressResponse]:
  """List the learner's progress across topics, most recently accessed first."""
  records = await quiz_service.list_progress(learner_id=learner_id, progress_repo=progress_repo)
  return [TopicProgressResponse.from_record(item) for item in records]


@router.get("/{topic_id}", response_model=TopicProgressResponse)
async def get_progress(  # noqa: B008
  topic_id: str,
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  progress_repo: ProgressRepository = Depends(get_progress_repo),  # noqa: B008
) -> TopicProgressResponse:
  record = await quiz_service.get_progress(learner_id=learner_id, topic_id=topic_id, progress_repo=progress_repo)
  return TopicProgressResponse.from_record(record)


@router.post("/{topic_id}", response_model=TopicProgressResponse)
async def record_reading(  # noqa: B008
  topic_id: str,
  payload: ReadingProgressRequest,
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
  progress_repo: ProgressRepository = Depends(get_progress_repo),  # noqa: B008
  learners_repo: LearnersRepository = Depends(get_learners_repo),  # noqa: B008
) -> TopicProgressResponse:
  """Record how many of the topic's principles the learner has read."""
  record = await quiz_service.record_reading(learner_id=learner_id, topic_id=topic_id, principles_completed=payload.principles_completed, content_repo=content_repo, progress_repo=progress_repo, learners_repo=learners_repo)
  return TopicProgressResponse.from_record(record)
