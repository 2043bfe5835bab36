import logging

from fastapi import APIRouter, Depends, Query, Response, status

from principia.ai.content_service import ContentService
from principia.api.deps import get_content_repo, get_content_service, get_jobs_repo, get_learners_repo, get_optional_learner_id, get_quiz_repo, require_learner_id
from principia.api.models import GenerateTopicRequest, GenerateTopicResponse, QuizResponse, TopicResponse, TopicSummaryResponse
from principia.config import Settings, get_settings
from principia.services import generation as generation_service
from principia.services import quizzes as quiz_service
from principia.storage.content_repo import ContentRepository
from principia.storage.jobs_repo import JobsRepository
from principia.storage.learners_repo import LearnersRepository
from principia.storage.quiz_repo import QuizRepository

router = APIRouter()
logger = logging.getLogger("principia.api.routes.topics")


@router.post("/generate", response_model=GenerateTopicResponse, responses={202: {"model": GenerateTopicResponse}})
async def generate_topic(  # noqa: B008
  request: GenerateTopicRequest,
  response: Response,
  settings: Settings = Depends(get_settings),  # noqa: B008
  learner_id: str | None = Depends(get_optional_learner_id),  # noqa: B008
  jobs_repo: JobsRepository = Depends(get_jobs_repo),  # noqa: B008
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
  learners_repo: LearnersRepository = Depends(get_learners_repo),  # noqa: B008
) -> GenerateTopicResponse:
  """Return the topic when it already exists, otherwise queue a generation job to poll."""
  outcome = await generation_service.request_topic_generation(request.title, requester_id=learner_id, settings=settings, jobs_repo=jobs_repo, content_repo=content_repo, learners_repo=learners_repo)
  if outcome.topic is not None:
    return GenerateTopicResponse(status="exists", slug=outcome.slug, topic=TopicResponse.from_record(outcome.topic))

  response.status_code = status.HTTP_202_ACCEPTED
  return GenerateTopicResponse(status="queued", slug=outcome.slug, job_id=outcome.job.job_id, poll_interval_seconds=settings.status_poll_interval_seconds)


@router.get("/{slug}", response_model=TopicResponse)
async def get_topic(  # noqa: B008
  slug: str,
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
) -> TopicResponse:
  """Fetch a generated topic with its ordered principles."""
  topic = await generation_service.get_topic(slug, content_repo=content_repo)
  return TopicResponse.from_record(topic)


@router.get("", response_model=list[TopicSummaryResponse])
async def list_topics(  # noqa: B008
  limit: int = Query(default=20, ge=1, le=100),
  offset: int = Query(default=0, ge=0),
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
) -> list[TopicSummaryResponse]:
  """Browse public topics, newest first."""
  topics = await generation_service.list_public_topics(content_repo=content_repo, limit=limit, offset=offset)
  return [TopicSummaryResponse.from_record(item) for item in topics]


@router.post("/{slug}/quiz", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(  # noqa: B008
  slug: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  content_service: ContentService = Depends(get_content_service),  # noqa: B008
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
  quiz_repo: QuizRepository = Depends(get_quiz_repo),  # noqa: B008
  learners_repo: LearnersRepository = Depends(get_learners_repo),  # noqa: B008
) -> QuizResponse:
  """Generate a multiple-choice quiz over the topic's principles."""
  quiz = await quiz_service.create_quiz(learner_id=learner_id, slug=slug, settings=settings, content_service=content_service, content_repo=content_repo, quiz_repo=quiz_repo, learners_repo=learners_repo)
  return QuizResponse.from_record(quiz)
