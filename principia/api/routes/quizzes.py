import logging

from fastapi import APIRouter, Depends

from principia.api.deps import get_content_repo, get_learners_repo, get_learning_repo, get_progress_repo, get_quiz_repo, require_learner_id
from principia.api.models import CompleteQuizResponse, MasteryResponse, QuizResponse, SubmitAnswerRequest, SubmitAnswerResponse, TopicProgressResponse
from principia.services import quizzes as quiz_service
from principia.storage.content_repo import ContentRepository
from principia.storage.learners_repo import LearnersRepository
from principia.storage.learning_repo import LearningRepository
from principia.storage.quiz_repo import ProgressRepository, QuizRepository

router = APIRouter()
logger = logging.getLogger("principia.api.routes.quizzes")


@router.get("/{quiz_id}", response_model=QuizResponse)
async def get_quiz(  # noqa: B008
  quiz_id: str,
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  quiz_repo: QuizRepository = Depends(get_quiz_repo),  # noqa: B008
) -> QuizResponse:
  quiz = await quiz_service.get_quiz(learner_id=learner_id, quiz_id=quiz_id, quiz_repo=quiz_repo)
  return QuizResponse.from_record(quiz)


@router.post("/{quiz_id}/answer", response_model=SubmitAnswerResponse)
async def submit_answer(  # noqa: B008
  quiz_id: str,
  payload: SubmitAnswerRequest,
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  quiz_repo: QuizRepository = Depends(get_quiz_repo),  # noqa: B008
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
  learning_repo: LearningRepository = Depends(get_learning_repo),  # noqa: B008
  learners_repo: LearnersRepository = Depends(get_learners_repo),  # noqa: B008
) -> SubmitAnswerResponse:
  """Answer one question; each question accepts a single answer."""
  outcome = await quiz_service.answer_question(
    learner_id=learner_id,
    quiz_id=quiz_id,
    question_id=payload.question_id,
    answer=payload.answer,
    quiz_repo=quiz_repo,
    content_repo=content_repo,
    learning_repo=learning_repo,
    learners_repo=learners_repo,
  )
  mastery = MasteryResponse.from_record(outcome.mastery) if outcome.mastery is not None else None
  return SubmitAnswerResponse(is_correct=bool(outcome.question.is_correct), correct_answer=outcome.question.correct_answer, explanation=outcome.question.explanation, mastery=mastery)


@router.post("/{quiz_id}/complete", response_model=CompleteQuizResponse)
async def complete_quiz(  # noqa: B008
  quiz_id: str,
  learner_id: str = Depends(require_learner_id),  # noqa: B008
  quiz_repo: QuizRepository = Depends(get_quiz_repo),  # noqa: B008
  content_repo: ContentRepository = Depends(get_content_repo),  # noqa: B008
  progress_repo: ProgressRepository = Depends(get_progress_repo),  # noqa: B008
) -> CompleteQuizResponse:
  """Score the quiz and update topic progress; a quiz can be completed once."""
  outcome = await quiz_service.complete_quiz(learner_id=learner_id, quiz_id=quiz_id, quiz_repo=quiz_repo, content_repo=content_repo, progress_repo=progress_repo)
  progress = TopicProgressResponse.from_record(outcome.progress) if outcome.progress is not None else None
  return CompleteQuizResponse(score=outcome.quiz.score or 0, correct_count=outcome.quiz.correct_count or 0, total_questions=outcome.quiz.total_questions, passed=outcome.passed, progress=progress)
