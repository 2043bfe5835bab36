"""Schema package exports."""

from .content import Principle, Topic
from .jobs import GenerationJob
from .learners import Learner
from .learning import PrincipleMastery, ReviewSchedule
from .quizzes import Quiz, QuizQuestion, TopicProgress

__all__ = ["GenerationJob", "Learner", "Principle", "PrincipleMastery", "Quiz", "QuizQuestion", "ReviewSchedule", "Topic", "TopicProgress"]
