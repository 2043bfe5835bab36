from . import jobs, mastery, progress, quizzes, reviews, topics

__all__ = ["jobs", "mastery", "progress", "quizzes", "reviews", "topics"]
