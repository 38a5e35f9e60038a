from quiz_engine.models.quiz import Quiz
from quiz_engine.models.quiz_submission import QuizSubmission

__all__ = [
    "Quiz",
    "QuizSubmission",
]
