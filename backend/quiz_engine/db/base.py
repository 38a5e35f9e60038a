from quiz_engine.db.base_class import Base

# Import all models so Base.metadata has every table
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.quiz_submission import QuizSubmission
