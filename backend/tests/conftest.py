import os

# Settings are read at import time; keep tests off any local .db file and Redis.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ASYNC_QUEUE_ENABLED", "false")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quiz_engine.db.base import Base
from quiz_engine.services.quiz_resolver import save_quiz_definition


MIXED_QUESTIONS = [
    {
        "id": "q1",
        "type": "multiple-choice",
        "prompt": "2 + 2 = ?",
        "options": {"a": "3", "b": "4", "c": "5"},
        "correctAnswer": "b",
        "scoring": {"type": "simple", "points": 2},
    },
    {
        "id": "q2",
        "type": "choice",
        "prompt": "Pick the primes",
        "options": {"a": "2", "b": "4", "c": "5", "d": "9"},
        "correctAnswers": ["a", "c"],
        "scoring": {
            "type": "weighted",
            "mode": "partial-with-penalty",
            "maxPoints": 4,
            "pointsPerCorrect": 2,
            "penaltyPerIncorrect": 1,
        },
    },
    {
        "id": "q3",
        "type": "fill-in-the-blank",
        "prompt": "{{country}} has {{capital}} as its capital",
        "correctAnswers": {"country": "France", "capital": "Paris"},
        "scoring": {"type": "weighted", "mode": "partial-no-penalty", "maxPoints": 2, "pointsPerCorrect": 1},
    },
    {
        "id": "q4",
        "type": "short-answer",
        "prompt": "Explain recursion",
        "scoring": {"type": "manual", "maxPoints": 5},
    },
    {
        "id": "q5",
        "type": "multiple-choice",
        "prompt": "How did you like this quiz?",
        "options": {"a": "Good", "b": "Bad"},
    },
]


@pytest.fixture()
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def make_quiz(db):
    def _make(questions=None, *, timer=None, grading_type="automatic", title="Quiz"):
        config = {
            "version": "v2",
            "title": title,
            "gradingType": grading_type,
            "pages": [{"id": "p1", "title": "Page 1", "questions": questions if questions is not None else MIXED_QUESTIONS}],
        }
        if timer is not None:
            config["globalTimerSeconds"] = timer
        return save_quiz_definition(db, title=title, config=config)

    return _make


@pytest.fixture()
def mixed_questions():
    return [dict(q) for q in MIXED_QUESTIONS]
