import pytest
from pydantic import ValidationError

from quiz_engine.schemas.quiz_config import (
    ChoiceQuestion,
    FillInTheBlankQuestion,
    QuizDefinition,
    WeightedScoring,
)


def _quiz(questions, **extra):
    return QuizDefinition.model_validate({"id": "7", "pages": [{"id": "p1", "questions": questions}], **extra})


def test_questions_parse_into_their_variant(mixed_questions):
    quiz = _quiz(mixed_questions)

    q2 = quiz.find_question("q2")
    q3 = quiz.find_question("q3")
    assert isinstance(q2, ChoiceQuestion)
    assert isinstance(q2.scoring, WeightedScoring)
    assert q2.scoring.mode == "partial-with-penalty"
    assert isinstance(q3, FillInTheBlankQuestion)
    assert q3.correct_answers == {"country": "France", "capital": "Paris"}
    assert quiz.find_question("q5").scoring is None
    assert quiz.find_question("nope") is None


def test_question_order_follows_pages(mixed_questions):
    quiz = QuizDefinition.model_validate(
        {
            "id": "1",
            "pages": [
                {"id": "p1", "questions": [mixed_questions[1], mixed_questions[0]]},
                {"id": "p2", "questions": [mixed_questions[3]]},
            ],
        }
    )
    assert [q.id for q in quiz.iter_questions()] == ["q2", "q1", "q4"]


def test_duplicate_question_ids_are_rejected(mixed_questions):
    with pytest.raises(ValidationError):
        _quiz([mixed_questions[0], dict(mixed_questions[1], id="q1")])


def test_unknown_question_type_is_rejected():
    with pytest.raises(ValidationError):
        _quiz([{"id": "x", "type": "essay", "prompt": "?"}])


def test_partial_modes_require_points_per_correct(mixed_questions):
    bad = dict(mixed_questions[1], scoring={"type": "weighted", "mode": "partial-no-penalty", "maxPoints": 4})
    with pytest.raises(ValidationError):
        _quiz([bad])


def test_timer_aliases():
    assert _quiz([], globalTimer=90).global_timer_seconds == 90
    assert _quiz([], globalTimerSeconds=60).has_time_limit is True
    assert _quiz([]).has_time_limit is False
    assert _quiz([], global_timer_seconds=0).has_time_limit is False


def test_definition_is_frozen(mixed_questions):
    quiz = _quiz(mixed_questions)
    with pytest.raises(ValidationError):
        quiz.title = "changed"
