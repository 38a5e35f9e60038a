from __future__ import annotations

import json
from typing import Dict, Mapping, Optional

from quiz_engine.core.errors import InvalidInputError, TypeMismatchError
from quiz_engine.schemas.answers import (
    ChoiceAnswer,
    FillInTheBlankAnswer,
    MultipleChoiceAnswer,
    ShortAnswerAnswer,
    StoredAnswer,
    TypedAnswer,
)
from quiz_engine.schemas.quiz_config import Question


def dump_blank_answers(value: Mapping[str, str]) -> str:
    """Canonical text form of a blank-id -> answer mapping (stable key order)."""
    return json.dumps(dict(value), sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def load_blank_answers(raw: Optional[str]) -> Dict[str, str]:
    """Inverse of :func:`dump_blank_answers`. Malformed text yields no blanks."""
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    if not isinstance(data, dict):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


def validate(question: Question, answer: TypedAnswer) -> StoredAnswer:
    """Check the answer targets the question's type and normalize it for storage."""
    if answer.type != question.type:
        raise TypeMismatchError(
            "answer type does not match question type",
            question_id=question.id,
            question_type=question.type,
            answer_type=answer.type,
        )

    if isinstance(answer, (MultipleChoiceAnswer, ShortAnswerAnswer)):
        return StoredAnswer(question_id=question.id, question_type=question.type, selected_answer=answer.value)
    if isinstance(answer, ChoiceAnswer):
        # Order and duplicates are kept as submitted.
        return StoredAnswer(
            question_id=question.id,
            question_type=question.type,
            multiple_choice_answers=list(answer.value),
        )
    if isinstance(answer, FillInTheBlankAnswer):
        return StoredAnswer(
            question_id=question.id,
            question_type=question.type,
            selected_answer=dump_blank_answers(answer.value),
        )

    raise InvalidInputError("unsupported answer type", answer_type=getattr(answer, "type", None))
