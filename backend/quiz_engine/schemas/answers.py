from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from quiz_engine.core.errors import InvalidInputError, TypeMismatchError
from quiz_engine.schemas.quiz_config import QUESTION_TYPES, QuestionType


# ---------------------------------------------------------------------------
# Incoming answers (tagged by the question type they target)
# ---------------------------------------------------------------------------


class _AnswerBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class MultipleChoiceAnswer(_AnswerBase):
    type: Literal["multiple-choice"]
    value: str


class ShortAnswerAnswer(_AnswerBase):
    type: Literal["short-answer"]
    value: str


class ChoiceAnswer(_AnswerBase):
    type: Literal["choice"]
    value: List[str]


class FillInTheBlankAnswer(_AnswerBase):
    type: Literal["fill-in-the-blank"]
    value: Dict[str, str]


TypedAnswer = Annotated[
    Union[MultipleChoiceAnswer, ShortAnswerAnswer, ChoiceAnswer, FillInTheBlankAnswer],
    Field(discriminator="type"),
]

_typed_answer_adapter: TypeAdapter = TypeAdapter(TypedAnswer)


def parse_answer(raw: Any) -> TypedAnswer:
    """Turn a ``{"type", "value"}`` payload into a typed answer.

    An unknown tag cannot match any question, so it is reported as a type
    mismatch. A known tag with a badly shaped value is a validation error.
    """
    if isinstance(raw, (MultipleChoiceAnswer, ShortAnswerAnswer, ChoiceAnswer, FillInTheBlankAnswer)):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        raise InvalidInputError("answer must be an object with 'type' and 'value'")

    tag = raw.get("type")
    if tag not in QUESTION_TYPES:
        raise TypeMismatchError("answer type does not match question type", answer_type=tag)

    try:
        return _typed_answer_adapter.validate_python(raw)
    except ValidationError as exc:
        raise InvalidInputError(
            "answer value has the wrong shape",
            answer_type=tag,
            errors=[e.get("msg") for e in exc.errors()],
        ) from exc


# ---------------------------------------------------------------------------
# Stored form (one entry per answered question inside a submission)
# ---------------------------------------------------------------------------


class StoredAnswer(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    question_id: str
    question_type: QuestionType
    selected_answer: Optional[str] = None
    multiple_choice_answers: Optional[List[str]] = None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
