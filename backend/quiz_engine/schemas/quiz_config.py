from __future__ import annotations

from typing import Annotated, Dict, Iterator, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


QuestionType = Literal["multiple-choice", "short-answer", "choice", "fill-in-the-blank"]
QUESTION_TYPES: tuple[str, ...] = ("multiple-choice", "short-answer", "choice", "fill-in-the-blank")

GradingType = Literal["automatic", "manual"]
WeightedMode = Literal["all-or-nothing", "partial-no-penalty", "partial-with-penalty"]


class _ConfigModel(BaseModel):
    # Definitions are authored elsewhere and never mutated by the engine.
    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)


# ---------------------------------------------------------------------------
# Scoring rules
# ---------------------------------------------------------------------------


class SimpleScoring(_ConfigModel):
    type: Literal["simple"] = "simple"
    points: float = Field(ge=0)

    @property
    def max_points(self) -> float:
        return float(self.points)


class WeightedScoring(_ConfigModel):
    type: Literal["weighted"] = "weighted"
    mode: WeightedMode = "all-or-nothing"
    max_points: float = Field(ge=0, validation_alias=AliasChoices("max_points", "maxPoints"))
    points_per_correct: Optional[float] = Field(
        default=None, ge=0, validation_alias=AliasChoices("points_per_correct", "pointsPerCorrect")
    )
    penalty_per_incorrect: float = Field(
        default=0.0, ge=0, validation_alias=AliasChoices("penalty_per_incorrect", "penaltyPerIncorrect")
    )
    case_sensitive: bool = Field(default=False, validation_alias=AliasChoices("case_sensitive", "caseSensitive"))

    @model_validator(mode="after")
    def _partial_modes_need_unit_points(self):
        if self.mode != "all-or-nothing" and self.points_per_correct is None:
            raise ValueError(f"points_per_correct is required for mode '{self.mode}'")
        return self


class ManualScoring(_ConfigModel):
    type: Literal["manual"] = "manual"
    max_points: float = Field(ge=0, validation_alias=AliasChoices("max_points", "maxPoints"))


ScoringRule = Annotated[Union[SimpleScoring, WeightedScoring, ManualScoring], Field(discriminator="type")]


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


class _QuestionBase(_ConfigModel):
    id: str = Field(min_length=1)
    prompt: str = ""
    feedback: Optional[str] = None
    scoring: Optional[ScoringRule] = None


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple-choice"]
    options: Dict[str, str] = Field(default_factory=dict)
    correct_answer: Optional[str] = Field(default=None, validation_alias=AliasChoices("correct_answer", "correctAnswer"))


class ShortAnswerQuestion(_QuestionBase):
    type: Literal["short-answer"]
    correct_answer: Optional[str] = Field(default=None, validation_alias=AliasChoices("correct_answer", "correctAnswer"))


class ChoiceQuestion(_QuestionBase):
    type: Literal["choice"]
    options: Dict[str, str] = Field(default_factory=dict)
    correct_answers: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("correct_answers", "correctAnswers")
    )


class FillInTheBlankQuestion(_QuestionBase):
    """Prompt carries ``{{blank}}`` markers; ``correct_answers`` maps blank id to expected text."""

    type: Literal["fill-in-the-blank"]
    correct_answers: Dict[str, str] = Field(
        default_factory=dict, validation_alias=AliasChoices("correct_answers", "correctAnswers")
    )


Question = Annotated[
    Union[MultipleChoiceQuestion, ShortAnswerQuestion, ChoiceQuestion, FillInTheBlankQuestion],
    Field(discriminator="type"),
]


class QuizPage(_ConfigModel):
    id: str
    title: str = ""
    questions: List[Question] = Field(default_factory=list)


class QuizDefinition(_ConfigModel):
    version: Literal["v2"] = "v2"
    id: str
    title: str = ""
    pages: List[QuizPage] = Field(default_factory=list)
    global_timer_seconds: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("global_timer_seconds", "globalTimerSeconds", "globalTimer"),
    )
    max_attempts: Optional[int] = Field(
        default=None, ge=1, validation_alias=AliasChoices("max_attempts", "maxAttempts")
    )
    grading_type: GradingType = Field(
        default="automatic", validation_alias=AliasChoices("grading_type", "gradingType")
    )

    @model_validator(mode="after")
    def _question_ids_unique(self):
        seen: set[str] = set()
        for q in self.iter_questions():
            if q.id in seen:
                raise ValueError(f"duplicate question id '{q.id}'")
            seen.add(q.id)
        return self

    def iter_questions(self) -> Iterator[Question]:
        """Questions in page order, then in-page order."""
        for page in self.pages:
            yield from page.questions

    def find_question(self, question_id: str) -> Optional[Question]:
        qid = str(question_id)
        for q in self.iter_questions():
            if q.id == qid:
                return q
        return None

    @property
    def has_time_limit(self) -> bool:
        return bool(self.global_timer_seconds and self.global_timer_seconds > 0)
