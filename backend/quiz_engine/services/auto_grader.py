from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Optional

from quiz_engine.schemas.quiz_config import (
    ChoiceQuestion,
    FillInTheBlankQuestion,
    ManualScoring,
    MultipleChoiceQuestion,
    Question,
    QuizDefinition,
    ScoringRule,
    ShortAnswerQuestion,
    SimpleScoring,
    WeightedScoring,
)
from quiz_engine.services.answer_validator import load_blank_answers


ResultStatus = Literal["graded", "pending_manual", "ungraded"]


@dataclass
class QuestionResult:
    question_id: str
    question_type: str
    status: ResultStatus
    points_earned: float = 0.0
    max_points: float = 0.0
    is_correct: Optional[bool] = None
    answered: bool = False
    feedback: Optional[str] = None


@dataclass
class GradingResult:
    total_score: float
    max_score: float
    percentage: float
    question_results: List[QuestionResult] = field(default_factory=list)
    needs_manual_grading: bool = False
    feedback: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _norm(value: Any, *, case_sensitive: bool) -> str:
    s = str(value or "").strip()
    return s if case_sensitive else s.lower()


def _rule_max(rule: ScoringRule) -> float:
    if isinstance(rule, SimpleScoring):
        return float(rule.points)
    return float(rule.max_points)


def question_max_points(q: Question) -> float:
    """Points a question is worth; 0 when it carries no scoring rule."""
    return _rule_max(q.scoring) if q.scoring is not None else 0.0


def _weighted_points(rule: WeightedScoring, *, correct: int, incorrect: int, all_correct: bool) -> float:
    max_points = float(rule.max_points)
    if rule.mode == "all-or-nothing":
        return max_points if all_correct else 0.0

    earned = float(rule.points_per_correct or 0.0) * correct
    if rule.mode == "partial-with-penalty":
        earned -= float(rule.penalty_per_incorrect or 0.0) * incorrect
    return max(0.0, min(max_points, earned))


def _score_multiple_choice(q: MultipleChoiceQuestion, answer: Dict[str, Any], rule: ScoringRule) -> tuple[float, bool]:
    expected = q.correct_answer
    ok = expected is not None and answer.get("selected_answer") == expected
    return (_rule_max(rule) if ok else 0.0), ok


def _score_choice(q: ChoiceQuestion, answer: Dict[str, Any], rule: ScoringRule) -> tuple[float, bool]:
    selected = set(answer.get("multiple_choice_answers") or [])
    expected = set(q.correct_answers)
    correct = len(selected & expected)
    incorrect = len(selected - expected)
    all_correct = bool(expected) and selected == expected

    if isinstance(rule, WeightedScoring):
        return _weighted_points(rule, correct=correct, incorrect=incorrect, all_correct=all_correct), all_correct
    return (_rule_max(rule) if all_correct else 0.0), all_correct


def _score_fill_in_the_blank(q: FillInTheBlankQuestion, answer: Dict[str, Any], rule: ScoringRule) -> tuple[float, bool]:
    case_sensitive = isinstance(rule, WeightedScoring) and rule.case_sensitive
    given = load_blank_answers(answer.get("selected_answer"))

    correct = 0
    for blank_id, expected in q.correct_answers.items():
        if blank_id in given and _norm(given[blank_id], case_sensitive=case_sensitive) == _norm(
            expected, case_sensitive=case_sensitive
        ):
            correct += 1
    # Missing blanks count against the student like wrong ones.
    incorrect = len(q.correct_answers) - correct
    all_correct = bool(q.correct_answers) and incorrect == 0

    if isinstance(rule, WeightedScoring):
        return _weighted_points(rule, correct=correct, incorrect=incorrect, all_correct=all_correct), all_correct
    return (_rule_max(rule) if all_correct else 0.0), all_correct


def _grade_question(q: Question, answer: Optional[Dict[str, Any]]) -> QuestionResult:
    rule = q.scoring
    answered = answer is not None
    base = dict(question_id=q.id, question_type=q.type, answered=answered)

    if isinstance(q, ShortAnswerQuestion) or isinstance(rule, ManualScoring):
        max_points = question_max_points(q)
        return QuestionResult(status="pending_manual", max_points=max_points, feedback="Requires manual grading.", **base)

    if rule is None:
        return QuestionResult(status="ungraded", **base)

    max_points = _rule_max(rule)
    if not answered:
        return QuestionResult(
            status="graded",
            max_points=max_points,
            is_correct=False,
            feedback="No answer provided.",
            **base,
        )

    if isinstance(q, MultipleChoiceQuestion):
        points, ok = _score_multiple_choice(q, answer, rule)
    elif isinstance(q, ChoiceQuestion):
        points, ok = _score_choice(q, answer, rule)
    elif isinstance(q, FillInTheBlankQuestion):
        points, ok = _score_fill_in_the_blank(q, answer, rule)
    else:
        return QuestionResult(status="ungraded", **base)

    return QuestionResult(
        status="graded",
        points_earned=round(points, 2),
        max_points=max_points,
        is_correct=ok,
        feedback=q.feedback or ("Correct!" if ok else "Incorrect."),
        **base,
    )


def grade(answers: Iterable[Dict[str, Any]], quiz: QuizDefinition) -> GradingResult:
    """Score stored answers against the quiz.

    Manual and short-answer questions are left for a human and excluded from
    the totals, as are questions without a scoring rule.
    """
    by_question: Dict[str, Dict[str, Any]] = {}
    for a in answers or []:
        if isinstance(a, dict) and a.get("question_id") is not None:
            by_question[str(a["question_id"])] = a

    results: List[QuestionResult] = []
    total = 0.0
    max_score = 0.0
    needs_manual = False
    for q in quiz.iter_questions():
        r = _grade_question(q, by_question.get(q.id))
        results.append(r)
        if r.status == "graded":
            total += r.points_earned
            max_score += r.max_points
        elif r.status == "pending_manual":
            needs_manual = True

    total = round(total, 2)
    max_score = round(max_score, 2)
    percentage = round(total / max_score * 100, 2) if max_score > 0 else 0.0

    feedback = f"Quiz completed! You scored {total:g}/{max_score:g} points ({percentage:g}%)."
    if needs_manual:
        feedback += " Some questions require manual grading."

    return GradingResult(
        total_score=total,
        max_score=max_score,
        percentage=percentage,
        question_results=results,
        needs_manual_grading=needs_manual,
        feedback=feedback,
    )
