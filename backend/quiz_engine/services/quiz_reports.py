"""Per-quiz grade and statistics reports built from stored submissions."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from quiz_engine.core.errors import require_id, returns_result
from quiz_engine.models.quiz_submission import STATUS_COMPLETED, QuizSubmission
from quiz_engine.schemas.quiz_config import ChoiceQuestion, MultipleChoiceQuestion, Question, QuizDefinition
from quiz_engine.services import submission_store
from quiz_engine.services.auto_grader import question_max_points
from quiz_engine.services.quiz_resolver import resolve_quiz_definition


logger = logging.getLogger(__name__)


def _r2(x: float) -> float:
    return round(float(x), 2)


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _quiz_summary(quiz: QuizDefinition) -> Dict[str, Any]:
    questions = [
        {"id": q.id, "prompt": q.prompt, "question_type": q.type, "max_points": question_max_points(q)}
        for q in quiz.iter_questions()
    ]
    return {
        "id": quiz.id,
        "title": quiz.title,
        "total_questions": len(questions),
        "max_score": _r2(sum(q["max_points"] for q in questions)),
        "questions": questions,
    }


def _results_by_question(sub: QuizSubmission) -> Dict[str, Dict[str, Any]]:
    return {
        str(r.get("question_id")): r
        for r in (sub.question_results_json or [])
        if isinstance(r, dict) and r.get("question_id") is not None
    }


def _answers_by_question(sub: QuizSubmission) -> Dict[str, Dict[str, Any]]:
    return {
        str(a.get("question_id")): a
        for a in (sub.answers_json or [])
        if isinstance(a, dict) and a.get("question_id") is not None
    }


def _question_scores(sub: QuizSubmission, quiz: QuizDefinition) -> List[Dict[str, Any]]:
    results = _results_by_question(sub)
    out = []
    for q in quiz.iter_questions():
        r = results.get(q.id) or {}
        out.append(
            {
                "question_id": q.id,
                "points_earned": float(r.get("points_earned") or 0.0),
                "max_points": question_max_points(q),
                # Ungraded until the attempt is completed and scored.
                "is_correct": r.get("is_correct"),
            }
        )
    return out


def _is_scored(sub: QuizSubmission) -> bool:
    return sub.status == STATUS_COMPLETED and sub.total_score is not None and sub.max_score is not None


@returns_result
def grades_report(db: Session, *, quiz_id: int) -> Dict[str, Any]:
    """Every attempt with its per-question scores, plus class averages.

    Averages only count completed attempts that have a score. A question the
    attempt never scored counts as 0 points with ``is_correct`` None.
    """
    quiz_id = require_id(quiz_id, "quiz_id")
    quiz = resolve_quiz_definition(db, quiz_id)
    subs = submission_store.list_submissions(db, quiz_id=quiz_id, limit=None)

    attempts = []
    scored: List[Dict[str, Any]] = []
    for sub in subs:
        question_scores = _question_scores(sub, quiz)
        attempts.append(
            {
                "submission_id": sub.id,
                "student_id": sub.student_id,
                "enrollment_id": sub.enrollment_id,
                "attempt_number": sub.attempt_number,
                "status": sub.status,
                "started_at": _iso(sub.started_at),
                "submitted_at": _iso(sub.submitted_at),
                "time_spent_minutes": _r2(sub.time_spent_minutes) if sub.time_spent_minutes is not None else None,
                "total_score": sub.total_score,
                "max_score": sub.max_score,
                "percentage": sub.percentage,
                "question_scores": question_scores,
            }
        )
        if _is_scored(sub):
            scored.append({"total_score": sub.total_score, "question_scores": question_scores})

    overall = sum(a["total_score"] for a in scored) / len(scored) if scored else 0.0

    question_averages = []
    for q in quiz.iter_questions():
        points = [
            qs["points_earned"] for a in scored for qs in a["question_scores"] if qs["question_id"] == q.id
        ]
        if points:
            question_averages.append(
                {"question_id": q.id, "average_score": _r2(sum(points) / len(points)), "count": len(points)}
            )

    logger.info("Built grades report for quiz %s (%s attempts, %s scored)", quiz_id, len(attempts), len(scored))
    return {
        "quiz": _quiz_summary(quiz),
        "attempts": attempts,
        "averages": {
            "overall_average": _r2(overall),
            "overall_average_count": len(scored),
            "question_averages": question_averages,
        },
    }


def _selected_options(q: Question, answer: Dict[str, Any]) -> List[str]:
    if isinstance(q, MultipleChoiceQuestion):
        selected = answer.get("selected_answer")
        return [str(selected)] if selected else []
    # A choice answer counts each option once.
    return list(dict.fromkeys(str(x) for x in (answer.get("multiple_choice_answers") or [])))


def _response_distribution(q: Question, counts: Counter, answered: int) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(q, (MultipleChoiceQuestion, ChoiceQuestion)):
        return None
    options = list(q.options) + [o for o in counts if o not in q.options]
    return [
        {
            "option": option,
            "count": counts.get(option, 0),
            "percentage": _r2(counts.get(option, 0) / answered * 100) if answered else 0.0,
        }
        for option in options
    ]


@returns_result
def statistics_report(db: Session, *, quiz_id: int) -> Dict[str, Any]:
    """Attempt totals and, per question, how often it was answered and answered correctly.

    ``difficulty`` is the share of answered attempts that got the question right,
    in percent. Multiple-choice and choice questions also get a response
    distribution over their options.
    """
    quiz_id = require_id(quiz_id, "quiz_id")
    quiz = resolve_quiz_definition(db, quiz_id)
    subs = submission_store.list_submissions(db, quiz_id=quiz_id, limit=None)
    completed = [s for s in subs if s.status == STATUS_COMPLETED]

    scores = [float(s.total_score) for s in completed if s.total_score is not None]
    percentages = [float(s.percentage) for s in completed if s.percentage is not None]

    answers = [_answers_by_question(s) for s in subs]
    results = [_results_by_question(s) for s in subs]

    question_statistics = []
    for q in quiz.iter_questions():
        answered = correct = incorrect = 0
        points: List[float] = []
        counts: Counter = Counter()
        for sub_answers, sub_results in zip(answers, results):
            answer = sub_answers.get(q.id)
            if answer is None:
                continue
            answered += 1
            r = sub_results.get(q.id) or {}
            points.append(float(r.get("points_earned") or 0.0))
            if r.get("is_correct") is True:
                correct += 1
            elif r.get("is_correct") is False:
                incorrect += 1
            if isinstance(q, (MultipleChoiceQuestion, ChoiceQuestion)):
                counts.update(_selected_options(q, answer))

        question_statistics.append(
            {
                "question_id": q.id,
                "prompt": q.prompt,
                "question_type": q.type,
                "max_points": question_max_points(q),
                "total_attempts": len(subs),
                "answered_count": answered,
                "correct_count": correct,
                "incorrect_count": incorrect,
                "average_score": _r2(sum(points) / len(points)) if points else 0.0,
                "difficulty": _r2(correct / answered * 100) if answered else 0.0,
                "response_distribution": _response_distribution(q, counts, answered),
            }
        )

    summary = _quiz_summary(quiz)
    summary.pop("questions")
    return {
        "quiz": summary,
        "overall_stats": {
            "total_attempts": len(subs),
            "completed_attempts": len(completed),
            "average_score": _r2(sum(scores) / len(scores)) if scores else 0.0,
            "average_percentage": _r2(sum(percentages) / len(percentages)) if percentages else 0.0,
        },
        "question_statistics": question_statistics,
    }
