"""Quiz attempt lifecycle: start, answer, complete.

Every public operation returns a ``Result``; callers branch on
``result.error.code`` (see ``quiz_engine.core.errors``). ``now`` is always
passed in so the time limit can be evaluated deterministically.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from quiz_engine.core.errors import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    TimeLimitExceededError,
    require_id,
    returns_result,
)
from quiz_engine.models.quiz_submission import STATUS_COMPLETED, STATUS_IN_PROGRESS, QuizSubmission
from quiz_engine.schemas.answers import parse_answer
from quiz_engine.schemas.quiz_config import Question, QuizDefinition
from quiz_engine.services import submission_store
from quiz_engine.services.answer_validator import validate
from quiz_engine.services.auto_grader import grade
from quiz_engine.services.quiz_resolver import resolve_quiz_definition
from quiz_engine.services.time_limit_guard import as_utc, check_within_limit, deadline_for


logger = logging.getLogger(__name__)


def _ensure_in_progress(sub: QuizSubmission) -> None:
    if sub.status != STATUS_IN_PROGRESS:
        raise InvalidStateError(
            "submission must be in-progress",
            submission_id=sub.id,
            status=sub.status,
        )


def _find_question(quiz: QuizDefinition, question_id: Any) -> Question:
    q = quiz.find_question(str(question_id))
    if q is None:
        raise NotFoundError("question not found", question_id=str(question_id), quiz_id=quiz.id)
    return q


def _answer_index(sub: QuizSubmission) -> Dict[str, Dict[str, Any]]:
    # Insertion order is the order questions were first answered.
    return {str(a.get("question_id")): dict(a) for a in (sub.answers_json or []) if isinstance(a, dict)}


def _live_attempt(
    db: Session,
    quiz: QuizDefinition,
    *,
    quiz_id: int,
    student_id: int,
    now: datetime,
) -> Optional[QuizSubmission]:
    """Newest in-progress attempt whose time limit has not run out."""
    for sub in submission_store.list_in_progress(db, quiz_id=quiz_id, student_id=student_id):
        deadline = deadline_for(sub.started_at, quiz)
        if deadline is not None and as_utc(now) > deadline:
            logger.info("Ignoring expired in-progress submission %s (deadline %s)", sub.id, deadline.isoformat())
            continue
        return sub
    return None


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@returns_result
def start_attempt(
    db: Session,
    *,
    quiz_id: int,
    student_id: int,
    enrollment_id: int,
    attempt_number: int,
    now: datetime,
    course_module_link_id: Optional[int] = None,
) -> QuizSubmission:
    quiz_id = require_id(quiz_id, "quiz_id")
    student_id = require_id(student_id, "student_id")
    enrollment_id = require_id(enrollment_id, "enrollment_id")
    try:
        attempt_number = int(attempt_number)
    except (TypeError, ValueError):
        raise InvalidInputError("attempt_number must be an integer") from None
    if attempt_number < 1:
        raise InvalidInputError("attempt_number must be at least 1", attempt_number=attempt_number)

    quiz = resolve_quiz_definition(db, quiz_id)

    open_attempt = _live_attempt(db, quiz, quiz_id=quiz_id, student_id=student_id, now=now)
    if open_attempt is not None:
        raise InvalidStateError(
            "another attempt is already in progress",
            submission_id=open_attempt.id,
            attempt_number=open_attempt.attempt_number,
        )

    if submission_store.find_by_attempt_number(
        db, quiz_id=quiz_id, student_id=student_id, attempt_number=attempt_number
    ):
        raise InvalidInputError(
            f"submission already exists for attempt {attempt_number}",
            attempt_number=attempt_number,
        )

    sub = QuizSubmission(
        quiz_id=quiz_id,
        course_module_link_id=course_module_link_id,
        student_id=student_id,
        enrollment_id=enrollment_id,
        attempt_number=attempt_number,
        status=STATUS_IN_PROGRESS,
        started_at=now,
        answers_json=[],
        flagged_questions_json=[],
        question_results_json=[],
    )
    try:
        sub = submission_store.create_submission(db, sub)
    except IntegrityError:
        # Lost a race with a concurrent start for the same attempt number.
        db.rollback()
        raise InvalidInputError(
            f"submission already exists for attempt {attempt_number}",
            attempt_number=attempt_number,
        ) from None

    logger.info(
        "Started attempt %s (submission=%s quiz=%s student=%s)",
        attempt_number,
        sub.id,
        quiz_id,
        student_id,
    )
    return sub


@returns_result
def answer_question(db: Session, *, submission_id: int, question_id: str, answer: Any) -> List[Dict[str, Any]]:
    """Record (or replace) the answer to one question of an in-progress attempt.

    Returns the full ordered answer list. Re-answering keeps the question's
    original position.
    """
    submission_id = require_id(submission_id, "submission_id")

    def _apply(sub: QuizSubmission) -> None:
        _ensure_in_progress(sub)
        quiz = resolve_quiz_definition(db, sub.quiz_id)
        question = _find_question(quiz, question_id)
        stored = validate(question, parse_answer(answer))

        answers = _answer_index(sub)
        answers[question.id] = stored.to_json()
        sub.answers_json = list(answers.values())

    sub, _ = submission_store.update_submission(db, submission_id, _apply)
    return list(sub.answers_json)


@returns_result
def complete_attempt(db: Session, *, submission_id: int, now: datetime) -> QuizSubmission:
    """Finalize an attempt: enforce the timer, record timing, grade if automatic."""
    submission_id = require_id(submission_id, "submission_id")

    def _apply(sub: QuizSubmission) -> None:
        _ensure_in_progress(sub)
        quiz = resolve_quiz_definition(db, sub.quiz_id)

        try:
            check_within_limit(sub, quiz, now)
        except TimeLimitExceededError as exc:
            logger.info("Refused completion of submission %s: %s %s", sub.id, exc.message, exc.details)
            raise

        sub.submitted_at = now
        sub.time_spent_minutes = (as_utc(now) - as_utc(sub.started_at)).total_seconds() / 60.0

        if quiz.grading_type == "automatic":
            result = grade(sub.answers_json or [], quiz)
            sub.total_score = result.total_score
            sub.max_score = result.max_score
            sub.percentage = result.percentage
            sub.question_results_json = result.to_dict()["question_results"]
            sub.grading_feedback = result.feedback
            sub.auto_graded = True
            sub.needs_manual_grading = result.needs_manual_grading
            sub.graded_at = now
        else:
            sub.needs_manual_grading = True

        sub.status = STATUS_COMPLETED

    try:
        sub, _ = submission_store.update_submission(db, submission_id, _apply)
    except StaleDataError:
        raise InvalidStateError("submission was modified concurrently", submission_id=submission_id) from None

    logger.info(
        "Completed submission %s (score=%s/%s, manual=%s)",
        sub.id,
        sub.total_score,
        sub.max_score,
        sub.needs_manual_grading,
    )
    return sub


# ---------------------------------------------------------------------------
# Answer housekeeping
# ---------------------------------------------------------------------------


@returns_result
def remove_answer(db: Session, *, submission_id: int, question_id: str) -> List[Dict[str, Any]]:
    submission_id = require_id(submission_id, "submission_id")

    def _apply(sub: QuizSubmission) -> None:
        _ensure_in_progress(sub)
        question = _find_question(resolve_quiz_definition(db, sub.quiz_id), question_id)

        answers = _answer_index(sub)
        if answers.pop(question.id, None) is not None:
            sub.answers_json = list(answers.values())

    sub, _ = submission_store.update_submission(db, submission_id, _apply)
    return list(sub.answers_json or [])


def _set_flag(db: Session, submission_id: Any, question_id: str, *, flagged: bool) -> List[str]:
    submission_id = require_id(submission_id, "submission_id")

    def _apply(sub: QuizSubmission) -> None:
        _ensure_in_progress(sub)
        question = _find_question(resolve_quiz_definition(db, sub.quiz_id), question_id)

        flags = [str(x) for x in (sub.flagged_questions_json or [])]
        if flagged and question.id not in flags:
            sub.flagged_questions_json = flags + [question.id]
        elif not flagged and question.id in flags:
            sub.flagged_questions_json = [x for x in flags if x != question.id]

    sub, _ = submission_store.update_submission(db, submission_id, _apply)
    return list(sub.flagged_questions_json or [])


@returns_result
def flag_question(db: Session, *, submission_id: int, question_id: str) -> List[str]:
    return _set_flag(db, submission_id, question_id, flagged=True)


@returns_result
def unflag_question(db: Session, *, submission_id: int, question_id: str) -> List[str]:
    return _set_flag(db, submission_id, question_id, flagged=False)


@returns_result
def delete_attempt(db: Session, *, submission_id: int) -> int:
    """Remove a submission in any status. Returns the deleted id."""
    submission_id = require_id(submission_id, "submission_id")
    sub = submission_store.get_submission(db, submission_id)
    if sub is None:
        raise NotFoundError("submission not found", submission_id=submission_id)
    submission_store.delete_submission(db, sub)
    logger.info("Deleted submission %s (quiz=%s student=%s)", submission_id, sub.quiz_id, sub.student_id)
    return submission_id


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@returns_result
def get_attempt(db: Session, *, submission_id: int) -> QuizSubmission:
    submission_id = require_id(submission_id, "submission_id")
    sub = submission_store.get_submission(db, submission_id)
    if sub is None:
        raise NotFoundError("submission not found", submission_id=submission_id)
    return sub


@returns_result
def list_attempts(
    db: Session,
    *,
    quiz_id: int,
    student_id: Optional[int] = None,
    status: Optional[str] = None,
) -> List[QuizSubmission]:
    quiz_id = require_id(quiz_id, "quiz_id")
    if student_id is not None:
        student_id = require_id(student_id, "student_id")
    if status and status not in (STATUS_IN_PROGRESS, STATUS_COMPLETED):
        raise InvalidInputError("unknown status filter", status=status)
    return submission_store.list_submissions(db, quiz_id=quiz_id, student_id=student_id, status=status)


@returns_result
def next_attempt_number(db: Session, *, quiz_id: int, student_id: int) -> int:
    quiz_id = require_id(quiz_id, "quiz_id")
    student_id = require_id(student_id, "student_id")
    return submission_store.max_attempt_number(db, quiz_id=quiz_id, student_id=student_id) + 1


@returns_result
def check_in_progress(db: Session, *, quiz_id: int, student_id: int, now: datetime) -> Optional[QuizSubmission]:
    """The attempt that would block a new start, or None once its time limit ran out."""
    quiz_id = require_id(quiz_id, "quiz_id")
    student_id = require_id(student_id, "student_id")
    quiz = resolve_quiz_definition(db, quiz_id)
    return _live_attempt(db, quiz, quiz_id=quiz_id, student_id=student_id, now=now)
