from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Tuple, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from quiz_engine.core.errors import NotFoundError
from quiz_engine.models.quiz_submission import STATUS_IN_PROGRESS, QuizSubmission


logger = logging.getLogger(__name__)

T = TypeVar("T")

STALE_WRITE_RETRIES = 5


def create_submission(db: Session, submission: QuizSubmission) -> QuizSubmission:
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def get_submission(db: Session, submission_id: int) -> Optional[QuizSubmission]:
    return db.query(QuizSubmission).filter(QuizSubmission.id == int(submission_id)).first()


def list_in_progress(db: Session, *, quiz_id: int, student_id: int) -> List[QuizSubmission]:
    return (
        db.query(QuizSubmission)
        .filter(
            QuizSubmission.quiz_id == int(quiz_id),
            QuizSubmission.student_id == int(student_id),
            QuizSubmission.status == STATUS_IN_PROGRESS,
        )
        .order_by(QuizSubmission.started_at.desc(), QuizSubmission.id.desc())
        .all()
    )


def find_by_attempt_number(db: Session, *, quiz_id: int, student_id: int, attempt_number: int) -> Optional[QuizSubmission]:
    return (
        db.query(QuizSubmission)
        .filter(
            QuizSubmission.quiz_id == int(quiz_id),
            QuizSubmission.student_id == int(student_id),
            QuizSubmission.attempt_number == int(attempt_number),
        )
        .first()
    )


def max_attempt_number(db: Session, *, quiz_id: int, student_id: int) -> int:
    value = (
        db.query(func.max(QuizSubmission.attempt_number))
        .filter(QuizSubmission.quiz_id == int(quiz_id), QuizSubmission.student_id == int(student_id))
        .scalar()
    )
    return int(value or 0)


def list_submissions(
    db: Session,
    *,
    quiz_id: int,
    student_id: Optional[int] = None,
    status: Optional[str] = None,
    limit: Optional[int] = 100,
) -> List[QuizSubmission]:
    q = db.query(QuizSubmission).filter(QuizSubmission.quiz_id == int(quiz_id))
    if student_id is not None:
        q = q.filter(QuizSubmission.student_id == int(student_id))
    if status:
        q = q.filter(QuizSubmission.status == str(status))
    q = q.order_by(QuizSubmission.started_at.desc(), QuizSubmission.id.desc())
    if limit is not None:
        q = q.limit(int(limit))
    return q.all()


@contextmanager
def locked_submission(db: Session, submission_id: int) -> Iterator[QuizSubmission]:
    """Yield the submission row locked FOR UPDATE; commit on exit, roll back on error.

    SQLite ignores FOR UPDATE, so a racing writer there is only caught by the
    ``version_id`` check at flush (StaleDataError). Use :func:`update_submission`
    for read-modify-write so that case is retried.
    """
    try:
        sub = (
            db.query(QuizSubmission)
            .filter(QuizSubmission.id == int(submission_id))
            .populate_existing()
            .with_for_update()
            .first()
        )
        if sub is None:
            raise NotFoundError("submission not found", submission_id=submission_id)
        yield sub
        db.commit()
    except Exception:
        db.rollback()
        raise


def update_submission(
    db: Session,
    submission_id: int,
    apply: Callable[[QuizSubmission], T],
    *,
    retries: int = STALE_WRITE_RETRIES,
) -> Tuple[QuizSubmission, T]:
    """Run ``apply`` on the locked row and commit it.

    When another writer committed first the flush fails on the version check.
    The row is then re-read and ``apply`` runs again, so its state guards see
    the other write.
    """
    for attempt in range(1, retries + 1):
        try:
            with locked_submission(db, submission_id) as sub:
                out = apply(sub)
        except StaleDataError:
            if attempt == retries:
                raise
            logger.info("Submission %s was changed concurrently, retrying (%s/%s)", submission_id, attempt, retries)
            continue
        return sub, out
    raise RuntimeError("retries must be at least 1")


def delete_submission(db: Session, submission: QuizSubmission) -> None:
    try:
        db.delete(submission)
        db.commit()
    except Exception:
        db.rollback()
        raise
