from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from quiz_engine.core.errors import TimeLimitExceededError
from quiz_engine.schemas.quiz_config import QuizDefinition


def as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def elapsed_seconds(started_at: datetime, now: datetime) -> float:
    return (as_utc(now) - as_utc(started_at)).total_seconds()


def deadline_for(started_at: datetime, quiz: QuizDefinition) -> Optional[datetime]:
    """Instant after which completion is refused, or None for untimed quizzes."""
    if not quiz.has_time_limit:
        return None
    return as_utc(started_at) + timedelta(seconds=int(quiz.global_timer_seconds))


def check_within_limit(submission: Any, quiz: QuizDefinition, now: datetime) -> None:
    """Raise TimeLimitExceededError when ``now`` is past the quiz timer.

    Finishing exactly at the limit is still allowed.
    """
    if not quiz.has_time_limit:
        return

    limit = int(quiz.global_timer_seconds)
    elapsed = elapsed_seconds(submission.started_at, now)
    if elapsed > limit:
        raise TimeLimitExceededError(
            "time limit exceeded",
            submission_id=getattr(submission, "id", None),
            elapsed_seconds=round(elapsed, 3),
            limit_seconds=limit,
        )
