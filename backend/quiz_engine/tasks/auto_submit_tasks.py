from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from redis.exceptions import RedisError

from quiz_engine.core.config import settings
from quiz_engine.core.errors import InvalidStateError, TimeLimitExceededError
from quiz_engine.db.session import SessionLocal
from quiz_engine.infra.queue import enqueue_at
from quiz_engine.models.quiz_submission import STATUS_IN_PROGRESS
from quiz_engine.schemas.quiz_config import QuizDefinition
from quiz_engine.services import attempt_service, submission_store
from quiz_engine.services.time_limit_guard import deadline_for


logger = logging.getLogger(__name__)


def task_auto_submit_attempt(submission_id: int) -> dict:
    """Try to complete an attempt whose timer has run out.

    Outcomes: ``completed``, ``expired`` (completion refused by the time
    limit, the attempt stays as it is), ``skipped`` (already finished) or
    ``failed``.
    """
    db = SessionLocal()
    try:
        sub = submission_store.get_submission(db, submission_id)
        if sub is None:
            logger.warning("Auto-submit: submission %s not found", submission_id)
            return {"submission_id": int(submission_id), "state": "failed", "message": "submission not found"}
        if sub.status != STATUS_IN_PROGRESS:
            return {"submission_id": int(submission_id), "state": "skipped"}

        res = attempt_service.complete_attempt(
            db,
            submission_id=int(submission_id),
            now=datetime.now(timezone.utc),
        )
        if res.ok:
            logger.info("Auto-submitted submission %s", submission_id)
            return {"submission_id": int(submission_id), "state": "completed"}

        if res.error.code == TimeLimitExceededError.code:
            logger.info("Auto-submit: submission %s expired (%s)", submission_id, res.error.details)
            return {"submission_id": int(submission_id), "state": "expired", "details": res.error.details}
        if res.error.code == InvalidStateError.code:
            # The student finished between the read above and the locked update.
            return {"submission_id": int(submission_id), "state": "skipped"}

        logger.warning("Auto-submit of submission %s failed: %s", submission_id, res.error.message)
        return {"submission_id": int(submission_id), "state": "failed", "message": res.error.message}
    finally:
        db.close()


def schedule_auto_submit(submission: Any, quiz: QuizDefinition) -> Dict[str, Any]:
    """Queue :func:`task_auto_submit_attempt` at the attempt's deadline.

    Scheduling problems are logged and reported, never raised: the attempt
    has already started.
    """
    deadline = deadline_for(submission.started_at, quiz)
    if deadline is None:
        return {"scheduled": False, "reason": "untimed"}
    if not settings.AUTO_SUBMIT_ENABLED:
        return {"scheduled": False, "reason": "disabled"}

    try:
        out = enqueue_at(
            deadline,
            task_auto_submit_attempt,
            int(submission.id),
            queue_name=settings.AUTO_SUBMIT_QUEUE,
        )
    except RedisError as exc:
        logger.error("Failed to schedule auto-submit for submission %s: %s", submission.id, exc)
        return {"scheduled": False, "reason": "queue_error"}

    return {"scheduled": bool(out.get("queued")), "job_id": out.get("job_id"), "deadline": deadline.isoformat()}
