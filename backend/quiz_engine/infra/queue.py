from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict

import redis
from rq import Queue

from quiz_engine.core.config import settings


def is_async_enabled() -> bool:
    return bool(getattr(settings, "ASYNC_QUEUE_ENABLED", False))


def get_redis_conn() -> redis.Redis:
    url = str(getattr(settings, "REDIS_URL", "redis://localhost:6379/0"))
    return redis.Redis.from_url(url)


def get_queue(name: str = "default") -> Queue:
    conn = get_redis_conn()
    return Queue(name, connection=conn, default_timeout=int(getattr(settings, "RQ_DEFAULT_TIMEOUT_SEC", 1800)))


def enqueue_at(
    when: datetime,
    fn: Callable[..., Any],
    *args: Any,
    queue_name: str = "default",
    **kwargs: Any,
) -> Dict[str, Any]:
    """Schedule a background job to run at ``when``.

    Returns a dict with job_id and status. A delayed job has no sync fallback:
    running it now would fire before its time, so with async disabled nothing
    is scheduled.
    """
    if not is_async_enabled():
        return {"job_id": None, "queued": False, "scheduled_for": when.isoformat()}

    q = get_queue(queue_name)
    job = q.enqueue_at(when, fn, *args, **kwargs)
    return {"job_id": str(job.id), "queued": True, "scheduled_for": when.isoformat()}
