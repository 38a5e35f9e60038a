from fastapi import APIRouter

from quiz_engine.core.config import settings
from quiz_engine.infra.queue import is_async_enabled


router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {
        "status": "ok",
        "async_queue": {"enabled": bool(is_async_enabled())},
        "auto_submit": {"enabled": bool(settings.AUTO_SUBMIT_ENABLED and is_async_enabled())},
    }
