from __future__ import annotations

import logging
from typing import Any, Dict, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from quiz_engine.core.errors import InvalidInputError, NotFoundError
from quiz_engine.models.quiz import Quiz
from quiz_engine.schemas.quiz_config import QuizDefinition


logger = logging.getLogger(__name__)


def _parse(raw: Dict[str, Any]) -> QuizDefinition:
    try:
        return QuizDefinition.model_validate(raw)
    except ValidationError as exc:
        raise InvalidInputError(
            "quiz configuration is invalid",
            errors=[f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in exc.errors()],
        ) from exc


def resolve_quiz_definition(db: Session, quiz_id: int) -> QuizDefinition:
    """Load the stored quiz and validate it into a QuizDefinition."""
    row = db.query(Quiz).filter(Quiz.id == int(quiz_id)).first()
    if row is None:
        raise NotFoundError("quiz not found", quiz_id=quiz_id)

    raw = dict(row.raw_config or {})
    raw["id"] = str(row.id)
    raw.setdefault("title", row.title or "")
    try:
        return _parse(raw)
    except InvalidInputError:
        logger.warning("Stored config of quiz %s failed validation", row.id)
        raise


def save_quiz_definition(db: Session, *, title: str, config: Union[QuizDefinition, Dict[str, Any]]) -> Quiz:
    """Persist an authored quiz config after validating it."""
    if isinstance(config, QuizDefinition):
        raw = config.model_dump(mode="json")
    else:
        raw = dict(config or {})
        # Row id is not known yet; validate with a placeholder.
        _parse({**raw, "id": str(raw.get("id") or "new")})

    raw.pop("id", None)
    row = Quiz(title=title or str(raw.get("title") or ""), raw_config=raw)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
