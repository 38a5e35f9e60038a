from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from quiz_engine.db.base_class import Base


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    # Authoring output (pages, questions, scoring, timer). Validated on read by the resolver.
    raw_config: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict, server_default=text("'{}'"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
