from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, false, func, text
from sqlalchemy.orm import Mapped, mapped_column

from quiz_engine.db.base_class import Base


STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"


class QuizSubmission(Base):
    __tablename__ = "quiz_submissions"
    __table_args__ = (
        UniqueConstraint("quiz_id", "student_id", "attempt_number", name="uq_quiz_submissions_quiz_student_attempt"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    quiz_id: Mapped[int] = mapped_column(ForeignKey("quizzes.id"), index=True, nullable=False)
    course_module_link_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    student_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    enrollment_id: Mapped[int] = mapped_column(Integer, nullable=False)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_IN_PROGRESS,
        server_default=text("'in_progress'"),
    )

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Minutes, not rounded.
    time_spent_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Ordered list of stored answers, at most one per question_id.
    answers_json: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    flagged_questions_json: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Grading fields, written by the auto-grader on completion.
    total_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    question_results_json: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    grading_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    auto_graded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    needs_manual_grading: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    graded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Bumped on every UPDATE; a write based on a stale read fails with StaleDataError.
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))

    __mapper_args__ = {"version_id_col": version_id}
