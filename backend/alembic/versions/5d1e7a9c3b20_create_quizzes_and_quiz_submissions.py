"""create quizzes and quiz submissions

Revision ID: 5d1e7a9c3b20
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5d1e7a9c3b20"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "quizzes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("raw_config", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "quiz_submissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("quiz_id", sa.Integer(), nullable=False),
        sa.Column("course_module_link_id", sa.Integer(), nullable=True),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("enrollment_id", sa.Integer(), nullable=False),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="in_progress"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_spent_minutes", sa.Float(), nullable=True),
        sa.Column("answers_json", sa.JSON(), nullable=False),
        sa.Column("flagged_questions_json", sa.JSON(), nullable=False),
        sa.Column("total_score", sa.Float(), nullable=True),
        sa.Column("max_score", sa.Float(), nullable=True),
        sa.Column("percentage", sa.Float(), nullable=True),
        sa.Column("question_results_json", sa.JSON(), nullable=False),
        sa.Column("grading_feedback", sa.String(length=500), nullable=True),
        sa.Column("auto_graded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("needs_manual_grading", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(["quiz_id"], ["quizzes.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("quiz_id", "student_id", "attempt_number", name="uq_quiz_submissions_quiz_student_attempt"),
    )
    op.create_index(op.f("ix_quiz_submissions_quiz_id"), "quiz_submissions", ["quiz_id"], unique=False)
    op.create_index(op.f("ix_quiz_submissions_student_id"), "quiz_submissions", ["student_id"], unique=False)
    op.create_index(
        op.f("ix_quiz_submissions_course_module_link_id"), "quiz_submissions", ["course_module_link_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_quiz_submissions_course_module_link_id"), table_name="quiz_submissions")
    op.drop_index(op.f("ix_quiz_submissions_student_id"), table_name="quiz_submissions")
    op.drop_index(op.f("ix_quiz_submissions_quiz_id"), table_name="quiz_submissions")
    op.drop_table("quiz_submissions")
    op.drop_table("quizzes")
