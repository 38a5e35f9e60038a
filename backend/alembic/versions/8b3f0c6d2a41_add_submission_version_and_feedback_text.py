"""add quiz submission version counter, grading feedback as text

Revision ID: 8b3f0c6d2a41
Revises: 5d1e7a9c3b20
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "8b3f0c6d2a41"
down_revision = "5d1e7a9c3b20"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("quiz_submissions") as batch_op:
        batch_op.add_column(sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")))
        batch_op.alter_column(
            "grading_feedback",
            existing_type=sa.String(length=500),
            type_=sa.Text(),
            existing_nullable=True,
        )


def downgrade() -> None:
    with op.batch_alter_table("quiz_submissions") as batch_op:
        batch_op.alter_column(
            "grading_feedback",
            existing_type=sa.Text(),
            type_=sa.String(length=500),
            existing_nullable=True,
        )
        batch_op.drop_column("version_id")
