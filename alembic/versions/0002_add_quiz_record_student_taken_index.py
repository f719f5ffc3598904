"""add composite index for per-student record history
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002_record_student_taken_at'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = {ix["name"] for ix in inspector.get_indexes("quizrecord")}
    if "ix_quizrecord_student_taken_at" in existing:
        return
    op.create_index(
        "ix_quizrecord_student_taken_at",
        "quizrecord",
        ["student_id", "taken_at"],
    )


def downgrade():
    op.drop_index("ix_quizrecord_student_taken_at", table_name="quizrecord")
