"""quiz, question and submission tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 10:00:00
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "quizzes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=11), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("shuffle_questions", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("creator_id", sa.String(length=128), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_quizzes_code", "quizzes", ["code"], unique=True)
    op.create_index("ix_quizzes_creator_id", "quizzes", ["creator_id"])

    op.create_table(
        "quiz_questions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "quiz_id",
            sa.Integer(),
            sa.ForeignKey("quizzes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("choices_json", sa.JSON(), nullable=True),
        sa.Column("answer_json", sa.JSON(), nullable=False),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_quiz_questions_quiz_id", "quiz_questions", ["quiz_id"])

    op.create_table(
        "quiz_submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "quiz_id",
            sa.Integer(),
            sa.ForeignKey("quizzes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("user_name", sa.String(length=255), nullable=False),
        sa.Column("answers_json", sa.JSON(), nullable=False),
        sa.Column("correct_count", sa.Integer(), nullable=False),
        sa.Column("total_count", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Integer(), nullable=False),
        sa.Column(
            "submitted_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.UniqueConstraint("quiz_id", "user_id", name="uq_quiz_submissions_quiz_user"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_quiz_submissions_quiz_id", "quiz_submissions", ["quiz_id"])
    op.create_index("ix_quiz_submissions_user_id", "quiz_submissions", ["user_id"])


def downgrade() -> None:
    op.drop_table("quiz_submissions")

    op.drop_table("quiz_questions")

    op.drop_table("quizzes")
