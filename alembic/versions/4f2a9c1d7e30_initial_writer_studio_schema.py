"""initial writer studio schema

Revision ID: 4f2a9c1d7e30
Revises:
Create Date: 2025-05-20 09:12:00.000000

Creates the account tables (login, writer), script submissions, and the
video catalogue with its daily metric and retention tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "4f2a9c1d7e30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "login",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("username", sa.Text(), nullable=False, comment="Unique login name."),
        sa.Column("password_hash", sa.Text(), nullable=False, comment="bcrypt hash of the account password."),
        sa.Column("role", sa.Text(), server_default="writer", nullable=False, comment="Account role."),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )

    op.create_table(
        "writer",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("login_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.Text(), nullable=True, comment="Display name of the writer."),
        sa.Column("email", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["login_id"], ["login.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("login_id"),
    )
    op.create_index("idx_writer_login_id", "writer", ["login_id"])

    op.create_table(
        "script",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("writer_id", sa.BigInteger(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=True, comment="Original, Trope, STL or Re-write."),
        sa.Column("number", sa.Text(), nullable=True, comment="Trope number, only set for Trope submissions."),
        sa.Column("structure", sa.Text(), nullable=True),
        sa.Column("google_doc_link", sa.Text(), nullable=False),
        sa.Column("approval_status", sa.Text(), server_default="pending", nullable=False),
        sa.Column("loom_url", sa.Text(), nullable=True, comment="Optional walkthrough recording."),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["writer_id"], ["writer.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_script_writer_created", "script", ["writer_id", "created_at"])

    op.create_table(
        "video",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("writer_id", sa.BigInteger(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("account_name", sa.Text(), nullable=True, comment="Channel the video was posted on."),
        sa.Column("video_cat", sa.Text(), server_default="video", nullable=False,
                  comment="video, short or 'full to short'."),
        sa.Column("posted_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), server_default="0", nullable=False),
        sa.Column("avg_view_duration_seconds", sa.Integer(), nullable=True),
        sa.Column("views", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("likes", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("comments", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("thumbnails", postgresql.JSONB(astext_type=sa.Text()), nullable=True,
                  comment="Thumbnail URLs keyed by variant."),
        sa.ForeignKeyConstraint(["writer_id"], ["writer.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_video_writer_posted", "video", ["writer_id", "posted_date"])

    op.create_table(
        "video_daily_metrics",
        sa.Column("video_id", sa.BigInteger(), nullable=False),
        sa.Column("writer_id", sa.BigInteger(), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("views", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("likes", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("comments", sa.BigInteger(), server_default="0", nullable=False),
        sa.ForeignKeyConstraint(["video_id"], ["video.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("video_id", "day", name="pk_video_daily_metrics"),
    )
    op.create_index("idx_video_daily_metrics_writer_day", "video_daily_metrics", ["writer_id", "day"])

    op.create_table(
        "video_retention",
        sa.Column("video_id", sa.BigInteger(), nullable=False),
        sa.Column("elapsed_video_time_ratio", sa.Float(), nullable=False),
        sa.Column("audience_watch_ratio", sa.Float(), nullable=False),
        sa.Column("relative_retention_performance", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["video_id"], ["video.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("video_id", "elapsed_video_time_ratio", name="pk_video_retention"),
    )


def downgrade() -> None:
    op.drop_table("video_retention")
    op.drop_index("idx_video_daily_metrics_writer_day", table_name="video_daily_metrics")
    op.drop_table("video_daily_metrics")
    op.drop_index("idx_video_writer_posted", table_name="video")
    op.drop_table("video")
    op.drop_index("idx_script_writer_created", table_name="script")
    op.drop_table("script")
    op.drop_index("idx_writer_login_id", table_name="writer")
    op.drop_table("writer")
    op.drop_table("login")
