"""study schema

Revision ID: 5b1f0c7a9d42
Revises: 
Create Date: 2026-10-18 10:12:44.120311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1f0c7a9d42'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "participant_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("group", sa.Integer(), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("progress_counter", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.CheckConstraint('"group" IN (1, 2)', name="ck_participant_codes_group"),
    )
    op.create_index("ix_participant_codes_code", "participant_codes", ["code"], unique=True)

    op.create_table(
        "videos",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False, unique=True),
        sa.Column("url", sa.Text(), nullable=False, unique=True),
        sa.Column("group", sa.Integer(), nullable=False),
        sa.Column("sex", sa.String(1), nullable=True, comment="m|f"),
        sa.Column("nar_level", sa.String(4), nullable=True, comment="high|low"),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("thumbnail_proxy_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )
    op.create_index("ix_videos_group", "videos", ["group"])

    # плейлист участника, пишется один раз
    op.create_table(
        "video_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("participant_codes.id"), nullable=False),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("videos.id"), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, comment="1..N, порядок показа"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.UniqueConstraint("participant_id", "order", name="uq_video_orders_participant_order"),
        sa.UniqueConstraint("participant_id", "video_id", name="uq_video_orders_participant_video"),
    )
    op.create_index("ix_video_orders_participant_id", "video_orders", ["participant_id"])

    op.create_table(
        "rankings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("participant_id", sa.Integer(), sa.ForeignKey("participant_codes.id"), nullable=False),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("videos.id"), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False, comment="1 = самое предпочтительное"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.UniqueConstraint("participant_id", "video_id", name="uq_rankings_participant_video"),
        sa.UniqueConstraint("participant_id", "rank", name="uq_rankings_participant_rank"),
    )
    op.create_index("ix_rankings_participant_id", "rankings", ["participant_id"])

    op.create_table(
        "researchers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    )


def downgrade() -> None:
    op.drop_table("researchers")
    op.drop_index("ix_rankings_participant_id", table_name="rankings")
    op.drop_table("rankings")
    op.drop_index("ix_video_orders_participant_id", table_name="video_orders")
    op.drop_table("video_orders")
    op.drop_index("ix_videos_group", table_name="videos")
    op.drop_table("videos")
    op.drop_index("ix_participant_codes_code", table_name="participant_codes")
    op.drop_table("participant_codes")
