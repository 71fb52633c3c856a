from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from rankstudy.models.base import Base


class Ranking(Base):
    __tablename__ = "rankings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participant_codes.id"), nullable=False, index=True
    )
    video_id: Mapped[int] = mapped_column(ForeignKey("videos.id"), nullable=False)
    # 1 -- самое предпочтительное
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("participant_id", "video_id", name="uq_rankings_participant_video"),
        UniqueConstraint("participant_id", "rank", name="uq_rankings_participant_rank"),
    )
