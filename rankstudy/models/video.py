from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rankstudy.models.base import Base


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(300), unique=True, nullable=False)
    url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    group: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # демография для стратифицированной выборки
    sex: Mapped[Optional[str]] = mapped_column(String(1), nullable=True)  # m|f
    nar_level: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)  # high|low

    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    thumbnail_proxy_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @property
    def thumbnail(self) -> Optional[str]:
        return self.thumbnail_proxy_url or self.thumbnail_url


class VideoOrder(Base):
    """Плейлист участника: одна строка на (участник, видео), создаётся один раз."""

    __tablename__ = "video_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participant_codes.id"), nullable=False, index=True
    )
    video_id: Mapped[int] = mapped_column(ForeignKey("videos.id"), nullable=False)
    # 1..N, порядок показа
    order: Mapped[int] = mapped_column("order", Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    video: Mapped["Video"] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("participant_id", "order", name="uq_video_orders_participant_order"),
        UniqueConstraint("participant_id", "video_id", name="uq_video_orders_participant_video"),
    )
