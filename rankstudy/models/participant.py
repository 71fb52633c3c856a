from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from rankstudy.models.base import Base


class ParticipantCode(Base):
    __tablename__ = "participant_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)

    # экспериментальная группа, делит каталог видео
    group: Mapped[int] = mapped_column(Integer, nullable=False)

    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # soft delete: неактивный код не виден участникам, но остаётся для аудита
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # 0 -- код выдан; 1 -- код подтверждён, смотрит первое видео; N+1 -- всё просмотрено
    progress_counter: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint('"group" IN (1, 2)', name="ck_participant_codes_group"),
    )
