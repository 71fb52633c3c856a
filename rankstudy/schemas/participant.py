from datetime import datetime
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class VerifyCodeIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)


class MessageOut(BaseModel):
    message: str


class SuccessOut(BaseModel):
    success: bool = True


class ParticipantOut(BaseModel):
    id: int
    code: str
    group: int
    progress_counter: int

    model_config = ConfigDict(from_attributes=True)


class PlaylistVideoOut(BaseModel):
    id: int
    url: str
    group: int
    thumbnail: Optional[str] = None
    order: int


class ExperimentOut(BaseModel):
    status: Literal["watching", "completed"]
    participant: ParticipantOut
    videos: list[PlaylistVideoOut]
    # позиция в плейлисте, уже с учётом шага подтверждения кода
    position: int
    current_video_index: Optional[int] = None
    ranking_pool: list[int]


class ProgressIn(BaseModel):
    action: Literal["increment_progress"]
    # если прислали -- инкремент только при совпадении со значением в базе
    expected_counter: Optional[int] = Field(default=None, ge=0)


class ProgressOut(BaseModel):
    success: bool = True
    progress_counter: int


class RankingItem(BaseModel):
    # клиент шлёт либо {video_id}, либо целый объект видео с {id}
    video_id: int = Field(validation_alias=AliasChoices("video_id", "id"))


class RankingsIn(BaseModel):
    rankings: list[RankingItem]


class ParticipantCodeRead(BaseModel):
    id: int
    code: str
    group: int
    is_used: bool
    progress_counter: int
    used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GenerateCodeIn(BaseModel):
    group: Literal[1, 2] = 1
