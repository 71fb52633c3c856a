from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator


class VideoBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    url: HttpUrl
    group: Literal[1, 2] = 1
    sex: Optional[Literal["m", "f"]] = None
    nar_level: Optional[Literal["high", "low"]] = None
    thumbnail_url: Optional[HttpUrl] = None

    @field_validator("thumbnail_url", mode="before")
    @classmethod
    def _empty_thumbnail(cls, v):
        # форма шлёт "" если поле пустое
        return v or None


class VideoCreate(VideoBase):
    pass


class VideoUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    url: Optional[HttpUrl] = None
    group: Optional[Literal[1, 2]] = None
    sex: Optional[Literal["m", "f"]] = None
    nar_level: Optional[Literal["high", "low"]] = None
    thumbnail_url: Optional[HttpUrl] = None

    @field_validator("thumbnail_url", mode="before")
    @classmethod
    def _empty_thumbnail(cls, v):
        return v or None

    @field_validator("title", "url", "group", mode="before")
    @classmethod
    def _not_null(cls, v, info):
        # поле можно не присылать, но явный null в NOT NULL колонку не пишем
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class VideoRead(BaseModel):
    id: int
    title: str
    url: str
    group: int
    sex: Optional[str] = None
    nar_level: Optional[str] = None
    thumbnail_url: Optional[str] = None
    thumbnail_proxy_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
