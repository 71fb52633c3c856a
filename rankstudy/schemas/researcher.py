from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ResearcherCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)


class ResearcherRead(BaseModel):
    id: int
    email: EmailStr
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
