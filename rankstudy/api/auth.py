import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.core.config import Settings, request_settings
from rankstudy.core.db import get_session
from rankstudy.core.security import create_jwt_token, get_current_researcher, hash_password, verify_password
from rankstudy.models.researcher import Researcher
from rankstudy.schemas.researcher import LoginRequest, ResearcherCreate, ResearcherRead, TokenResponse


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=ResearcherRead, status_code=status.HTTP_201_CREATED)
async def register(
    payload: ResearcherCreate,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(request_settings),
):
    if not settings.ALLOW_RESEARCHER_SIGNUP:
        raise HTTPException(status_code=403, detail="Registration is disabled")

    existing = await session.scalar(select(Researcher).where(Researcher.email == payload.email))
    if existing:
        raise HTTPException(status_code=409, detail="Email already registered")

    researcher = Researcher(
        email=payload.email,
        hashed_password=hash_password(payload.password),
    )
    session.add(researcher)
    await session.commit()
    await session.refresh(researcher)
    logger.info("researcher %s registered", researcher.id)
    return researcher


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(request_settings),
):
    researcher = await db.scalar(select(Researcher).where(Researcher.email == payload.email))

    if (
        not researcher
        or not researcher.is_active
        or not verify_password(payload.password, researcher.hashed_password)
    ):
        logger.warning("failed researcher login")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_jwt_token({"sub": str(researcher.id)}, settings)
    logger.info("researcher %s logged in", researcher.id)
    return TokenResponse(access_token=token)


@router.get("/me", response_model=ResearcherRead)
async def get_me(current: Researcher = Depends(get_current_researcher)):
    return current
