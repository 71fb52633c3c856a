from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from rankstudy.core.db import get_session
from rankstudy.core.security import get_current_researcher
from rankstudy.services.export import export_results


router = APIRouter(tags=["results"], dependencies=[Depends(get_current_researcher)])


@router.get("/export-results")
async def export_results_csv(
    code: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    if not code:
        raise HTTPException(400, "Missing participant code parameter")

    content = await export_results(session, code)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{code}_result.csv"'},
    )
