import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse

from media_optimizer.schemas.common import LogPage
from media_optimizer.utils.log_buffer import recent_logs

router = APIRouter()


@router.get("/logs", response_model=LogPage)
async def get_logs(
    level: Optional[str] = None,
    logger_name: Optional[str] = None,
    limit: int = Query(500, ge=1),
    offset: int = Query(0, ge=0),
):
    """Recent log entries, newest first; ``level`` is a minimum severity."""
    min_level = logging.NOTSET
    if level:
        min_level = logging.getLevelName(level.upper())
        if not isinstance(min_level, int):
            raise HTTPException(status_code=400, detail=f"Unknown log level: {level}")

    entries = recent_logs.entries(min_level, logger_name)
    return LogPage(items=entries[offset:offset + limit], total=len(entries))


@router.get("/logs/export")
async def export_logs():
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return PlainTextResponse(
        content=recent_logs.as_text(),
        headers={"Content-Disposition": f"attachment; filename=media-optimizer-logs-{stamp}.txt"},
    )
