import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import check_db, get_db_session

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(db_session: AsyncSession = Depends(get_db_session)):
    try:
        await check_db(db_session)
    except (SQLAlchemyError, OSError):
        logger.error("database health check failed", exc_info=True)
        return JSONResponse(status_code=503,
                            content={"status": "degraded", "database": "unavailable"})
    return {"status": "ok", "database": "ok"}
