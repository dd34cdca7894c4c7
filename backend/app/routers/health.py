from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core import redis_client as redis_module
from backend.app.core.config import settings
from backend.app.db.session import get_session

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    """Basic liveness probe."""
    return {"ok": True}


@router.get("/readiness")
async def readiness(session: AsyncSession = Depends(get_session)) -> dict[str, bool]:
    """Ensure Postgres is reachable, and Redis too when slot holds are configured."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail="Database unavailable") from exc

    if settings.REDIS_URL:
        if redis_module.redis_client is None:
            raise HTTPException(status_code=503, detail="Redis unavailable")
        try:
            await redis_module.redis_client.ping()
        except RedisError as exc:
            raise HTTPException(status_code=503, detail="Redis unavailable") from exc
    return {"ready": True}
