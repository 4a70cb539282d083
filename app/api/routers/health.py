# app/api/routers/health.py
import redis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_redis
from app.data.database import get_db
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def _check_db(db: Session) -> str:
    try:
        db.execute(text("SELECT 1"))
        return "ok"
    except SQLAlchemyError as e:
        logger.warning(f"Health: database unreachable: {e}")
        return "error"


def _check_redis(redis_client: redis.Redis) -> str:
    try:
        redis_client.ping()
        return "ok"
    except redis.RedisError as e:
        logger.warning(f"Health: redis unreachable: {e}")
        return "error"


def _report(checks: dict) -> JSONResponse:
    healthy = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "checks": checks},
    )


@router.get("")
def health(db: Session = Depends(get_db), redis_client: redis.Redis = Depends(get_redis)):
    return _report({"database": _check_db(db), "redis": _check_redis(redis_client)})


@router.get("/live")
def live():
    return {"status": "ok"}


@router.get("/ready")
def ready(db: Session = Depends(get_db)):
    return _report({"database": _check_db(db)})
