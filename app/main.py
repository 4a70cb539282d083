# app/main.py
from contextlib import asynccontextmanager

import redis
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api import include_routers
from app.data.database import Base, engine
from app.domain.errors import ShopError
from app.utils.settings import REDIS_URL
from app.utils.logging import get_logger

# every model has to be registered before create_all
from app.data import models  # noqa: F401

logger = get_logger(__name__)


def init_db() -> None:
    logger.info(f"Initializing database, models registered: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("Failed to create tables")
        raise
    logger.info("Database tables ready")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if getattr(app.state, "redis", None) is None:
        app.state.redis = redis.Redis.from_url(REDIS_URL, decode_responses=True)
    yield
    app.state.redis.close()


async def shop_error_handler(request: Request, exc: ShopError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc)})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"success": False, "message": "Server error"})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    include_routers(app)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
