# app/data/database.py
from typing import Callable, Iterator, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.utils.settings import DATABASE_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _engine_options(url: str) -> dict:
    #sqlite (tests, local dev): one shared connection so in-memory data survives
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {"pool_pre_ping": True}


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
Base = declarative_base()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_in_transaction(db: Session, fn: Callable[[Session], T]) -> T:
    """
    Runs fn(db) as one unit of work.
    Commit when fn returns, rollback of every write when it raises.
    """
    try:
        result = fn(db)
        db.commit()
        return result
    except Exception:
        logger.info("Transaction rolled back")
        db.rollback()
        raise
