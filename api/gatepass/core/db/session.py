import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from gatepass.core.config.config import settings
from gatepass.core.errors import ConflictError

log = logging.getLogger(__name__)

engine = create_async_engine(settings.effective_database_url(), pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
Base = declarative_base()

async def get_db() -> AsyncSession:
    async with SessionLocal() as session:
        yield session

async def commit_or_conflict(db: AsyncSession, message: str = "The change conflicts with existing data, please retry") -> None:
    """Commit; a unique or foreign-key violation becomes a ``ConflictError``."""
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        log.info("integrity violation mapped to conflict: %s", exc.orig)
        raise ConflictError(message) from exc
