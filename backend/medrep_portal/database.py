from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from medrep_portal.config import get_settings

settings = get_settings()

# One process-wide engine; every request borrows a connection from its pool.
engine = create_async_engine(settings.database_url, echo=settings.database_echo)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db():
    """FastAPI dependency yielding a session committed when the handler succeeds."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
