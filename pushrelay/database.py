from .config import settings
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from typing import AsyncGenerator, Optional

from .notifications.exceptions import TokenStoreNotConfigured

Base = declarative_base()

async_engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker] = None

if settings.database_url:
    DATABASE_URL = settings.database_url.replace("postgresql://", "postgresql+asyncpg://")

    async_engine = create_async_engine(
        DATABASE_URL,
        echo=settings.debug,
        future=True,
        pool_pre_ping=True
    )

    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


async def close_db():
    if async_engine is not None:
        await async_engine.dispose()


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    if async_session_maker is None:
        raise TokenStoreNotConfigured()
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
