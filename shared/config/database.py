from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .settings import settings

DATABASE_URL = settings.DATABASE_URL

_engine_options = {"echo": settings.SQL_ECHO}
if DATABASE_URL.startswith("sqlite"):
    # aiosqlite connections are bound to the loop that opened them
    _engine_options["poolclass"] = NullPool

engine = create_async_engine(DATABASE_URL, **_engine_options)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
