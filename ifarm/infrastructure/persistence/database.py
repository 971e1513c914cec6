"""
Async SQLAlchemy engine and session dependencies.

Access checks read the access state through `get_db` (no transaction is
held open while a decision is made). Role, policy, delegation and assignment
writes go through `get_db_transactional`, so the write, its audit rows and
the tenant authz_version bump commit or roll back together. Decision audit
entries are written separately by SqlAlchemyAuditLogWriter in their own
sessions.
"""

from sqlalchemy.ext.asyncio import (AsyncSession, async_sessionmaker,
                                    create_async_engine)
from sqlalchemy.orm import DeclarativeBase

from ifarm.infrastructure.config.settings import get_settings

settings = get_settings()

# SQLite (tests) gets the driver defaults
_pool_options = (
    {"pool_pre_ping": True, "pool_size": 20, "max_overflow": 30, "pool_recycle": 3600}
    if settings.database_url.startswith("postgresql")
    else {}
)

engine = create_async_engine(settings.database_url, echo=settings.database_echo, **_pool_options)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base for the access control tables"""


async def get_db():
    """Session for access checks and listings; never commits"""
    async with AsyncSessionLocal() as session:
        yield session


async def get_db_transactional():
    """
    Session wrapped in one transaction for authorization writes.

    Commits when the route returns, rolls back if it raises (including a 403
    or a ConcurrentUpdateError raised mid-write).
    """
    async with AsyncSessionLocal() as session:
        async with session.begin():
            yield session
