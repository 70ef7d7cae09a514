from sqlalchemy import event
from sqlalchemy.pool import NullPool
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from meetwhen.core.config import DATABASE_URL, DB_ECHO

IS_SQLITE = DATABASE_URL.startswith("sqlite")

# Create async engine
engine = create_async_engine(
    DATABASE_URL,
    echo=DB_ECHO,
    future=True,
    # One SQLite connection per session, never shared across event loops
    **({"connect_args": {"timeout": 30}, "poolclass": NullPool} if IS_SQLITE else {}),
)

if IS_SQLITE:
    # SQLite has no row locks; BEGIN IMMEDIATE takes the write lock up front
    # so booking commits are serialised per database file. Every transaction
    # takes it, reads included, so one open session blocks all others: this
    # backend is for local runs and tests only. PostgreSQL uses row locks.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Base class for models
Base = declarative_base()


# Dependency for FastAPI
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_all() -> None:
    """Create every table (local development and tests; production uses Alembic)."""
    import meetwhen.models  # noqa: F401  registers the tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_all() -> None:
    import meetwhen.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
