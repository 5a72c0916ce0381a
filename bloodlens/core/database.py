from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool


# Base class for models
Base = declarative_base()


def normalize_database_url(database_url: str) -> str:
    """Railway/Heroku hand out postgresql:// URLs, asyncpg needs its own scheme"""
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def _sqlite_immediate_transactions(engine: AsyncEngine):
    """Take the write lock at BEGIN so concurrent writers queue instead of failing"""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine. Called once per process from create_app."""
    database_url = normalize_database_url(database_url)
    if database_url.startswith("sqlite"):
        # No pooling, so a connection never outlives the event loop that opened it
        engine = create_async_engine(database_url, echo=echo, future=True, poolclass=NullPool)
        _sqlite_immediate_transactions(engine)
        return engine
    return create_async_engine(database_url, echo=echo, future=True, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine):
    """Create tables for every registered model"""
    async with engine.begin() as conn:
        # Register models on Base.metadata
        from bloodlens.models import user, report  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)
