from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from shared.config.settings import DATABASE_URL, DB_ECHO
from shared.data_access.validation import ValidatedModel

Base = declarative_base(cls=ValidatedModel)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_from_url(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    engine = create_async_engine(url, echo=echo, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # Writes stay staged until the unit of work saves; reads never flush them
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


engine = create_engine_from_url(DATABASE_URL, echo=DB_ECHO)

AsyncSessionLocal = create_session_factory(engine)
