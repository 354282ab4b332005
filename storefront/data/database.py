"""
Database access.

``Database`` owns the engine and the session factory. It is built once at
process start (see ``storefront.main.create_app``) and disposed on shutdown,
then handed to whoever needs sessions instead of being imported as a global.
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront.domain.errors import AppError, InternalError, TransactionError
from storefront.utils.logging import get_logger
from storefront.utils.settings import (
    DB_MAX_OVERFLOW,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    SQL_ECHO,
    SQLITE_BUSY_TIMEOUT,
)

logger = get_logger(__name__)

Base = declarative_base()


def _configure_sqlite(engine: Engine) -> None:
    # pysqlite defers BEGIN on its own which breaks SAVEPOINT handling;
    # take over transaction control and switch foreign keys on.
    # IMMEDIATE takes the write lock at BEGIN, other writers wait
    # on the busy timeout
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(url: str, echo: bool = SQL_ECHO, **kwargs) -> Engine:
    """
    Create SQLAlchemy engine.

    Pool sizing only applies to server databases; SQLite gets the
    transaction fix-ups from ``_configure_sqlite``.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT})
        engine = create_engine(url, echo=echo, **kwargs)
        _configure_sqlite(engine)
        return engine

    kwargs.setdefault("pool_size", DB_POOL_SIZE)
    kwargs.setdefault("max_overflow", DB_MAX_OVERFLOW)
    kwargs.setdefault("pool_timeout", DB_POOL_TIMEOUT)
    return create_engine(url, echo=echo, pool_pre_ping=True, **kwargs)


class Database:
    """Engine + session factory with an explicit lifecycle."""

    def __init__(self, url: str, **engine_kwargs):
        self.url = url
        self.engine = create_db_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def create_all(self) -> None:
        # models have to be imported before create_all so Base.metadata knows them
        import storefront.data.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Database tables ready: {sorted(Base.metadata.tables.keys())}")

    def session(self) -> Session:
        return self.SessionLocal()

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def dispose(self) -> None:
        logger.info("Closing database connections")
        self.engine.dispose()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a block as one atomic unit.

    Commits when the block finishes, rolls back on any exception and
    re-raises it classified: ``AppError`` as is, storage failures as
    ``TransactionError``, anything else as ``InternalError``.
    """
    try:
        yield db
        db.commit()
    except AppError:
        db.rollback()
        logger.warning("Transaction rolled back")
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction aborted by storage layer: {e}")
        raise TransactionError("Storage transaction failed, nothing was committed") from e
    except Exception as e:
        db.rollback()
        logger.error(f"Transaction failed: {e!r}")
        raise InternalError("Unexpected error, nothing was committed") from e
