import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import BigInteger, Integer, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger(__name__)

# bigserial on PostgreSQL; SQLite only autoincrements INTEGER primary keys
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


def make_engine(url: str, echo: bool = False, pool_size: int = 10) -> Engine:
    """Create an engine for the datastore.

    SQLite connections are switched to ``BEGIN IMMEDIATE`` transactions so a
    read-then-write (quota check, session start) holds the write lock from
    its first statement, the same guarantee the PostgreSQL code paths get
    from row locks and advisory locks.
    """
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _configure_sqlite(engine)
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        pool_pre_ping=True,
    )


def _configure_sqlite(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # let SQLAlchemy emit BEGIN itself instead of pysqlite
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class PostgreSQLDatabase:
    """Owns the engine and hands out sessions."""

    def __init__(self, url: str, echo: bool = False, pool_size: int = 10):
        self.url = url
        self.engine = make_engine(url, echo=echo, pool_size=pool_size)
        self.session_factory = sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
        )

    def startup(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info(f"Database reachable ({self.engine.dialect.name})")

    def create_tables(self) -> None:
        """Create all tables directly; production schemas go through Alembic."""
        import cardsmith.models  # noqa: F401

        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def teardown(self) -> None:
        self.engine.dispose()
        logger.info("Database connections closed")
