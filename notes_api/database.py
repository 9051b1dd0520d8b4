import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from notes_api.models import Base, Note

logger = logging.getLogger(__name__)

# Columns added after the first deployment: (table, column, DDL fragment).
# Each must be nullable so existing rows survive the ALTER.
ADDITIVE_COLUMNS = (
    ("notes", "user_id", "user_id INTEGER REFERENCES users(id)"),
    ("users", "name", "name VARCHAR(255)"),
)


class Database:
    """
    Handle on the relational store: one engine plus a session factory.

    Created once per application and shared by every request; each request
    takes its own session through `get_db`.
    """

    def __init__(self, url: str):
        self.url = url
        connect_args = {}
        engine_kwargs = {}
        if url.startswith("sqlite"):
            # SQLite needs check_same_thread=False for multithreading in FastAPI
            connect_args["check_same_thread"] = False
            if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, connect_args=connect_args, future=True, **engine_kwargs)
        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    # PUBLIC_INTERFACE
    def migrate(self) -> None:
        """
        Create missing tables, then add columns that older databases lack.

        Safe to run on every startup; an up-to-date schema is left untouched.
        """
        Base.metadata.create_all(bind=self.engine)
        inspector = inspect(self.engine)
        for table, column, ddl in ADDITIVE_COLUMNS:
            existing = {col["name"] for col in inspector.get_columns(table)}
            if column in existing:
                continue
            with self.engine.begin() as conn:
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {ddl}"))
            logger.info("Added %s column to %s", column, table)
        for index in Note.__table__.indexes:
            index.create(bind=self.engine, checkfirst=True)
        logger.info("Database schema ready")

    def dispose(self) -> None:
        self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_db(request: Request) -> Iterator[Session]:
    """
    Dependency that provides a database session and ensures proper cleanup.
    """
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
