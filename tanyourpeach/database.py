import logging

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from tanyourpeach.core.config import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=SQL_ECHO, connect_args=connect_args)


def enable_sqlite_foreign_keys(bind: Engine) -> None:
    """SQLite ignores FOREIGN KEY clauses unless the pragma is set per connection."""
    if bind.dialect.name != "sqlite":
        return

    @event.listens_for(bind, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)


def create_db_and_tables(bind: Engine | None = None) -> None:
    # registers every table on SQLModel.metadata
    from tanyourpeach.models import (  # noqa: F401
        appointment,
        availability,
        financial_log,
        inventory,
        receipt,
        service,
        status_history,
        user,
    )

    SQLModel.metadata.create_all(bind or engine)
    logger.info("Database tables ready")


def get_session():
    with Session(engine) as session:
        yield session
