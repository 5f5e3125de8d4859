from collections.abc import Generator
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass, Session, sessionmaker

from gamefinder.core.config import get_settings

settings = get_settings()

CONNECTION_URL = settings.database_url

connection_url = make_url(CONNECTION_URL)
engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
connect_args: dict[str, Any] = {}

if connection_url.drivername.startswith("sqlite"):
    # Relax SQLite's default thread check so the same connection can be reused across requests.
    connect_args["check_same_thread"] = False
    if connection_url.database and connection_url.database != ":memory:":
        Path(connection_url.database).parent.mkdir(parents=True, exist_ok=True)
else:
    engine_kwargs.update(
        {
            "pool_size": 5,
            "max_overflow": 10,
            "pool_recycle": 1800,
            "pool_timeout": 30,
        }
    )
    connect_args["connect_timeout"] = 5

if connect_args:
    engine_kwargs["connect_args"] = connect_args


def enable_sqlite_savepoints(target: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside it.

    pysqlite otherwise defers BEGIN until the first DML statement, and a
    SAVEPOINT issued before that becomes the outer transaction.
    """

    @event.listens_for(target, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_engine(CONNECTION_URL, **engine_kwargs)

if connection_url.drivername.startswith("sqlite"):
    enable_sqlite_savepoints(engine)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session]:
    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping_database() -> bool:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


class Base(MappedAsDataclass, DeclarativeBase):
    pass
