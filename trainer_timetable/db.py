from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from trainer_timetable.settings import settings
from trainer_timetable import models


def enable_sqlite_write_locks(engine: Engine) -> None:
    """
    Open every SQLite transaction with ``BEGIN IMMEDIATE``.

    SQLite ignores ``SELECT ... FOR UPDATE``, so the reserved lock taken at
    BEGIN is what serialises the conflict scan and the insert that follows it.
    pysqlite's own transaction handling is switched off so the BEGIN below is
    the only one emitted.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, echo=False, connect_args=connect_args)
if settings.database_url.startswith("sqlite"):
    enable_sqlite_write_locks(engine)


def create_db_and_tables() -> None:
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
