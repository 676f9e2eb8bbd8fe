# stockapp/storage/db.py
from __future__ import annotations
import logging
import os
from contextlib import contextmanager
from typing import Generator
from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from stockapp.core.errors import (
    ConstraintViolationError,
    constraint_violation_from,
    is_foreign_key_failure,
)

log = logging.getLogger(__name__)

# === CONFIGURATION: embedded SQLite store ===
DATABASE_URL = os.getenv(
    "STOCKAPP_DATABASE_URL",
    f"sqlite:///{os.path.join(os.getcwd(), 'stockapp.db')}"
)
ECHO_SQL = os.getenv("STOCKAPP_ECHO_SQL", "").lower() in ("1", "true", "yes")

# Option read by the "begin" listener to pick the BEGIN flavour
BEGIN_OPTION = "stockapp_begin"


# === BASE ORM ===
class Base(DeclarativeBase):
    """Base class for the ORM models."""
    pass


def _install_sqlite_hooks(engine: Engine) -> None:
    """
    pysqlite only opens transactions before DML, which leaves DDL and
    SELECTs outside of them. Take over BEGIN so every unit of work,
    schema creation included, is really atomic.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql(conn.get_execution_options().get(BEGIN_OPTION, "BEGIN"))


class Database:
    """
    Store handle owned by the application root.

    Opened once per run and passed to every repository; closed with dispose().
    """

    def __init__(self, url: str | None = None, echo: bool | None = None):
        self.url = url or DATABASE_URL
        # === ENGINE ===
        self.engine = create_engine(
            self.url,
            echo=ECHO_SQL if echo is None else echo,
            future=True,
        )
        if self.engine.dialect.name == "sqlite":
            _install_sqlite_hooks(self.engine)

        # === SESSIONS ===
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )
        # Same pool, but transactions start with BEGIN IMMEDIATE (writer lock up front)
        self.ExclusiveSession = sessionmaker(
            bind=self.engine.execution_options(**{BEGIN_OPTION: "BEGIN IMMEDIATE"}),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )
        log.info(f"Store opened at {self.engine.url!r}")

    @contextmanager
    def session_scope(self, exclusive: bool = False) -> Generator[Session, None, None]:
        """Transactional scope: commit on success, rollback on any error."""
        factory = self.ExclusiveSession if exclusive else self.SessionLocal
        db = factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @contextmanager
    def read_scope(self) -> Generator[Session, None, None]:
        """Read-only scope: whatever happened, nothing is committed."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.rollback()
            db.close()

    # === INTEGRITY ===
    def broken_references(self, table, values: dict) -> dict:
        """
        Foreign-key columns of `table` whose value in `values` has no parent row,
        in column order.
        """
        broken = {}
        with self.read_scope() as s:
            for column in table.columns:
                value = values.get(column.name)
                if value is None:
                    continue
                for fk in column.foreign_keys:
                    parent = fk.column
                    if s.execute(select(parent).where(parent == value).limit(1)).first() is None:
                        broken[column.name] = value
        return broken

    def constraint_violation(self, err: IntegrityError, table, values: dict) -> ConstraintViolationError:
        """Translates err, naming the reference that is actually missing on FK failures."""
        broken = self.broken_references(table, values) if is_foreign_key_failure(err) else None
        return constraint_violation_from(err, values, broken)

    def dispose(self) -> None:
        self.engine.dispose()
        log.info("Store closed.")
