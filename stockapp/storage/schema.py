# stockapp/storage/schema.py
import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from stockapp.core.errors import SchemaInitializationError
from stockapp.storage import models  # noqa: F401  # Keep import so the models register
from stockapp.storage.db import Base, Database

log = logging.getLogger(__name__)


def init_schema(database: Database) -> None:
    """
    Creates the missing tables, in one transaction.
    Safe on every start; any failure leaves the store untouched.
    """
    try:
        with database.engine.begin() as conn:
            existing = set(inspect(conn).get_table_names())
            Base.metadata.create_all(bind=conn, checkfirst=True)
    except SQLAlchemyError as err:
        log.critical(f"Schema initialization failed: {err}")
        raise SchemaInitializationError(f"Could not initialize the database schema: {err}") from err

    created = sorted(set(Base.metadata.tables) - existing)
    if created:
        log.info(f"Schema ready, created tables: {', '.join(created)}")
    else:
        log.info("Schema ready, nothing to create.")
