# laundry/db/engine.py

from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from laundry.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, echo: bool = False) -> Engine:
    engine = create_engine(url, echo=echo, future=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


@lru_cache(maxsize=None)
def get_engine() -> Engine:
    # One engine (and pool) per process; tests override this dependency
    return build_engine(settings.database_url, echo=settings.sql_echo)
